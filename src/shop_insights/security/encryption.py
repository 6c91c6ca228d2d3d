"""
Encryption utilities for storing Shopify access tokens at rest.

Uses Fernet symmetric encryption with master key rotation support.
"""

from typing import List, Optional

from cryptography.fernet import Fernet, MultiFernet, InvalidToken

from shop_insights.utils.config import get_config
from shop_insights.utils.exceptions import ConfigurationError
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)


class CredentialEncryptor:
    """
    Encrypts and decrypts sensitive credentials using Fernet.

    Supports key rotation through MultiFernet: new values are encrypted with
    the primary key, old ciphertexts still decrypt with the secondary key.
    """

    def __init__(self, master_key: Optional[str] = None, secondary_key: Optional[str] = None):
        """
        Initialize encryptor.

        Args:
            master_key: Base64-encoded Fernet key (ENCRYPTION_MASTER_KEY by default)
            secondary_key: Previous key kept for decryption (ENCRYPTION_SECONDARY_KEY)
        """
        config = get_config()
        self.master_key = master_key or config.encryption_master_key

        if not self.master_key:
            raise ConfigurationError(
                "ENCRYPTION_MASTER_KEY environment variable is required. "
                "Generate one with: shop-insights generate-key"
            )

        self.keys = self._load_keys(secondary_key or config.encryption_secondary_key)
        try:
            self.fernet = MultiFernet([Fernet(key) for key in self.keys])
        except ValueError as e:
            raise ConfigurationError(f"Invalid encryption key: {e}")

        logger.info(f"Initialized credential encryptor with {len(self.keys)} key(s)")

    def _load_keys(self, secondary: Optional[str]) -> List[bytes]:
        keys = [self.master_key.encode() if isinstance(self.master_key, str) else self.master_key]
        if secondary:
            keys.append(secondary.encode() if isinstance(secondary, str) else secondary)
            logger.info("Secondary encryption key loaded for rotation")
        return keys

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt plaintext string.

        Returns:
            Fernet token as text
        """
        if not plaintext:
            raise ValueError("Cannot encrypt empty string")

        return self.fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt ciphertext string.

        Raises:
            InvalidToken: If decryption fails
        """
        if not ciphertext:
            raise ValueError("Cannot decrypt empty string")

        try:
            return self.fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken:
            logger.error("Decryption failed - invalid token or corrupted data")
            raise

    def rotate(self, ciphertext: str) -> str:
        """Re-encrypt a ciphertext under the current primary key."""
        return self.fernet.rotate(ciphertext.encode()).decode()

    @staticmethod
    def generate_key() -> str:
        """Generate a new Fernet encryption key."""
        return Fernet.generate_key().decode()


# Global encryptor instance
_encryptor: Optional[CredentialEncryptor] = None


def get_encryptor() -> CredentialEncryptor:
    """Get or create global encryptor instance."""
    global _encryptor
    if _encryptor is None:
        _encryptor = CredentialEncryptor()
    return _encryptor


def reset_encryptor() -> None:
    """Forget the cached encryptor so the next call re-reads configuration."""
    global _encryptor
    _encryptor = None


def encrypt_credential(plaintext: str) -> str:
    """Convenience function to encrypt a credential."""
    return get_encryptor().encrypt(plaintext)


def decrypt_credential(ciphertext: str) -> str:
    """Convenience function to decrypt a credential."""
    return get_encryptor().decrypt(ciphertext)
