"""
Security utilities for Shop Insights.
"""

from .encryption import (
    CredentialEncryptor,
    get_encryptor,
    encrypt_credential,
    decrypt_credential,
)

__all__ = [
    "CredentialEncryptor",
    "get_encryptor",
    "encrypt_credential",
    "decrypt_credential",
]
