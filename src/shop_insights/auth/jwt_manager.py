"""
JWT session token management.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import uuid

from jose import JWTError, jwt

from shop_insights.utils.config import get_config
from shop_insights.utils.exceptions import AuthenticationError, ConfigurationError
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)


class JWTManager:
    """
    Issues and verifies dashboard session tokens.

    Tokens carry the user id (`sub`) and the tenant id; API routes derive the
    tenant from these claims only.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_minutes: Optional[int] = None,
    ):
        """
        Initialize JWT manager.

        Args:
            secret_key: Secret key for signing tokens (SECRET_KEY by default)
            algorithm: Signing algorithm (JWT_ALGORITHM by default)
            access_token_expire_minutes: Token TTL in minutes
        """
        config = get_config()
        self.secret_key = secret_key or config.secret_key
        if not self.secret_key:
            raise ConfigurationError("SECRET_KEY environment variable is required for JWT")

        self.algorithm = algorithm or config.jwt_algorithm
        self.access_token_expire = timedelta(
            minutes=access_token_expire_minutes or config.access_token_expire_minutes
        )

        logger.info(f"Initialized JWT manager (algorithm={self.algorithm}, ttl={self.access_token_expire})")

    @property
    def expires_in(self) -> int:
        """Token lifetime in seconds."""
        return int(self.access_token_expire.total_seconds())

    def create_access_token(
        self,
        user_id: str,
        tenant_id: str,
        additional_claims: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Create access token for authenticated user.

        Args:
            user_id: User UUID
            tenant_id: Tenant UUID
            additional_claims: Optional additional claims to include

        Returns:
            JWT access token string
        """
        now = datetime.now(timezone.utc)

        payload = {
            "sub": str(user_id),
            "tenant_id": str(tenant_id),
            "type": "access",
            "iat": now,
            "exp": now + self.access_token_expire,
            "jti": str(uuid.uuid4()),
        }
        if additional_claims:
            payload.update(additional_claims)

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.debug(f"Created access token for user {user_id}")
        return token

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode an access token.

        Raises:
            AuthenticationError: If the token is invalid, expired or not an access token
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning(f"Token verification failed: {e}")
            raise AuthenticationError("Invalid or expired token")

        if payload.get("type") != "access":
            raise AuthenticationError("Invalid token type")
        if not payload.get("sub") or not payload.get("tenant_id"):
            raise AuthenticationError("Invalid token payload")

        return payload


# Global JWT manager instance
_jwt_manager: Optional[JWTManager] = None


def get_jwt_manager() -> JWTManager:
    """Get or create global JWT manager instance."""
    global _jwt_manager
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager


def reset_jwt_manager() -> None:
    """Forget the cached manager so the next call re-reads configuration."""
    global _jwt_manager
    _jwt_manager = None


def create_access_token(user_id: str, tenant_id: str, **claims) -> str:
    """Convenience function to create access token."""
    return get_jwt_manager().create_access_token(user_id, tenant_id, claims or None)


def verify_token(token: str) -> Dict[str, Any]:
    """Convenience function to verify token."""
    return get_jwt_manager().verify_token(token)
