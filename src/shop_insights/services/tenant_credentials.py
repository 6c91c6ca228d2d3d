"""
Tenant credentials helper for reading and rotating the stored access token.
"""

from cryptography.fernet import InvalidToken

from shop_insights.database.models import Tenant
from shop_insights.platforms.base import PlatformCredentials
from shop_insights.security.encryption import get_encryptor
from shop_insights.utils.exceptions import AuthenticationError, ValidationError
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)


def get_access_token(tenant: Tenant) -> str:
    """
    Decrypt the tenant's Shopify access token.

    Raises:
        AuthenticationError: If no token is stored or it cannot be decrypted
    """
    if not tenant.access_token_encrypted:
        raise AuthenticationError(
            f"Tenant {tenant.id} has no Shopify access token configured",
            {"tenant_id": str(tenant.id)},
        )

    try:
        return get_encryptor().decrypt(tenant.access_token_encrypted)
    except InvalidToken:
        logger.error(f"Failed to decrypt access token for tenant {tenant.id}")
        raise AuthenticationError(
            "Stored access token could not be decrypted",
            {"tenant_id": str(tenant.id)},
        )


def get_platform_credentials(tenant: Tenant) -> PlatformCredentials:
    """Build client credentials for the tenant."""
    return PlatformCredentials(
        shop_domain=tenant.shop_domain,
        access_token=get_access_token(tenant),
    )


def set_access_token(tenant: Tenant, access_token: str) -> None:
    """
    Encrypt and store a new access token on the tenant. Does not commit.

    Raises:
        ValidationError: If the token is empty
    """
    token = (access_token or "").strip()
    if not token:
        raise ValidationError("Access token must not be empty", field="access_token")

    tenant.access_token_encrypted = get_encryptor().encrypt(token)
    logger.info(f"Updated Shopify access token for tenant {tenant.id}")
