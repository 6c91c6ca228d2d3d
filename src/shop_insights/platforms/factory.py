"""
Factory for creating platform clients from tenant records.
"""

from shop_insights.database.models import Tenant
from shop_insights.platforms.base import CommercePlatformClient
from shop_insights.platforms.shopify_client import ShopifyClient
from shop_insights.services.tenant_credentials import get_platform_credentials
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)


def create_platform_client(tenant: Tenant) -> CommercePlatformClient:
    """
    Create a Shopify client authenticated with the tenant's stored token.

    Raises:
        AuthenticationError: If the tenant has no usable access token
    """
    credentials = get_platform_credentials(tenant)
    logger.debug(f"Creating Shopify client for tenant {tenant.id}")
    return ShopifyClient(credentials)
