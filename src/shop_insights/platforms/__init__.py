"""
Commerce platform API clients.
"""

from .base import CommercePlatformClient, PlatformCredentials
from .shopify_client import ShopifyClient

__all__ = [
    "CommercePlatformClient",
    "PlatformCredentials",
    "ShopifyClient",
]
