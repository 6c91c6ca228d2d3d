"""
SQLAlchemy database models for multi-tenant Shop Insights.

Models:
- Tenant: Connected Shopify storefronts
- User: Dashboard logins
- Customer, Order, Product: Tenant-scoped current state, upserted by Shopify id
- WebhookEvent: Append-only audit log of webhook deliveries
- SyncLog: Bulk ingestion history
"""

from .base import Base
from .tenant import Tenant, InstallStatus
from .user import User
from .customer import Customer
from .order import Order
from .product import Product
from .webhook_event import WebhookEvent
from .sync_log import SyncLog

__all__ = [
    "Base",
    "Tenant",
    "InstallStatus",
    "User",
    "Customer",
    "Order",
    "Product",
    "WebhookEvent",
    "SyncLog",
]
