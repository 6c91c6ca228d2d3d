"""
Product model for storing Shopify catalog data.
"""

import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Uuid

from .base import Base, JSONType, utcnow


class Product(Base):
    """Catalog product synced from the storefront."""

    __tablename__ = "products"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    shopify_id = Column(String(64), nullable=False)

    # Product details
    title = Column(String(500), nullable=True)
    vendor = Column(String(255), nullable=True)
    product_type = Column(String(255), nullable=True)
    handle = Column(String(500), nullable=True)
    status = Column(String(50), nullable=True)

    raw = Column(JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "shopify_id", name="uq_products_tenant_shopify_id"),
    )

    def __repr__(self):
        return f"<Product(tenant_id={self.tenant_id}, shopify_id='{self.shopify_id}', title='{self.title}')>"
