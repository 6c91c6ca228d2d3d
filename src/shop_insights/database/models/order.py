"""
Order model - Shopify orders per tenant.
"""

import uuid

from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, UniqueConstraint, Index, Uuid

from .base import Base, JSONType, utcnow


class Order(Base):
    """
    Current state of a storefront order with denormalized customer contact.
    """

    __tablename__ = "orders"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    shopify_id = Column(String(64), nullable=False)

    # Money
    total_price = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(10), nullable=True)

    # Denormalized customer contact
    customer_email = Column(String(255), nullable=True)
    customer_name = Column(String(511), nullable=True)

    raw = Column(JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "shopify_id", name="uq_orders_tenant_shopify_id"),
        Index("ix_orders_tenant_created", "tenant_id", "created_at"),
        Index("ix_orders_tenant_customer_email", "tenant_id", "customer_email"),
    )

    def __repr__(self):
        return f"<Order(tenant_id={self.tenant_id}, shopify_id='{self.shopify_id}', total={self.total_price} {self.currency})>"
