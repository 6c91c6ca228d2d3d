"""
Customer model - Shopify customers per tenant.
"""

import uuid

from sqlalchemy import Column, String, Integer, Numeric, DateTime, ForeignKey, UniqueConstraint, Index, Uuid

from .base import Base, JSONType, utcnow


class Customer(Base):
    """
    Current state of a storefront customer.

    Rows are keyed by (tenant_id, shopify_id) and only ever upserted.
    """

    __tablename__ = "customers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    # Shopify identifiers
    shopify_id = Column(String(64), nullable=False)

    # Contact
    email = Column(String(255), nullable=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    name = Column(String(511), nullable=True)

    # Lifetime metrics reported by Shopify
    total_spent = Column(Numeric(12, 2), nullable=False, default=0)
    orders_count = Column(Integer, nullable=False, default=0)

    # Last payload received
    raw = Column(JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "shopify_id", name="uq_customers_tenant_shopify_id"),
        Index("ix_customers_tenant_email", "tenant_id", "email"),
    )

    def __repr__(self):
        return f"<Customer(tenant_id={self.tenant_id}, shopify_id='{self.shopify_id}', email='{self.email}')>"
