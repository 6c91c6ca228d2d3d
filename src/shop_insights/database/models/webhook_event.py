"""
WebhookEvent model - append-only audit log of processed webhooks.
"""

import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Uuid

from .base import Base, JSONType, utcnow


class WebhookEvent(Base):
    """
    One row per accepted webhook delivery, duplicates included.

    Rows are never updated or deleted.
    """

    __tablename__ = "webhook_events"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)

    topic = Column(String(64), nullable=False)
    shopify_id = Column(String(64), nullable=True)
    shop_domain = Column(String(255), nullable=False)

    processed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    raw_payload = Column(JSONType, nullable=True)

    __table_args__ = (
        Index("ix_webhook_events_tenant_processed", "tenant_id", "processed_at"),
        Index("ix_webhook_events_tenant_shopify_id", "tenant_id", "shopify_id"),
    )

    def __repr__(self):
        return f"<WebhookEvent(tenant_id={self.tenant_id}, topic='{self.topic}', shopify_id='{self.shopify_id}')>"
