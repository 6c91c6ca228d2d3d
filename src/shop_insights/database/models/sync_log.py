"""
SyncLog model - history of ingestion runs.
"""

import uuid

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class SyncLog(Base):
    """
    Log entry for each bulk ingestion run.

    Background runs have no HTTP caller, so this row is where their outcome
    is recorded.
    """

    __tablename__ = "sync_logs"

    # Primary Key
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Tenant Relationship
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    # Run Information
    trigger = Column(String(20), nullable=False)  # registration, manual, cli
    status = Column(String(20), nullable=False)  # in_progress, completed, failed
    customers_synced = Column(Integer, default=0, nullable=False)
    orders_synced = Column(Integer, default=0, nullable=False)
    products_synced = Column(Integer, default=0, nullable=False)
    duration_ms = Column(Integer, nullable=True)

    # Error Information
    error_message = Column(Text, nullable=True)

    # Timestamps
    started_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    tenant = relationship("Tenant", back_populates="sync_logs")

    __table_args__ = (
        Index("ix_sync_logs_tenant_started", "tenant_id", "started_at"),
    )

    def __repr__(self):
        return f"<SyncLog(id={self.id}, tenant_id={self.tenant_id}, status='{self.status}')>"
