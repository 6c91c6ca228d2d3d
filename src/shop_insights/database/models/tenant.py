"""
Tenant model - one Shopify storefront connected to the dashboard.
"""

import enum
import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base, JSONType, utcnow


class InstallStatus(str, enum.Enum):
    """Installation state of the app on the storefront."""
    INSTALLED = "installed"
    UNINSTALLED = "uninstalled"


class Tenant(Base):
    """
    Storefront account.

    Only the access token and the webhook subscription state change after
    registration; the shop domain and installation data are fixed.
    """

    __tablename__ = "tenants"

    # Primary Key
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Storefront identity
    shop_domain = Column(String(255), nullable=False, unique=True, index=True)

    # Fernet ciphertext of the Admin API access token
    access_token_encrypted = Column(Text, nullable=True)

    # Subscribed webhook topics
    scopes = Column(JSONType, nullable=False, default=list)

    # Installation
    install_status = Column(String(20), nullable=False, default=InstallStatus.INSTALLED.value)
    installed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Last known webhook subscription state (opaque)
    webhook_state = Column(JSONType, nullable=True)

    # Status
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    users = relationship("User", back_populates="tenant", lazy="selectin")
    sync_logs = relationship("SyncLog", back_populates="tenant", lazy="dynamic")

    def __repr__(self):
        return f"<Tenant(id={self.id}, shop_domain='{self.shop_domain}', status='{self.install_status}')>"
