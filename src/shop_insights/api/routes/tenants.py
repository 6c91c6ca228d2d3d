"""
Tenant management routes for the authenticated tenant.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from shop_insights.database.connection import get_db
from shop_insights.database.models import Tenant
from shop_insights.api.middleware.tenant_context import get_current_tenant
from shop_insights.services.tenant_credentials import set_access_token
from shop_insights.services.webhook_subscriptions import WebhookSubscriptionService
from shop_insights.utils.logger import get_logger
from shop_insights.utils.transaction import transaction_scope

logger = get_logger(__name__)

router = APIRouter()


class TenantResponse(BaseModel):
    """Tenant information."""
    id: str
    shop_domain: str
    install_status: str
    installed_at: Optional[datetime] = None
    scopes: List[str]
    webhook_state: Optional[Dict[str, Any]] = None
    has_access_token: bool
    is_active: bool
    created_at: Optional[datetime] = None


class AccessTokenUpdate(BaseModel):
    """New Shopify Admin API access token."""
    access_token: str = Field(..., min_length=1)


class WebhookRegistrationRequest(BaseModel):
    """Topics to (re)subscribe; defaults to the tenant's scopes."""
    topics: Optional[List[str]] = None


def _tenant_response(tenant: Tenant) -> TenantResponse:
    return TenantResponse(
        id=str(tenant.id),
        shop_domain=tenant.shop_domain,
        install_status=tenant.install_status,
        installed_at=tenant.installed_at,
        scopes=tenant.scopes or [],
        webhook_state=tenant.webhook_state,
        has_access_token=bool(tenant.access_token_encrypted),
        is_active=tenant.is_active,
        created_at=tenant.created_at,
    )


@router.get("/me", response_model=TenantResponse)
async def get_my_tenant(tenant: Tenant = Depends(get_current_tenant)):
    """Current tenant with its webhook subscription state."""
    return _tenant_response(tenant)


@router.put("/me/access-token", response_model=TenantResponse)
def update_access_token(
    data: AccessTokenUpdate,
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """Replace the stored Shopify access token."""
    with transaction_scope(db, "update_access_token"):
        set_access_token(tenant, data.access_token)

    return _tenant_response(tenant)


@router.get("/me/webhooks")
def list_webhooks(
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """Webhook subscriptions currently registered on Shopify."""
    service = WebhookSubscriptionService(tenant, db)
    try:
        return {"webhooks": service.list_webhooks()}
    finally:
        service.close()


@router.post("/me/webhooks", status_code=status.HTTP_200_OK)
def register_webhooks(
    data: Optional[WebhookRegistrationRequest] = None,
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """Subscribe webhooks again; the outcome is stored on the tenant."""
    service = WebhookSubscriptionService(tenant, db)
    try:
        with transaction_scope(db, "register_webhooks"):
            state = service.register_webhooks(topics=data.topics if data else None)
    finally:
        service.close()

    return {"webhook_state": state}


@router.delete("/me/webhooks/{webhook_id}")
def delete_webhook(
    webhook_id: str,
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """Delete one subscription on Shopify."""
    service = WebhookSubscriptionService(tenant, db)
    try:
        with transaction_scope(db, "delete_webhook"):
            state = service.delete_webhook(webhook_id)
    finally:
        service.close()

    return {"deleted": webhook_id, "webhook_state": state}
