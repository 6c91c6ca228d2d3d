"""
Manual resync route. Blocks until all three ingestion passes finish.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shop_insights.database.connection import get_db
from shop_insights.database.models import Tenant
from shop_insights.api.middleware.tenant_context import get_current_tenant
from shop_insights.services.ingestion_service import IngestionService
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class SyncResponse(BaseModel):
    """Result of a completed resync."""
    success: bool = True
    customers: int
    orders: int
    products: int
    duration_seconds: float
    sync_log_id: str


@router.post("", response_model=SyncResponse)
def resync(
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """
    Re-pull customers, orders and products from Shopify.

    Runs in the threadpool. Upstream and storage failures are returned as
    the request's error.
    """
    logger.info(f"Manual resync requested for tenant {tenant.id}")
    service = IngestionService(tenant=tenant, db_session=db)
    try:
        stats = service.ingest_all(trigger="manual")
    finally:
        service.close()
    return SyncResponse(**stats)
