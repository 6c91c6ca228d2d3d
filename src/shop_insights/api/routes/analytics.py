"""
Analytics and dashboard API routes.

The tenant is always the one named in the caller's token.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shop_insights.database.connection import get_db
from shop_insights.database.models import Tenant
from shop_insights.api.middleware.tenant_context import get_current_tenant
from shop_insights.services.analytics_service import AnalyticsService
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class Overview(BaseModel):
    """Store totals."""
    total_customers: int
    total_orders: int
    total_revenue: float
    total_products: int
    currency: str | None


class DailyOrders(BaseModel):
    """Orders and revenue for one day."""
    date: str
    order_count: int
    revenue: float


class TopCustomer(BaseModel):
    """Customer ranked by order revenue."""
    email: str | None
    name: str
    order_count: int
    total_spent: float


class RecentOrder(BaseModel):
    """Recent order."""
    id: str
    shopify_id: str
    total_price: float
    currency: str | None
    customer_email: str | None
    customer_name: str
    created_at: str | None


class SyncHistoryItem(BaseModel):
    """Ingestion run."""
    id: str
    trigger: str
    status: str
    customers_synced: int
    orders_synced: int
    products_synced: int
    duration_ms: int | None
    error_message: str | None
    started_at: str | None
    completed_at: str | None


@router.get("/overview", response_model=Overview)
def get_overview(
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """Customer, order and product totals with revenue."""
    return AnalyticsService(tenant=tenant, db_session=db).get_overview()


@router.get("/orders-by-date", response_model=List[DailyOrders])
def get_orders_by_date(
    start_date: Optional[date] = Query(None, description="First day (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="Last day (YYYY-MM-DD)"),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """Daily order count and revenue within the date range."""
    service = AnalyticsService(tenant=tenant, db_session=db)
    return service.get_orders_by_date(start_date=start_date, end_date=end_date)


@router.get("/top-customers", response_model=List[TopCustomer])
def get_top_customers(
    limit: int = Query(5, ge=1, le=100),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """Customers with the highest order revenue."""
    return AnalyticsService(tenant=tenant, db_session=db).get_top_customers(limit=limit)


@router.get("/recent-orders", response_model=List[RecentOrder])
def get_recent_orders(
    limit: int = Query(10, ge=1, le=100),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """Most recent orders."""
    return AnalyticsService(tenant=tenant, db_session=db).get_recent_orders(limit=limit)


@router.get("/sync-history", response_model=List[SyncHistoryItem])
def get_sync_history(
    limit: int = Query(20, ge=1, le=100),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """Recent ingestion runs, newest first."""
    return AnalyticsService(tenant=tenant, db_session=db).get_sync_history(limit=limit)
