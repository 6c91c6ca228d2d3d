"""
Analytics service: read-only aggregates over one tenant's store data.

Every query is filtered by the tenant passed to the constructor; callers take
the tenant from the authenticated token, never from request parameters.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, desc
from sqlalchemy.orm import Session

from shop_insights.database.models import Customer, Order, Product, SyncLog, Tenant
from shop_insights.utils.exceptions import ValidationError
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)

GUEST_CUSTOMER = "Guest Customer"


def _money(value: Any) -> float:
    if value is None:
        return 0.0
    return float(Decimal(str(value)).quantize(Decimal("0.01")))


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class AnalyticsService:
    """Service for dashboard metrics of a single tenant."""

    def __init__(self, tenant: Tenant, db_session: Session):
        """
        Initialize analytics service

        Args:
            tenant: Tenant instance
            db_session: Database session
        """
        self.tenant = tenant
        self.db = db_session
        logger.debug(f"AnalyticsService initialized for tenant {tenant.id} ({tenant.shop_domain})")

    def get_overview(self) -> Dict[str, Any]:
        """
        Get store totals.

        Returns:
            dict with total_customers, total_orders, total_revenue,
            total_products and currency (from the most recent order)
        """
        tenant_id = self.tenant.id

        total_customers = self.db.query(func.count(Customer.id)).filter(
            Customer.tenant_id == tenant_id
        ).scalar() or 0

        total_orders, total_revenue = self.db.query(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_price), 0),
        ).filter(Order.tenant_id == tenant_id).one()

        total_products = self.db.query(func.count(Product.id)).filter(
            Product.tenant_id == tenant_id
        ).scalar() or 0

        currency = self.db.query(Order.currency).filter(
            Order.tenant_id == tenant_id,
            Order.currency.isnot(None),
        ).order_by(Order.created_at.is_(None), desc(Order.created_at)).limit(1).scalar()

        return {
            "total_customers": total_customers,
            "total_orders": total_orders or 0,
            "total_revenue": _money(total_revenue),
            "total_products": total_products,
            "currency": currency,
        }

    def get_orders_by_date(self, start_date: Optional[date] = None,
                           end_date: Optional[date] = None) -> List[Dict[str, Any]]:
        """
        Daily order count and revenue.

        Args:
            start_date: First day included (default: 30 days before end_date)
            end_date: Last day included (default: today, UTC)

        Returns:
            One entry per day that has orders, oldest first
        """
        end_date = end_date or datetime.now(timezone.utc).date()
        start_date = start_date or end_date - timedelta(days=30)
        if start_date > end_date:
            raise ValidationError(
                "start_date must not be after end_date",
                field="start_date",
                value=start_date.isoformat(),
            )

        window_start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
        window_end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)

        day = func.date(Order.created_at).label("day")
        rows = self.db.query(
            day,
            func.count(Order.id).label("order_count"),
            func.coalesce(func.sum(Order.total_price), 0).label("revenue"),
        ).filter(
            Order.tenant_id == self.tenant.id,
            Order.created_at >= window_start,
            Order.created_at < window_end,
        ).group_by(day).order_by(day).all()

        return [
            {
                "date": str(row.day),
                "order_count": row.order_count,
                "revenue": _money(row.revenue),
            }
            for row in rows
        ]

    def get_top_customers(self, limit: int = 5) -> List[Dict[str, Any]]:
        """
        Customers ranked by order revenue.

        Orders are grouped by their customer email. The display name comes
        from the tenant's customer row with that email when one exists,
        otherwise from the order itself. Orders without an email are
        reported together as a guest entry.
        """
        tenant_id = self.tenant.id

        names = self.db.query(
            Customer.email.label("email"),
            func.max(Customer.name).label("name"),
        ).filter(
            Customer.tenant_id == tenant_id,
            Customer.email.isnot(None),
        ).group_by(Customer.email).subquery()

        total_spent = func.coalesce(func.sum(Order.total_price), 0).label("total_spent")
        rows = self.db.query(
            Order.customer_email.label("email"),
            func.max(names.c.name).label("customer_name"),
            func.max(Order.customer_name).label("order_name"),
            func.count(Order.id).label("order_count"),
            total_spent,
        ).outerjoin(
            names, names.c.email == Order.customer_email
        ).filter(
            Order.tenant_id == tenant_id,
        ).group_by(
            Order.customer_email
        ).order_by(
            desc(total_spent), desc(func.count(Order.id))
        ).limit(limit).all()

        top = []
        for row in rows:
            if row.email is None:
                name = GUEST_CUSTOMER
            else:
                name = row.customer_name or row.order_name or row.email
            top.append({
                "email": row.email,
                "name": name,
                "order_count": row.order_count,
                "total_spent": _money(row.total_spent),
            })
        return top

    def get_recent_orders(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Most recent orders, newest first; orders without a timestamp sort last."""
        orders = self.db.query(Order).filter(
            Order.tenant_id == self.tenant.id
        ).order_by(
            Order.created_at.is_(None), desc(Order.created_at), desc(Order.updated_at)
        ).limit(limit).all()

        return [
            {
                "id": str(order.id),
                "shopify_id": order.shopify_id,
                "total_price": _money(order.total_price),
                "currency": order.currency,
                "customer_email": order.customer_email,
                "customer_name": order.customer_name or GUEST_CUSTOMER,
                "created_at": _iso(order.created_at),
            }
            for order in orders
        ]

    def get_sync_history(self, limit: int = 20) -> List[Dict[str, Any]]:
        logs = self.db.query(SyncLog).filter(
            SyncLog.tenant_id == self.tenant.id
        ).order_by(desc(SyncLog.started_at)).limit(limit).all()

        return [
            {
                "id": str(log.id),
                "trigger": log.trigger,
                "status": log.status,
                "customers_synced": log.customers_synced,
                "orders_synced": log.orders_synced,
                "products_synced": log.products_synced,
                "duration_ms": log.duration_ms,
                "error_message": log.error_message,
                "started_at": _iso(log.started_at),
                "completed_at": _iso(log.completed_at),
            }
            for log in logs
        ]
