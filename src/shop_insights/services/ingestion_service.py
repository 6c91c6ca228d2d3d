"""
Bulk ingestion of a tenant's historical Shopify data.

Runs three sequential passes (customers, orders, products) through the same
upsert used by live webhooks. Bulk mode writes no webhook_events rows. Each
page is committed as it arrives; a failure in any pass stops the run and is
re-raised to the caller. A retried run simply re-pulls everything.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shop_insights.core.models import RECORD_TYPES
from shop_insights.database.models import SyncLog, Tenant
from shop_insights.database.operations import upsert_record
from shop_insights.monitoring.prometheus_metrics import get_metrics
from shop_insights.platforms.base import CommercePlatformClient
from shop_insights.platforms.factory import create_platform_client
from shop_insights.utils.exceptions import DatabaseError
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)

INGESTION_PASSES = ("customers", "orders", "products")


class IngestionService:
    """
    Orchestrates bulk pulls for one tenant.

    The platform client is created from the tenant's stored credentials
    unless one is passed in.
    """

    def __init__(self, tenant: Tenant, db_session: Session,
                 client: Optional[CommercePlatformClient] = None):
        """
        Initialize ingestion service with tenant context.

        Args:
            tenant: Tenant instance
            db_session: Database session
            client: Platform client override (tests)
        """
        self.tenant = tenant
        self.db = db_session
        self._owns_client = client is None
        self.client = client or create_platform_client(tenant)
        self.metrics = get_metrics()
        logger.info(f"IngestionService initialized for tenant {tenant.id} ({tenant.shop_domain})")

    def close(self) -> None:
        """Close the platform client if this service created it."""
        if self._owns_client:
            self.client.close()

    def _pages(self, resource: str) -> Iterator[List[Dict[str, Any]]]:
        fetchers = {
            "customers": self.client.iter_customers,
            "orders": self.client.iter_orders,
            "products": self.client.iter_products,
        }
        return fetchers[resource]()

    def ingest_resource(self, resource: str) -> int:
        """
        Pull and upsert every record of one resource.

        Returns:
            Number of records upserted

        Raises:
            UpstreamError: Shopify returned a non-2xx response
            ValidationError: A record has no id
            DatabaseError: A page could not be committed
        """
        record_type = RECORD_TYPES[resource]
        count = 0

        for page in self._pages(resource):
            try:
                for payload in page:
                    upsert_record(self.db, self.tenant.id, record_type.from_payload(payload))
                    count += 1
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                raise DatabaseError(
                    f"Failed to store {resource} page for tenant {self.tenant.id}",
                    operation="bulk_upsert",
                    table=resource,
                ) from e
            logger.debug(f"Tenant {self.tenant.id}: {count} {resource} ingested so far")

        logger.info(f"Tenant {self.tenant.id}: ingested {count} {resource}")
        return count

    def ingest_all(self, trigger: str = "manual") -> Dict[str, Any]:
        """
        Run the three ingestion passes.

        Args:
            trigger: registration, manual or cli (recorded on the sync log)

        Returns:
            dict with per-resource counts, duration_seconds and sync_log_id

        Raises:
            The first error from any pass; the sync log is marked failed first.
        """
        start = time.time()
        sync_log = SyncLog(tenant_id=self.tenant.id, trigger=trigger, status="in_progress")
        self.db.add(sync_log)
        self.db.commit()

        counts = {resource: 0 for resource in INGESTION_PASSES}
        logger.info(f"Starting {trigger} ingestion for tenant {self.tenant.id}")

        try:
            for resource in INGESTION_PASSES:
                counts[resource] = self.ingest_resource(resource)
        except Exception as e:
            self.db.rollback()
            duration = time.time() - start
            self._finish(sync_log, "failed", counts, duration, error=str(e))
            self.metrics.track_ingestion(trigger, "failed", duration, counts)
            logger.error(f"Ingestion failed for tenant {self.tenant.id} after {duration:.2f}s: {e}")
            raise

        duration = time.time() - start
        self._finish(sync_log, "completed", counts, duration)
        self.metrics.track_ingestion(trigger, "completed", duration, counts)

        logger.info(
            f"Ingestion completed for tenant {self.tenant.id}: "
            f"{counts['customers']} customers, {counts['orders']} orders, "
            f"{counts['products']} products in {duration:.2f}s"
        )
        return {
            **counts,
            "duration_seconds": round(duration, 3),
            "sync_log_id": str(sync_log.id),
        }

    def _finish(self, sync_log: SyncLog, status: str, counts: Dict[str, int],
                duration: float, error: Optional[str] = None) -> None:
        sync_log.status = status
        sync_log.customers_synced = counts["customers"]
        sync_log.orders_synced = counts["orders"]
        sync_log.products_synced = counts["products"]
        sync_log.duration_ms = int(duration * 1000)
        sync_log.error_message = error
        sync_log.completed_at = datetime.now(timezone.utc)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Could not update sync log {sync_log.id}: {e}")
