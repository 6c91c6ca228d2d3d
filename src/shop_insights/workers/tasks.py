"""
Celery tasks for background processing.

Tasks:
- ingest_tenant_data: Bulk ingestion of a tenant's customers, orders and products
- log_ingestion_failure: Error callback linked to ingestion tasks
"""

import logging
import uuid
from typing import Any, Dict, Optional

from celery import Task
from sqlalchemy.orm import Session

from .celery_app import celery_app
from ..database.connection import SessionLocal
from ..database.models import Tenant
from ..monitoring.prometheus_metrics import get_metrics
from ..services.ingestion_service import IngestionService
from ..utils.exceptions import ShopInsightsError

logger = logging.getLogger(__name__)


class DatabaseTask(Task):
    """
    Base task class that provides database session management.

    Automatically creates and closes database sessions for tasks.
    """
    _db: Optional[Session] = None

    @property
    def db(self) -> Session:
        if self._db is None:
            self._db = SessionLocal()
        return self._db

    def after_return(self, *args, **kwargs):
        """Close database session after task completion."""
        if self._db is not None:
            self._db.close()
            self._db = None


@celery_app.task(
    bind=True,
    base=DatabaseTask,
    name="shop_insights.workers.tasks.ingest_tenant_data",
)
def ingest_tenant_data(self, tenant_id: str, trigger: str = "registration") -> Dict[str, Any]:
    """
    Run bulk ingestion for a tenant.

    Failures are logged and recorded on the sync log and returned as a
    failed result; the task itself does not raise for ingestion errors.

    Args:
        tenant_id: UUID of the tenant
        trigger: What started the run (registration, manual, cli)

    Returns:
        dict: status plus the ingestion stats or the error
    """
    db: Session = self.db
    metrics = get_metrics()

    tenant = db.query(Tenant).filter(Tenant.id == _as_uuid(tenant_id)).first()
    if tenant is None:
        logger.error(f"Ingestion skipped: tenant {tenant_id} not found")
        metrics.track_celery_task("ingest_tenant_data", "skipped")
        return {"status": "skipped", "reason": "tenant_not_found", "tenant_id": tenant_id}

    if not tenant.is_active:
        logger.warning(f"Ingestion skipped for inactive tenant {tenant_id}")
        metrics.track_celery_task("ingest_tenant_data", "skipped")
        return {"status": "skipped", "reason": "inactive_tenant", "tenant_id": tenant_id}

    service = None
    try:
        service = IngestionService(tenant=tenant, db_session=db)
        stats = service.ingest_all(trigger=trigger)
    except ShopInsightsError as e:
        logger.error(f"Background ingestion failed for tenant {tenant_id}: {e}")
        metrics.track_celery_task("ingest_tenant_data", "failed")
        return {
            "status": "failed",
            "tenant_id": tenant_id,
            "error": e.message,
            "error_type": e.error_type,
            "details": e.details,
        }
    except Exception as e:
        logger.exception(f"Unexpected error during ingestion for tenant {tenant_id}: {e}")
        metrics.track_celery_task("ingest_tenant_data", "failed")
        return {"status": "failed", "tenant_id": tenant_id, "error": str(e)}
    finally:
        if service is not None:
            service.close()

    metrics.track_celery_task("ingest_tenant_data", "success")
    return {"status": "success", "tenant_id": tenant_id, **stats}


@celery_app.task(name="shop_insights.workers.tasks.log_ingestion_failure")
def log_ingestion_failure(request, exc, traceback) -> None:
    """Error callback for ingestion tasks that crashed outside the task body."""
    tenant_id = request.args[0] if request.args else request.kwargs.get("tenant_id")
    logger.error(f"Ingestion task {request.id} for tenant {tenant_id} crashed: {exc!r}")
    get_metrics().track_celery_task("ingest_tenant_data", "crashed")


def schedule_tenant_ingestion(tenant_id, trigger: str = "registration") -> Optional[str]:
    """
    Queue background ingestion without waiting for it.

    Publishing problems (broker down) are logged and swallowed so the
    caller's request still succeeds.

    Returns:
        Celery task id, or None if the task could not be published
    """
    try:
        result = ingest_tenant_data.apply_async(
            args=[str(tenant_id)],
            kwargs={"trigger": trigger},
            link_error=log_ingestion_failure.s(),
        )
    except Exception as e:
        logger.error(f"Could not schedule ingestion for tenant {tenant_id}: {e}")
        return None

    logger.info(f"Scheduled {trigger} ingestion for tenant {tenant_id} (task {result.id})")
    return result.id


def _as_uuid(value) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
