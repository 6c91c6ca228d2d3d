"""
Celery workers module for background task processing.
"""

from .celery_app import celery_app
from .tasks import ingest_tenant_data, log_ingestion_failure, schedule_tenant_ingestion

__all__ = [
    "celery_app",
    "ingest_tenant_data",
    "log_ingestion_failure",
    "schedule_tenant_ingestion",
]
