"""
Celery application configuration for Shop Insights.

Background work is limited to tenant ingestion, which registration schedules
without waiting for it. Tasks run on the "ingestion" queue.
"""

from celery import Celery
from celery.signals import worker_process_init, worker_process_shutdown
from kombu import Queue

from shop_insights.utils.config import get_config

config = get_config()

# Create Celery application
celery_app = Celery(
    "shop_insights",
    broker=config.redis_url,
    backend=config.celery_result_backend,
    include=["shop_insights.workers.tasks"]
)

# Celery configuration
celery_app.conf.update(
    # Task routing
    task_routes={
        "shop_insights.workers.tasks.ingest_tenant_data": {"queue": "ingestion"},
        "shop_insights.workers.tasks.log_ingestion_failure": {"queue": "default"},
    },

    # Task queues
    task_queues=(
        Queue("ingestion", routing_key="ingestion"),
        Queue("default", routing_key="default"),
    ),
    task_default_queue="default",
    task_default_routing_key="default",

    # Task execution settings
    task_acks_late=True,  # Acknowledge task after completion
    task_reject_on_worker_lost=True,  # Requeue if worker dies
    task_time_limit=3600,  # Large catalogs; no resumption on failure
    task_soft_time_limit=3300,
    worker_prefetch_multiplier=1,

    # Result settings
    result_expires=86400,

    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Logging
    worker_hijack_root_logger=False,
)


@worker_process_init.connect
def init_worker_engine(**kwargs):
    """Give each worker process its own connection pool."""
    from shop_insights.database.connection import init_engine
    init_engine()


@worker_process_shutdown.connect
def dispose_worker_engine(**kwargs):
    from shop_insights.database.connection import dispose_engine
    dispose_engine()
