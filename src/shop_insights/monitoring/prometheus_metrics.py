"""
Prometheus metrics for monitoring application performance.

Metrics exported:
- shop_insights_requests_total: Total HTTP requests
- shop_insights_request_duration_seconds: Request duration histogram
- shop_insights_webhooks_total: Webhook deliveries by topic and outcome
- shop_insights_ingestion_runs_total: Bulk ingestion runs by trigger and status
- shop_insights_ingestion_duration_seconds: Bulk ingestion duration histogram
- shop_insights_ingestion_records_total: Records upserted by bulk ingestion
- shop_insights_errors_total: Total errors
- shop_insights_celery_tasks_total: Celery task executions
"""

import re
import time
from typing import Dict, Optional

from prometheus_client import Counter, Histogram, CollectorRegistry
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)

_UUID_RE = re.compile(r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}', re.IGNORECASE)
_NUMERIC_ID_RE = re.compile(r'/\d+')


class PrometheusMetrics:
    """
    Prometheus metrics collector for Shop Insights.

    Uses its own registry so repeated app construction (tests, reloads)
    never registers a collector twice.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        # HTTP request metrics
        self.requests_total = Counter(
            "shop_insights_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry,
        )
        self.request_duration = Histogram(
            "shop_insights_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry,
        )

        # Webhook metrics
        self.webhooks_total = Counter(
            "shop_insights_webhooks_total",
            "Webhook deliveries",
            ["topic", "outcome"],
            registry=self.registry,
        )

        # Ingestion metrics
        self.ingestion_runs_total = Counter(
            "shop_insights_ingestion_runs_total",
            "Bulk ingestion runs",
            ["trigger", "status"],
            registry=self.registry,
        )
        self.ingestion_duration = Histogram(
            "shop_insights_ingestion_duration_seconds",
            "Bulk ingestion duration in seconds",
            ["trigger"],
            buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0],
            registry=self.registry,
        )
        self.ingestion_records_total = Counter(
            "shop_insights_ingestion_records_total",
            "Records upserted by bulk ingestion",
            ["resource"],
            registry=self.registry,
        )

        # Error metrics
        self.errors_total = Counter(
            "shop_insights_errors_total",
            "Total errors",
            ["error_type", "endpoint"],
            registry=self.registry,
        )

        # Celery task metrics
        self.celery_tasks_total = Counter(
            "shop_insights_celery_tasks_total",
            "Total Celery tasks",
            ["task_name", "status"],
            registry=self.registry,
        )

        logger.info("Prometheus metrics initialized")

    def track_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Track HTTP request metrics."""
        self.requests_total.labels(method=method, endpoint=endpoint, status_code=status_code).inc()
        self.request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def track_webhook(self, topic: str, outcome: str):
        """
        Track one webhook delivery.

        Args:
            topic: Webhook topic (orders/create, ...) or "unknown"
            outcome: accepted, rejected, unknown_tenant, invalid, failed
        """
        self.webhooks_total.labels(topic=topic, outcome=outcome).inc()

    def track_ingestion(self, trigger: str, status: str, duration: float,
                        counts: Optional[Dict[str, int]] = None):
        """
        Track a bulk ingestion run.

        Args:
            trigger: registration, manual or cli
            status: completed or failed
            duration: Run duration in seconds
            counts: Records upserted per resource
        """
        self.ingestion_runs_total.labels(trigger=trigger, status=status).inc()
        self.ingestion_duration.labels(trigger=trigger).observe(duration)
        for resource, count in (counts or {}).items():
            if count:
                self.ingestion_records_total.labels(resource=resource).inc(count)

    def track_error(self, error_type: str, endpoint: str):
        """Track error occurrence."""
        self.errors_total.labels(error_type=error_type, endpoint=endpoint).inc()

    def track_celery_task(self, task_name: str, status: str):
        """Track Celery task execution."""
        self.celery_tasks_total.labels(task_name=task_name, status=status).inc()


# Global metrics instance
_metrics: Optional[PrometheusMetrics] = None


def get_metrics() -> PrometheusMetrics:
    """Get global metrics instance."""
    global _metrics
    if _metrics is None:
        _metrics = PrometheusMetrics()
    return _metrics


def normalize_endpoint(path: str) -> str:
    """
    Replace UUIDs and numeric ids with placeholders to keep label
    cardinality bounded.
    """
    path = _UUID_RE.sub('{uuid}', path)
    return _NUMERIC_ID_RE.sub('/{id}', path)


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for automatic request metrics collection.
    """

    def __init__(self, app):
        super().__init__(app)
        self.metrics = get_metrics()

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.time()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        except Exception as e:
            self.metrics.track_error(type(e).__name__, normalize_endpoint(request.url.path))
            raise
        finally:
            self.metrics.track_request(
                method=request.method,
                endpoint=normalize_endpoint(request.url.path),
                status_code=status_code,
                duration=time.time() - start_time,
            )
