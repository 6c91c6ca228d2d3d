"""
Monitoring module for metrics and error tracking.
"""

from .prometheus_metrics import (
    PrometheusMetrics,
    MetricsMiddleware,
    get_metrics,
)
from .sentry_config import setup_sentry, set_tenant_context

__all__ = [
    "PrometheusMetrics",
    "MetricsMiddleware",
    "get_metrics",
    "setup_sentry",
    "set_tenant_context",
]
