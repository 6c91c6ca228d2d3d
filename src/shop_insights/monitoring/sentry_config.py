"""
Sentry integration for error tracking and performance monitoring.
"""

import logging
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from shop_insights import __version__
from shop_insights.utils.config import get_config
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)

# Expected client errors that should not become Sentry events
_IGNORED_ERROR_TYPES = (
    "AuthenticationError",
    "AuthorizationError",
    "WebhookVerificationError",
    "NotFoundError",
    "UnknownTenantError",
    "ValidationError",
    "DuplicateRegistrationError",
)


def setup_sentry(
    dsn: Optional[str] = None,
    environment: Optional[str] = None,
    release: Optional[str] = None,
    traces_sample_rate: Optional[float] = None,
) -> bool:
    """
    Initialize Sentry SDK for error tracking.

    Args:
        dsn: Sentry DSN (SENTRY_DSN by default)
        environment: Deployment environment (ENVIRONMENT by default)
        release: Release version
        traces_sample_rate: Share of transactions to trace (0.0-1.0)

    Returns:
        True if Sentry was initialized
    """
    config = get_config()
    dsn = dsn or config.sentry_dsn

    if not dsn:
        logger.info("Sentry DSN not configured, skipping Sentry initialization")
        return False

    environment = environment or config.environment
    release = release or f"shop-insights@{__version__}"
    if traces_sample_rate is None:
        traces_sample_rate = config.sentry_traces_sample_rate

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            CeleryIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=traces_sample_rate,
        before_send=before_send_filter,
        attach_stacktrace=True,
        send_default_pii=False,
        max_breadcrumbs=50,
    )

    logger.info(f"Sentry initialized: environment={environment}, release={release}")
    return True


def before_send_filter(event, hint):
    """Drop events for expected client-side errors."""
    if "exc_info" in hint:
        exc_type, _, _ = hint["exc_info"]
        if exc_type.__name__ in _IGNORED_ERROR_TYPES:
            return None
    return event


def set_tenant_context(tenant_id: Optional[str] = None, shop_domain: Optional[str] = None,
                       user_id: Optional[str] = None) -> None:
    """Attach tenant and user identifiers to subsequent Sentry events."""
    if user_id:
        sentry_sdk.set_user({"id": user_id})
    if tenant_id:
        sentry_sdk.set_tag("tenant_id", tenant_id)
    if shop_domain:
        sentry_sdk.set_tag("shop_domain", shop_domain)
