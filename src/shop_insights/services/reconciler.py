"""
Event reconciler: applies one verified webhook delivery to the tenant's data.

The entity upsert is the unit that must succeed; the webhook_events audit row
is written afterwards in its own transaction and a failure there is logged
but never turns an applied delivery into an error.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shop_insights.core.models import RECORD_TYPES, WebhookTopic
from shop_insights.database.operations import (
    append_webhook_event,
    get_tenant_by_domain,
    upsert_record,
)
from shop_insights.monitoring.prometheus_metrics import get_metrics
from shop_insights.utils.exceptions import DatabaseError, UnknownTenantError
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """What a delivery changed."""

    entity_id: uuid.UUID
    shopify_id: str
    topic: WebhookTopic
    audited: bool

    @property
    def resource(self) -> str:
        return self.topic.resource


class EventReconciler:
    """Upserts webhook payloads into the owning tenant's tables."""

    def __init__(self, db_session: Session):
        self.db = db_session
        self.metrics = get_metrics()

    def reconcile(self, shop_domain: Optional[str], topic: WebhookTopic, payload: Any) -> ReconcileResult:
        """
        Apply one delivery.

        Args:
            shop_domain: X-Shopify-Shop-Domain header value
            topic: Parsed webhook topic
            payload: Decoded JSON body

        Returns:
            ReconcileResult for the upserted row

        Raises:
            UnknownTenantError: No active tenant owns the domain
            ValidationError: Payload is not an object or has no id
            DatabaseError: The upsert could not be committed
        """
        tenant = get_tenant_by_domain(self.db, shop_domain)
        if tenant is None:
            logger.warning(f"Webhook {topic.value} for unknown shop {shop_domain!r}")
            self.metrics.track_webhook(topic.value, "unknown_tenant")
            raise UnknownTenantError(shop_domain)

        record = RECORD_TYPES[topic.resource].from_payload(payload)

        try:
            entity_id = upsert_record(self.db, tenant.id, record)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to apply {topic.value} {record.shopify_id} for tenant {tenant.id}: {e}")
            self.metrics.track_webhook(topic.value, "failed")
            raise DatabaseError(
                f"Failed to store {topic.resource} {record.shopify_id}",
                operation="upsert",
                table=topic.resource,
            ) from e

        audited = self._audit(tenant, topic, record.shopify_id, payload)

        logger.info(
            f"Applied {topic.value} {record.shopify_id} for {tenant.shop_domain} "
            f"(entity {entity_id}, audited={audited})"
        )
        self.metrics.track_webhook(topic.value, "accepted")
        return ReconcileResult(
            entity_id=entity_id,
            shopify_id=record.shopify_id,
            topic=topic,
            audited=audited,
        )

    def _audit(self, tenant, topic: WebhookTopic, shopify_id: str, payload: Any) -> bool:
        try:
            append_webhook_event(self.db, tenant, topic.value, shopify_id, payload)
            self.db.commit()
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Audit row for {topic.value} {shopify_id} not written: {e}")
            return False
