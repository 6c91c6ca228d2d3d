"""
Webhook subscription management for a tenant's storefront.

Subscriptions are created on Shopify with callbacks pointing at this
service's /webhooks/{topic} routes. The outcome is kept on
tenant.webhook_state so the dashboard can show whether live updates work.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from shop_insights.core.models import WebhookTopic
from shop_insights.database.models import Tenant
from shop_insights.platforms.base import CommercePlatformClient
from shop_insights.platforms.factory import create_platform_client
from shop_insights.utils.config import get_config
from shop_insights.utils.exceptions import UpstreamError
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)


def callback_address(topic: WebhookTopic, base_url: Optional[str] = None) -> str:
    """Public URL Shopify should deliver the topic to."""
    base = (base_url or get_config().public_base_url).rstrip("/")
    return f"{base}/webhooks/{topic.value}"


class WebhookSubscriptionService:
    """Creates, lists and deletes the tenant's Shopify webhook subscriptions."""

    def __init__(self, tenant: Tenant, db_session: Session,
                 client: Optional[CommercePlatformClient] = None):
        self.tenant = tenant
        self.db = db_session
        self._owns_client = client is None
        self.client = client or create_platform_client(tenant)

    def close(self) -> None:
        """Close the platform client if this service created it."""
        if self._owns_client:
            self.client.close()

    def _topics(self, topics: Optional[Iterable[str]]) -> List[WebhookTopic]:
        if topics is None:
            topics = self.tenant.scopes or [topic.value for topic in WebhookTopic]
        return [WebhookTopic.parse(topic) for topic in topics]

    def register_webhooks(self, topics: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """
        Subscribe the tenant's topics. Does not commit.

        Upstream failures are recorded on the tenant and logged instead of
        raised, so registration can continue without live updates.

        Args:
            topics: Topic names (tenant scopes, or all supported topics, by default)

        Returns:
            The new webhook_state
        """
        subscriptions = []
        try:
            for topic in self._topics(topics):
                webhook = self.client.create_webhook(topic.value, callback_address(topic))
                subscriptions.append({
                    "id": webhook.get("id"),
                    "topic": webhook.get("topic", topic.value),
                    "address": webhook.get("address", callback_address(topic)),
                })
        except UpstreamError as e:
            logger.error(
                f"Webhook registration failed for {self.tenant.shop_domain} "
                f"(status {e.upstream_status}): {e.message}"
            )
            state = {
                "error": e.message,
                "status_code": e.upstream_status,
                "response": e.response_data,
                "subscriptions": subscriptions,
                "failed_at": datetime.now(timezone.utc).isoformat(),
            }
        else:
            logger.info(f"Registered {len(subscriptions)} webhooks for {self.tenant.shop_domain}")
            state = {
                "subscriptions": subscriptions,
                "registered_at": datetime.now(timezone.utc).isoformat(),
            }

        self.tenant.webhook_state = state
        return state

    def list_webhooks(self) -> List[Dict[str, Any]]:
        """Subscriptions currently registered on Shopify."""
        return self.client.list_webhooks()

    def refresh_state(self) -> Dict[str, Any]:
        """Replace webhook_state with the remote subscription list. Does not commit."""
        webhooks = self.list_webhooks()
        state = {
            "subscriptions": [
                {"id": w.get("id"), "topic": w.get("topic"), "address": w.get("address")}
                for w in webhooks
            ],
            "refreshed_at": datetime.now(timezone.utc).isoformat(),
        }
        self.tenant.webhook_state = state
        return state

    def delete_webhook(self, webhook_id: str) -> Dict[str, Any]:
        """Delete one subscription on Shopify and refresh the stored state."""
        self.client.delete_webhook(webhook_id)
        logger.info(f"Deleted webhook {webhook_id} for {self.tenant.shop_domain}")
        return self.refresh_state()
