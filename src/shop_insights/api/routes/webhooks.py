"""
Shopify webhook receiver.

Each delivery is checked in a fixed order: signature (401), JSON body (400),
shop domain header (400), tenant (404), then applied by the reconciler.
Shopify retries anything that is not a 2xx, so only successfully applied
deliveries return 200.
"""

import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from shop_insights.core.models import WebhookTopic
from shop_insights.database.connection import get_db
from shop_insights.monitoring.prometheus_metrics import get_metrics
from shop_insights.services.reconciler import EventReconciler
from shop_insights.utils.exceptions import ValidationError, WebhookVerificationError
from shop_insights.utils.logger import get_logger
from shop_insights.webhooks import (
    SHOP_DOMAIN_HEADER,
    SIGNATURE_HEADER,
    TOPIC_HEADER,
    WebhookVerifier,
)

logger = get_logger(__name__)

router = APIRouter()

# Key naming the Shopify id in the success body
_ID_KEYS = {
    "orders": "order_id",
    "customers": "customer_id",
}


def _decode_json(body: bytes) -> Any:
    try:
        return json.loads(body)
    except (UnicodeDecodeError, ValueError):
        raise ValidationError("Request body is not valid JSON", field="body")


async def _handle_delivery(request: Request, db: Session, topic: Optional[WebhookTopic]) -> Dict[str, Any]:
    metrics = get_metrics()
    body = await request.body()
    shop_domain = request.headers.get(SHOP_DOMAIN_HEADER)
    topic_label = topic.value if topic else "unknown"

    try:
        WebhookVerifier().require_authentic(body, request.headers.get(SIGNATURE_HEADER), shop_domain)
    except WebhookVerificationError:
        metrics.track_webhook(topic_label, "rejected")
        raise

    try:
        if topic is None:
            topic = WebhookTopic.parse(request.headers.get(TOPIC_HEADER))
        payload = _decode_json(body)
        if not shop_domain or not shop_domain.strip():
            raise ValidationError(f"Missing {SHOP_DOMAIN_HEADER} header", field=SHOP_DOMAIN_HEADER)
    except ValidationError:
        metrics.track_webhook(topic_label, "invalid")
        raise

    # Database work stays off the event loop
    result = await run_in_threadpool(EventReconciler(db).reconcile, shop_domain, topic, payload)

    return {
        "success": True,
        "topic": result.topic.value,
        _ID_KEYS[result.resource]: result.shopify_id,
        "entity_id": str(result.entity_id),
    }


@router.post("/orders/create")
async def order_created(request: Request, db: Session = Depends(get_db)):
    """orders/create delivery."""
    return await _handle_delivery(request, db, WebhookTopic.ORDERS_CREATE)


@router.post("/orders/updated")
@router.post("/orders/update", include_in_schema=False)
async def order_updated(request: Request, db: Session = Depends(get_db)):
    """orders/updated delivery."""
    return await _handle_delivery(request, db, WebhookTopic.ORDERS_UPDATED)


@router.post("/customers/create")
async def customer_created(request: Request, db: Session = Depends(get_db)):
    """customers/create delivery."""
    return await _handle_delivery(request, db, WebhookTopic.CUSTOMERS_CREATE)


@router.post("/customers/update")
async def customer_updated(request: Request, db: Session = Depends(get_db)):
    """customers/update delivery."""
    return await _handle_delivery(request, db, WebhookTopic.CUSTOMERS_UPDATE)


@router.post("")
async def dispatch_by_topic(request: Request, db: Session = Depends(get_db)):
    """Single-endpoint delivery; the topic comes from the X-Shopify-Topic header."""
    return await _handle_delivery(request, db, None)
