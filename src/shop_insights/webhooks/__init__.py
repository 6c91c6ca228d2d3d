"""
Inbound Shopify webhook handling.
"""

from .verification import (
    VerificationResult,
    WebhookVerifier,
    compute_signature,
    verify_webhook,
    SIGNATURE_HEADER,
    SHOP_DOMAIN_HEADER,
    TOPIC_HEADER,
)

__all__ = [
    "VerificationResult",
    "WebhookVerifier",
    "compute_signature",
    "verify_webhook",
    "SIGNATURE_HEADER",
    "SHOP_DOMAIN_HEADER",
    "TOPIC_HEADER",
]
