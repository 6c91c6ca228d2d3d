"""
Shopify webhook signature verification.

Shopify signs each delivery with HMAC-SHA256 over the raw request body using
the app's shared secret and sends the base64 digest in X-Shopify-Hmac-Sha256.
Verification must run on the body bytes exactly as received, before any JSON
parsing.

Fails closed: a missing signature, a missing secret, a signature that is not
base64 or a digest mismatch are all rejections. The only way around the check
is WEBHOOK_VERIFICATION_DISABLED, which configuration refuses in production
and which logs a warning for every bypassed request.
"""

import base64
import binascii
import hashlib
import hmac
from dataclasses import dataclass
from typing import Optional

from shop_insights.utils.config import get_config
from shop_insights.utils.exceptions import WebhookVerificationError
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Shopify-Hmac-Sha256"
SHOP_DOMAIN_HEADER = "X-Shopify-Shop-Domain"
TOPIC_HEADER = "X-Shopify-Topic"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a signature check."""

    authentic: bool
    reason: Optional[str] = None
    bypassed: bool = False

    @classmethod
    def accept(cls, bypassed: bool = False) -> "VerificationResult":
        return cls(authentic=True, bypassed=bypassed)

    @classmethod
    def reject(cls, reason: str) -> "VerificationResult":
        return cls(authentic=False, reason=reason)

    def __bool__(self) -> bool:
        return self.authentic


def _digest(body: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()


def compute_signature(body: bytes, secret: str) -> str:
    """Base64 HMAC-SHA256 of body, as Shopify sends it."""
    return base64.b64encode(_digest(body, secret)).decode("utf-8")


def verify_webhook(body: bytes, signature: Optional[str], secret: Optional[str]) -> VerificationResult:
    """
    Check a webhook signature against the raw body.

    Args:
        body: Raw request body bytes
        signature: Value of the X-Shopify-Hmac-Sha256 header
        secret: Shared webhook secret

    Returns:
        VerificationResult, authentic only when the digests match
    """
    if not secret:
        logger.warning("SHOPIFY_WEBHOOK_SECRET not set - rejecting webhook")
        return VerificationResult.reject("webhook secret not configured")
    if not signature:
        return VerificationResult.reject("missing signature header")

    claimed = signature.strip()
    try:
        base64.b64decode(claimed, validate=True)
    except (binascii.Error, ValueError):
        return VerificationResult.reject("signature is not valid base64")

    # Compared in encoded form; the decoder ignores the padding bits of the
    # last base64 character
    expected = compute_signature(body, secret)
    if not hmac.compare_digest(expected.encode("ascii"), claimed.encode("ascii")):
        return VerificationResult.reject("signature mismatch")

    return VerificationResult.accept()


class WebhookVerifier:
    """Applies the configured secret and bypass policy to inbound deliveries."""

    def __init__(self, secret: Optional[str] = None, bypass: Optional[bool] = None):
        config = get_config()
        self.secret = secret if secret is not None else config.shopify_webhook_secret
        self.bypass = config.webhook_verification_disabled if bypass is None else bypass

    def verify(self, body: bytes, signature: Optional[str], shop_domain: Optional[str] = None) -> VerificationResult:
        if self.bypass:
            logger.warning(
                f"Webhook signature verification BYPASSED for shop {shop_domain!r} "
                "(WEBHOOK_VERIFICATION_DISABLED=true)"
            )
            return VerificationResult.accept(bypassed=True)

        result = verify_webhook(body, signature, self.secret)
        if not result:
            logger.warning(f"Rejected webhook from shop {shop_domain!r}: {result.reason}")
        return result

    def require_authentic(self, body: bytes, signature: Optional[str], shop_domain: Optional[str] = None) -> None:
        """
        Raises:
            WebhookVerificationError: If the delivery is rejected
        """
        result = self.verify(body, signature, shop_domain)
        if not result:
            raise WebhookVerificationError(result.reason)
