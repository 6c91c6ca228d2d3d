"""
Typed records for Shopify payloads.

Webhook bodies and Admin API listings are loosely typed: any field may be
missing, null or malformed. These pydantic models apply the defaulting rules
once so that webhooks and bulk ingestion store identical rows for identical
input. Only the `raw` field keeps the original payload untouched.
"""

import enum
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Annotated, Optional, Dict, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from shop_insights.utils.exceptions import ValidationError


class WebhookTopic(str, enum.Enum):
    """Webhook topics handled by the reconciler (Shopify topic names)."""
    ORDERS_CREATE = "orders/create"
    ORDERS_UPDATED = "orders/updated"
    CUSTOMERS_CREATE = "customers/create"
    CUSTOMERS_UPDATE = "customers/update"

    @property
    def resource(self) -> str:
        return self.value.split("/", 1)[0]

    @classmethod
    def parse(cls, value: Optional[str]) -> "WebhookTopic":
        """Map a topic header value to the enum, raising ValidationError if unsupported."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ValidationError(
                f"Unsupported webhook topic: {value}",
                field="topic",
                value=value,
                expected_type=", ".join(t.value for t in cls),
            )


ZERO = Decimal("0.00")

# Exclusive bound of the Numeric(12, 2) money columns; inclusive bound of
# the Integer count columns
MONEY_LIMIT = Decimal("1e10")
MAX_COUNT = 2 ** 31 - 1


def _parse_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def parse_money(value: Any) -> Decimal:
    """
    Parse a Shopify money string.

    Absent, unparseable or out-of-range values (more than ten integer digits)
    become zero.
    """
    amount = _parse_decimal(value)
    if amount is None or abs(amount) >= MONEY_LIMIT:
        return ZERO
    amount = amount.quantize(Decimal("0.01"))
    # 9999999999.999 rounds up to eleven integer digits
    return amount if abs(amount) < MONEY_LIMIT else ZERO


def parse_count(value: Any) -> int:
    number = _parse_decimal(value)
    if number is None or abs(number) > MAX_COUNT:
        return 0
    return int(number)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into UTC; anything unparseable becomes None."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def display_name(first: Any, last: Any) -> Optional[str]:
    """Join trimmed first/last names; empty result collapses to None."""
    parts = [p.strip() for p in (first, last) if isinstance(p, str) and p.strip()]
    return " ".join(parts) or None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


Money = Annotated[Decimal, BeforeValidator(parse_money)]
Count = Annotated[int, BeforeValidator(parse_count)]
Timestamp = Annotated[Optional[datetime], BeforeValidator(parse_timestamp)]
OptionalStr = Annotated[Optional[str], BeforeValidator(_optional_str)]


class ShopifyRecord(BaseModel):
    """Fields shared by every upserted entity."""

    model_config = ConfigDict(frozen=True)

    shopify_id: str
    created_at: Timestamp = None
    raw: Dict[str, Any]

    @field_validator("shopify_id", mode="before")
    @classmethod
    def require_id(cls, v):
        if v is None or isinstance(v, bool) or str(v).strip() == "":
            raise ValueError("payload has no id")
        return str(v).strip()

    @classmethod
    def from_payload(cls, payload: Any) -> "ShopifyRecord":
        """Build the record from a raw payload, raising ValidationError on bad input."""
        if not isinstance(payload, dict):
            raise ValidationError(
                "Payload must be a JSON object",
                field="body",
                expected_type="object",
            )
        try:
            return cls(**cls._extract(payload), raw=payload)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ()))
            raise ValidationError(
                f"Invalid {cls.__name__} payload: {first.get('msg')}",
                field=field or None,
                value=payload.get("id"),
            )

    @classmethod
    def _extract(cls, payload: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def to_row(self) -> Dict[str, Any]:
        """Column values for the upsert statement."""
        return self.model_dump()


class CustomerRecord(ShopifyRecord):
    """Normalized customers/create, customers/update or customers.json entry."""

    email: OptionalStr = None
    first_name: OptionalStr = None
    last_name: OptionalStr = None
    name: Optional[str] = None
    total_spent: Money = ZERO
    orders_count: Count = 0

    @classmethod
    def _extract(cls, payload):
        return {
            "shopify_id": payload.get("id"),
            "email": payload.get("email"),
            "first_name": payload.get("first_name"),
            "last_name": payload.get("last_name"),
            "name": display_name(payload.get("first_name"), payload.get("last_name")),
            "total_spent": payload.get("total_spent"),
            "orders_count": payload.get("orders_count"),
            "created_at": payload.get("created_at"),
        }


class OrderRecord(ShopifyRecord):
    """Normalized orders/create, orders/updated or orders.json entry."""

    total_price: Money = ZERO
    currency: OptionalStr = None
    customer_email: OptionalStr = None
    customer_name: Optional[str] = None

    @classmethod
    def _extract(cls, payload):
        customer = payload.get("customer")
        if not isinstance(customer, dict):
            customer = {}
        return {
            "shopify_id": payload.get("id"),
            "total_price": payload.get("total_price"),
            "currency": payload.get("currency"),
            "customer_email": customer.get("email") or payload.get("email"),
            "customer_name": display_name(customer.get("first_name"), customer.get("last_name")),
            "created_at": payload.get("created_at"),
        }


class ProductRecord(ShopifyRecord):
    """Normalized products.json entry."""

    title: OptionalStr = None
    vendor: OptionalStr = None
    product_type: OptionalStr = None
    handle: OptionalStr = None
    status: OptionalStr = None

    @classmethod
    def _extract(cls, payload):
        return {
            "shopify_id": payload.get("id"),
            "title": payload.get("title"),
            "vendor": payload.get("vendor"),
            "product_type": payload.get("product_type"),
            "handle": payload.get("handle"),
            "status": payload.get("status"),
            "created_at": payload.get("created_at"),
        }


RECORD_TYPES = {
    "customers": CustomerRecord,
    "orders": OrderRecord,
    "products": ProductRecord,
}


def normalize_shop_domain(value: Optional[str]) -> str:
    """
    Canonical form of a store domain: lowercase host without scheme or path.

    "https://Demo.myshopify.com/" -> "demo.myshopify.com"
    """
    domain = (value or "").strip().lower()
    for prefix in ("https://", "http://"):
        if domain.startswith(prefix):
            domain = domain[len(prefix):]
    domain = domain.split("/", 1)[0]
    if not domain:
        raise ValidationError("Shop domain is required", field="shop_domain", value=value)
    return domain
