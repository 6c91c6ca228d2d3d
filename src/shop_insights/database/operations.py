"""
Database write operations shared by the webhook reconciler and bulk ingestion.

Entity rows are written with the database's native INSERT ... ON CONFLICT
upsert keyed on (tenant_id, shopify_id). Concurrent deliveries for the same
entity are resolved by the database (last writer wins); no row locks are
taken here.
"""

import uuid
from typing import Any, Dict, Optional, Type

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from shop_insights.core.models import (
    ShopifyRecord,
    CustomerRecord,
    OrderRecord,
    ProductRecord,
    normalize_shop_domain,
)
from shop_insights.database.models import Tenant, Customer, Order, Product, WebhookEvent
from shop_insights.database.models.base import Base, utcnow
from shop_insights.utils.exceptions import DatabaseError
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)


_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

# Columns an upsert must never overwrite on an existing row
_IMMUTABLE_COLUMNS = {"id", "tenant_id", "shopify_id", "created_at"}

MODEL_BY_RECORD = {
    CustomerRecord: Customer,
    OrderRecord: Order,
    ProductRecord: Product,
}


def _dialect_insert(db: Session, model: Type[Base]):
    dialect = db.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise DatabaseError(
            f"Native upsert is not available on {dialect}",
            operation="upsert",
            table=model.__tablename__,
        )
    return insert(model)


def upsert_record(db: Session, tenant_id: uuid.UUID, record: ShopifyRecord) -> uuid.UUID:
    """
    Insert or update one entity row and return its primary key.

    Existing rows get every mutable column overwritten with the incoming
    values and a fresh updated_at. created_at is only filled when the stored
    value is null, so an update delivered before its create converges to the
    same row. Does not commit.

    Args:
        db: Database session
        tenant_id: Owning tenant
        record: Normalized Customer/Order/Product record

    Returns:
        UUID of the inserted or updated row
    """
    model = MODEL_BY_RECORD[type(record)]
    table = model.__table__

    values: Dict[str, Any] = record.to_row()
    values["tenant_id"] = tenant_id
    values["updated_at"] = utcnow()

    stmt = _dialect_insert(db, model).values(id=uuid.uuid4(), **values)

    set_ = {
        column: stmt.excluded[column]
        for column in values
        if column not in _IMMUTABLE_COLUMNS
    }
    set_["created_at"] = func.coalesce(table.c.created_at, stmt.excluded.created_at)

    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.tenant_id, table.c.shopify_id],
        set_=set_,
    ).returning(table.c.id)

    entity_id = db.execute(stmt).scalar_one()
    logger.debug(f"Upserted {model.__tablename__} {record.shopify_id} for tenant {tenant_id}")
    return entity_id


def append_webhook_event(
    db: Session,
    tenant: Tenant,
    topic: str,
    shopify_id: Optional[str],
    payload: Any,
) -> WebhookEvent:
    """Add one audit row for a processed webhook. Does not commit."""
    event = WebhookEvent(
        tenant_id=tenant.id,
        topic=topic,
        shopify_id=shopify_id,
        shop_domain=tenant.shop_domain,
        processed_at=utcnow(),
        raw_payload=payload,
    )
    db.add(event)
    return event


def get_tenant_by_domain(db: Session, shop_domain: Optional[str]) -> Optional[Tenant]:
    """Look up an active tenant by store domain in any accepted spelling."""
    domain = normalize_shop_domain(shop_domain)
    return db.query(Tenant).filter(
        Tenant.shop_domain == domain,
        Tenant.is_active.is_(True),
    ).first()
