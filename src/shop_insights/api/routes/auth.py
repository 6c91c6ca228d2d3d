"""
Authentication routes for registration, login and the current account.
"""

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shop_insights.auth import (
    create_access_token,
    get_jwt_manager,
    hash_password,
    verify_password,
)
from shop_insights.api.middleware.tenant_context import get_current_user
from shop_insights.core.models import WebhookTopic, normalize_shop_domain
from shop_insights.database.connection import get_db
from shop_insights.database.models import InstallStatus, Tenant, User
from shop_insights.platforms.factory import create_platform_client
from shop_insights.services.tenant_credentials import set_access_token
from shop_insights.services.webhook_subscriptions import WebhookSubscriptionService
from shop_insights.utils.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DatabaseError,
    DuplicateRegistrationError,
    ShopInsightsError,
)
from shop_insights.utils.logger import get_logger
from shop_insights.utils.transaction import transaction_scope
from shop_insights.workers.tasks import schedule_tenant_ingestion

logger = get_logger(__name__)

router = APIRouter()


# Request/Response models
class RegisterRequest(BaseModel):
    """Tenant and owner registration request."""
    email: EmailStr
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")
    shop_domain: str = Field(..., min_length=1, max_length=255, description="e.g. demo.myshopify.com")
    access_token: str = Field(..., min_length=1, description="Shopify Admin API access token")
    scopes: Optional[List[str]] = Field(None, description="Webhook topics to subscribe (default: all)")


class LoginRequest(BaseModel):
    """User login request."""
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Authentication token response."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    tenant_id: str
    shop_domain: str


class MeResponse(BaseModel):
    """Current user and tenant."""
    user_id: str
    email: str
    tenant_id: str
    shop_domain: str
    last_login_at: Optional[datetime] = None


def _issue_token(user: User, tenant: Tenant) -> TokenResponse:
    access_token = create_access_token(
        user_id=str(user.id),
        tenant_id=str(tenant.id),
        email=user.email,
        shop_domain=tenant.shop_domain,
    )
    return TokenResponse(
        access_token=access_token,
        expires_in=get_jwt_manager().expires_in,
        tenant_id=str(tenant.id),
        shop_domain=tenant.shop_domain,
    )


def _mark_webhook_failure(tenant: Tenant, message: str) -> None:
    tenant.webhook_state = {
        "error": message,
        "failed_at": datetime.now(timezone.utc).isoformat(),
    }


def _subscribe_webhooks(tenant: Tenant, db: Session) -> None:
    """Best effort: failures end up on tenant.webhook_state and in the log."""
    client = None
    try:
        client = create_platform_client(tenant)
        WebhookSubscriptionService(tenant, db, client).register_webhooks()
    except ShopInsightsError as e:
        logger.error(f"Webhook setup failed for {tenant.shop_domain}: {e}")
        _mark_webhook_failure(tenant, e.message)
    except Exception as e:
        # Registration is already committed and must still succeed
        logger.exception(f"Unexpected error during webhook setup for {tenant.shop_domain}: {e}")
        _mark_webhook_failure(tenant, f"{type(e).__name__}: {e}")
    finally:
        if client is not None:
            client.close()

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Could not store webhook state for {tenant.shop_domain}: {e}")


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Register a storefront and its owner account.

    Creates the tenant and user in one transaction, subscribes webhooks and
    queues the initial ingestion. Neither of the last two steps can fail
    the registration.
    """
    email = data.email.lower()
    shop_domain = normalize_shop_domain(data.shop_domain)
    scopes = [WebhookTopic.parse(topic).value for topic in data.scopes] if data.scopes else \
        [topic.value for topic in WebhookTopic]

    if db.query(User.id).filter(User.email == email).first() is not None:
        raise DuplicateRegistrationError("Email already registered", field="email")
    if db.query(Tenant.id).filter(Tenant.shop_domain == shop_domain).first() is not None:
        raise DuplicateRegistrationError("Shop domain already registered", field="shop_domain")

    try:
        with transaction_scope(db, "register"):
            tenant = Tenant(
                shop_domain=shop_domain,
                scopes=scopes,
                install_status=InstallStatus.INSTALLED.value,
                is_active=True,
            )
            set_access_token(tenant, data.access_token)
            db.add(tenant)
            db.flush()

            user = User(
                email=email,
                password_hash=hash_password(data.password),
                tenant_id=tenant.id,
                is_active=True,
            )
            db.add(user)
            db.flush()
    except DatabaseError as e:
        # Lost a race with a concurrent registration
        if isinstance(e.__cause__, IntegrityError):
            raise DuplicateRegistrationError("Email or shop domain already registered")
        raise

    logger.info(f"New tenant registered: {tenant.shop_domain} ({tenant.id})")

    _subscribe_webhooks(tenant, db)
    schedule_tenant_ingestion(tenant.id, trigger="registration")

    return _issue_token(user, tenant)


@router.post("/login", response_model=TokenResponse)
def login(
    data: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Authenticate user and return an access token.
    """
    user = db.query(User).filter(User.email == data.email.lower()).first()

    if not user or not verify_password(data.password, user.password_hash):
        raise AuthenticationError("Incorrect email or password")

    if not user.is_active:
        raise AuthorizationError("User account is disabled")

    tenant = user.tenant
    if not tenant or not tenant.is_active:
        raise AuthorizationError("Tenant account is suspended")

    with transaction_scope(db, "login"):
        user.last_login_at = datetime.now(timezone.utc)

    logger.info(f"User logged in: {user.email}")
    return _issue_token(user, tenant)


@router.get("/me", response_model=MeResponse)
async def me(user: User = Depends(get_current_user)):
    """Return the authenticated user and their tenant."""
    return MeResponse(
        user_id=str(user.id),
        email=user.email,
        tenant_id=str(user.tenant_id),
        shop_domain=user.tenant.shop_domain,
        last_login_at=user.last_login_at,
    )
