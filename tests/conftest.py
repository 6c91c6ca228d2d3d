"""
Test configuration and fixtures for Shop Insights
"""
import json
import os
import tempfile

from cryptography.fernet import Fernet

# Settings are cached on first use, so the environment must be in place
# before any shop_insights import.
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["ENCRYPTION_MASTER_KEY"] = Fernet.generate_key().decode()
os.environ["SHOPIFY_WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["WEBHOOK_VERIFICATION_DISABLED"] = "false"
os.environ["PUBLIC_BASE_URL"] = "https://insights.example.com"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="shop_insights_logs_")
os.environ["REDIS_URL"] = "redis://localhost:6379/15"

from typing import Generator
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from shop_insights.api.main import app
from shop_insights.auth.jwt_manager import create_access_token
from shop_insights.auth.password import hash_password
from shop_insights.core.models import WebhookTopic
from shop_insights.database.connection import (
    SessionLocal,
    dispose_engine,
    get_db,
    init_engine,
)
from shop_insights.database.models import Base, Tenant, User
from shop_insights.security.encryption import encrypt_credential
from shop_insights.utils.config import reload_config
from shop_insights.webhooks import compute_signature


WEBHOOK_SECRET = os.environ["SHOPIFY_WEBHOOK_SECRET"]


# =============================================================================
# Test Database Setup
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    """In-memory SQLite engine shared by every session of one test"""
    engine = init_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    dispose_engine()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    """Create a new database session for each test"""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# FastAPI Test Client
# =============================================================================

@pytest.fixture(scope="function")
def client(db_session) -> TestClient:
    """Create FastAPI test client with overridden dependencies"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    # No lifespan: the engine belongs to the engine fixture
    yield TestClient(app)

    app.dependency_overrides.clear()


# =============================================================================
# Test Data Fixtures
# =============================================================================

@pytest.fixture
def test_user_data():
    """Registration payload"""
    return {
        "email": "owner@example.com",
        "password": "TestPassword123!",
        "shop_domain": "demo.myshopify.com",
        "access_token": "shpat_test_token",
    }


def make_tenant(db_session, shop_domain: str, access_token: str = "shpat_test_token") -> Tenant:
    tenant = Tenant(
        shop_domain=shop_domain,
        access_token_encrypted=encrypt_credential(access_token),
        scopes=[topic.value for topic in WebhookTopic],
        is_active=True,
    )
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def test_tenant(db_session, test_user_data) -> Tenant:
    """Create test tenant"""
    return make_tenant(db_session, test_user_data["shop_domain"], test_user_data["access_token"])


@pytest.fixture
def other_tenant(db_session) -> Tenant:
    """A second storefront for isolation checks"""
    return make_tenant(db_session, "other-store.myshopify.com")


@pytest.fixture
def test_user(db_session, test_tenant, test_user_data) -> User:
    """Create test user"""
    user = User(
        email=test_user_data["email"],
        password_hash=hash_password(test_user_data["password"]),
        tenant_id=test_tenant.id,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def test_access_token(test_user, test_tenant) -> str:
    """Create test access token"""
    return create_access_token(
        user_id=str(test_user.id),
        tenant_id=str(test_tenant.id),
        email=test_user.email,
        shop_domain=test_tenant.shop_domain,
    )


@pytest.fixture
def auth_headers(test_access_token) -> dict:
    """Create authorization headers"""
    return {"Authorization": f"Bearer {test_access_token}"}


# =============================================================================
# Webhook Helpers
# =============================================================================

@pytest.fixture
def signed_webhook():
    """
    Build (body, headers) for a webhook delivery signed with the test secret.

    Usage:
        body, headers = signed_webhook({"id": 1}, shop_domain="demo.myshopify.com")
    """

    def _build(payload, shop_domain="demo.myshopify.com", topic=None, secret=WEBHOOK_SECRET):
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Hmac-Sha256": compute_signature(body, secret),
        }
        if shop_domain is not None:
            headers["X-Shopify-Shop-Domain"] = shop_domain
        if topic is not None:
            headers["X-Shopify-Topic"] = topic
        return body, headers

    return _build


@pytest.fixture
def webhook_bypass(monkeypatch):
    """Run with WEBHOOK_VERIFICATION_DISABLED=true"""
    monkeypatch.setenv("WEBHOOK_VERIFICATION_DISABLED", "true")
    reload_config()
    yield
    monkeypatch.setenv("WEBHOOK_VERIFICATION_DISABLED", "false")
    reload_config()


# =============================================================================
# Mock External Services
# =============================================================================

@pytest.fixture
def mock_shopify_client():
    """Platform client double with empty listings and working webhook calls"""
    client = MagicMock()
    client.iter_customers.return_value = iter([])
    client.iter_orders.return_value = iter([])
    client.iter_products.return_value = iter([])
    client.list_webhooks.return_value = []
    client.create_webhook.side_effect = lambda topic, address: {
        "id": abs(hash(topic)) % 100000,
        "topic": topic,
        "address": address,
    }
    return client


@pytest.fixture
def mock_registration_side_effects(mock_shopify_client):
    """Patch webhook setup and background ingestion used by registration"""
    with patch(
        "shop_insights.api.routes.auth.create_platform_client",
        return_value=mock_shopify_client,
    ), patch(
        "shop_insights.api.routes.auth.schedule_tenant_ingestion",
        return_value="task-id",
    ) as schedule:
        yield schedule
