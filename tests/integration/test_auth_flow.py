"""
Integration tests for registration, login and the current account
"""
import requests
from fastapi import status

from shop_insights.database.models import Tenant, User
from shop_insights.security.encryption import decrypt_credential
from shop_insights.utils.exceptions import ShopifyAPIError


class TestRegistration:
    """Test tenant and owner registration"""

    def test_register_creates_tenant_and_user(self, client, db_session, test_user_data,
                                              mock_registration_side_effects):
        response = client.post("/api/v1/auth/register", json=test_user_data)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["shop_domain"] == "demo.myshopify.com"

        tenant = db_session.query(Tenant).one()
        assert str(tenant.id) == data["tenant_id"]
        assert tenant.access_token_encrypted != test_user_data["access_token"]
        assert decrypt_credential(tenant.access_token_encrypted) == test_user_data["access_token"]

        user = db_session.query(User).one()
        assert user.tenant_id == tenant.id
        assert user.password_hash != test_user_data["password"]

    def test_register_subscribes_webhooks_and_queues_ingestion(self, client, db_session, test_user_data,
                                                                 mock_registration_side_effects):
        response = client.post("/api/v1/auth/register", json=test_user_data)
        assert response.status_code == status.HTTP_201_CREATED

        tenant = db_session.query(Tenant).one()
        mock_registration_side_effects.assert_called_once_with(tenant.id, trigger="registration")

        topics = {s["topic"] for s in tenant.webhook_state["subscriptions"]}
        assert topics == {"orders/create", "orders/updated", "customers/create", "customers/update"}
        addresses = {s["address"] for s in tenant.webhook_state["subscriptions"]}
        assert "https://insights.example.com/webhooks/orders/create" in addresses

    def test_register_survives_webhook_failure(self, client, db_session, test_user_data,
                                               mock_shopify_client, mock_registration_side_effects):
        mock_shopify_client.create_webhook.side_effect = ShopifyAPIError(
            "Shopify rejected the access token (401)", status_code=401
        )

        response = client.post("/api/v1/auth/register", json=test_user_data)

        assert response.status_code == status.HTTP_201_CREATED
        tenant = db_session.query(Tenant).one()
        assert tenant.webhook_state["status_code"] == 401
        assert "error" in tenant.webhook_state
        mock_registration_side_effects.assert_called_once()

    def test_register_survives_unexpected_webhook_error(self, client, db_session, test_user_data,
                                                        mock_shopify_client, mock_registration_side_effects):
        mock_shopify_client.create_webhook.side_effect = requests.exceptions.JSONDecodeError(
            "Expecting value", "<html>", 0
        )

        response = client.post("/api/v1/auth/register", json=test_user_data)

        assert response.status_code == status.HTTP_201_CREATED
        tenant = db_session.query(Tenant).one()
        assert tenant.webhook_state["error"].startswith("JSONDecodeError")
        mock_registration_side_effects.assert_called_once_with(tenant.id, trigger="registration")
        mock_shopify_client.close.assert_called_once()

    def test_register_normalizes_domain_and_email(self, client, test_user_data,
                                                  mock_registration_side_effects):
        test_user_data["shop_domain"] = "https://Demo.MyShopify.com/"
        test_user_data["email"] = "Owner@Example.com"

        response = client.post("/api/v1/auth/register", json=test_user_data)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["shop_domain"] == "demo.myshopify.com"

    def test_register_duplicate_email(self, client, db_session, test_user, test_user_data,
                                      mock_registration_side_effects):
        test_user_data["shop_domain"] = "another.myshopify.com"

        response = client.post("/api/v1/auth/register", json=test_user_data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "Duplicate Registration"
        assert response.json()["details"]["field"] == "email"
        assert db_session.query(Tenant).count() == 1
        assert db_session.query(User).count() == 1
        mock_registration_side_effects.assert_not_called()

    def test_register_duplicate_domain(self, client, db_session, test_tenant, test_user_data,
                                       mock_registration_side_effects):
        test_user_data["email"] = "someone-else@example.com"

        response = client.post("/api/v1/auth/register", json=test_user_data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "Duplicate Registration"
        assert response.json()["details"]["field"] == "shop_domain"
        assert db_session.query(Tenant).count() == 1
        assert db_session.query(User).count() == 0

    def test_register_short_password(self, client, db_session, test_user_data,
                                     mock_registration_side_effects):
        test_user_data["password"] = "short"

        response = client.post("/api/v1/auth/register", json=test_user_data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert db_session.query(Tenant).count() == 0

    def test_register_invalid_email(self, client, test_user_data, mock_registration_side_effects):
        test_user_data["email"] = "not-an-email"

        response = client.post("/api/v1/auth/register", json=test_user_data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestLogin:
    """Test credential login"""

    def test_login_success(self, client, db_session, test_user, test_user_data, test_tenant):
        response = client.post("/api/v1/auth/login", json={
            "email": test_user_data["email"],
            "password": test_user_data["password"],
        })

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["tenant_id"] == str(test_tenant.id)
        assert data["expires_in"] > 0

        db_session.refresh(test_user)
        assert test_user.last_login_at is not None

    def test_login_wrong_password(self, client, test_user, test_user_data):
        response = client.post("/api/v1/auth/login", json={
            "email": test_user_data["email"],
            "password": "WrongPassword123!",
        })

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_login_nonexistent_user(self, client):
        response = client.post("/api/v1/auth/login", json={
            "email": "nonexistent@example.com",
            "password": "SomePassword123!",
        })

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_login_inactive_tenant(self, client, db_session, test_user, test_tenant, test_user_data):
        test_tenant.is_active = False
        db_session.commit()

        response = client.post("/api/v1/auth/login", json={
            "email": test_user_data["email"],
            "password": test_user_data["password"],
        })

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestCurrentUser:
    """Test the /me endpoint"""

    def test_get_current_user(self, client, test_user, test_tenant, auth_headers):
        response = client.get("/api/v1/auth/me", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["email"] == test_user.email
        assert data["tenant_id"] == str(test_tenant.id)
        assert data["shop_domain"] == "demo.myshopify.com"

    def test_get_current_user_no_token(self, client):
        response = client.get("/api/v1/auth/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_get_current_user_invalid_token(self, client):
        response = client.get(
            "/api/v1/auth/me",
            headers={"Authorization": "Bearer invalid-token"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
