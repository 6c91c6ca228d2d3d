"""
Integration tests for manual resync
"""
import asyncio
import time
from unittest.mock import patch

import httpx
from fastapi import status

from shop_insights.database.models import Order, Product, SyncLog
from shop_insights.utils.exceptions import ShopifyAPIError


class TestResync:
    """Test POST /api/v1/sync"""

    def test_resync_success(self, client, db_session, test_tenant, auth_headers, mock_shopify_client):
        mock_shopify_client.iter_orders.return_value = iter([
            [{"id": 1, "total_price": "10.00"}, {"id": 2, "total_price": "5.50"}],
        ])
        mock_shopify_client.iter_products.return_value = iter([[{"id": 9, "title": "Mug"}]])

        with patch("shop_insights.services.ingestion_service.create_platform_client",
                   return_value=mock_shopify_client):
            response = client.post("/api/v1/sync", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["orders"] == 2
        assert data["products"] == 1
        assert data["customers"] == 0

        assert db_session.query(Order).filter(Order.tenant_id == test_tenant.id).count() == 2
        assert db_session.query(Product).count() == 1
        log = db_session.query(SyncLog).one()
        assert str(log.id) == data["sync_log_id"]
        assert log.status == "completed"
        assert log.trigger == "manual"
        mock_shopify_client.close.assert_called_once()

    def test_resync_upstream_error(self, client, db_session, test_tenant, auth_headers, mock_shopify_client):
        mock_shopify_client.iter_customers.side_effect = ShopifyAPIError(
            "Shopify rejected the access token (401)", status_code=401
        )

        with patch("shop_insights.services.ingestion_service.create_platform_client",
                   return_value=mock_shopify_client):
            response = client.post("/api/v1/sync", headers=auth_headers)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        body = response.json()
        assert body["details"]["upstream_status"] == 401

        log = db_session.query(SyncLog).one()
        assert log.status == "failed"
        assert log.error_message
        mock_shopify_client.close.assert_called_once()

    def test_resync_requires_token(self, client):
        response = client.post("/api/v1/sync")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


async def _health_during_resync(app, headers):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        resync = asyncio.create_task(http.post("/api/v1/sync", headers=headers))
        await asyncio.sleep(0.2)

        started = time.perf_counter()
        health = await http.get("/health")
        latency = time.perf_counter() - started

        return await resync, health, latency


class TestResyncConcurrency:
    """A running resync must not stall other requests"""

    def test_health_answers_during_slow_resync(self, client, test_tenant, auth_headers, mock_shopify_client):
        def slow_customers():
            time.sleep(1.0)
            return iter([])

        mock_shopify_client.iter_customers.side_effect = slow_customers

        with patch("shop_insights.services.ingestion_service.create_platform_client",
                   return_value=mock_shopify_client):
            resync, health, latency = asyncio.run(_health_during_resync(client.app, auth_headers))

        assert health.status_code == status.HTTP_200_OK
        assert health.json() == {"ok": True}
        assert latency < 0.5
        assert resync.status_code == status.HTTP_200_OK
