"""
Integration tests for health and monitoring endpoints
"""
from unittest.mock import patch

from fastapi import status


class TestHealth:
    """Test liveness and readiness"""

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"ok": True}

    def test_readiness(self, client):
        with patch("shop_insights.api.routes.health._check_broker",
                   return_value={"status": "unhealthy", "error": "connection refused"}):
            response = client.get("/health/ready")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["checks"]["database"]["status"] == "healthy"
        assert data["status"] == "healthy"

    def test_readiness_database_down(self, client):
        with patch("shop_insights.api.routes.health._check_database",
                   return_value={"status": "unhealthy", "error": "down"}), \
                patch("shop_insights.api.routes.health._check_broker",
                      return_value={"status": "healthy"}):
            response = client.get("/health/ready")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


class TestMonitoring:
    """Test Prometheus exposition"""

    def test_metrics_endpoint(self, client, test_tenant, signed_webhook):
        body, headers = signed_webhook({"id": 1, "total_price": "1.00"})
        client.post("/webhooks/orders/create", content=body, headers=headers)

        response = client.get("/metrics")

        assert response.status_code == status.HTTP_200_OK
        assert "shop_insights_webhooks_total" in response.text

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == status.HTTP_200_OK
