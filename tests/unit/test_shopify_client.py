"""
Unit tests for the Shopify Admin API client
"""
from unittest.mock import MagicMock

import pytest
import requests

from shop_insights.platforms import PlatformCredentials, ShopifyClient
from shop_insights.utils.exceptions import ShopifyAPIError, UpstreamError


def _response(json_data=None, status_code=200, next_url=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = json_data if json_data is not None else {}
    response.text = text
    response.links = {"next": {"url": next_url}} if next_url else {}
    return response


@pytest.fixture
def session():
    session = requests.Session()
    session.request = MagicMock()
    return session


@pytest.fixture
def client(session):
    return ShopifyClient(
        PlatformCredentials(shop_domain="https://Demo.myshopify.com/", access_token="shpat_abc"),
        api_version="2024-01",
        session=session,
    )


class TestClientSetup:
    """Test client construction"""

    def test_base_url_and_headers(self, client, session):
        assert client.base_url == "https://demo.myshopify.com/admin/api/2024-01/"
        assert session.headers["X-Shopify-Access-Token"] == "shpat_abc"
        assert client.platform_name == "shopify"


class TestPagination:
    """Test cursor pagination"""

    def test_follows_next_link(self, client, session):
        next_url = "https://demo.myshopify.com/admin/api/2024-01/customers.json?page_info=abc&limit=2"
        session.request.side_effect = [
            _response({"customers": [{"id": 1}, {"id": 2}]}, next_url=next_url),
            _response({"customers": [{"id": 3}]}),
        ]

        pages = list(client.iter_customers(limit=2))

        assert pages == [[{"id": 1}, {"id": 2}], [{"id": 3}]]
        first, second = session.request.call_args_list
        assert first.args == ("GET", "https://demo.myshopify.com/admin/api/2024-01/customers.json")
        assert first.kwargs["params"] == {"limit": 2}
        assert second.args == ("GET", next_url)
        assert second.kwargs["params"] is None

    def test_orders_request_all_statuses(self, client, session):
        session.request.return_value = _response({"orders": [{"id": 5}]})

        assert list(client.iter_orders()) == [[{"id": 5}]]
        assert session.request.call_args.kwargs["params"]["status"] == "any"

    def test_page_size_capped_at_250(self, client, session):
        session.request.return_value = _response({"products": []})

        assert list(client.iter_products(limit=1000)) == []
        assert session.request.call_args.kwargs["params"]["limit"] == 250

    def test_empty_listing_yields_nothing(self, client, session):
        session.request.return_value = _response({"customers": []})
        assert list(client.iter_customers()) == []


class TestErrors:
    """Test HTTP failure handling"""

    def test_non_2xx_raises_with_status_and_body(self, client, session):
        session.request.return_value = _response(
            {"errors": "[API] Invalid API key or access token"}, status_code=401
        )

        with pytest.raises(ShopifyAPIError) as exc_info:
            list(client.iter_orders())

        error = exc_info.value
        assert isinstance(error, UpstreamError)
        assert error.upstream_status == 401
        assert error.response_data == {"errors": "[API] Invalid API key or access token"}
        assert error.details["upstream_status"] == 401

    def test_non_json_error_body_kept_as_text(self, client, session):
        response = _response(status_code=502, text="Bad Gateway")
        response.json.side_effect = ValueError("no json")
        session.request.return_value = response

        with pytest.raises(ShopifyAPIError) as exc_info:
            client.list_webhooks()

        assert exc_info.value.upstream_status == 502
        assert exc_info.value.response_data == "Bad Gateway"

    def test_success_with_non_json_body_raises(self, client, session):
        response = _response(status_code=200, text="<html>maintenance</html>")
        response.json.side_effect = requests.exceptions.JSONDecodeError("Expecting value", "", 0)
        session.request.return_value = response

        with pytest.raises(ShopifyAPIError) as exc_info:
            client.create_webhook("orders/create", "https://x/webhooks/orders/create")

        assert exc_info.value.upstream_status == 200
        assert exc_info.value.response_data == "<html>maintenance</html>"

    def test_success_with_non_object_body_raises(self, client, session):
        session.request.return_value = _response(["not", "an", "object"])

        with pytest.raises(ShopifyAPIError):
            list(client.iter_customers())

    def test_timeout_raises_without_status(self, client, session):
        session.request.side_effect = requests.exceptions.Timeout()

        with pytest.raises(ShopifyAPIError) as exc_info:
            client.test_connection()

        assert exc_info.value.upstream_status is None


class TestWebhookManagement:
    """Test webhook subscription calls"""

    def test_create_webhook(self, client, session):
        session.request.return_value = _response({
            "webhook": {"id": 42, "topic": "orders/create", "address": "https://x/webhooks/orders/create"}
        })

        webhook = client.create_webhook("orders/create", "https://x/webhooks/orders/create")

        assert webhook["id"] == 42
        method, url = session.request.call_args.args
        assert method == "POST"
        assert url.endswith("/webhooks.json")
        assert session.request.call_args.kwargs["json"] == {
            "webhook": {
                "topic": "orders/create",
                "address": "https://x/webhooks/orders/create",
                "format": "json",
            }
        }

    def test_list_webhooks(self, client, session):
        session.request.return_value = _response({"webhooks": [{"id": 1}, {"id": 2}]})
        assert client.list_webhooks() == [{"id": 1}, {"id": 2}]

    def test_delete_webhook(self, client, session):
        session.request.return_value = _response({})

        client.delete_webhook("42")

        method, url = session.request.call_args.args
        assert method == "DELETE"
        assert url == "https://demo.myshopify.com/admin/api/2024-01/webhooks/42.json"

    def test_test_connection(self, client, session):
        session.request.return_value = _response({"shop": {"name": "Demo", "currency": "USD"}})

        result = client.test_connection()

        assert result["success"] is True
        assert result["currency"] == "USD"
