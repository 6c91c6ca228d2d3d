"""
Shopify Admin REST API client.

Covers the calls the service needs: cursor-paginated listings of customers,
orders and products, webhook subscription management and a connection check.
"""

from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from shop_insights import __version__
from shop_insights.core.models import normalize_shop_domain
from shop_insights.platforms.base import CommercePlatformClient, PlatformCredentials, Page
from shop_insights.utils.config import get_config
from shop_insights.utils.exceptions import ShopifyAPIError, handle_api_error
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)

MAX_PAGE_SIZE = 250


class ShopifyClient(CommercePlatformClient):
    """
    Shopify Admin API client on a requests session.

    Pagination follows the `Link: <...>; rel="next"` header, which requests
    exposes as `response.links`.
    """

    def __init__(self, credentials: PlatformCredentials,
                 api_version: Optional[str] = None,
                 timeout: Optional[int] = None,
                 session: Optional[requests.Session] = None):
        """
        Initialize Shopify client.

        Args:
            credentials: Shop domain and Admin API access token
            api_version: Admin API version (SHOPIFY_API_VERSION by default)
            timeout: Per-request timeout in seconds
            session: Pre-built session (tests)
        """
        super().__init__(credentials)
        config = get_config()

        self.shop_domain = normalize_shop_domain(credentials.shop_domain)
        self.api_version = api_version or config.shopify_api_version
        self.timeout = timeout or config.shopify_request_timeout
        self.page_size = config.shopify_page_size
        self.base_url = f"https://{self.shop_domain}/admin/api/{self.api_version}/"

        if session is None:
            session = requests.Session()

            # Retry throttling and transient server errors
            retry_strategy = Retry(
                total=config.shopify_retry_count,
                backoff_factor=1.0,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["HEAD", "GET", "OPTIONS", "DELETE"],
                respect_retry_after_header=True,
                raise_on_status=False,
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("http://", adapter)
            session.mount("https://", adapter)

        self.session = session
        self.session.headers.update({
            "X-Shopify-Access-Token": credentials.access_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"ShopInsights/{__version__}",
        })

        logger.debug(f"Initialized Shopify client for {self.shop_domain} (api {self.api_version})")

    @property
    def platform_name(self) -> str:
        return "shopify"

    def _url(self, path: str) -> str:
        return urljoin(self.base_url, path.lstrip("/"))

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Make HTTP request with error handling.

        Raises:
            ShopifyAPIError: For non-2xx responses and transport failures
        """
        kwargs.setdefault("timeout", self.timeout)
        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(method, url, **kwargs)
        except requests.exceptions.Timeout:
            raise ShopifyAPIError(f"Request timeout after {self.timeout}s", endpoint=url)
        except requests.exceptions.ConnectionError:
            raise ShopifyAPIError(f"Connection failed to {url}", endpoint=url)
        except requests.exceptions.RequestException as e:
            raise ShopifyAPIError(f"Request failed: {e}", endpoint=url)

        if not response.ok:
            logger.warning(f"Shopify {method} {url} returned {response.status_code}")
            handle_api_error(response, url)

        return response

    def _json(self, response: requests.Response, url: str) -> Dict[str, Any]:
        """
        Decode a successful response body.

        Raises:
            ShopifyAPIError: If the body is not a JSON object
        """
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            raise ShopifyAPIError(
                "Shopify returned a response that is not a JSON object",
                endpoint=url,
                status_code=response.status_code,
                response_data=(response.text or "")[:500],
            )
        return data

    def _paginate(self, resource: str, limit: Optional[int] = None,
                  params: Optional[Dict[str, Any]] = None) -> Iterator[Page]:
        page_size = min(limit or self.page_size, MAX_PAGE_SIZE)
        query = dict(params or {}, limit=page_size)
        url = self._url(f"{resource}.json")

        page_number = 0
        while url:
            response = self._request("GET", url, params=query)
            records = self._json(response, url).get(resource, [])
            page_number += 1
            logger.debug(f"Fetched {resource} page {page_number} ({len(records)} records)")

            if records:
                yield records

            # The next link already carries page_info and limit; Shopify rejects
            # other filters alongside page_info.
            url = response.links.get("next", {}).get("url")
            query = None

    def iter_customers(self, limit: Optional[int] = None) -> Iterator[Page]:
        return self._paginate("customers", limit)

    def iter_orders(self, limit: Optional[int] = None) -> Iterator[Page]:
        return self._paginate("orders", limit, params={"status": "any"})

    def iter_products(self, limit: Optional[int] = None) -> Iterator[Page]:
        return self._paginate("products", limit)

    def list_webhooks(self) -> List[Dict[str, Any]]:
        url = self._url("webhooks.json")
        return self._json(self._request("GET", url), url).get("webhooks", [])

    def create_webhook(self, topic: str, address: str) -> Dict[str, Any]:
        body = {"webhook": {"topic": topic, "address": address, "format": "json"}}
        url = self._url("webhooks.json")
        webhook = self._json(self._request("POST", url, json=body), url).get("webhook", {})
        logger.info(f"Created Shopify webhook {webhook.get('id')} for {topic} on {self.shop_domain}")
        return webhook

    def delete_webhook(self, webhook_id: str) -> None:
        self._request("DELETE", self._url(f"webhooks/{webhook_id}.json"))
        logger.info(f"Deleted Shopify webhook {webhook_id} on {self.shop_domain}")

    def test_connection(self) -> Dict[str, Any]:
        url = self._url("shop.json")
        shop = self._json(self._request("GET", url), url).get("shop", {})
        return {
            "success": True,
            "shop_domain": self.shop_domain,
            "name": shop.get("name"),
            "currency": shop.get("currency"),
        }

    def close(self) -> None:
        self.session.close()
