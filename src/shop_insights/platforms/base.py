"""
Abstract base class for commerce platform API clients.

The ingestion and webhook-subscription services only depend on this
interface, so tests can substitute a fake and another platform could be
added behind the same calls.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional


Page = List[Dict[str, Any]]


@dataclass
class PlatformCredentials:
    """Credentials for one storefront."""
    shop_domain: str
    access_token: str


class CommercePlatformClient(ABC):
    """
    Commerce platform client interface.

    Listing methods yield pages of raw records. Any non-2xx response must be
    raised as an UpstreamError carrying the status code and body.
    """

    def __init__(self, credentials: PlatformCredentials):
        self.credentials = credentials

    @abstractmethod
    def iter_customers(self, limit: Optional[int] = None) -> Iterator[Page]:
        """Yield pages of customers."""

    @abstractmethod
    def iter_orders(self, limit: Optional[int] = None) -> Iterator[Page]:
        """Yield pages of orders of any status."""

    @abstractmethod
    def iter_products(self, limit: Optional[int] = None) -> Iterator[Page]:
        """Yield pages of products."""

    @abstractmethod
    def list_webhooks(self) -> List[Dict[str, Any]]:
        """List current webhook subscriptions."""

    @abstractmethod
    def create_webhook(self, topic: str, address: str) -> Dict[str, Any]:
        """Subscribe address to topic and return the created subscription."""

    @abstractmethod
    def delete_webhook(self, webhook_id: str) -> None:
        """Delete a webhook subscription by id."""

    @abstractmethod
    def test_connection(self) -> Dict[str, Any]:
        """Check that the credentials are accepted."""

    @property
    @abstractmethod
    def platform_name(self) -> str:
        """Platform name used in logs and metrics."""

    def close(self) -> None:
        """Release network resources held by the client."""
