"""
Custom exceptions for Shop Insights.

Every failure that can reach an HTTP caller is a ShopInsightsError subclass
carrying the status code it maps to. The API layer turns them into a single
JSON error body.
"""

from typing import Optional, Dict, Any


class ShopInsightsError(Exception):
    """Base exception for all Shop Insights errors."""

    status_code: int = 500
    error_type: str = "Internal Error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception with message and optional details.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ShopInsightsError):
    """Raised when configuration is invalid or missing."""
    error_type = "Configuration Error"


class AuthenticationError(ShopInsightsError):
    """Raised when credentials or session tokens are invalid."""
    status_code = 401
    error_type = "Authentication Error"


class AuthorizationError(AuthenticationError):
    """Raised when an authenticated account may not access a resource."""
    status_code = 403
    error_type = "Authorization Error"


class WebhookVerificationError(AuthenticationError):
    """Raised when an inbound webhook signature is rejected."""

    def __init__(self, reason: str):
        super().__init__("Webhook signature verification failed", {"reason": reason})
        self.reason = reason


class NotFoundError(ShopInsightsError):
    """Raised when a tenant or resource does not exist."""
    status_code = 404
    error_type = "Not Found"


class UnknownTenantError(NotFoundError):
    """Raised when a store domain matches no registered tenant."""

    def __init__(self, shop_domain: Optional[str]):
        super().__init__(f"Unknown shop domain: {shop_domain}", {"shop_domain": shop_domain})
        self.shop_domain = shop_domain


class ValidationError(ShopInsightsError):
    """Raised when input data validation fails."""
    status_code = 400
    error_type = "Validation Error"

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Optional[Any] = None, expected_type: Optional[str] = None):
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            value: Invalid value
            expected_type: Expected data type
        """
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:200]
        if expected_type:
            details["expected_type"] = expected_type

        super().__init__(message, details)
        self.field = field
        self.value = value
        self.expected_type = expected_type


class DuplicateRegistrationError(ShopInsightsError):
    """Raised when the email or shop domain is already registered."""
    status_code = 400
    error_type = "Duplicate Registration"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class UpstreamError(ShopInsightsError):
    """Base class for failures reported by the commerce platform."""
    error_type = "Upstream Error"

    def __init__(self, message: str, status_code: Optional[int] = None,
                 response_data: Optional[Any] = None):
        """
        Initialize upstream error.

        Args:
            message: Error message
            status_code: HTTP status code returned upstream
            response_data: Upstream response body (parsed JSON or text)
        """
        details = {}
        if status_code:
            details["upstream_status"] = status_code
        if response_data is not None:
            details["upstream_body"] = response_data

        super().__init__(message, details)
        self.upstream_status = status_code
        self.response_data = response_data


class ShopifyAPIError(UpstreamError):
    """Raised when Shopify Admin API calls fail."""

    def __init__(self, message: str, endpoint: Optional[str] = None,
                 status_code: Optional[int] = None,
                 response_data: Optional[Any] = None):
        super().__init__(message, status_code, response_data)
        self.endpoint = endpoint

        if endpoint:
            self.details["endpoint"] = endpoint


class DatabaseError(ShopInsightsError):
    """Raised when database operations fail."""
    error_type = "Database Error"

    def __init__(self, message: str, operation: Optional[str] = None,
                 table: Optional[str] = None):
        """
        Initialize database error.

        Args:
            message: Error message
            operation: Database operation that failed
            table: Table involved in operation
        """
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table

        super().__init__(message, details=details)
        self.operation = operation
        self.table = table


def handle_api_error(response, endpoint: Optional[str] = None) -> None:
    """
    Raise ShopifyAPIError for a non-success HTTP response.

    Args:
        response: requests.Response object
        endpoint: API endpoint that was called

    Raises:
        ShopifyAPIError carrying the upstream status and body.
    """
    status_code = getattr(response, 'status_code', None)

    try:
        response_data = response.json()
    except ValueError:
        response_data = response.text

    if status_code in (401, 403):
        message = f"Shopify rejected the access token ({status_code})"
    elif status_code == 404:
        message = "Shopify resource not found"
    elif status_code == 429:
        message = "Shopify API rate limit exceeded"
    elif status_code is not None and status_code >= 500:
        message = f"Shopify server error: {status_code}"
    else:
        message = f"Shopify API request failed: {status_code}"

    raise ShopifyAPIError(
        message,
        endpoint=endpoint,
        status_code=status_code,
        response_data=response_data,
    )
