"""
Global error handling: one JSON error body for every failure.

ShopInsightsError subclasses are mapped by an exception handler using the
status code on the exception class. Anything else (SQLAlchemy errors,
programming errors) is caught by ErrorHandlerMiddleware and reported as 500.
"""

import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import SQLAlchemyError

from shop_insights.monitoring.prometheus_metrics import get_metrics, normalize_endpoint
from shop_insights.utils.logger import get_logger
from shop_insights.utils.exceptions import (
    ShopInsightsError,
    AuthenticationError,
    WebhookVerificationError,
)

logger = get_logger(__name__)


def error_response(status_code: int, error: str, message: str, details=None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "details": details or {},
        },
        headers=headers,
    )


async def shop_insights_error_handler(request: Request, exc: ShopInsightsError) -> JSONResponse:
    """Map a typed application error to its HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_type} on {request.method} {request.url.path}: {exc}")
    else:
        logger.warning(f"{exc.error_type} on {request.method} {request.url.path}: {exc.message}")

    get_metrics().track_error(type(exc).__name__, normalize_endpoint(request.url.path))

    headers = None
    if isinstance(exc, AuthenticationError) and exc.status_code == 401 \
            and not isinstance(exc, WebhookVerificationError):
        headers = {"WWW-Authenticate": "Bearer"}

    return error_response(exc.status_code, exc.error_type, exc.message, exc.details, headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and parameters as 400."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg"),
        }
        for error in exc.errors()
    ]
    logger.warning(f"Request validation failed on {request.url.path}: {errors}")
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "Validation Error",
        "Request validation failed",
        {"errors": errors},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ShopInsightsError, shop_insights_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware for consistent error handling and request logging.
    """

    async def dispatch(self, request: Request, call_next):
        """Process request with error handling."""
        start_time = time.time()

        try:
            response = await call_next(request)

            duration = time.time() - start_time
            logger.info(
                f"{request.method} {request.url.path} - {response.status_code} - {duration:.3f}s"
            )

            return response

        except SQLAlchemyError as e:
            logger.error(f"SQLAlchemy error: {e}", exc_info=True)
            get_metrics().track_error(type(e).__name__, normalize_endpoint(request.url.path))
            return error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Database Error",
                "A database error occurred",
            )

        except Exception as e:
            logger.error(f"Unhandled exception: {e}", exc_info=True)
            get_metrics().track_error(type(e).__name__, normalize_endpoint(request.url.path))
            return error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Internal Server Error",
                "An unexpected error occurred",
            )
