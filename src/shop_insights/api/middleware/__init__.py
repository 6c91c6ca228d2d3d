"""
FastAPI middleware components.
"""

from .tenant_context import get_current_tenant, get_current_user
from .error_handler import ErrorHandlerMiddleware, register_exception_handlers

__all__ = [
    "get_current_tenant",
    "get_current_user",
    "ErrorHandlerMiddleware",
    "register_exception_handlers",
]
