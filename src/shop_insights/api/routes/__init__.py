"""
API route modules.
"""

from . import analytics, auth, health, sync, tenants, webhooks

__all__ = ["analytics", "auth", "health", "sync", "tenants", "webhooks"]
