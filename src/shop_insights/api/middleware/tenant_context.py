"""
Request dependencies that resolve the caller's user and tenant from the
bearer token. No route takes a tenant from the path or query string.
"""

import uuid
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from shop_insights.auth import verify_token
from shop_insights.database.connection import get_db
from shop_insights.database.models import Tenant, User
from shop_insights.utils.exceptions import AuthenticationError, AuthorizationError
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)

# Security scheme; missing credentials are reported by get_current_user
security = HTTPBearer(auto_error=False)


def _parse_uuid(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise AuthenticationError("Invalid token payload")


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Dependency to get current authenticated user.

    Usage:
        @app.get("/protected")
        def protected_route(user: User = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")

    payload = verify_token(credentials.credentials)
    user_id = _parse_uuid(payload["sub"])
    tenant_id = _parse_uuid(payload["tenant_id"])

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthorizationError("User account is disabled")

    if user.tenant_id != tenant_id:
        logger.warning(f"Token tenant {tenant_id} does not match user {user_id}")
        raise AuthenticationError("Invalid token payload")

    return user


def get_current_tenant(user: User = Depends(get_current_user)) -> Tenant:
    """
    Dependency to get current tenant from authenticated user.

    Usage:
        @app.get("/tenant-info")
        def tenant_info(tenant: Tenant = Depends(get_current_tenant)):
            return {"shop_domain": tenant.shop_domain}
    """
    tenant = user.tenant
    if tenant is None:
        raise AuthenticationError("Tenant not found")

    if not tenant.is_active:
        raise AuthorizationError("Tenant account is suspended")

    return tenant
