"""
Health check endpoints for monitoring application status.

Provides:
- Liveness check (fixed payload, no dependencies)
- Readiness check (database, plus broker status for information)
"""

import time
from datetime import datetime, timezone
from typing import Dict, Any

import redis
from fastapi import APIRouter, Depends, status, Response
from sqlalchemy import text
from sqlalchemy.orm import Session

from shop_insights import __version__
from shop_insights.database.connection import get_db
from shop_insights.utils.config import get_config
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, Any]:
    """
    Liveness check.

    Always returns the same payload while the process is serving requests.
    """
    return {"ok": True}


@router.get("/ready", status_code=status.HTTP_200_OK)
def readiness_check(response: Response, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Readiness check endpoint.

    The database decides readiness. The Celery broker is reported but only
    delays background ingestion when down, so it does not fail the check.
    """
    checks = {
        "database": _check_database(db),
        "broker": _check_broker(),
    }

    ready = checks["database"]["status"] == "healthy"
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "healthy" if ready else "unhealthy",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }


def _check_database(db: Session) -> Dict[str, Any]:
    """Check database connectivity."""
    start_time = time.time()

    try:
        db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "status": "unhealthy",
            "error": str(e)[:100],
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }


def _check_broker() -> Dict[str, Any]:
    """Check Redis (Celery broker) connectivity."""
    start_time = time.time()

    try:
        client = redis.Redis.from_url(get_config().redis_url, socket_connect_timeout=1, socket_timeout=1)
        client.ping()
        return {
            "status": "healthy",
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }
    except redis.RedisError as e:
        logger.warning(f"Broker health check failed: {e}")
        return {
            "status": "unhealthy",
            "error": str(e)[:100],
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }
