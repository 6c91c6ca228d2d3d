"""
Transaction management utilities for database operations.
"""

from contextlib import contextmanager

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from shop_insights.utils.exceptions import DatabaseError
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)


@contextmanager
def transaction_scope(db: Session, operation: str = "transaction"):
    """
    Context manager for database transactions with automatic rollback.

    Usage:
        with transaction_scope(db, "register"):
            db.add(tenant)
            # Commits on success, rolls back on error

    SQLAlchemy failures are re-raised as DatabaseError; any other exception
    propagates unchanged after the rollback. Does NOT close the session.

    Args:
        db: SQLAlchemy session
        operation: Name used in logs and error details
    """
    try:
        yield db
        db.commit()
        logger.debug(f"{operation}: transaction committed")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{operation}: transaction rolled back: {e}")
        raise DatabaseError(f"{operation} failed", operation=operation) from e
    except Exception as e:
        db.rollback()
        logger.error(f"{operation}: transaction rolled back due to error: {e}")
        raise
