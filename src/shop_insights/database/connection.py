"""
Database connection and session management.

The engine and session factory are process-wide but created lazily by
init_engine() and released by dispose_engine(). The API lifespan, the Celery
worker signals and the CLI call these explicitly; request handlers receive
sessions through the get_db dependency.
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from shop_insights.utils.config import get_config
from shop_insights.utils.logger import get_logger

logger = get_logger(__name__)


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def init_engine(database_url: Optional[str] = None, **engine_kwargs) -> Engine:
    """
    Create the process-wide engine and session factory.

    Args:
        database_url: Overrides DATABASE_URL from configuration
        **engine_kwargs: Extra create_engine arguments (poolclass, connect_args...)

    Returns:
        The initialized engine. Calling again replaces the previous one.
    """
    global _engine, _session_factory

    config = get_config()
    url = database_url or config.database_url

    if _engine is not None:
        dispose_engine()

    if url.startswith("sqlite"):
        engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        engine_kwargs.setdefault("poolclass", QueuePool)
        engine_kwargs.setdefault("pool_size", config.db_pool_size)
        engine_kwargs.setdefault("max_overflow", config.db_max_overflow)
        engine_kwargs.setdefault("pool_pre_ping", True)

    _engine = create_engine(url, echo=config.db_echo, **engine_kwargs)
    _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

    logger.info(f"Database engine initialized ({_engine.url.render_as_string(hide_password=True)})")
    return _engine


def dispose_engine() -> None:
    """Close all pooled connections and forget the engine."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        logger.info("Database engine disposed")
    _engine = None
    _session_factory = None


def get_engine() -> Engine:
    """Return the engine, initializing it from configuration on first use."""
    if _engine is None:
        init_engine()
    return _engine


def SessionLocal() -> Session:
    """Open a new session bound to the process-wide engine."""
    if _session_factory is None:
        init_engine()
    return _session_factory()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI to get database session.

    Usage:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database session outside of requests.

    Usage:
        with get_db_context() as db:
            tenant = db.query(Tenant).first()
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create all tables."""
    from shop_insights.database.models import Base

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables created successfully")


def drop_db() -> None:
    """Drop all database tables (use with caution!)."""
    from shop_insights.database.models import Base

    logger.warning("Dropping all database tables...")
    Base.metadata.drop_all(bind=get_engine())
    logger.warning("All database tables dropped")
