"""PostgreSQL engine and query helpers.

Provides a singleton SQLAlchemy engine initialized on app startup.
Queries are plain parameterised SQL run through ``text()``.
"""

import logging
from typing import Any, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from sims.core.config import settings

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None


def init_engine(url: Optional[str] = None) -> Engine:
    """Initialize the database engine. Call once at app startup."""
    global _engine
    _engine = create_engine(
        url or settings.database_url,
        pool_pre_ping=True,
        pool_recycle=280,
        pool_size=settings.db_pool_size,
        future=True,
    )
    logger.info("Database engine initialized")
    return _engine


def close_engine() -> None:
    """Dispose the engine's pool. Call at app shutdown."""
    global _engine
    if _engine:
        _engine.dispose()
        _engine = None
        logger.info("Database engine closed")


def get_engine() -> Engine:
    """Get the active engine."""
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call init_engine() first.")
    return _engine


def execute_query(sql: str, params: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
    """Run one statement in its own transaction and return any rows as dicts.

    Statements without a result set (INSERT/UPDATE without RETURNING) return [].
    """
    engine = get_engine()
    with engine.begin() as conn:
        result = conn.execute(text(sql), params or {})
        if not result.returns_rows:
            return []
        return [dict(row) for row in result.mappings().all()]


def check_connection() -> bool:
    """Check if the database is reachable."""
    try:
        execute_query("SELECT 1")
        return True
    except (SQLAlchemyError, RuntimeError) as e:
        logger.warning(f"Database connection check failed: {e}")
        return False
