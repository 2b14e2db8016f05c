"""
Database Infrastructure
=======================

Manages database connections, session lifecycle, and engine configuration.

Uses SQLAlchemy 2.0 with asyncpg for async PostgreSQL operations. Repositories
talk to the store through the narrow QueryExecutor interface (parameterized
SQL in, rows out) so the engine does not depend on a dialect.
"""

import json
from datetime import datetime, timezone
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator, Dict, List, Mapping, Optional

from sqlalchemy import JSON, bindparam, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from case_escalation.config import settings
from case_escalation.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    SQLAlchemy 2.0 style using DeclarativeBase.
    """
    pass


# ========== Query Interface ==========

class QueryExecutor(ABC):
    """
    Generic parameterized query interface used by repositories.

    SQL uses named ``:param`` placeholders. Dict and list parameter values are
    bound as JSON.
    """

    @abstractmethod
    async def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a statement and return its rows as dicts."""

    @abstractmethod
    async def execute(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> int:
        """Run a write statement and return the affected row count."""

    @abstractmethod
    def transaction(self) -> Any:
        """Async context manager grouping statements into one atomic unit."""


def load_json(value: Any, default: Any) -> Any:
    """Decode a JSON column that may come back as text or as a decoded value."""
    if value is None:
        return default
    if isinstance(value, (dict, list)):
        return value
    if isinstance(value, (str, bytes)):
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("Discarding malformed JSON column value")
            return default
    return default


def load_datetime(value: Any) -> Optional[datetime]:
    """Normalize a timestamp column to an aware datetime (text on some drivers)."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class SQLAlchemyQueryExecutor(QueryExecutor):
    """QueryExecutor backed by an AsyncSession."""

    def __init__(self, session: AsyncSession):
        self._session = session

    def _statement(self, sql: str, params: Mapping[str, Any]):
        stmt = text(sql)
        json_params = [
            bindparam(key, type_=JSON)
            for key, value in params.items()
            if isinstance(value, (dict, list))
        ]
        if json_params:
            stmt = stmt.bindparams(*json_params)
        return stmt

    async def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        params = dict(params or {})
        result = await self._session.execute(self._statement(sql, params), params)
        return [dict(row) for row in result.mappings().all()]

    async def execute(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> int:
        params = dict(params or {})
        result = await self._session.execute(self._statement(sql, params), params)
        return result.rowcount

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        # Savepoint so a failure undoes only this unit; the outer session
        # commit/rollback is owned by get_session().
        async with self._session.begin_nested():
            yield


# ========== Engine / Session Lifecycle ==========

_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """
    Get the database engine.

    Raises:
        RuntimeError: If engine has not been initialized
    """
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call init_database() first.")
    return _engine


def init_database(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Initialize the database engine and session maker.

    Should be called during application startup.
    """
    global _engine, _session_maker

    url = (database_url or settings.database_url).replace("sslmode=", "ssl=")

    engine_kwargs: Dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        engine_kwargs["pool_size"] = settings.db_pool_size
        engine_kwargs["max_overflow"] = settings.db_max_overflow

    _engine = create_async_engine(url, **engine_kwargs)
    _session_maker = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return _engine


async def close_database() -> None:
    """Dispose of the engine. Called during application shutdown."""
    global _engine, _session_maker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_maker = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Async generator for database sessions.

    For use with FastAPI's Depends() - commits on success, rolls back on error.
    """
    if _session_maker is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    async with _session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """
    Create all database tables.

    Development/testing only; production uses migrations.
    """
    # Register models on Base.metadata
    from case_escalation.infrastructure.database import models  # noqa: F401

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
