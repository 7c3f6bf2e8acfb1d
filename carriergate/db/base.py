"""Async SQLAlchemy engine, session factory, declarative Base, and transaction helpers."""


import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from carriergate.core.config import settings
from carriergate.core.exceptions import ConflictError, StaleStateError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
def _set_sqlite_pragmas(dbapi_conn, connection_record):
    # Hand transaction control to SQLAlchemy; pysqlite would otherwise defer
    # BEGIN until the first write and run the reads before it unlocked
    dbapi_conn.isolation_level = None
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_immediate(conn):
    # Take the write lock up front so a status read stays valid until commit
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, isolation_level: str | None = None) -> AsyncEngine:
    """Create an async engine.

    SQLite connections enforce foreign keys and open every transaction with
    BEGIN IMMEDIATE, which serializes whole units of work on that store.
    """
    engine_kwargs: dict = {
        "pool_pre_ping": True,
        "echo": settings.app_env == "development",
    }
    if isolation_level:
        engine_kwargs["isolation_level"] = isolation_level

    # SQLite (local dev) doesn't support connection pooling parameters
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}

    engine = create_async_engine(database_url, **engine_kwargs)
    if database_url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _set_sqlite_pragmas)
        event.listen(engine.sync_engine, "begin", _begin_immediate)
    return engine


engine = build_engine(settings.database_url, settings.db_isolation_level)

# ---------------------------------------------------------------------------
# Session factory
# ---------------------------------------------------------------------------
def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async_session_factory = build_session_factory(engine)

# ---------------------------------------------------------------------------
# Declarative Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """All ORM models inherit from this base."""

# ---------------------------------------------------------------------------
# Transaction boundaries
# ---------------------------------------------------------------------------
@asynccontextmanager
async def unit_of_work(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Yield a session inside one explicit transaction.

    Commits when the block exits cleanly and rolls back on any exception, so a
    failing workflow operation never leaves partial writes behind.
    """
    async with session_factory() as session:
        async with session.begin():
            yield session


async def run_in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    work: Callable[[AsyncSession], Awaitable[T]],
    *,
    operation: str,
    attempts: int | None = None,
) -> T:
    """Run *work* in a fresh transaction, re-reading and retrying on a lost race.

    A race shows up either as a conditional UPDATE that matched zero rows
    (:class:`StaleStateError`) or as a unique-constraint violation on INSERT.
    Each retry starts a new transaction so *work* re-evaluates against the
    committed state. Business-rule failures propagate on the first attempt.
    """
    max_attempts = attempts or settings.max_write_attempts
    for attempt in range(1, max_attempts + 1):
        try:
            async with unit_of_work(session_factory) as session:
                return await work(session)
        except (StaleStateError, IntegrityError) as exc:
            logger.warning(
                "%s: concurrent write detected (attempt %d/%d): %s",
                operation, attempt, max_attempts, exc.__class__.__name__,
            )
    raise ConflictError(
        f"{operation} could not complete because of concurrent updates",
        details={"operation": operation, "attempts": max_attempts},
    )

# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Services open their own transactions; routers only hand them the factory."""
    return async_session_factory
