"""Database package — async SQLAlchemy engine, session factory, Base, transaction helpers."""
from carriergate.db.base import (
    Base,
    async_session_factory,
    build_engine,
    build_session_factory,
    engine,
    get_session_factory,
    run_in_transaction,
    unit_of_work,
)

__all__ = [
    "Base",
    "async_session_factory",
    "build_engine",
    "build_session_factory",
    "engine",
    "get_session_factory",
    "run_in_transaction",
    "unit_of_work",
]
