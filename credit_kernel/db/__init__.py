"""Declarative base, engine setup and session helpers."""

from credit_kernel.db.base import Base, TrackedBase, utc_now
from credit_kernel.db.engine import (
    PoolSettings,
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "PoolSettings",
    "TrackedBase",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
    "utc_now",
]
