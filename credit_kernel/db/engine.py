"""
Process-wide database handle.

``init_engine_from_url()`` is called once by the CLI (or a test fixture);
services, the migration user store and scripts then open sessions from the
shared factory.  PostgreSQL connections run READ COMMITTED on a pre-pinged
pool.  An in-memory SQLite database is pinned to one connection shared by
all threads, so the migration's worker threads see the rows a test seeded.
"""

import atexit
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from credit_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")


@dataclass(frozen=True)
class PoolSettings:
    """Connection pool sizing for server databases; ignored for SQLite."""

    size: int = 10
    max_overflow: int = 10
    timeout_seconds: int = 30
    recycle_seconds: int = 1800
    pre_ping: bool = True


@dataclass(frozen=True)
class _Database:
    engine: Engine
    sessions: sessionmaker[Session]


_db: _Database | None = None


def _engine_options(url: URL, pool: PoolSettings) -> dict[str, Any]:
    if url.get_backend_name() == "sqlite":
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_size": pool.size,
        "max_overflow": pool.max_overflow,
        "pool_timeout": pool.timeout_seconds,
        "pool_recycle": pool.recycle_seconds,
        "pool_pre_ping": pool.pre_ping,
        "isolation_level": "READ COMMITTED",
    }


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool: PoolSettings | None = None,
) -> Engine:
    """
    Create the engine and session factory, replacing any previous ones.

    ``database_url`` is any SQLAlchemy URL: ``postgresql://user@host/db``,
    ``sqlite:///credit.db`` or ``sqlite://`` for a private in-memory database.
    """
    global _db

    url = make_url(database_url)
    pool = pool or PoolSettings()
    if _db is not None:
        _db.engine.dispose()

    engine = create_engine(url, echo=echo, **_engine_options(url, pool))
    _db = _Database(engine=engine, sessions=sessionmaker(bind=engine, expire_on_commit=False))

    configure_logging()
    logger.info("engine_initialized", extra={
        "dialect": url.get_backend_name(),
        "database_url": url.render_as_string(hide_password=True),
        "echo": echo,
    })
    return engine


def _current() -> _Database:
    if _db is None:
        raise RuntimeError("Database not initialized; call init_engine_from_url() first")
    return _db


def get_engine() -> Engine:
    return _current().engine


def get_session_factory() -> sessionmaker[Session]:
    """For callers that open one session per unit of work, like the migration store."""
    return _current().sessions


def get_session() -> Session:
    return _current().sessions()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Commit on success, roll back and re-raise on any exception::

        with session_scope() as session:
            SettingsService(session, defaults).initialize_defaults()
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    from credit_kernel.db.base import Base
    import credit_kernel.models  # noqa: F401  registers the mapped tables

    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables() -> None:
    from credit_kernel.db.base import Base
    import credit_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine, if any; later calls need ``init_engine_from_url()`` again."""
    global _db

    if _db is not None:
        _db.engine.dispose()
        _db = None


atexit.register(reset_engine)
