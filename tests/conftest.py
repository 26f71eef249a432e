"""
Pytest fixtures for the store-credit test suite.

Provides:
- Structured logging configured once per session, LogContext cleared per test
- ``captured_logs`` for asserting on emitted JSON log records
- In-memory SQLite engine and sessions (no PostgreSQL required)
- Default settings and a deterministic clock
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest

from credit_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from credit_kernel.domain.clock import DeterministicClock
from credit_kernel.domain.types import StoreCreditSettings
from credit_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from credit_kernel.models.user import UserAccountModel


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _json_logging_for_session():
    """DEBUG-level JSON logs on stderr, so pytest shows them for failing tests."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _fresh_log_context():
    """Bound log fields never leak from one test into the next."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture credit_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            calculate_store_credit_discount(...)
            assert any(r["message"] == "discount_calculated" for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("credit_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def default_settings() -> StoreCreditSettings:
    """The packaged defaults: 50% per item, $30 per order, $50 per month."""
    return StoreCreditSettings(
        per_item_discount_cap_percent=50,
        per_order_discount_cap_cents=3000,
        monthly_earning_cap_cents=5000,
        earning_values={
            "event_attendance": 100,
            "volunteer_work": 250,
            "event_hosting": 500,
            "contribution_min": 50,
            "contribution_max": 150,
        },
    )


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc))


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database with every table created."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_engine()
    reset_engine()


@pytest.fixture
def session(db_engine):
    s = get_session()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def create_user():
    """Factory that inserts a user row in its own committed transaction."""

    def _create(user_id: str, **fields) -> None:
        s = get_session()
        try:
            s.add(UserAccountModel(user_id=user_id, **fields))
            s.commit()
        finally:
            s.close()

    return _create
