"""
credit_batch.domain.types -- Pure frozen dataclasses for batch runs.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class BatchJobStatus(str, Enum):
    """Outcome of a whole batch run."""

    COMPLETED = "completed"  # No item failed
    FAILED = "failed"  # Every processed item failed
    PARTIALLY_COMPLETED = "partially_completed"  # Some items failed


class BatchItemStatus(str, Enum):
    """Outcome of one item."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # Nothing to do for this item


@dataclass(frozen=True)
class BatchItemResult:
    """Result of processing a single item; one failure never aborts the run."""

    item_index: int
    item_key: str  # Business identifier, e.g. user_id
    status: BatchItemStatus
    error_code: str | None = None
    error_message: str | None = None
    result_data: dict[str, Any] | None = None
    duration_ms: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class BatchRunResult:
    """Result of executing a complete batch, items in input order."""

    job_id: UUID
    task_type: str
    status: BatchJobStatus
    total_items: int
    succeeded: int
    failed: int
    skipped: int
    group_count: int = 0
    item_results: tuple[BatchItemResult, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0


@dataclass(frozen=True)
class MigrationErrorRecord:
    user_id: str
    error: str
    error_code: str | None = None


@dataclass(frozen=True)
class MigrationReport:
    """
    Summary of a points-to-store-credit migration run.

    ``total_users == migrated + skipped + failed``.
    """

    job_id: UUID
    dry_run: bool
    conversion_rate: int
    total_users: int
    migrated: int
    skipped: int
    failed: int
    total_points_converted: int = 0
    total_credit_cents: int = 0
    errors: tuple[MigrationErrorRecord, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    config_checksum: str | None = None

    @property
    def has_errors(self) -> bool:
        return self.failed > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": str(self.job_id),
            "dry_run": self.dry_run,
            "conversion_rate": self.conversion_rate,
            "total_users": self.total_users,
            "migrated": self.migrated,
            "skipped": self.skipped,
            "failed": self.failed,
            "total_points_converted": self.total_points_converted,
            "total_credit_cents": self.total_credit_cents,
            "errors": [
                {"user_id": e.user_id, "error": e.error, "error_code": e.error_code}
                for e in self.errors
            ],
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "config_checksum": self.config_checksum,
        }
