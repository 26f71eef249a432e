"""
credit_batch.domain -- Pure types for batch processing.

ZERO I/O.  All types are frozen dataclasses.
"""

from credit_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchJobStatus,
    BatchRunResult,
    MigrationErrorRecord,
    MigrationReport,
)

__all__ = [
    "BatchItemResult",
    "BatchItemStatus",
    "BatchJobStatus",
    "BatchRunResult",
    "MigrationErrorRecord",
    "MigrationReport",
]
