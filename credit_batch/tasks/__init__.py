"""
credit_batch.tasks -- Task protocol, registry, and task implementations.
"""

from credit_batch.tasks.base import (
    BatchItemInput,
    BatchTask,
    BatchTaskResult,
    TaskRegistry,
)
from credit_batch.tasks.points_migration import PointsMigrationTask

__all__ = [
    "BatchItemInput",
    "BatchTask",
    "BatchTaskResult",
    "PointsMigrationTask",
    "TaskRegistry",
]
