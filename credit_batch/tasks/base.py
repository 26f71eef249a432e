"""
What a batch task looks like to the grouped executor.

A task enumerates its work once (``prepare_items``) and then handles one
item per call (``execute_item``), possibly on several worker threads at
once.  Tasks own their persistence; the executor never shares a session
between items.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from credit_batch.domain.types import BatchItemStatus


@dataclass(frozen=True)
class BatchItemInput:
    item_index: int
    item_key: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchTaskResult:
    """Outcome of one ``execute_item`` call; exceptions are reported by the executor instead."""

    status: BatchItemStatus
    result_data: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def succeeded(cls, **data: Any) -> BatchTaskResult:
        return cls(status=BatchItemStatus.SUCCEEDED, result_data=data)

    @classmethod
    def skipped(cls, reason: str) -> BatchTaskResult:
        return cls(status=BatchItemStatus.SKIPPED, result_data={"reason": reason})


@runtime_checkable
class BatchTask(Protocol):
    """
    ``task_type`` is the registry key.  An exception from ``prepare_items``
    ends the run; one from ``execute_item`` fails only that item.
    """

    task_type: str
    description: str

    def prepare_items(
        self,
        parameters: dict[str, Any],
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]: ...

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        as_of: datetime,
    ) -> BatchTaskResult: ...


class TaskRegistry(Mapping[str, BatchTask]):
    """Read-only mapping of task_type to task, filled through ``register()``."""

    def __init__(self, *tasks: BatchTask) -> None:
        self._tasks: dict[str, BatchTask] = {}
        for task in tasks:
            self.register(task)

    def register(self, task: BatchTask) -> BatchTask:
        """Raises ValueError if the task_type is already taken."""
        if task.task_type in self._tasks:
            raise ValueError(f"Task type {task.task_type!r} is already registered")
        self._tasks[task.task_type] = task
        return task

    def __getitem__(self, task_type: str) -> BatchTask:
        try:
            return self._tasks[task_type]
        except KeyError:
            raise KeyError(
                f"No task registered for {task_type!r}; known: {sorted(self._tasks)}"
            ) from None

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._tasks))

    def __len__(self) -> int:
        return len(self._tasks)
