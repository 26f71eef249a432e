"""
GroupedBatchExecutor -- fixed-size groups, concurrent within a group.

Contract:
    Items from ``prepare_items()`` are split into consecutive groups of
    ``batch_size``.  Items of one group run concurrently on a thread pool;
    the whole group is joined before the next group starts.  Batch size
    throttles concurrency only, it never changes results.

Architecture: credit_batch/services.  Imports from credit_batch.domain,
    credit_batch.tasks and the kernel clock, exceptions and logging.

Invariants enforced:
    - Item isolation: an exception in one item becomes a FAILED result for
      that item; the run continues.
    - Result order: ``item_results`` follow item order regardless of
      completion order.
    - All timestamps come from the injected Clock.
    - Worker threads inherit the caller's LogContext.

Failure modes:
    - ValueError on a batch size below 1.
    - MigrationFatalError when ``prepare_items()`` fails; nothing runs.
"""

from __future__ import annotations

import contextvars
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any
from uuid import uuid4

from credit_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchJobStatus,
    BatchRunResult,
)
from credit_batch.tasks.base import BatchItemInput, BatchTask
from credit_kernel.domain.clock import Clock, SystemClock
from credit_kernel.exceptions import MigrationFatalError, StoreCreditError
from credit_kernel.logging_config import LogContext, get_logger

logger = get_logger("batch.executor")


class GroupedBatchExecutor:
    """
    Runs a BatchTask in concurrent groups.

    Non-goals:
        - Does NOT retry failed items.
        - Does NOT coordinate rollback across items.
    """

    def __init__(self, clock: Clock | None = None, max_workers: int | None = None):
        self._clock = clock or SystemClock()
        self._max_workers = max_workers

    def execute(
        self,
        task: BatchTask,
        parameters: dict[str, Any] | None = None,
        batch_size: int = 50,
    ) -> BatchRunResult:
        """
        Prepare and execute every item of ``task``.

        Raises:
            ValueError: If ``batch_size`` is not a positive integer.
            MigrationFatalError: If the task cannot enumerate its items.
        """
        if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
            raise ValueError(f"batch_size must be a positive integer, got {batch_size!r}")

        params = dict(parameters or {})
        job_id = uuid4()
        start_time = time.monotonic()
        as_of = self._clock.now()

        with LogContext.bind(job_id=str(job_id)):
            logger.info("batch_run_started", extra={
                "task_type": task.task_type,
                "batch_size": batch_size,
                "parameters": params,
            })

            try:
                items = task.prepare_items(parameters=params, as_of=as_of)
            except MigrationFatalError:
                logger.error("batch_prepare_failed", exc_info=True)
                raise
            except Exception as exc:
                logger.error("batch_prepare_failed", exc_info=True)
                raise MigrationFatalError(f"prepare_items failed: {exc}") from exc

            item_results: list[BatchItemResult] = []
            group_count = 0
            for group_start in range(0, len(items), batch_size):
                group = items[group_start:group_start + batch_size]
                group_count += 1
                item_results.extend(self._run_group(task, group, params, as_of))
                logger.info("batch_group_completed", extra={
                    "group_number": group_count,
                    "group_size": len(group),
                    "processed": len(item_results),
                    "total_items": len(items),
                })

            succeeded = sum(1 for r in item_results if r.status == BatchItemStatus.SUCCEEDED)
            failed = sum(1 for r in item_results if r.status == BatchItemStatus.FAILED)
            skipped = sum(1 for r in item_results if r.status == BatchItemStatus.SKIPPED)

            if failed == 0:
                status = BatchJobStatus.COMPLETED
            elif succeeded == 0 and skipped == 0:
                status = BatchJobStatus.FAILED
            else:
                status = BatchJobStatus.PARTIALLY_COMPLETED

            completed_at = self._clock.now()
            duration_ms = int((time.monotonic() - start_time) * 1000)

            logger.info("batch_run_completed", extra={
                "task_type": task.task_type,
                "status": status.value,
                "total_items": len(items),
                "succeeded": succeeded,
                "failed": failed,
                "skipped": skipped,
                "group_count": group_count,
                "duration_ms": duration_ms,
            })

        return BatchRunResult(
            job_id=job_id,
            task_type=task.task_type,
            status=status,
            total_items=len(items),
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            group_count=group_count,
            item_results=tuple(item_results),
            started_at=as_of,
            completed_at=completed_at,
            duration_ms=duration_ms,
        )

    def _run_group(
        self,
        task: BatchTask,
        group: tuple[BatchItemInput, ...],
        parameters: dict[str, Any],
        as_of: datetime,
    ) -> list[BatchItemResult]:
        workers = min(len(group), self._max_workers or len(group))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="credit-batch") as pool:
            futures = [
                pool.submit(
                    contextvars.copy_context().run,
                    self._run_item, task, item, parameters, as_of,
                )
                for item in group
            ]
            return [future.result() for future in futures]

    def _run_item(
        self,
        task: BatchTask,
        item: BatchItemInput,
        parameters: dict[str, Any],
        as_of: datetime,
    ) -> BatchItemResult:
        item_start = time.monotonic()
        started_at = self._clock.now()

        try:
            result = task.execute_item(item=item, parameters=parameters, as_of=as_of)
        except Exception as exc:
            error_code = exc.code if isinstance(exc, StoreCreditError) else "UNHANDLED_EXCEPTION"
            logger.warning("batch_item_failed", extra={
                "item_key": item.item_key,
                "item_index": item.item_index,
                "error_code": error_code,
            }, exc_info=True)
            return BatchItemResult(
                item_index=item.item_index,
                item_key=item.item_key,
                status=BatchItemStatus.FAILED,
                error_code=error_code,
                error_message=str(exc),
                duration_ms=int((time.monotonic() - item_start) * 1000),
                started_at=started_at,
                completed_at=self._clock.now(),
            )

        return BatchItemResult(
            item_index=item.item_index,
            item_key=item.item_key,
            status=result.status,
            error_code=result.error_code,
            error_message=result.error_message,
            result_data=result.result_data,
            duration_ms=int((time.monotonic() - item_start) * 1000),
            started_at=started_at,
            completed_at=self._clock.now(),
        )
