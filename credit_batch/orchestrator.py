"""
MigrationOrchestrator -- wires and runs the points-to-store-credit migration.

Contract:
    Composes the TaskRegistry, the PointsMigrationTask and the
    GroupedBatchExecutor, runs one migration and condenses the batch
    result into a MigrationReport.  ``write_report()`` persists the report
    as JSON.

Architecture: credit_batch (top-level).  Nothing in credit_kernel or
    credit_engines imports from credit_batch.

Invariants enforced:
    - A live run waits ``start_delay_seconds`` before any write, leaving
      the operator time to abort.
    - A dry run never calls ``UserStore.apply_migration``.
    - All timestamps come from the injected Clock.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from pathlib import Path

from credit_batch.domain.types import (
    BatchItemStatus,
    BatchRunResult,
    MigrationErrorRecord,
    MigrationReport,
)
from credit_batch.services.executor import GroupedBatchExecutor
from credit_batch.tasks.base import TaskRegistry
from credit_batch.tasks.points_migration import TASK_TYPE, PointsMigrationTask
from credit_config.schema import CreditEngineConfig
from credit_engines.conversion import CONVERSION_RATE
from credit_kernel.domain.clock import Clock, SystemClock
from credit_kernel.logging_config import get_logger
from credit_kernel.services.user_store import UserStore

logger = get_logger("batch.orchestrator")


class MigrationOrchestrator:
    """
    Contract:
        - ``from_config()`` builds an orchestrator from the active config.
        - ``run()`` performs one dry or live migration.

    Non-goals:
        - Does NOT resolve the database or build the store; the CLI does.
    """

    def __init__(
        self,
        store: UserStore,
        conversion_rate: int = CONVERSION_RATE,
        clock: Clock | None = None,
        sleep: Callable[[float], None] = time.sleep,
        executor: GroupedBatchExecutor | None = None,
        config_checksum: str | None = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self._sleep = sleep
        self._executor = executor or GroupedBatchExecutor(clock=self._clock)
        self._conversion_rate = conversion_rate
        self._config_checksum = config_checksum

        self._task_registry = TaskRegistry(PointsMigrationTask(store, conversion_rate))

    @classmethod
    def from_config(
        cls,
        store: UserStore,
        config: CreditEngineConfig,
        clock: Clock | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> MigrationOrchestrator:
        return cls(
            store=store,
            conversion_rate=config.conversion_rate,
            clock=clock,
            sleep=sleep,
            config_checksum=config.checksum,
        )

    @property
    def task_registry(self) -> TaskRegistry:
        return self._task_registry

    def run(
        self,
        dry_run: bool = False,
        batch_size: int = 50,
        start_delay_seconds: float = 5.0,
    ) -> MigrationReport:
        """
        Raises:
            ValueError: On a bad batch size or a negative delay.
            MigrationFatalError: If users cannot be enumerated.
        """
        if start_delay_seconds < 0:
            raise ValueError(f"start_delay_seconds must be >= 0, got {start_delay_seconds!r}")

        logger.info("migration_started", extra={
            "dry_run": dry_run,
            "batch_size": batch_size,
            "conversion_rate": self._conversion_rate,
        })

        if not dry_run and start_delay_seconds > 0:
            logger.warning("migration_live_run_pending", extra={
                "start_delay_seconds": start_delay_seconds,
            })
            self._sleep(start_delay_seconds)

        task = self._task_registry[TASK_TYPE]
        result = self._executor.execute(task, {"dry_run": dry_run}, batch_size)
        report = self._build_report(result, dry_run)

        logger.info("migration_completed", extra={
            "dry_run": dry_run,
            "total_users": report.total_users,
            "migrated": report.migrated,
            "skipped": report.skipped,
            "failed": report.failed,
            "total_credit_cents": report.total_credit_cents,
        })
        return report

    def _build_report(self, result: BatchRunResult, dry_run: bool) -> MigrationReport:
        errors = tuple(
            MigrationErrorRecord(
                user_id=r.item_key,
                error=r.error_message or "",
                error_code=r.error_code,
            )
            for r in result.item_results
            if r.status == BatchItemStatus.FAILED
        )
        migrated = [
            r.result_data or {}
            for r in result.item_results
            if r.status == BatchItemStatus.SUCCEEDED
        ]
        return MigrationReport(
            job_id=result.job_id,
            dry_run=dry_run,
            conversion_rate=self._conversion_rate,
            total_users=result.total_items,
            migrated=result.succeeded,
            skipped=result.skipped,
            failed=result.failed,
            total_points_converted=sum(d.get("points_balance", 0) for d in migrated),
            total_credit_cents=sum(d.get("store_credit_balance", 0) for d in migrated),
            errors=errors,
            started_at=result.started_at,
            completed_at=result.completed_at,
            duration_ms=result.duration_ms,
            config_checksum=self._config_checksum,
        )


def write_report(report: MigrationReport, directory: Path | str) -> Path:
    """Write ``report`` as JSON under ``directory`` and return the file path."""
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)

    mode = "dry-run" if report.dry_run else "live"
    stamp = report.completed_at.strftime("%Y%m%dT%H%M%SZ") if report.completed_at else "unknown"
    path = target_dir / f"points-migration-{mode}-{stamp}-{report.job_id.hex[:8]}.json"

    with open(path, "w") as f:
        json.dump(report.to_dict(), f, indent=2, sort_keys=True)

    logger.info("migration_report_written", extra={"path": str(path)})
    return path
