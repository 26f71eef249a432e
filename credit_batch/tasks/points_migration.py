"""
Batch task: convert each user's legacy points ledger to store-credit cents.

Per user:
    - already converted by the user   -> SKIPPED, nothing written
    - all three legacy counters zero  -> SKIPPED, nothing written
    - otherwise each counter is converted independently and, unless this is
      a dry run, written together with the monthly reset marker, legacy
      copies, migrated_at and (when the balance is positive) the audit entry.

A failing user becomes a FAILED item; the executor keeps going.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from credit_batch.tasks.base import BatchItemInput, BatchTaskResult
from credit_engines.conversion import CONVERSION_RATE, convert_points_ledger
from credit_kernel.logging_config import LogContext, get_logger
from credit_kernel.services.user_store import LegacyUserRecord, MigrationUpdate, UserStore

logger = get_logger("batch.points_migration")

TASK_TYPE = "credit.points_migration"


class PointsMigrationTask:
    """Batch task migrating legacy points to store credit, one user per item."""

    task_type = TASK_TYPE

    def __init__(self, store: UserStore, conversion_rate: int = CONVERSION_RATE):
        self._store = store
        self._conversion_rate = conversion_rate

    @property
    def description(self) -> str:
        return f"Convert legacy points to store credit ({self._conversion_rate} points = $1.00)"

    @property
    def conversion_rate(self) -> int:
        return self._conversion_rate

    def prepare_items(
        self,
        parameters: dict[str, Any],
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        users = self._store.list_users()
        logger.info("migration_users_listed", extra={"user_count": len(users)})

        return tuple(
            BatchItemInput(
                item_index=i,
                item_key=user.user_id,
                payload={
                    "points_balance": user.points_balance,
                    "points_earned": user.points_earned,
                    "points_spent": user.points_spent,
                    "points": user.points,
                    "points_converted": user.points_converted,
                },
            )
            for i, user in enumerate(users)
        )

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        as_of: datetime,
    ) -> BatchTaskResult:
        dry_run = bool(parameters.get("dry_run", False))
        record = LegacyUserRecord(user_id=item.item_key, **item.payload)

        with LogContext.bind(user_id=item.item_key):
            if record.points_converted:
                logger.debug("user_skipped_already_converted")
                return BatchTaskResult.skipped("already_converted")

            legacy = record.to_ledger()
            if legacy.is_empty:
                logger.debug("user_skipped_no_points")
                return BatchTaskResult.skipped("no_points")

            converted = convert_points_ledger(legacy, self._conversion_rate)

            if not dry_run:
                self._store.apply_migration(MigrationUpdate(
                    user_id=item.item_key,
                    legacy=legacy,
                    converted=converted,
                    migrated_at=as_of,
                ))

            logger.info(
                "user_migration_planned" if dry_run else "user_migrated",
                extra={
                    "points_balance": legacy.points_balance,
                    "points_earned": legacy.points_earned,
                    "points_spent": legacy.points_spent,
                    "store_credit_balance": converted.store_credit_balance,
                    "store_credit_earned": converted.store_credit_earned,
                    "store_credit_spent": converted.store_credit_spent,
                    "dry_run": dry_run,
                },
            )

            return BatchTaskResult.succeeded(
                points_balance=legacy.points_balance,
                store_credit_balance=converted.store_credit_balance,
                store_credit_earned=converted.store_credit_earned,
                store_credit_spent=converted.store_credit_spent,
                dry_run=dry_run,
            )
