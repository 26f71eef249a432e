"""
User store -- the migration's view of the user collection.

Responsibility:
    Enumerate users with their legacy points counters and write one user's
    converted store-credit counters plus the migration audit entry.

Architecture position:
    Kernel > Services.  ``UserStore`` is the protocol the batch migration
    depends on; ``SqlUserStore`` is the SQLAlchemy implementation.  Each
    ``apply_migration`` call runs in its own session and transaction so
    concurrent workers never share a session.

Invariants enforced:
    - One user's writes (account fields and audit entry) commit together
      or not at all.
    - The audit entry is keyed "migration:<user_id>": a re-run overwrites
      it instead of adding a second one.

Failure modes:
    - UserCollectionUnavailableError if the users cannot be listed.
    - UserNotFoundError if a user disappears between listing and writing.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from credit_kernel.domain.types import (
    LegacyPointsLedger,
    StoreCreditLedger,
    TransactionCategory,
)
from credit_kernel.exceptions import UserCollectionUnavailableError, UserNotFoundError
from credit_kernel.logging_config import get_logger
from credit_kernel.models.user import UserAccountModel
from credit_kernel.services.ledger_service import LedgerService

logger = get_logger("services.user_store")


@dataclass(frozen=True)
class LegacyUserRecord:
    """A user's raw legacy counters; any of them may be absent."""

    user_id: str
    points_balance: int | None = None
    points_earned: int | None = None
    points_spent: int | None = None
    points: int | None = None
    points_converted: bool = False

    def to_ledger(self) -> LegacyPointsLedger:
        """
        Normalise to a ledger.  Older records kept the balance in ``points``;
        it is used when ``points_balance`` is zero or absent.

        Raises:
            InvalidPointsError: If a counter is negative.
        """
        return LegacyPointsLedger(
            points_balance=self.points_balance or self.points or 0,
            points_earned=self.points_earned or 0,
            points_spent=self.points_spent or 0,
        )


@dataclass(frozen=True)
class MigrationUpdate:
    """Everything written for one migrated user."""

    user_id: str
    legacy: LegacyPointsLedger
    converted: StoreCreditLedger
    migrated_at: datetime

    @property
    def audit_reference(self) -> str:
        return f"migration:{self.user_id}"

    @property
    def audit_reason(self) -> str:
        return f"Migration from points system ({self.legacy.points_balance} points converted)"


@runtime_checkable
class UserStore(Protocol):
    def list_users(self) -> list[LegacyUserRecord]: ...

    def apply_migration(self, update: MigrationUpdate) -> None: ...


class SqlUserStore:
    """``UserStore`` backed by the ``users`` and ``store_credit_transactions`` tables."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def list_users(self) -> list[LegacyUserRecord]:
        """
        Raises:
            UserCollectionUnavailableError: If the query fails.
        """
        try:
            with self._session_factory() as session:
                rows = session.execute(
                    select(UserAccountModel).order_by(UserAccountModel.user_id)
                ).scalars().all()
                return [
                    LegacyUserRecord(
                        user_id=row.user_id,
                        points_balance=row.points_balance,
                        points_earned=row.points_earned,
                        points_spent=row.points_spent,
                        points=row.points,
                        points_converted=row.points_converted,
                    )
                    for row in rows
                ]
        except SQLAlchemyError as exc:
            logger.error("user_collection_unavailable", exc_info=True)
            raise UserCollectionUnavailableError(str(exc)) from exc

    def apply_migration(self, update: MigrationUpdate) -> None:
        """
        Raises:
            UserNotFoundError: If the user row no longer exists.
        """
        session = self._session_factory()
        try:
            account = session.execute(
                select(UserAccountModel).where(UserAccountModel.user_id == update.user_id)
            ).scalar_one_or_none()
            if account is None:
                raise UserNotFoundError(update.user_id)

            account.store_credit_balance = update.converted.store_credit_balance
            account.store_credit_earned = update.converted.store_credit_earned
            account.store_credit_spent = update.converted.store_credit_spent
            account.monthly_store_credit_earned = 0
            account.last_store_credit_monthly_reset = update.migrated_at
            account.points_balance_legacy = update.legacy.points_balance
            account.points_earned_legacy = update.legacy.points_earned
            account.points_spent_legacy = update.legacy.points_spent
            account.migrated_at = update.migrated_at

            if update.converted.store_credit_balance > 0:
                LedgerService(session).record_transaction(
                    user_id=update.user_id,
                    amount_cents=update.converted.store_credit_balance,
                    reason=update.audit_reason,
                    category=TransactionCategory.MIGRATION,
                    external_reference=update.audit_reference,
                    actor_id="system",
                    replace_existing=True,
                )

            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
