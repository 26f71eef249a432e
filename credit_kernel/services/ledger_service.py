"""
LedgerService -- the store-credit ledger for one user at a time.

Responsibility:
    Derive spendable balances from approved transactions, write ledger
    entries idempotently, award earned credit under the earning rules,
    debit credit spent on orders and let a user convert their legacy
    points balance once.

Architecture position:
    Kernel > Services.  Calls the pure earning engine for every award;
    flushes only.

Invariants enforced:
    - Balance = sum of APPROVED amounts, floored at zero for spending.
    - A non-empty external_reference is written at most once; a repeat
      returns the existing entry (or overwrites it when asked to).
    - A pre-payment debit never exceeds the current balance.  A post-payment
      debit (the discount has already been charged) is always recorded and
      may take the ledger below zero.
    - Awards respect the monthly earning cap, resetting it when the
      calendar month has changed.

Failure modes:
    - InvalidTransactionError when an entry breaks the earning rules.
    - InsufficientCreditError when a pre-payment debit exceeds the balance.
    - UserNotFoundError when the user account row is required but missing.
    - PointsAlreadyConvertedError / NoPointsToConvertError from the
      self-service points conversion.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import func, select

from credit_engines.conversion import CONVERSION_RATE, convert_points_ledger
from credit_engines.earning import (
    apply_multiplier,
    earning_value_for,
    should_reset_monthly_cap,
    validate_credit_transaction,
)
from credit_kernel.domain.types import (
    ApprovalStatus,
    CreditMultiplier,
    CreditTransaction,
    LegacyPointsLedger,
    StoreCreditSettings,
    TransactionCategory,
    UserCreditBalance,
)
from credit_kernel.exceptions import (
    InsufficientCreditError,
    InvalidTransactionError,
    NoPointsToConvertError,
    PointsAlreadyConvertedError,
    UserNotFoundError,
)
from credit_kernel.logging_config import get_logger
from credit_kernel.models.credit import StoreCreditTransactionModel
from credit_kernel.models.user import UserAccountModel
from credit_kernel.services.base import BaseService

logger = get_logger("services.ledger")


@dataclass(frozen=True)
class PointsConversion:
    """Outcome of a user converting their own legacy points."""

    user_id: str
    points_converted: int
    credit_earned_cents: int
    transaction: CreditTransaction | None


class LedgerService(BaseService[StoreCreditTransactionModel]):
    """Reads and writes store-credit ledger entries within the caller's transaction."""

    model = StoreCreditTransactionModel

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_balance(self, user_id: str) -> UserCreditBalance:
        stmt = select(
            func.coalesce(func.sum(StoreCreditTransactionModel.amount_cents), 0)
        ).where(
            StoreCreditTransactionModel.user_id == user_id,
            StoreCreditTransactionModel.approval_status == ApprovalStatus.APPROVED.value,
        )
        total = int(self.session.execute(stmt).scalar_one())
        return UserCreditBalance(user_id=user_id, available_credit_cents=total)

    def get_transactions(self, user_id: str) -> list[CreditTransaction]:
        stmt = (
            select(StoreCreditTransactionModel)
            .where(StoreCreditTransactionModel.user_id == user_id)
            .order_by(StoreCreditTransactionModel.created_at, StoreCreditTransactionModel.id)
        )
        return [row.to_dto() for row in self.session.execute(stmt).scalars()]

    def find_by_reference(self, external_reference: str) -> CreditTransaction | None:
        row = self._find_by_reference(external_reference)
        return row.to_dto() if row is not None else None

    def _find_by_reference(self, external_reference: str) -> StoreCreditTransactionModel | None:
        return self._one_by(StoreCreditTransactionModel.external_reference, external_reference)

    def _get_account(self, user_id: str) -> UserAccountModel:
        account = self._find_account(user_id)
        if account is None:
            raise UserNotFoundError(user_id)
        return account

    def _find_account(self, user_id: str) -> UserAccountModel | None:
        return self._one_by(UserAccountModel.user_id, user_id, model=UserAccountModel)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_transaction(
        self,
        user_id: str,
        amount_cents: int,
        reason: str,
        category: TransactionCategory,
        approval_status: ApprovalStatus = ApprovalStatus.APPROVED,
        order_id: str | None = None,
        external_reference: str | None = None,
        actor_id: str | None = None,
        base_amount_cents: int | None = None,
        multiplier_id: str | None = None,
        replace_existing: bool = False,
    ) -> CreditTransaction:
        """
        Write one ledger entry.

        With an ``external_reference`` already on file, the existing entry is
        returned unchanged, or overwritten in place if ``replace_existing``.

        Raises:
            InvalidTransactionError: If ``amount_cents`` is zero.
        """
        if amount_cents == 0:
            raise InvalidTransactionError(user_id, "ZERO_AMOUNT", "Transaction amount must be non-zero")

        row = None
        if external_reference is not None:
            row = self._find_by_reference(external_reference)
            if row is not None and not replace_existing:
                logger.info("transaction_already_recorded", extra={
                    "external_reference": external_reference,
                    "transaction_id": row.id,
                })
                return row.to_dto()

        if row is None:
            row = StoreCreditTransactionModel(
                user_id=user_id,
                external_reference=external_reference,
            )
            self.session.add(row)

        row.amount_cents = amount_cents
        row.reason = reason
        row.category = category.value
        row.approval_status = approval_status.value
        row.order_id = order_id
        row.actor_id = actor_id
        row.base_amount_cents = base_amount_cents
        row.multiplier_id = multiplier_id
        self.session.flush()

        logger.info("transaction_recorded", extra={
            "transaction_id": row.id,
            "amount_cents": amount_cents,
            "category": category.value,
            "approval_status": approval_status.value,
            "external_reference": external_reference,
            "replaced": replace_existing,
        })
        return row.to_dto()

    def award_credit(
        self,
        user_id: str,
        category: TransactionCategory,
        settings: StoreCreditSettings,
        reason: str,
        amount_cents: int | None = None,
        multipliers: Sequence[CreditMultiplier] = (),
        actor_id: str | None = None,
        external_reference: str | None = None,
    ) -> CreditTransaction:
        """
        Award earned credit to a user.

        ``amount_cents`` defaults to the configured earning value for the
        category.  The highest applicable multiplier is applied before the
        monthly cap is checked.  A repeated ``external_reference`` returns
        the earlier entry and leaves the account counters alone.

        Raises:
            UserNotFoundError: If the user has no account row.
            InvalidTransactionError: If the award breaks the earning rules.
        """
        account = self._get_account(user_id)

        if external_reference is not None:
            existing = self._find_by_reference(external_reference)
            if existing is not None:
                logger.info("credit_award_already_recorded", extra={
                    "external_reference": external_reference,
                })
                return existing.to_dto()

        now = self.clock.now()
        if should_reset_monthly_cap(account.last_store_credit_monthly_reset, now):
            logger.info("monthly_cap_reset", extra={
                "previous_monthly_earned_cents": account.monthly_store_credit_earned,
            })
            account.monthly_store_credit_earned = 0
            account.last_store_credit_monthly_reset = now

        base_cents = (
            amount_cents if amount_cents is not None
            else earning_value_for(settings, category.value)
        )
        multiplied = apply_multiplier(base_cents, multipliers, category)

        validation = validate_credit_transaction(
            multiplied.final_credit_cents,
            category,
            self.get_balance(user_id).available_credit_cents,
            account.monthly_store_credit_earned,
            settings,
        )
        if not validation.is_valid:
            logger.warning("credit_award_rejected", extra={
                "reason_code": validation.error_code,
                "amount_cents": multiplied.final_credit_cents,
            })
            raise InvalidTransactionError(user_id, validation.error_code, validation.error_message)

        transaction = self.record_transaction(
            user_id=user_id,
            amount_cents=multiplied.final_credit_cents,
            reason=reason,
            category=category,
            actor_id=actor_id,
            external_reference=external_reference,
            base_amount_cents=base_cents if multiplied.multiplier_id else None,
            multiplier_id=multiplied.multiplier_id,
        )

        account.store_credit_balance += multiplied.final_credit_cents
        account.store_credit_earned += multiplied.final_credit_cents
        account.monthly_store_credit_earned += multiplied.final_credit_cents
        self.session.flush()

        return transaction

    def debit_for_order(
        self,
        user_id: str,
        amount_cents: int,
        order_id: str,
        external_reference: str,
        actor_id: str | None = None,
        allow_overdraft: bool = False,
    ) -> CreditTransaction:
        """
        Debit credit spent on an order, once per ``external_reference``.

        With ``allow_overdraft`` the debit is recorded even when the balance
        no longer covers it: the payment already carried the discount, so the
        shortfall stays on the ledger and blocks further spending.

        Raises:
            InvalidTransactionError: If ``amount_cents`` is not positive.
            InsufficientCreditError: If the balance cannot cover the debit
                and ``allow_overdraft`` is not set.
        """
        if amount_cents <= 0:
            raise InvalidTransactionError(
                user_id, "NON_POSITIVE_DEBIT", f"Debit must be positive, got {amount_cents}",
            )

        existing = self._find_by_reference(external_reference)
        if existing is not None:
            logger.info("order_debit_already_recorded", extra={
                "external_reference": external_reference,
                "order_id": order_id,
            })
            return existing.to_dto()

        available = self.get_balance(user_id).available_credit_cents
        if amount_cents > available:
            if not allow_overdraft:
                raise InsufficientCreditError(user_id, amount_cents, available)
            logger.warning("order_debit_overdraft", extra={
                "order_id": order_id,
                "amount_cents": amount_cents,
                "available_cents": available,
                "shortfall_cents": amount_cents - available,
            })

        transaction = self.record_transaction(
            user_id=user_id,
            amount_cents=-amount_cents,
            reason=f"Store credit used for order {order_id}",
            category=TransactionCategory.PURCHASE,
            order_id=order_id,
            external_reference=external_reference,
            actor_id=actor_id,
        )

        account = self._find_account(user_id)
        if account is not None:
            account.store_credit_balance -= amount_cents
            account.store_credit_spent += amount_cents
            self.session.flush()

        logger.info("order_debited", extra={
            "order_id": order_id,
            "amount_cents": amount_cents,
            "balance_before_cents": available,
        })
        return transaction

    def convert_legacy_points(
        self,
        user_id: str,
        conversion_rate: int = CONVERSION_RATE,
    ) -> PointsConversion:
        """
        Convert a user's remaining legacy points balance to store credit, once.

        The balance is read from ``points_balance``, falling back to the older
        ``points`` field.  Both are zeroed, the counters are copied to the
        ``*_legacy`` columns and the credit is written under
        ``migration:<user_id>``, the same reference the batch migration uses.
        A balance too small to yield a cent marks the user converted without
        writing a ledger entry.

        Raises:
            UserNotFoundError: If the user has no account row.
            PointsAlreadyConvertedError: If the user converted before or was
                covered by the batch migration.
            NoPointsToConvertError: If there is no points balance.
        """
        account = self._get_account(user_id)
        if account.points_converted or account.is_migrated:
            logger.info("points_conversion_refused", extra={
                "points_converted": account.points_converted,
                "migrated": account.is_migrated,
            })
            raise PointsAlreadyConvertedError(user_id)

        legacy = LegacyPointsLedger(
            points_balance=account.points_balance or account.points or 0,
            points_earned=account.points_earned or 0,
            points_spent=account.points_spent or 0,
        )
        if legacy.points_balance == 0:
            raise NoPointsToConvertError(user_id)

        credit = convert_points_ledger(legacy, conversion_rate).store_credit_balance
        reference = f"migration:{user_id}"
        transaction = None
        if credit > 0:
            transaction = self.record_transaction(
                user_id=user_id,
                amount_cents=credit,
                reason=f"Converted {legacy.points_balance} legacy points to store credit",
                category=TransactionCategory.MIGRATION,
                external_reference=reference,
                actor_id=user_id,
            )

        now = self.clock.now()
        account.points_balance_legacy = legacy.points_balance
        account.points_earned_legacy = legacy.points_earned
        account.points_spent_legacy = legacy.points_spent
        account.points_balance = 0
        account.points = 0
        account.store_credit_balance += credit
        account.store_credit_earned += credit
        account.points_converted = True
        account.points_converted_at = now
        self.session.flush()

        logger.info("legacy_points_converted", extra={
            "points_balance": legacy.points_balance,
            "credit_earned_cents": credit,
            "conversion_rate": conversion_rate,
        })
        return PointsConversion(
            user_id=user_id,
            points_converted=legacy.points_balance,
            credit_earned_cents=credit,
            transaction=transaction,
        )
