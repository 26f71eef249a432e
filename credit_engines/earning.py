"""
Module: credit_engines.earning
Responsibility:
    Rules for putting credit INTO a user's ledger: transaction validation
    against balance and the monthly earning cap, monthly-cap status and
    reset detection, and promotional multipliers.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The current time is
    always passed in by the caller.

Invariants enforced:
    - A spend never exceeds the current balance.
    - Earnings within a calendar month never exceed the monthly cap.
    - Multiplied credit is floored to whole cents.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_FLOOR, Decimal

from credit_kernel.domain.types import (
    CreditMultiplier,
    StoreCreditSettings,
    TransactionCategory,
)
from credit_kernel.domain.values import format_cents

ZERO_AMOUNT = "ZERO_AMOUNT"
INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
MONTHLY_CAP_EXCEEDED = "MONTHLY_CAP_EXCEEDED"
MISSING_CATEGORY = "MISSING_CATEGORY"


@dataclass(frozen=True)
class TransactionValidation:
    is_valid: bool
    error_code: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class MonthlyCapStatus:
    has_reached_cap: bool
    remaining_cents: int
    monthly_earned_cents: int
    monthly_cap_cents: int


@dataclass(frozen=True)
class MultiplierResult:
    final_credit_cents: int
    multiplier_applied: Decimal | None = None
    multiplier_id: str | None = None


def validate_credit_transaction(
    amount_cents: int,
    category: TransactionCategory | None,
    balance_cents: int,
    monthly_earned_cents: int,
    settings: StoreCreditSettings,
) -> TransactionValidation:
    """
    Check a proposed ledger entry against the earning and spending rules.

    Negative amounts are spends and are checked against ``balance_cents``;
    positive amounts are earnings and are checked against the monthly cap.
    """
    if amount_cents == 0:
        return TransactionValidation(False, ZERO_AMOUNT, "Transaction amount must be non-zero")

    if amount_cents < 0 and -amount_cents > balance_cents:
        return TransactionValidation(
            False,
            INSUFFICIENT_BALANCE,
            f"Insufficient balance. Available: {format_cents(max(0, balance_cents))}",
        )

    if amount_cents > 0:
        cap = settings.monthly_earning_cap_cents
        if monthly_earned_cents + amount_cents > cap:
            remaining = max(0, cap - monthly_earned_cents)
            return TransactionValidation(
                False,
                MONTHLY_CAP_EXCEEDED,
                f"Monthly earning cap reached. Remaining: {format_cents(remaining)}",
            )

    if category is None:
        return TransactionValidation(False, MISSING_CATEGORY, "Transaction category is required")

    return TransactionValidation(True)


def check_monthly_earning_cap(
    monthly_earned_cents: int,
    settings: StoreCreditSettings,
) -> MonthlyCapStatus:
    cap = settings.monthly_earning_cap_cents
    return MonthlyCapStatus(
        has_reached_cap=monthly_earned_cents >= cap,
        remaining_cents=max(0, cap - monthly_earned_cents),
        monthly_earned_cents=monthly_earned_cents,
        monthly_cap_cents=cap,
    )


def should_reset_monthly_cap(last_reset: datetime | None, now: datetime) -> bool:
    """True when no reset has happened yet or ``now`` is in a later calendar month."""
    if last_reset is None:
        return True
    if last_reset.tzinfo is not None and now.tzinfo is not None:
        last_reset = last_reset.astimezone(timezone.utc)
        now = now.astimezone(timezone.utc)
    return (last_reset.year, last_reset.month) != (now.year, now.month)


def apply_multiplier(
    base_credit_cents: int,
    multipliers: Sequence[CreditMultiplier],
    category: TransactionCategory,
) -> MultiplierResult:
    """
    Apply the highest active multiplier covering ``category``.

    Expiry windows are the caller's concern: pass only campaigns that are
    currently running.
    """
    applicable = [
        m for m in multipliers
        if m.is_active and category in m.applicable_categories
    ]
    if not applicable:
        return MultiplierResult(final_credit_cents=base_credit_cents)

    best = max(applicable, key=lambda m: m.multiplier)
    final = (Decimal(base_credit_cents) * best.multiplier).to_integral_value(rounding=ROUND_FLOOR)
    return MultiplierResult(
        final_credit_cents=int(final),
        multiplier_applied=best.multiplier,
        multiplier_id=best.multiplier_id,
    )


def earning_value_for(settings: StoreCreditSettings, activity: str) -> int:
    """
    Configured cents for an activity kind.

    Raises:
        KeyError: If the activity has no configured value.
    """
    try:
        return settings.earning_values[activity]
    except KeyError:
        raise KeyError(
            f"No earning value configured for '{activity}'. "
            f"Available: {sorted(settings.earning_values)}"
        ) from None
