"""
Module: credit_engines.conversion
Responsibility:
    One-directional conversion of legacy points into store-credit cents,
    used by the batch migration and when displaying old balances.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - cents = floor(points * 100 / rate), computed in integer arithmetic.
    - Truncation only: cents * rate / 100 <= points, so no user is ever
      credited more than their historical points were worth.
    - Monotone: more points never yields fewer cents.

Failure modes:
    - InvalidPointsError on negative or non-integer points.
    - InvalidConversionRateError on a non-positive rate.
"""

from __future__ import annotations

from credit_kernel.domain.types import LegacyPointsLedger, StoreCreditLedger
from credit_kernel.domain.values import CENTS_PER_DOLLAR, LegacyPoints, to_store_credit
from credit_kernel.exceptions import InvalidConversionRateError, InvalidPointsError

# 200 points = $1.00 store credit
CONVERSION_RATE = 200


def _check_rate(conversion_rate: int) -> None:
    if isinstance(conversion_rate, bool) or not isinstance(conversion_rate, int) or conversion_rate <= 0:
        raise InvalidConversionRateError(conversion_rate)


def points_to_store_credit_cents(points: int, conversion_rate: int = CONVERSION_RATE) -> int:
    """Convert legacy points to cents, discarding fractional cents."""
    _check_rate(conversion_rate)
    if isinstance(points, bool) or not isinstance(points, int) or points < 0:
        raise InvalidPointsError(points)
    return to_store_credit(LegacyPoints(points), conversion_rate).cents


def store_credit_cents_to_points(cents: int, conversion_rate: int = CONVERSION_RATE) -> int:
    """Points needed to cover ``cents`` (rounded up), for legacy displays."""
    _check_rate(conversion_rate)
    if cents <= 0:
        return 0
    return -(-cents * conversion_rate // CENTS_PER_DOLLAR)


def convert_points_ledger(
    ledger: LegacyPointsLedger,
    conversion_rate: int = CONVERSION_RATE,
) -> StoreCreditLedger:
    """
    Convert every counter of a legacy ledger independently.

    The converted balance is not derived from earned - spent; each field
    is truncated on its own so the three stay traceable to their sources.
    """
    return StoreCreditLedger(
        store_credit_balance=points_to_store_credit_cents(ledger.points_balance, conversion_rate),
        store_credit_earned=points_to_store_credit_cents(ledger.points_earned, conversion_rate),
        store_credit_spent=points_to_store_credit_cents(ledger.points_spent, conversion_rate),
    )
