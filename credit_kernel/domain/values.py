"""
Values -- Cents helpers and the legacy points / store-credit balance variant.

Responsibility:
    Integer-cent formatting and dollar conversion, plus the tagged variant
    ``LegacyPoints | StoreCreditCents`` that replaces the overlapping points
    and credit fields of old user records.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Money is always an ``int`` number of cents; dollars only appear at
      the formatting boundary and are handled as ``Decimal``, never float.
    - Conversion between the two balance units is one-directional
      (points -> cents) and truncates, so a user is never over-credited.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from credit_kernel.domain.types import _is_int
from credit_kernel.exceptions import InvalidConversionRateError, InvalidPointsError

CENTS_PER_DOLLAR = 100


def format_cents(cents: int) -> str:
    """Render cents as a dollar string, e.g. ``1050 -> "$10.50"``."""
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), CENTS_PER_DOLLAR)
    return f"{sign}${whole}.{frac:02d}"


def dollars_to_cents(dollars: Decimal | int | str) -> int:
    """Convert a dollar amount to cents, rounding half up."""
    amount = Decimal(str(dollars)) * CENTS_PER_DOLLAR
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def cents_to_dollars(cents: int) -> Decimal:
    """Convert cents to an exact dollar ``Decimal``."""
    return (Decimal(cents) / CENTS_PER_DOLLAR).quantize(Decimal("0.01"))


@dataclass(frozen=True, slots=True)
class LegacyPoints:
    """A balance expressed in the predecessor points unit."""

    points: int

    def __post_init__(self) -> None:
        if not _is_int(self.points) or self.points < 0:
            raise InvalidPointsError(self.points)


@dataclass(frozen=True, slots=True)
class StoreCreditCents:
    """A balance expressed in store-credit cents."""

    cents: int

    def __post_init__(self) -> None:
        if not _is_int(self.cents):
            raise TypeError(f"cents must be int, got {type(self.cents).__name__}")

    def __str__(self) -> str:
        return format_cents(self.cents)


CreditBalance = LegacyPoints | StoreCreditCents


def to_store_credit(balance: CreditBalance, conversion_rate: int) -> StoreCreditCents:
    """
    Convert either balance variant to store-credit cents.

    ``StoreCreditCents`` passes through unchanged. ``LegacyPoints`` converts
    with ``floor(points * 100 / conversion_rate)``.

    Raises:
        InvalidConversionRateError: If ``conversion_rate`` is not positive.
    """
    if not _is_int(conversion_rate) or conversion_rate <= 0:
        raise InvalidConversionRateError(conversion_rate)
    match balance:
        case StoreCreditCents():
            return balance
        case LegacyPoints(points=points):
            return StoreCreditCents(points * CENTS_PER_DOLLAR // conversion_rate)
        case _:
            raise TypeError(f"Unsupported balance type: {type(balance).__name__}")
