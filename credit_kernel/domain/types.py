"""
Domain types for the store-credit kernel.

Frozen dataclasses only. These are the in-memory projections the engines
operate on; the ORM models in ``credit_kernel.models`` translate to and
from them.

Invariants enforced:
    - StoreCreditSettings: every cap >= 0, percent cap <= 100.
    - OrderItem: price >= 0, quantity >= 1.
    - DiscountResult: sum(item_discounts) == discount_cents.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from credit_kernel.exceptions import (
    InvalidOrderItemError,
    InvalidPointsError,
    InvalidSettingsError,
)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# =============================================================================
# Enums
# =============================================================================


class TransactionCategory(str, Enum):
    """Why a ledger entry was written."""

    EVENT_ATTENDANCE = "event_attendance"
    VOLUNTEER_WORK = "volunteer_work"
    EVENT_HOSTING = "event_hosting"
    CONTRIBUTION = "contribution"
    PURCHASE = "purchase"
    MIGRATION = "migration"
    ADMIN_ADJUSTMENT = "admin_adjustment"


class ApprovalStatus(str, Enum):
    """Only APPROVED entries count toward a balance."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# =============================================================================
# Settings
# =============================================================================


@dataclass(frozen=True)
class StoreCreditSettings:
    """
    Admin-configured caps and earning values (singleton "default" record).

    Raises:
        InvalidSettingsError: On construction with an out-of-range field.
    """

    per_item_discount_cap_percent: int
    per_order_discount_cap_cents: int
    monthly_earning_cap_cents: int
    earning_values: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        percent = self.per_item_discount_cap_percent
        if not _is_int(percent) or not 0 <= percent <= 100:
            raise InvalidSettingsError(
                "per_item_discount_cap_percent", percent, "must be an integer in 0..100",
            )
        for name in ("per_order_discount_cap_cents", "monthly_earning_cap_cents"):
            value = getattr(self, name)
            if not _is_int(value) or value < 0:
                raise InvalidSettingsError(name, value, "must be a non-negative integer")
        for activity, cents in self.earning_values.items():
            if not _is_int(cents) or cents < 0:
                raise InvalidSettingsError(
                    f"earning_values.{activity}", cents, "must be a non-negative integer",
                )
        object.__setattr__(self, "earning_values", dict(self.earning_values))

    def to_dict(self) -> dict[str, Any]:
        return {
            "per_item_discount_cap_percent": self.per_item_discount_cap_percent,
            "per_order_discount_cap_cents": self.per_order_discount_cap_cents,
            "monthly_earning_cap_cents": self.monthly_earning_cap_cents,
            "earning_values": dict(self.earning_values),
        }


# =============================================================================
# Orders and discounts
# =============================================================================


@dataclass(frozen=True)
class OrderItem:
    """The subset of a cart line the discount engine consumes."""

    price_cents: int
    quantity: int = 1
    points_eligible: bool = True

    def __post_init__(self) -> None:
        if not _is_int(self.price_cents) or self.price_cents < 0:
            raise InvalidOrderItemError("price_cents", self.price_cents)
        if not _is_int(self.quantity) or self.quantity < 1:
            raise InvalidOrderItemError("quantity", self.quantity)

    @property
    def subtotal_cents(self) -> int:
        return self.price_cents * self.quantity


@dataclass(frozen=True)
class ItemDiscount:
    """Discount attributed to one line, keyed by its position in the order."""

    item_index: int
    discount_cents: int


@dataclass(frozen=True)
class DiscountResult:
    """
    Outcome of a store-credit discount calculation.

    Guarantees:
        - ``discount_cents == sum(d.discount_cents for d in item_discounts)``.
        - Invalid results always carry ``discount_cents == 0`` and no
          item discounts.
    """

    is_valid: bool
    discount_cents: int = 0
    item_discounts: tuple[ItemDiscount, ...] = ()
    error_message: str | None = None
    error_code: str | None = None
    max_discount_cents: int = 0
    capped_by_item_limit: bool = False
    capped_by_order_limit: bool = False

    @classmethod
    def invalid(cls, error_code: str, error_message: str) -> DiscountResult:
        return cls(is_valid=False, error_code=error_code, error_message=error_message)

    def discount_for(self, item_index: int) -> int:
        """Discount allocated to the item at ``item_index`` (0 if none)."""
        for item_discount in self.item_discounts:
            if item_discount.item_index == item_index:
                return item_discount.discount_cents
        return 0


# =============================================================================
# Balances and ledgers
# =============================================================================


@dataclass(frozen=True)
class UserCreditBalance:
    """Spendable credit derived from a user's approved transactions."""

    user_id: str
    available_credit_cents: int

    def __post_init__(self) -> None:
        if self.available_credit_cents < 0:
            object.__setattr__(self, "available_credit_cents", 0)


@dataclass(frozen=True)
class LegacyPointsLedger:
    """Legacy points counters for one user (migration input)."""

    points_balance: int = 0
    points_earned: int = 0
    points_spent: int = 0

    def __post_init__(self) -> None:
        for name in ("points_balance", "points_earned", "points_spent"):
            value = getattr(self, name)
            if not _is_int(value) or value < 0:
                raise InvalidPointsError(value)

    @property
    def is_empty(self) -> bool:
        return self.points_balance == 0 and self.points_earned == 0 and self.points_spent == 0


@dataclass(frozen=True)
class StoreCreditLedger:
    """Store-credit counters in cents (migration output)."""

    store_credit_balance: int
    store_credit_earned: int
    store_credit_spent: int


@dataclass(frozen=True)
class CreditTransaction:
    """Immutable snapshot of one store-credit ledger entry."""

    transaction_id: str
    user_id: str
    amount_cents: int  # negative = spend
    reason: str
    category: TransactionCategory
    approval_status: ApprovalStatus
    order_id: str | None = None
    external_reference: str | None = None


@dataclass(frozen=True)
class CreditMultiplier:
    """Promotional campaign that multiplies earned credit for some categories."""

    multiplier_id: str
    name: str
    multiplier: Decimal
    applicable_categories: tuple[TransactionCategory, ...] = ()
    is_active: bool = True
