"""Pure domain types, value helpers and the injectable clock."""

from credit_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from credit_kernel.domain.types import (
    ApprovalStatus,
    CreditMultiplier,
    CreditTransaction,
    DiscountResult,
    ItemDiscount,
    LegacyPointsLedger,
    OrderItem,
    StoreCreditLedger,
    StoreCreditSettings,
    TransactionCategory,
    UserCreditBalance,
)
from credit_kernel.domain.values import (
    CreditBalance,
    LegacyPoints,
    StoreCreditCents,
    cents_to_dollars,
    dollars_to_cents,
    format_cents,
    to_store_credit,
)

__all__ = [
    "ApprovalStatus",
    "Clock",
    "CreditBalance",
    "CreditMultiplier",
    "CreditTransaction",
    "DeterministicClock",
    "DiscountResult",
    "ItemDiscount",
    "LegacyPoints",
    "LegacyPointsLedger",
    "OrderItem",
    "StoreCreditCents",
    "StoreCreditLedger",
    "StoreCreditSettings",
    "SystemClock",
    "TransactionCategory",
    "UserCreditBalance",
    "cents_to_dollars",
    "dollars_to_cents",
    "format_cents",
    "to_store_credit",
]
