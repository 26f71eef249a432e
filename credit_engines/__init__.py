"""
Module: credit_engines
Responsibility:
    Re-exports the pure store-credit calculation engines.  This is the
    import surface for services, the batch migration and the checkout
    collaborator.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import credit_kernel.domain, credit_kernel.exceptions and
    credit_kernel.logging_config.  MUST NOT import credit_kernel.services,
    credit_kernel.models or credit_batch.

Invariants enforced:
    - Integer-cent arithmetic only; floats never touch money.
    - Determinism: identical inputs always produce identical outputs.
    - Engines never read the clock; callers pass ``now`` explicitly.

Usage:
    from credit_engines import calculate_store_credit_discount, points_to_store_credit_cents
"""

from credit_engines.allocation import (
    AllocationLine,
    AllocationResult,
    AllocationTarget,
    allocate_largest_remainder,
)
from credit_engines.conversion import (
    CONVERSION_RATE,
    convert_points_ledger,
    points_to_store_credit_cents,
    store_credit_cents_to_points,
)
from credit_engines.discount import (
    INSUFFICIENT_CREDIT,
    NEGATIVE_CREDIT_REQUEST,
    apply_store_credit_to_order,
    calculate_item_max_discount,
    calculate_store_credit_discount,
)
from credit_engines.earning import (
    MonthlyCapStatus,
    MultiplierResult,
    TransactionValidation,
    apply_multiplier,
    check_monthly_earning_cap,
    earning_value_for,
    should_reset_monthly_cap,
    validate_credit_transaction,
)

__all__ = [
    "AllocationLine",
    "AllocationResult",
    "AllocationTarget",
    "CONVERSION_RATE",
    "INSUFFICIENT_CREDIT",
    "MonthlyCapStatus",
    "MultiplierResult",
    "NEGATIVE_CREDIT_REQUEST",
    "TransactionValidation",
    "allocate_largest_remainder",
    "apply_multiplier",
    "apply_store_credit_to_order",
    "calculate_item_max_discount",
    "calculate_store_credit_discount",
    "check_monthly_earning_cap",
    "convert_points_ledger",
    "earning_value_for",
    "points_to_store_credit_cents",
    "should_reset_monthly_cap",
    "store_credit_cents_to_points",
    "validate_credit_transaction",
]
