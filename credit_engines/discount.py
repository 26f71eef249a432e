"""
Module: credit_engines.discount
Responsibility:
    Turn a user's store credit into a validated, per-item-attributed
    discount on a shopping-cart order.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Called at checkout-quote
    time and again when a completed payment is settled.

Invariants enforced:
    - discount_cents <= min(credit_to_use, available credit, per-order cap,
      sum of per-item caps); never more than the eligible subtotal.
    - Each item's discount <= floor(item subtotal * percent cap / 100).
    - sum(item discounts) == discount_cents exactly (largest-remainder
      allocation, see ``credit_engines.allocation``).
    - Ineligible items never appear in ``item_discounts``.

Failure modes:
    - Business-rule violations (asking for more credit than the user holds,
      a negative request) return ``DiscountResult(is_valid=False)``.
    - Malformed inputs raise: ``InvalidCreditAmountError`` for a negative
      available balance, ``TypeError`` for non-OrderItem lines.  Settings and
      items validate themselves on construction.
"""

from __future__ import annotations

from collections.abc import Sequence

from credit_engines.allocation import AllocationTarget, allocate_largest_remainder
from credit_engines.tracer import traced_engine
from credit_kernel.domain.types import (
    DiscountResult,
    ItemDiscount,
    OrderItem,
    StoreCreditSettings,
)
from credit_kernel.domain.values import format_cents
from credit_kernel.exceptions import InvalidCreditAmountError
from credit_kernel.logging_config import get_logger

logger = get_logger("engines.discount")

INSUFFICIENT_CREDIT = "INSUFFICIENT_CREDIT"
NEGATIVE_CREDIT_REQUEST = "NEGATIVE_CREDIT_REQUEST"


def calculate_item_max_discount(
    item_total_cents: int,
    available_credit_cents: int,
    settings: StoreCreditSettings,
) -> int:
    """
    Largest discount a single line may absorb.

    ``min(floor(item_total * percent_cap / 100), available_credit)``,
    never negative.
    """
    cap = item_total_cents * settings.per_item_discount_cap_percent // 100
    return max(0, min(cap, available_credit_cents))


@traced_engine(
    "discount",
    "1.0",
    fingerprint_fields=(
        "order_items",
        "credit_to_use_cents",
        "available_credit_cents",
        "settings",
    ),
)
def calculate_store_credit_discount(
    order_items: Sequence[OrderItem],
    credit_to_use_cents: int,
    available_credit_cents: int,
    settings: StoreCreditSettings,
) -> DiscountResult:
    """
    Compute the store-credit discount for an order.

    Args:
        order_items: Cart lines in order; positions become ``item_index``.
        credit_to_use_cents: Credit the user asked to spend.
        available_credit_cents: The user's spendable balance.
        settings: Active caps.

    Returns:
        A valid result with the allocated discount, or an invalid result
        with ``error_code`` / ``error_message`` when the request itself
        breaks a rule.

    Raises:
        InvalidCreditAmountError: If ``available_credit_cents`` is negative.
    """
    if available_credit_cents < 0:
        raise InvalidCreditAmountError("available_credit_cents", available_credit_cents)

    if credit_to_use_cents < 0:
        logger.info("discount_rejected", extra={
            "reason": NEGATIVE_CREDIT_REQUEST,
            "credit_to_use_cents": credit_to_use_cents,
        })
        return DiscountResult.invalid(
            NEGATIVE_CREDIT_REQUEST, "Credit amount must not be negative",
        )

    if credit_to_use_cents > available_credit_cents:
        logger.info("discount_rejected", extra={
            "reason": INSUFFICIENT_CREDIT,
            "credit_to_use_cents": credit_to_use_cents,
            "available_credit_cents": available_credit_cents,
        })
        return DiscountResult.invalid(
            INSUFFICIENT_CREDIT,
            f"Insufficient store credit balance. Available: "
            f"{format_cents(available_credit_cents)}",
        )

    targets: list[AllocationTarget] = []
    for index, item in enumerate(order_items):
        if not isinstance(item, OrderItem):
            raise TypeError(f"order_items[{index}] is not an OrderItem: {item!r}")
        if not item.points_eligible:
            continue
        subtotal = item.subtotal_cents
        targets.append(AllocationTarget(
            target_index=index,
            weight=calculate_item_max_discount(subtotal, available_credit_cents, settings),
            limit=subtotal,
        ))

    sum_of_caps = sum(t.weight for t in targets)
    per_order_cap = settings.per_order_discount_cap_cents
    max_discount = min(available_credit_cents, per_order_cap, sum_of_caps)
    ceiling = min(credit_to_use_cents, max_discount)
    capped_by_item_limit = sum_of_caps < credit_to_use_cents and sum_of_caps <= per_order_cap
    capped_by_order_limit = per_order_cap < credit_to_use_cents and per_order_cap < sum_of_caps

    if ceiling == 0:
        logger.debug("discount_zero", extra={
            "eligible_items": len(targets),
            "sum_of_caps": sum_of_caps,
            "per_order_cap": per_order_cap,
            "credit_to_use_cents": credit_to_use_cents,
        })
        return DiscountResult(
            is_valid=True,
            max_discount_cents=max_discount,
            capped_by_item_limit=capped_by_item_limit,
            capped_by_order_limit=capped_by_order_limit,
        )

    allocation = allocate_largest_remainder(ceiling, targets)
    item_discounts = tuple(
        ItemDiscount(item_index=line.target_index, discount_cents=line.allocated)
        for line in allocation.lines
        if line.allocated > 0
    )
    discount_cents = allocation.total_allocated

    result = DiscountResult(
        is_valid=True,
        discount_cents=discount_cents,
        item_discounts=item_discounts,
        max_discount_cents=max_discount,
        capped_by_item_limit=capped_by_item_limit,
        capped_by_order_limit=capped_by_order_limit,
    )

    logger.info("discount_calculated", extra={
        "credit_to_use_cents": credit_to_use_cents,
        "available_credit_cents": available_credit_cents,
        "discount_cents": discount_cents,
        "max_discount_cents": max_discount,
        "eligible_items": len(targets),
        "discounted_items": len(item_discounts),
    })
    return result


def apply_store_credit_to_order(order_total_cents: int, credit_discount_cents: int) -> int:
    """Order total after the credit discount; never below zero."""
    return max(0, order_total_cents - credit_discount_cents)
