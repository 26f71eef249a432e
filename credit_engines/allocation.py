"""
Module: credit_engines.allocation
Responsibility:
    Split an integer number of cents across weighted targets so that the
    parts add up to the whole exactly (largest-remainder / Hamilton method).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Conservation: total_allocated + unallocated == amount.
    - Rounding: each target gets floor(amount * weight / total_weight); the
      leftover cents go one at a time to the largest fractional remainders,
      ties broken by target order.  Replays assign identical cents.
    - Limits: a target never receives more than its ``limit``; anything
      clamped off is reported as unallocated.

Failure modes:
    - ValueError on a negative amount, weight or limit.

Usage:
    from credit_engines.allocation import AllocationTarget, allocate_largest_remainder

    result = allocate_largest_remainder(
        1500,
        [AllocationTarget(target_index=0, weight=500), AllocationTarget(target_index=1, weight=1000)],
    )
    assert [line.allocated for line in result.lines] == [500, 1000]
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from credit_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")


@dataclass(frozen=True)
class AllocationTarget:
    """
    One recipient of an allocation.

    ``weight`` sets the proportional share; ``limit`` (optional) caps what
    the target may receive.
    """

    target_index: int
    weight: int
    limit: int | None = None

    def __post_init__(self) -> None:
        if self.weight < 0:
            raise ValueError("Weight cannot be negative")
        if self.limit is not None and self.limit < 0:
            raise ValueError("Limit cannot be negative")


@dataclass(frozen=True)
class AllocationLine:
    """Cents assigned to a single target."""

    target_index: int
    allocated: int
    received_remainder_cent: bool = False


@dataclass(frozen=True)
class AllocationResult:
    """
    Complete allocation result.

    Guarantees:
        - ``total_allocated + unallocated == amount``.
        - ``lines`` preserves the order of the input targets.
    """

    amount: int
    lines: tuple[AllocationLine, ...]
    total_allocated: int
    unallocated: int
    remainder_cents: int

    @property
    def is_fully_allocated(self) -> bool:
        return self.unallocated == 0


def allocate_largest_remainder(
    amount: int,
    targets: Sequence[AllocationTarget],
) -> AllocationResult:
    """
    Allocate ``amount`` cents across ``targets`` in proportion to weight.

    Preconditions:
        ``amount`` >= 0.
    Postconditions:
        Sum of line allocations == ``total_allocated``; when no limit binds
        and total weight is positive, ``total_allocated == amount``.
    Raises:
        ValueError: If ``amount`` is negative.
    """
    if amount < 0:
        raise ValueError(f"Cannot allocate a negative amount: {amount}")

    total_weight = sum(t.weight for t in targets)
    if not targets or total_weight == 0 or amount == 0:
        return AllocationResult(
            amount=amount,
            lines=tuple(AllocationLine(t.target_index, 0) for t in targets),
            total_allocated=0,
            unallocated=amount,
            remainder_cents=0,
        )

    floors: list[int] = []
    remainders: list[int] = []
    for target in targets:
        share, rem = divmod(amount * target.weight, total_weight)
        floors.append(share)
        remainders.append(rem)

    leftover = amount - sum(floors)
    # Largest remainder first; equal remainders keep target order.
    ranked = sorted(range(len(targets)), key=lambda i: (-remainders[i], i))
    bonus = set(ranked[:leftover])

    lines: list[AllocationLine] = []
    for position, target in enumerate(targets):
        gets_cent = position in bonus
        allocated = floors[position] + (1 if gets_cent else 0)
        if target.limit is not None and allocated > target.limit:
            logger.warning("allocation_clamped_to_limit", extra={
                "target_index": target.target_index,
                "computed": allocated,
                "limit": target.limit,
            })
            allocated = target.limit
        lines.append(AllocationLine(target.target_index, allocated, gets_cent))

    total_allocated = sum(line.allocated for line in lines)
    unallocated = amount - total_allocated

    assert total_allocated + unallocated == amount, (
        f"Allocation conservation violated: {total_allocated} + {unallocated} != {amount}"
    )

    logger.debug("allocation_completed", extra={
        "amount": amount,
        "total_weight": total_weight,
        "total_allocated": total_allocated,
        "unallocated": unallocated,
        "remainder_cents": leftover,
        "line_count": len(lines),
    })

    return AllocationResult(
        amount=amount,
        lines=tuple(lines),
        total_allocated=total_allocated,
        unallocated=unallocated,
        remainder_cents=leftover,
    )
