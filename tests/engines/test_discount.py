"""
Tests for the store-credit discount engine.

Covers:
- Worked checkout scenarios (single item, partial request, two items,
  insufficient balance)
- Per-item and per-order caps and the capped_by_* flags
- Ineligible items, quantities, largest-remainder rounding
- Degenerate inputs (empty order, zero request, zero caps)
- Malformed inputs and the engine trace record
"""

import pytest

from credit_engines.discount import (
    INSUFFICIENT_CREDIT,
    NEGATIVE_CREDIT_REQUEST,
    apply_store_credit_to_order,
    calculate_item_max_discount,
    calculate_store_credit_discount,
)
from credit_kernel.domain.types import ItemDiscount, OrderItem, StoreCreditSettings
from credit_kernel.exceptions import InvalidCreditAmountError


def _settings(percent=50, order_cap=3000, monthly_cap=5000) -> StoreCreditSettings:
    return StoreCreditSettings(
        per_item_discount_cap_percent=percent,
        per_order_discount_cap_cents=order_cap,
        monthly_earning_cap_cents=monthly_cap,
    )


class TestCheckoutScenarios:
    """Worked examples a shopper would hit at checkout."""

    def test_single_item_capped_at_half_price(self):
        """$29.99 item, $100 credit: only 50% of the item, floored, is discounted."""
        result = calculate_store_credit_discount(
            [OrderItem(price_cents=2999)], 10000, 10000, _settings(),
        )

        assert result.is_valid
        assert result.discount_cents == 1499
        assert result.item_discounts == (ItemDiscount(0, 1499),)
        assert result.capped_by_item_limit

    def test_request_below_cap_is_used_in_full(self):
        result = calculate_store_credit_discount(
            [OrderItem(price_cents=2999)], 500, 10000, _settings(),
        )

        assert result.is_valid
        assert result.discount_cents == 500
        assert result.item_discounts == (ItemDiscount(0, 500),)
        assert not result.capped_by_item_limit

    def test_two_items_split_in_proportion_to_caps(self):
        result = calculate_store_credit_discount(
            [OrderItem(price_cents=1000), OrderItem(price_cents=2000)],
            1500, 1500, _settings(),
        )

        assert result.is_valid
        assert result.discount_cents == 1500
        assert result.item_discounts == (ItemDiscount(0, 500), ItemDiscount(1, 1000))

    def test_request_above_balance_is_rejected(self):
        result = calculate_store_credit_discount(
            [OrderItem(price_cents=10000)], 6000, 5000, _settings(),
        )

        assert not result.is_valid
        assert result.discount_cents == 0
        assert result.item_discounts == ()
        assert result.error_code == INSUFFICIENT_CREDIT
        assert "Insufficient" in result.error_message
        assert "$50.00" in result.error_message


class TestCaps:
    """Per-item and per-order cap interaction."""

    def test_order_cap_binds_and_is_split_proportionally(self):
        result = calculate_store_credit_discount(
            [OrderItem(price_cents=4000), OrderItem(price_cents=4000)],
            5000, 5000, _settings(order_cap=3000),
        )

        assert result.discount_cents == 3000
        assert [d.discount_cents for d in result.item_discounts] == [1500, 1500]
        assert result.max_discount_cents == 3000
        assert result.capped_by_order_limit
        assert not result.capped_by_item_limit

    def test_available_credit_limits_each_item_cap(self):
        assert calculate_item_max_discount(2000, 300, _settings()) == 300

    def test_item_cap_floors_fractional_cents(self):
        assert calculate_item_max_discount(2999, 10000, _settings()) == 1499

    def test_item_cap_never_negative(self):
        assert calculate_item_max_discount(0, 0, _settings()) == 0

    def test_full_percent_cap_allows_whole_item(self):
        result = calculate_store_credit_discount(
            [OrderItem(price_cents=1200)], 2000, 2000, _settings(percent=100),
        )

        assert result.discount_cents == 1200
        assert result.item_discounts == (ItemDiscount(0, 1200),)

    def test_zero_order_cap_gives_zero_discount(self):
        result = calculate_store_credit_discount(
            [OrderItem(price_cents=1000)], 500, 500, _settings(order_cap=0),
        )

        assert result.is_valid
        assert result.discount_cents == 0
        assert result.item_discounts == ()
        assert result.capped_by_order_limit

    def test_zero_percent_cap_gives_zero_discount(self):
        result = calculate_store_credit_discount(
            [OrderItem(price_cents=1000)], 500, 500, _settings(percent=0),
        )

        assert result.is_valid
        assert result.discount_cents == 0
        assert result.capped_by_item_limit


class TestItemHandling:
    """Eligibility, quantities and remainder distribution."""

    def test_ineligible_items_receive_nothing(self):
        result = calculate_store_credit_discount(
            [
                OrderItem(price_cents=1000),
                OrderItem(price_cents=5000, points_eligible=False),
            ],
            1000, 1000, _settings(),
        )

        assert result.discount_cents == 500
        assert result.discount_for(0) == 500
        assert result.discount_for(1) == 0
        assert all(d.item_index != 1 for d in result.item_discounts)

    def test_quantity_multiplies_subtotal(self):
        result = calculate_store_credit_discount(
            [OrderItem(price_cents=1000, quantity=3)], 3000, 3000, _settings(),
        )

        assert result.discount_cents == 1500

    def test_leftover_cent_goes_to_earliest_item_on_tie(self):
        result = calculate_store_credit_discount(
            [OrderItem(price_cents=1000)] * 3, 1000, 1000, _settings(),
        )

        assert [d.discount_cents for d in result.item_discounts] == [334, 333, 333]
        assert result.discount_cents == 1000

    def test_indices_skip_ineligible_positions(self):
        result = calculate_store_credit_discount(
            [
                OrderItem(price_cents=800, points_eligible=False),
                OrderItem(price_cents=1000),
                OrderItem(price_cents=600, points_eligible=False),
                OrderItem(price_cents=1000),
            ],
            400, 400, _settings(),
        )

        assert result.item_discounts == (ItemDiscount(1, 200), ItemDiscount(3, 200))


class TestDegenerateInputs:
    """Inputs that yield a valid zero discount."""

    @pytest.mark.parametrize("items", [
        [],
        [OrderItem(price_cents=1000, points_eligible=False)],
        [OrderItem(price_cents=0)],
    ])
    def test_nothing_discountable(self, items):
        result = calculate_store_credit_discount(items, 500, 500, _settings())

        assert result.is_valid
        assert result.discount_cents == 0
        assert result.item_discounts == ()

    def test_zero_request(self):
        result = calculate_store_credit_discount(
            [OrderItem(price_cents=1000)], 0, 500, _settings(),
        )

        assert result.is_valid
        assert result.discount_cents == 0
        assert result.max_discount_cents == 500

    def test_zero_balance_zero_request(self):
        result = calculate_store_credit_discount(
            [OrderItem(price_cents=1000)], 0, 0, _settings(),
        )

        assert result.is_valid
        assert result.discount_cents == 0


class TestMalformedInputs:
    """Rule violations return invalid results; malformed inputs raise."""

    def test_negative_request_is_invalid_result(self):
        result = calculate_store_credit_discount(
            [OrderItem(price_cents=1000)], -1, 500, _settings(),
        )

        assert not result.is_valid
        assert result.error_code == NEGATIVE_CREDIT_REQUEST

    def test_negative_available_raises(self):
        with pytest.raises(InvalidCreditAmountError) as exc_info:
            calculate_store_credit_discount([OrderItem(price_cents=1000)], 0, -5, _settings())

        assert exc_info.value.code == "INVALID_CREDIT_AMOUNT"

    def test_non_order_item_raises(self):
        with pytest.raises(TypeError, match="order_items\\[0\\]"):
            calculate_store_credit_discount([{"price_cents": 1000}], 0, 0, _settings())


class TestApplyToOrder:

    def test_subtracts_discount(self):
        assert apply_store_credit_to_order(5000, 1500) == 3500

    def test_never_below_zero(self):
        assert apply_store_credit_to_order(1000, 1500) == 0


class TestEngineTrace:
    """Every call emits STORE_CREDIT_ENGINE_TRACE with an input fingerprint."""

    def test_trace_emitted(self, captured_logs):
        calculate_store_credit_discount([OrderItem(price_cents=2999)], 500, 1000, _settings())

        traces = [r for r in captured_logs() if r["message"] == "STORE_CREDIT_ENGINE_TRACE"]
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "discount"
        assert len(traces[0]["input_fingerprint"]) == 16

    def test_fingerprint_is_deterministic(self, captured_logs):
        for _ in range(2):
            calculate_store_credit_discount(
                [OrderItem(price_cents=2999)], 500, 1000, _settings(),
            )
        calculate_store_credit_discount([OrderItem(price_cents=2999)], 501, 1000, _settings())

        fingerprints = [
            r["input_fingerprint"] for r in captured_logs()
            if r["message"] == "STORE_CREDIT_ENGINE_TRACE"
        ]
        assert fingerprints[0] == fingerprints[1]
        assert fingerprints[0] != fingerprints[2]
