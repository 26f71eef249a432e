"""
Property-based tests for the discount and conversion engines.

Properties:
- Item discounts sum exactly to the order discount
- The discount never exceeds request, balance, order cap or sum of item caps
- No item discount exceeds that item's percent cap or its subtotal
- Ineligible items never receive a discount
- Points conversion truncates and is monotone
"""

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from credit_engines.conversion import points_to_store_credit_cents
from credit_engines.discount import calculate_item_max_discount, calculate_store_credit_discount
from credit_kernel.domain.types import OrderItem, StoreCreditSettings

PROPERTY_SETTINGS = settings(
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)


@composite
def order_items(draw):
    return draw(st.lists(
        st.builds(
            OrderItem,
            price_cents=st.integers(min_value=0, max_value=50_000),
            quantity=st.integers(min_value=1, max_value=5),
            points_eligible=st.booleans(),
        ),
        max_size=12,
    ))


@composite
def credit_settings(draw):
    return StoreCreditSettings(
        per_item_discount_cap_percent=draw(st.integers(min_value=0, max_value=100)),
        per_order_discount_cap_cents=draw(st.integers(min_value=0, max_value=20_000)),
        monthly_earning_cap_cents=5000,
    )


@composite
def discount_case(draw):
    items = draw(order_items())
    caps = draw(credit_settings())
    available = draw(st.integers(min_value=0, max_value=50_000))
    requested = draw(st.integers(min_value=0, max_value=available))
    return items, requested, available, caps


class TestDiscountProperties:

    @given(discount_case())
    @PROPERTY_SETTINGS
    def test_item_discounts_sum_to_total(self, case):
        items, requested, available, caps = case
        result = calculate_store_credit_discount(items, requested, available, caps)

        assert result.is_valid
        assert sum(d.discount_cents for d in result.item_discounts) == result.discount_cents

    @given(discount_case())
    @PROPERTY_SETTINGS
    def test_discount_within_every_ceiling(self, case):
        items, requested, available, caps = case
        result = calculate_store_credit_discount(items, requested, available, caps)

        sum_of_caps = sum(
            calculate_item_max_discount(item.subtotal_cents, available, caps)
            for item in items if item.points_eligible
        )
        assert result.discount_cents <= requested
        assert result.discount_cents <= available
        assert result.discount_cents <= caps.per_order_discount_cap_cents
        assert result.discount_cents <= sum_of_caps
        assert result.discount_cents == min(requested, result.max_discount_cents)

    @given(discount_case())
    @PROPERTY_SETTINGS
    def test_per_item_bounds(self, case):
        items, requested, available, caps = case
        result = calculate_store_credit_discount(items, requested, available, caps)

        for item_discount in result.item_discounts:
            item = items[item_discount.item_index]
            assert item_discount.discount_cents > 0
            assert item_discount.discount_cents <= calculate_item_max_discount(
                item.subtotal_cents, available, caps,
            )
            assert item_discount.discount_cents <= item.subtotal_cents

    @given(discount_case())
    @PROPERTY_SETTINGS
    def test_ineligible_items_excluded(self, case):
        items, requested, available, caps = case
        result = calculate_store_credit_discount(items, requested, available, caps)

        for item_discount in result.item_discounts:
            assert items[item_discount.item_index].points_eligible

    @given(discount_case())
    @PROPERTY_SETTINGS
    def test_deterministic(self, case):
        items, requested, available, caps = case

        first = calculate_store_credit_discount(items, requested, available, caps)
        second = calculate_store_credit_discount(items, requested, available, caps)

        assert first == second

    @given(
        st.integers(min_value=0, max_value=1000),
        st.integers(min_value=1, max_value=1000),
    )
    @PROPERTY_SETTINGS
    def test_requests_above_balance_are_rejected(self, available, excess):
        caps = StoreCreditSettings(50, 3000, 5000)
        result = calculate_store_credit_discount(
            [OrderItem(price_cents=10_000)], available + excess, available, caps,
        )

        assert not result.is_valid
        assert result.discount_cents == 0
        assert result.item_discounts == ()


class TestConversionProperties:

    @given(st.integers(min_value=0, max_value=10**12), st.integers(min_value=1, max_value=10_000))
    @PROPERTY_SETTINGS
    def test_truncates_never_over_credits(self, points, rate):
        cents = points_to_store_credit_cents(points, rate)

        assert cents * rate <= points * 100
        assert (cents + 1) * rate > points * 100

    @given(st.integers(min_value=0, max_value=10**9), st.integers(min_value=0, max_value=10**6))
    @PROPERTY_SETTINGS
    def test_monotone(self, points, extra):
        assert points_to_store_credit_cents(points + extra) >= points_to_store_credit_cents(points)
