"""
Tests for CheckoutService: quotes with per-line discounts, payment-session
metadata, and idempotent settlement of completed sessions.
"""

import pytest

from credit_kernel.domain.types import TransactionCategory
from credit_kernel.exceptions import (
    InsufficientCreditError,
    InvalidCreditAmountError,
    InvalidSessionMetadataError,
)
from credit_kernel.services.checkout_service import (
    CartLine,
    CheckoutService,
    decode_session_metadata,
    encode_session_metadata,
)
from credit_kernel.services.ledger_service import LedgerService
from credit_kernel.services.settings_service import SettingsService


@pytest.fixture
def ledger(session, clock):
    return LedgerService(session, clock=clock)


@pytest.fixture
def checkout(session, ledger, default_settings):
    return CheckoutService(session, SettingsService(session, default_settings), ledger)


@pytest.fixture
def funded(ledger):
    ledger.record_transaction(
        "alice", 5000, "Opening balance", TransactionCategory.ADMIN_ADJUSTMENT,
    )


@pytest.fixture
def cart():
    return [
        CartLine("tee", "T-shirt", 3000),
        CartLine("mug", "Mug", 1000, quantity=2),
        CartLine("gift", "Gift card", 500, points_eligible=False),
    ]


class TestCreateQuote:

    def test_discount_spread_over_eligible_lines(self, checkout, funded, cart):
        quote = checkout.create_quote("alice", cart, 2000)

        assert quote.subtotal_cents == 5500
        assert quote.discount_cents == 2000
        assert quote.total_cents == 3500
        assert [line.discount_cents for line in quote.lines] == [1200, 800, 0]
        assert [line.total_cents for line in quote.lines] == [1800, 1200, 500]
        assert quote.lines[1].subtotal_cents == 2000
        assert sum(line.total_cents for line in quote.lines) == quote.total_cents

    def test_metadata_carries_applied_discount(self, checkout, funded, cart):
        quote = checkout.create_quote("alice", cart, 2000)

        assert quote.metadata == {
            "userId": "alice",
            "creditUsedCents": "2000",
            "creditDiscount": "20.00",
        }

    def test_item_caps_limit_discount(self, checkout, funded, cart):
        quote = checkout.create_quote("alice", cart, 3000)

        assert quote.discount_cents == 2500
        assert quote.discount.capped_by_item_limit
        assert quote.metadata["creditUsedCents"] == "2500"

    def test_zero_credit(self, checkout, funded, cart):
        quote = checkout.create_quote("alice", cart, 0)

        assert quote.discount_cents == 0
        assert quote.total_cents == 5500
        assert quote.metadata["creditDiscount"] == "0.00"

    def test_more_than_balance(self, checkout, funded, cart):
        with pytest.raises(InsufficientCreditError) as exc_info:
            checkout.create_quote("alice", cart, 6000)

        assert exc_info.value.available_cents == 5000

    def test_negative_request(self, checkout, funded, cart):
        with pytest.raises(InvalidCreditAmountError):
            checkout.create_quote("alice", cart, -1)

    def test_stored_settings_apply(self, session, ledger, funded, cart, default_settings):
        settings_service = SettingsService(session, default_settings)
        settings_service.update_settings(
            type(default_settings)(
                per_item_discount_cap_percent=100,
                per_order_discount_cap_cents=1000,
                monthly_earning_cap_cents=5000,
            ),
            updated_by="admin",
        )

        quote = CheckoutService(session, settings_service, ledger).create_quote("alice", cart, 2000)

        assert quote.discount_cents == 1000
        assert quote.discount.capped_by_order_limit


class TestSettlement:

    def test_settles_once(self, checkout, ledger, funded, cart):
        metadata = checkout.create_quote("alice", cart, 2000).metadata

        first = checkout.settle_completed_session("cs_123", metadata, "order-9")
        second = checkout.settle_completed_session("cs_123", metadata, "order-9")

        assert first.amount_cents == -2000
        assert first.external_reference == "checkout:cs_123"
        assert second.transaction_id == first.transaction_id
        assert ledger.get_balance("alice").available_credit_cents == 3000

    def test_no_credit_used(self, checkout, ledger, funded):
        result = checkout.settle_completed_session(
            "cs_1", encode_session_metadata("alice", 0), "order-1",
        )

        assert result is None
        assert ledger.get_balance("alice").available_credit_cents == 5000

    def test_balance_spent_elsewhere_still_debits(self, checkout, ledger, funded):
        ledger.debit_for_order("alice", 4500, "order-0", "checkout:cs_0")

        txn = checkout.settle_completed_session(
            "cs_1", encode_session_metadata("alice", 1000), "order-1",
        )

        assert txn.amount_cents == -1000
        assert sum(t.amount_cents for t in ledger.get_transactions("alice")) == -500
        assert ledger.get_balance("alice").available_credit_cents == 0

    def test_two_quotes_on_the_same_credit_are_both_debited(
        self, checkout, ledger, cart, captured_logs,
    ):
        ledger.record_transaction(
            "alice", 1000, "Opening balance", TransactionCategory.ADMIN_ADJUSTMENT,
        )
        first_quote = checkout.create_quote("alice", cart, 1000)
        second_quote = checkout.create_quote("alice", cart, 1000)

        checkout.settle_completed_session("cs_1", first_quote.metadata, "order-1")
        checkout.settle_completed_session("cs_2", second_quote.metadata, "order-2")

        debits = [
            t.amount_cents for t in ledger.get_transactions("alice")
            if t.category == TransactionCategory.PURCHASE
        ]
        assert debits == [-1000, -1000]
        assert sum(t.amount_cents for t in ledger.get_transactions("alice")) == -1000
        assert ledger.get_balance("alice").available_credit_cents == 0
        overdrafts = [r for r in captured_logs() if r["message"] == "order_debit_overdraft"]
        assert overdrafts[0]["shortfall_cents"] == 1000

    def test_overdrawn_user_cannot_quote_more_credit(self, checkout, ledger, cart):
        ledger.record_transaction(
            "alice", 500, "Opening balance", TransactionCategory.ADMIN_ADJUSTMENT,
        )
        checkout.settle_completed_session(
            "cs_1", encode_session_metadata("alice", 800), "order-1",
        )

        with pytest.raises(InsufficientCreditError):
            checkout.create_quote("alice", cart, 100)

    def test_settlement_logs_session(self, checkout, funded, captured_logs):
        checkout.settle_completed_session(
            "cs_7", encode_session_metadata("alice", 100), "order-7",
        )

        settled = [r for r in captured_logs() if r["message"] == "checkout_settled"]
        assert settled[0]["session_id"] == "cs_7"
        assert settled[0]["user_id"] == "alice"


class TestSessionMetadata:

    def test_encode(self):
        assert encode_session_metadata("bob", 1050) == {
            "userId": "bob",
            "creditUsedCents": "1050",
            "creditDiscount": "10.50",
        }

    def test_decode(self):
        assert decode_session_metadata("cs", {"userId": "bob", "creditUsedCents": "1050"}) == ("bob", 1050)

    def test_missing_credit_means_none_used(self):
        assert decode_session_metadata("cs", {"userId": "bob"}) == ("bob", 0)

    @pytest.mark.parametrize("metadata, field_name", [
        ({}, "userId"),
        ({"userId": ""}, "userId"),
        ({"userId": "bob", "creditUsedCents": "ten"}, "creditUsedCents"),
        ({"userId": "bob", "creditUsedCents": "10.5"}, "creditUsedCents"),
        ({"userId": "bob", "creditUsedCents": "-5"}, "creditUsedCents"),
    ])
    def test_malformed(self, metadata, field_name):
        with pytest.raises(InvalidSessionMetadataError) as exc_info:
            decode_session_metadata("cs_bad", metadata)

        assert exc_info.value.field_name == field_name
        assert exc_info.value.session_id == "cs_bad"
