"""
CheckoutService -- store credit at the checkout boundary.

Responsibility:
    Build a priced checkout quote with the store-credit discount applied
    line by line, encode the payment-session metadata that carries the
    credit through the payment provider, and settle a completed session by
    debiting the credit exactly once.

Architecture position:
    Kernel > Services.  Sits between the web handlers (not part of this
    package) and the discount engine / ledger.

Invariants enforced:
    - Quote totals: sum(line totals) == subtotal - discount, no line below 0.
    - Session metadata values are strings: userId, creditUsedCents,
      creditDiscount (dollars, two decimals).
    - Settlement is idempotent per session id
      (external_reference "checkout:<session_id>").

Failure modes:
    - InsufficientCreditError when the requested credit exceeds the balance
      at quote time.  Settlement never refuses a paid session.
    - InvalidCreditAmountError when the requested credit is negative.
    - InvalidSessionMetadataError on missing or unparseable metadata.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from credit_engines.discount import (
    INSUFFICIENT_CREDIT,
    apply_store_credit_to_order,
    calculate_store_credit_discount,
)
from credit_kernel.domain.types import CreditTransaction, DiscountResult, OrderItem
from credit_kernel.domain.values import cents_to_dollars
from credit_kernel.exceptions import (
    InsufficientCreditError,
    InvalidCreditAmountError,
    InvalidSessionMetadataError,
)
from credit_kernel.logging_config import LogContext, get_logger
from credit_kernel.services.ledger_service import LedgerService
from credit_kernel.services.settings_service import SettingsService

logger = get_logger("services.checkout")

METADATA_USER_ID = "userId"
METADATA_CREDIT_USED = "creditUsedCents"
METADATA_CREDIT_DISCOUNT = "creditDiscount"


@dataclass(frozen=True)
class CartLine:
    """A product line as submitted by the storefront."""

    product_id: str
    name: str
    price_cents: int
    quantity: int = 1
    points_eligible: bool = True

    def to_order_item(self) -> OrderItem:
        return OrderItem(
            price_cents=self.price_cents,
            quantity=self.quantity,
            points_eligible=self.points_eligible,
        )


@dataclass(frozen=True)
class CheckoutLine:
    product_id: str
    name: str
    quantity: int
    unit_price_cents: int
    subtotal_cents: int
    discount_cents: int
    total_cents: int


@dataclass(frozen=True)
class CheckoutQuote:
    user_id: str
    lines: tuple[CheckoutLine, ...]
    subtotal_cents: int
    discount_cents: int
    total_cents: int
    discount: DiscountResult
    metadata: dict[str, str] = field(default_factory=dict)


def encode_session_metadata(user_id: str, credit_used_cents: int) -> dict[str, str]:
    return {
        METADATA_USER_ID: user_id,
        METADATA_CREDIT_USED: str(credit_used_cents),
        METADATA_CREDIT_DISCOUNT: str(cents_to_dollars(credit_used_cents)),
    }


def decode_session_metadata(session_id: str, metadata: Mapping[str, str]) -> tuple[str, int]:
    """
    Extract (user_id, credit_used_cents) from payment-session metadata.

    A missing credit field means no credit was used.

    Raises:
        InvalidSessionMetadataError: On a missing user id or a credit value
            that is not a non-negative integer.
    """
    user_id = metadata.get(METADATA_USER_ID)
    if not user_id:
        raise InvalidSessionMetadataError(session_id, METADATA_USER_ID, user_id)

    raw = metadata.get(METADATA_CREDIT_USED) or "0"
    try:
        credit_used = int(raw)
    except (TypeError, ValueError):
        raise InvalidSessionMetadataError(session_id, METADATA_CREDIT_USED, raw) from None
    if credit_used < 0:
        raise InvalidSessionMetadataError(session_id, METADATA_CREDIT_USED, raw)

    return user_id, credit_used


class CheckoutService:
    """
    Args:
        session: Caller-owned session.
        settings_service: Source of the active caps.
        ledger: Ledger on the same session; created if omitted.
    """

    def __init__(
        self,
        session: Session,
        settings_service: SettingsService,
        ledger: LedgerService | None = None,
    ):
        self.session = session
        self.settings_service = settings_service
        self.ledger = ledger or LedgerService(session)

    def create_quote(
        self,
        user_id: str,
        items: Sequence[CartLine],
        credit_to_use_cents: int,
    ) -> CheckoutQuote:
        """
        Price a cart with the user's requested store credit applied.

        Raises:
            InsufficientCreditError: If the user asks for more than they hold.
            InvalidCreditAmountError: If the request is negative.
        """
        settings = self.settings_service.get_settings()
        available = self.ledger.get_balance(user_id).available_credit_cents
        order_items = [line.to_order_item() for line in items]

        result = calculate_store_credit_discount(
            order_items, credit_to_use_cents, available, settings,
        )
        if not result.is_valid:
            if result.error_code == INSUFFICIENT_CREDIT:
                raise InsufficientCreditError(user_id, credit_to_use_cents, available)
            raise InvalidCreditAmountError("credit_to_use_cents", credit_to_use_cents)

        lines = []
        for index, (line, item) in enumerate(zip(items, order_items)):
            discount = result.discount_for(index)
            lines.append(CheckoutLine(
                product_id=line.product_id,
                name=line.name,
                quantity=line.quantity,
                unit_price_cents=line.price_cents,
                subtotal_cents=item.subtotal_cents,
                discount_cents=discount,
                total_cents=item.subtotal_cents - discount,
            ))

        subtotal = sum(item.subtotal_cents for item in order_items)
        quote = CheckoutQuote(
            user_id=user_id,
            lines=tuple(lines),
            subtotal_cents=subtotal,
            discount_cents=result.discount_cents,
            total_cents=apply_store_credit_to_order(subtotal, result.discount_cents),
            discount=result,
            metadata=encode_session_metadata(user_id, result.discount_cents),
        )

        logger.info("checkout_quote_created", extra={
            "line_count": len(lines),
            "subtotal_cents": subtotal,
            "credit_requested_cents": credit_to_use_cents,
            "discount_cents": result.discount_cents,
            "total_cents": quote.total_cents,
        })
        return quote

    def settle_completed_session(
        self,
        session_id: str,
        metadata: Mapping[str, str],
        order_id: str,
    ) -> CreditTransaction | None:
        """
        Debit the credit recorded on a completed payment session.

        The payment was already discounted, so the debit is recorded even if
        the balance has since dropped below it (e.g. two checkouts opened
        against the same credit); the ledger then goes negative.

        Returns:
            The purchase ledger entry, or None when no credit was used.

        Raises:
            InvalidSessionMetadataError: On malformed metadata.
        """
        user_id, credit_used = decode_session_metadata(session_id, metadata)

        with LogContext.bind(session_id=session_id, user_id=user_id):
            if credit_used == 0:
                logger.info("checkout_settled_without_credit", extra={"order_id": order_id})
                return None

            transaction = self.ledger.debit_for_order(
                user_id=user_id,
                amount_cents=credit_used,
                order_id=order_id,
                external_reference=f"checkout:{session_id}",
                allow_overdraft=True,
            )
            logger.info("checkout_settled", extra={
                "order_id": order_id,
                "credit_used_cents": credit_used,
                "transaction_id": transaction.transaction_id,
            })
            return transaction
