"""
Module: credit_kernel.models.credit
Responsibility: ORM persistence for store-credit ledger entries and the
    singleton store-credit settings record.
Architecture position: Kernel > Models.  May import from db/base.py and
    credit_kernel.domain (for DTO conversion).

Invariants enforced:
    - external_reference is unique: idempotency key for webhook settlements
      ("checkout:<session_id>") and migration audit entries
      ("migration:<user_id>").
    - settings_key is unique; the active record is "default".
    - Amounts are integer cents; negative amounts are spends.

Failure modes:
    - IntegrityError on a duplicate external_reference or settings_key.
"""

from typing import Any

from sqlalchemy import JSON, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from credit_kernel.db.base import TrackedBase
from credit_kernel.domain.types import (
    ApprovalStatus,
    CreditTransaction,
    StoreCreditSettings,
    TransactionCategory,
)

DEFAULT_SETTINGS_KEY = "default"


class StoreCreditTransactionModel(TrackedBase):
    """
    One entry in a user's store-credit ledger.

    Only APPROVED entries count toward the balance.
    """

    __tablename__ = "store_credit_transactions"

    __table_args__ = (
        UniqueConstraint("external_reference", name="uq_credit_txn_external_ref"),
        Index("idx_credit_txn_user", "user_id"),
        Index("idx_credit_txn_user_status", "user_id", "approval_status"),
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False)

    amount_cents: Mapped[int] = mapped_column(nullable=False)

    reason: Mapped[str] = mapped_column(String(500), nullable=False)

    category: Mapped[TransactionCategory] = mapped_column(String(50), nullable=False)

    approval_status: Mapped[ApprovalStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ApprovalStatus.APPROVED,
    )

    order_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    external_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Set when a promotional multiplier changed the amount
    base_amount_cents: Mapped[int | None] = mapped_column(nullable=True)
    multiplier_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    actor_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    def to_dto(self) -> CreditTransaction:
        return CreditTransaction(
            transaction_id=str(self.id),
            user_id=self.user_id,
            amount_cents=self.amount_cents,
            reason=self.reason,
            category=TransactionCategory(self.category),
            approval_status=ApprovalStatus(self.approval_status),
            order_id=self.order_id,
            external_reference=self.external_reference,
        )

    def __repr__(self) -> str:
        return f"<StoreCreditTransaction {self.user_id} {self.amount_cents}c {self.category}>"


class StoreCreditSettingsModel(TrackedBase):
    """Admin-editable caps and earning values."""

    __tablename__ = "store_credit_settings"

    __table_args__ = (
        UniqueConstraint("settings_key", name="uq_store_credit_settings_key"),
    )

    settings_key: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=DEFAULT_SETTINGS_KEY,
    )

    per_item_discount_cap_percent: Mapped[int] = mapped_column(nullable=False)
    per_order_discount_cap_cents: Mapped[int] = mapped_column(nullable=False)
    monthly_earning_cap_cents: Mapped[int] = mapped_column(nullable=False)

    earning_values: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    updated_by: Mapped[str | None] = mapped_column(String(128), nullable=True)

    def to_dto(self) -> StoreCreditSettings:
        """
        Raises:
            InvalidSettingsError: If the stored row violates a settings invariant.
        """
        return StoreCreditSettings(
            per_item_discount_cap_percent=self.per_item_discount_cap_percent,
            per_order_discount_cap_cents=self.per_order_discount_cap_cents,
            monthly_earning_cap_cents=self.monthly_earning_cap_cents,
            earning_values=dict(self.earning_values or {}),
        )

    def apply(self, settings: StoreCreditSettings) -> None:
        self.per_item_discount_cap_percent = settings.per_item_discount_cap_percent
        self.per_order_discount_cap_cents = settings.per_order_discount_cap_cents
        self.monthly_earning_cap_cents = settings.monthly_earning_cap_cents
        self.earning_values = dict(settings.earning_values)

    def __repr__(self) -> str:
        return f"<StoreCreditSettings {self.settings_key}>"
