"""
Module: credit_kernel.models.user
Responsibility: ORM persistence for a community member's credit-related
    fields: legacy points counters, store-credit counters in cents, monthly
    earning tracking and the migration audit copies.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - user_id (the platform's external identifier) is unique.
    - Store-credit counters are integer cents and default to zero.
    - Legacy counters are nullable: older records never had them.
"""

from datetime import datetime

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from credit_kernel.db.base import TrackedBase


class UserAccountModel(TrackedBase):
    """
    A platform user as far as store credit is concerned.

    Non-goals:
        - Authentication or profile data beyond email.
    """

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_users_user_id"),
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Legacy points system; ``points`` predates ``points_balance``
    points: Mapped[int | None] = mapped_column(nullable=True)
    points_balance: Mapped[int | None] = mapped_column(nullable=True)
    points_earned: Mapped[int | None] = mapped_column(nullable=True)
    points_spent: Mapped[int | None] = mapped_column(nullable=True)

    # Store credit, cents
    store_credit_balance: Mapped[int] = mapped_column(nullable=False, default=0)
    store_credit_earned: Mapped[int] = mapped_column(nullable=False, default=0)
    store_credit_spent: Mapped[int] = mapped_column(nullable=False, default=0)

    monthly_store_credit_earned: Mapped[int] = mapped_column(nullable=False, default=0)
    last_store_credit_monthly_reset: Mapped[datetime | None] = mapped_column(nullable=True)

    # Copies of the legacy counters taken at migration time
    points_balance_legacy: Mapped[int | None] = mapped_column(nullable=True)
    points_earned_legacy: Mapped[int | None] = mapped_column(nullable=True)
    points_spent_legacy: Mapped[int | None] = mapped_column(nullable=True)

    migrated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Self-service conversion, allowed once per user
    points_converted: Mapped[bool] = mapped_column(nullable=False, default=False)
    points_converted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def is_migrated(self) -> bool:
        return self.migrated_at is not None

    def __repr__(self) -> str:
        return f"<UserAccount {self.user_id}: {self.store_credit_balance}c>"
