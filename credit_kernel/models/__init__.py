"""ORM models for the store-credit kernel."""

from credit_kernel.models.credit import (
    DEFAULT_SETTINGS_KEY,
    StoreCreditSettingsModel,
    StoreCreditTransactionModel,
)
from credit_kernel.models.user import UserAccountModel

__all__ = [
    "DEFAULT_SETTINGS_KEY",
    "StoreCreditSettingsModel",
    "StoreCreditTransactionModel",
    "UserAccountModel",
]
