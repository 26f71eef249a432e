"""Kernel services: flush-only units of work over a caller-owned session."""

from credit_kernel.services.checkout_service import (
    CartLine,
    CheckoutLine,
    CheckoutQuote,
    CheckoutService,
    decode_session_metadata,
    encode_session_metadata,
)
from credit_kernel.services.ledger_service import LedgerService, PointsConversion
from credit_kernel.services.settings_service import SettingsService
from credit_kernel.services.user_store import (
    LegacyUserRecord,
    MigrationUpdate,
    SqlUserStore,
    UserStore,
)

__all__ = [
    "CartLine",
    "CheckoutLine",
    "CheckoutQuote",
    "CheckoutService",
    "LedgerService",
    "LegacyUserRecord",
    "MigrationUpdate",
    "PointsConversion",
    "SettingsService",
    "SqlUserStore",
    "UserStore",
    "decode_session_metadata",
    "encode_session_metadata",
]
