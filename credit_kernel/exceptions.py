"""
Typed Exception Hierarchy for the Store-Credit Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Checkout and migration callers must tell a user-facing validation problem
apart from a broken configuration or an unreachable store. Matching on
message text is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Business-rule outcomes of the discount engine (e.g. a user asking for more
credit than they hold) are NOT exceptions: they come back as an invalid
``DiscountResult``. The classes below are for conditions the caller should
treat as a failed request (5xx-equivalent) or a fatal batch error.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StoreCreditError (base)
    |
    +-- SettingsError
    |   +-- InvalidSettingsError
    |   +-- SettingsNotFoundError
    |
    +-- OrderError
    |   +-- InvalidOrderItemError
    |   +-- InvalidCreditAmountError
    |
    +-- ConversionError
    |   +-- InvalidPointsError
    |   +-- InvalidConversionRateError
    |   +-- PointsAlreadyConvertedError
    |   +-- NoPointsToConvertError
    |
    +-- LedgerError
    |   +-- InsufficientCreditError
    |   +-- InvalidTransactionError
    |   +-- UserNotFoundError
    |
    +-- CheckoutError
    |   +-- InvalidSessionMetadataError
    |
    +-- MigrationError
    |   +-- MigrationFatalError
    |       +-- UserCollectionUnavailableError
    |
    +-- ConfigError
        +-- InvalidConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                          | When Raised
------------|-------------------------------|-----------------------------------
Settings    | INVALID_SETTINGS              | Cap outside its allowed range
            | SETTINGS_NOT_FOUND            | No stored settings record
------------|-------------------------------|-----------------------------------
Order       | INVALID_ORDER_ITEM            | Negative price / quantity < 1
            | INVALID_CREDIT_AMOUNT         | Negative available balance
------------|-------------------------------|-----------------------------------
Conversion  | INVALID_POINTS                | Negative legacy points value
            | INVALID_CONVERSION_RATE       | Rate is zero or negative
            | POINTS_ALREADY_CONVERTED      | Self-service conversion repeated
            | NO_POINTS_TO_CONVERT          | Conversion with a zero balance
------------|-------------------------------|-----------------------------------
Ledger      | INSUFFICIENT_CREDIT           | Debit larger than the balance
            | INVALID_TRANSACTION           | Transaction fails earning rules
            | USER_NOT_FOUND                | Unknown user id
------------|-------------------------------|-----------------------------------
Checkout    | INVALID_SESSION_METADATA      | Payment metadata unparseable
------------|-------------------------------|-----------------------------------
Migration   | MIGRATION_FATAL               | Run cannot start or continue
            | USER_COLLECTION_UNAVAILABLE   | Users cannot be enumerated
------------|-------------------------------|-----------------------------------
Config      | INVALID_CONFIG                | Config file fails validation

===============================================================================
"""


class StoreCreditError(Exception):
    """
    Base exception for all store-credit errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "STORE_CREDIT_ERROR"


# Settings


class SettingsError(StoreCreditError):
    """Base exception for settings errors."""

    code: str = "SETTINGS_ERROR"


class InvalidSettingsError(SettingsError):
    """A settings field is outside its allowed range."""

    code: str = "INVALID_SETTINGS"

    def __init__(self, field_name: str, value: object, reason: str):
        self.field_name = field_name
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid settings field {field_name}={value!r}: {reason}")


class SettingsNotFoundError(SettingsError):
    """No settings record exists under the given key."""

    code: str = "SETTINGS_NOT_FOUND"

    def __init__(self, settings_key: str):
        self.settings_key = settings_key
        super().__init__(f"Store credit settings not found: {settings_key}")


# Order inputs


class OrderError(StoreCreditError):
    """Base exception for malformed order inputs."""

    code: str = "ORDER_ERROR"


class InvalidOrderItemError(OrderError):
    """An order line item has an impossible price or quantity."""

    code: str = "INVALID_ORDER_ITEM"

    def __init__(self, field_name: str, value: object):
        self.field_name = field_name
        self.value = value
        super().__init__(f"Invalid order item {field_name}: {value!r}")


class InvalidCreditAmountError(OrderError):
    """A credit amount supplied by the caller is structurally invalid."""

    code: str = "INVALID_CREDIT_AMOUNT"

    def __init__(self, field_name: str, value: int):
        self.field_name = field_name
        self.value = value
        super().__init__(f"Invalid credit amount {field_name}: {value}")


# Conversion


class ConversionError(StoreCreditError):
    """Base exception for points conversion errors."""

    code: str = "CONVERSION_ERROR"


class InvalidPointsError(ConversionError):
    """Legacy points values must be non-negative integers."""

    code: str = "INVALID_POINTS"

    def __init__(self, points: object):
        self.points = points
        super().__init__(f"Invalid legacy points value: {points!r}")


class InvalidConversionRateError(ConversionError):
    """Conversion rate must be a positive integer."""

    code: str = "INVALID_CONVERSION_RATE"

    def __init__(self, rate: object):
        self.rate = rate
        super().__init__(f"Invalid points conversion rate: {rate!r}")


class PointsAlreadyConvertedError(ConversionError):
    """A user may convert their legacy points only once."""

    code: str = "POINTS_ALREADY_CONVERTED"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Legacy points already converted for user {user_id}")


class NoPointsToConvertError(ConversionError):
    """The user has no legacy points balance to convert."""

    code: str = "NO_POINTS_TO_CONVERT"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"No legacy points to convert for user {user_id}")


# Ledger


class LedgerError(StoreCreditError):
    """Base exception for store-credit ledger errors."""

    code: str = "LEDGER_ERROR"


class InsufficientCreditError(LedgerError):
    """A debit would take the user's balance below zero."""

    code: str = "INSUFFICIENT_CREDIT"

    def __init__(self, user_id: str, requested_cents: int, available_cents: int):
        self.user_id = user_id
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        super().__init__(
            f"Insufficient store credit for user {user_id}: "
            f"requested {requested_cents}, available {available_cents}"
        )


class InvalidTransactionError(LedgerError):
    """A credit transaction was rejected by the earning rules."""

    code: str = "INVALID_TRANSACTION"

    def __init__(self, user_id: str, reason_code: str, message: str):
        self.user_id = user_id
        self.reason_code = reason_code
        super().__init__(f"Transaction rejected for user {user_id}: {message}")


class UserNotFoundError(LedgerError):
    """No user record exists with the given id."""

    code: str = "USER_NOT_FOUND"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


# Checkout


class CheckoutError(StoreCreditError):
    """Base exception for checkout collaborator errors."""

    code: str = "CHECKOUT_ERROR"


class InvalidSessionMetadataError(CheckoutError):
    """Payment session metadata is missing a field or cannot be parsed."""

    code: str = "INVALID_SESSION_METADATA"

    def __init__(self, session_id: str, field_name: str, value: object):
        self.session_id = session_id
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"Invalid metadata field {field_name}={value!r} on session {session_id}"
        )


# Migration


class MigrationError(StoreCreditError):
    """Base exception for the points migration."""

    code: str = "MIGRATION_ERROR"


class MigrationFatalError(MigrationError):
    """The migration run cannot start or continue."""

    code: str = "MIGRATION_FATAL"

    def __init__(self, message: str):
        super().__init__(message)


class UserCollectionUnavailableError(MigrationFatalError):
    """The user collection could not be read."""

    code: str = "USER_COLLECTION_UNAVAILABLE"

    def __init__(self, cause: str):
        self.cause = cause
        super().__init__(f"Cannot enumerate users: {cause}")


# Configuration


class ConfigError(StoreCreditError):
    """Base exception for configuration errors."""

    code: str = "CONFIG_ERROR"


class InvalidConfigError(ConfigError):
    """Configuration failed validation."""

    code: str = "INVALID_CONFIG"

    def __init__(self, source: str, errors: list[str]):
        self.source = source
        self.errors = errors
        super().__init__(
            f"Invalid store credit configuration {source}: " + "; ".join(errors)
        )
