"""
Configuration Validator (``credit_config.validator``).

Checks every value of a parsed ``CreditEngineConfig`` and reports all
problems at once, so an operator fixes a bad file in one pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from credit_config.schema import CreditEngineConfig


@dataclass
class ConfigValidationResult:
    """``is_valid`` is True only when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_engine_config(config: CreditEngineConfig) -> ConfigValidationResult:
    result = ConfigValidationResult()

    _validate_conversion(config, result)
    _validate_settings(config, result)
    _validate_migration(config, result)

    return result


def _validate_conversion(config: CreditEngineConfig, result: ConfigValidationResult) -> None:
    if not _is_int(config.conversion_rate) or config.conversion_rate <= 0:
        result.add_error(
            f"conversion.rate must be a positive integer, got {config.conversion_rate!r}"
        )


def _validate_settings(config: CreditEngineConfig, result: ConfigValidationResult) -> None:
    settings = config.settings
    percent = settings.per_item_discount_cap_percent
    if not _is_int(percent) or not 0 <= percent <= 100:
        result.add_error(
            f"settings.per_item_discount_cap_percent must be an integer in 0..100, got {percent!r}"
        )
    for name in ("per_order_discount_cap_cents", "monthly_earning_cap_cents"):
        value = getattr(settings, name)
        if not _is_int(value) or value < 0:
            result.add_error(f"settings.{name} must be a non-negative integer, got {value!r}")

    for activity, cents in settings.earning_values.items():
        if not _is_int(cents) or cents < 0:
            result.add_error(
                f"settings.earning_values.{activity} must be a non-negative integer, got {cents!r}"
            )

    low = settings.earning_values.get("contribution_min")
    high = settings.earning_values.get("contribution_max")
    if _is_int(low) and _is_int(high) and low > high:
        result.add_error(
            f"settings.earning_values.contribution_min ({low}) exceeds contribution_max ({high})"
        )


def _validate_migration(config: CreditEngineConfig, result: ConfigValidationResult) -> None:
    options = config.migration
    if not _is_int(options.batch_size) or options.batch_size < 1:
        result.add_error(f"migration.batch_size must be an integer >= 1, got {options.batch_size!r}")
    delay = options.start_delay_seconds
    if isinstance(delay, bool) or not isinstance(delay, (int, float)) or delay < 0:
        result.add_error(f"migration.start_delay_seconds must be >= 0, got {delay!r}")
