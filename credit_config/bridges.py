"""
Bridges from configuration dataclasses to kernel domain objects.

The kernel never imports ``credit_config``; services receive the kernel
types built here.
"""

from __future__ import annotations

from credit_config.schema import CreditEngineConfig
from credit_kernel.domain.types import StoreCreditSettings


def default_settings_from_config(config: CreditEngineConfig) -> StoreCreditSettings:
    """
    Raises:
        InvalidSettingsError: If the configured defaults break a settings invariant.
    """
    return StoreCreditSettings(
        per_item_discount_cap_percent=config.settings.per_item_discount_cap_percent,
        per_order_discount_cap_cents=config.settings.per_order_discount_cap_cents,
        monthly_earning_cap_cents=config.settings.monthly_earning_cap_cents,
        earning_values=dict(config.settings.earning_values),
    )
