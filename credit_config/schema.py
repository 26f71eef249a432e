"""
Configuration schema (``credit_config.schema``).

Frozen dataclasses produced by the loader.  No I/O, no kernel imports;
``credit_config.bridges`` turns them into kernel domain objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SettingsDef:
    """Default store-credit caps, as written in YAML."""

    per_item_discount_cap_percent: int
    per_order_discount_cap_cents: int
    monthly_earning_cap_cents: int
    earning_values: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class MigrationOptions:
    """Knobs for the points-to-store-credit batch migration."""

    batch_size: int = 50
    start_delay_seconds: float = 5.0
    report_dir: str = "migration-reports"


@dataclass(frozen=True)
class CreditEngineConfig:
    """
    The complete, validated store-credit configuration.

    ``checksum`` is the SHA-256 of the merged source document and identifies
    exactly which values governed a run.
    """

    config_id: str
    version: int
    conversion_rate: int
    settings: SettingsDef
    migration: MigrationOptions
    checksum: str = ""
    source: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "config_id": self.config_id,
            "version": self.version,
            "conversion": {"rate": self.conversion_rate},
            "settings": {
                "per_item_discount_cap_percent": self.settings.per_item_discount_cap_percent,
                "per_order_discount_cap_cents": self.settings.per_order_discount_cap_cents,
                "monthly_earning_cap_cents": self.settings.monthly_earning_cap_cents,
                "earning_values": dict(self.settings.earning_values),
            },
            "migration": {
                "batch_size": self.migration.batch_size,
                "start_delay_seconds": self.migration.start_delay_seconds,
                "report_dir": self.migration.report_dir,
            },
        }
