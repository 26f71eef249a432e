"""
Configuration Loader (``credit_config.loader``).

Responsibility
--------------
Reads the packaged ``defaults.yaml`` and an optional override file, merges
them, and parses the result into ``credit_config.schema`` dataclasses.
Callers use ``credit_config.get_active_config()``; this module is the
plumbing behind it.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from credit_config.schema import CreditEngineConfig, MigrationOptions, SettingsDef

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def merge_config(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``overrides`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def parse_settings(data: dict[str, Any]) -> SettingsDef:
    return SettingsDef(
        per_item_discount_cap_percent=data["per_item_discount_cap_percent"],
        per_order_discount_cap_cents=data["per_order_discount_cap_cents"],
        monthly_earning_cap_cents=data["monthly_earning_cap_cents"],
        earning_values=dict(data.get("earning_values") or {}),
    )


def parse_migration(data: dict[str, Any]) -> MigrationOptions:
    defaults = MigrationOptions()
    return MigrationOptions(
        batch_size=data.get("batch_size", defaults.batch_size),
        start_delay_seconds=data.get("start_delay_seconds", defaults.start_delay_seconds),
        report_dir=str(data.get("report_dir", defaults.report_dir)),
    )


def parse_engine_config(data: dict[str, Any], source: str = "") -> CreditEngineConfig:
    """
    Parse a merged configuration document.

    Raises:
        KeyError: if a required section or key is missing.
    """
    return CreditEngineConfig(
        config_id=data["config_id"],
        version=data.get("version", 1),
        conversion_rate=data["conversion"]["rate"],
        settings=parse_settings(data["settings"]),
        migration=parse_migration(data.get("migration") or {}),
        checksum=compute_checksum(data),
        source=source,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization; identical data, identical checksum."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
