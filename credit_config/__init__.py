"""
credit_config -- single public entrypoint for store-credit configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains the
    conversion rate, the default store-credit settings and the migration
    options.  The packaged ``defaults.yaml`` is always loaded; an optional
    override file is merged over it.

Architecture position:
    Configuration -- sits above ``credit_kernel`` and ``credit_engines``
    and below ``credit_batch``.  The kernel MUST NEVER import from
    ``credit_config``; ``credit_config.bridges`` translates configuration
    into kernel domain objects.

Invariants enforced:
    - Every value is validated before a config object is returned.
    - Deterministic: the same files always produce the same checksum.

Failure modes:
    - ``InvalidConfigError`` listing every problem found (missing keys,
      wrong types, out-of-range values, unreadable YAML).
    - ``FileNotFoundError`` when the override path does not exist.

Audit relevance:
    Every successful call emits a ``STORE_CREDIT_CONFIG_TRACE`` log entry
    with the config id, version, checksum and source, tying a migration
    run or a checkout quote to the exact configuration that governed it.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from credit_config.bridges import default_settings_from_config
from credit_config.loader import (
    DEFAULTS_PATH,
    load_yaml_file,
    merge_config,
    parse_engine_config,
)
from credit_config.schema import CreditEngineConfig, MigrationOptions, SettingsDef
from credit_config.validator import validate_engine_config
from credit_kernel.exceptions import InvalidConfigError
from credit_kernel.logging_config import get_logger

_logger = get_logger("config")


def get_active_config(path: Path | str | None = None) -> CreditEngineConfig:
    """
    Load, merge, validate and return the active configuration.

    Args:
        path: Optional YAML file whose keys override the packaged defaults.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        InvalidConfigError: If the merged configuration is invalid.
    """
    data = load_yaml_file(DEFAULTS_PATH)
    source = str(DEFAULTS_PATH)

    if path is not None:
        override_path = Path(path)
        try:
            overrides = load_yaml_file(override_path)
        except (yaml.YAMLError, ValueError) as exc:
            raise InvalidConfigError(str(override_path), [str(exc)]) from exc
        data = merge_config(data, overrides)
        source = str(override_path)

    try:
        config = parse_engine_config(data, source=source)
    except (KeyError, TypeError) as exc:
        raise InvalidConfigError(source, [f"missing or malformed key: {exc}"]) from exc

    validation = validate_engine_config(config)
    if not validation.is_valid:
        raise InvalidConfigError(source, validation.errors)

    _logger.info(
        "STORE_CREDIT_CONFIG_TRACE",
        extra={
            "trace_type": "STORE_CREDIT_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": source,
            "conversion_rate": config.conversion_rate,
            "batch_size": config.migration.batch_size,
        },
    )

    return config


__all__ = [
    "CreditEngineConfig",
    "MigrationOptions",
    "SettingsDef",
    "default_settings_from_config",
    "get_active_config",
]
