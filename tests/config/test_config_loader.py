"""
Tests for credit_config: loading the packaged defaults, merging overrides,
validation and the audit trace.
"""

import pytest

from credit_config import default_settings_from_config, get_active_config
from credit_config.loader import compute_checksum, merge_config
from credit_kernel.exceptions import InvalidConfigError


class TestDefaults:

    def test_packaged_defaults(self):
        config = get_active_config()

        assert config.config_id == "store-credit-default"
        assert config.conversion_rate == 200
        assert config.settings.per_item_discount_cap_percent == 50
        assert config.settings.per_order_discount_cap_cents == 3000
        assert config.settings.monthly_earning_cap_cents == 5000
        assert config.migration.batch_size == 50
        assert config.migration.start_delay_seconds == 5
        assert config.source.endswith("defaults.yaml")

    def test_bridge_to_kernel_settings(self):
        settings = default_settings_from_config(get_active_config())

        assert settings.per_order_discount_cap_cents == 3000
        assert settings.earning_values["volunteer_work"] == 250

    def test_checksum_is_stable(self):
        assert get_active_config().checksum == get_active_config().checksum

    def test_emits_config_trace(self, captured_logs):
        config = get_active_config()

        traces = [r for r in captured_logs() if r["message"] == "STORE_CREDIT_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["checksum"] == config.checksum
        assert traces[0]["conversion_rate"] == 200


class TestOverrides:

    def test_override_merges_over_defaults(self, tmp_path):
        override = tmp_path / "override.yaml"
        override.write_text(
            "settings:\n"
            "  per_order_discount_cap_cents: 2000\n"
            "migration:\n"
            "  batch_size: 10\n"
        )

        config = get_active_config(override)

        assert config.settings.per_order_discount_cap_cents == 2000
        assert config.settings.per_item_discount_cap_percent == 50
        assert config.settings.earning_values["event_hosting"] == 500
        assert config.migration.batch_size == 10
        assert config.source == str(override)
        assert config.checksum != get_active_config().checksum

    def test_missing_override_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")

    def test_malformed_yaml(self, tmp_path):
        override = tmp_path / "broken.yaml"
        override.write_text("settings: [unclosed\n")

        with pytest.raises(InvalidConfigError):
            get_active_config(override)

    def test_non_mapping_document(self, tmp_path):
        override = tmp_path / "list.yaml"
        override.write_text("- 1\n- 2\n")

        with pytest.raises(InvalidConfigError, match="mapping"):
            get_active_config(override)


class TestValidation:

    def test_reports_every_problem(self, tmp_path):
        override = tmp_path / "bad.yaml"
        override.write_text(
            "conversion:\n"
            "  rate: 0\n"
            "settings:\n"
            "  per_item_discount_cap_percent: 150\n"
            "  monthly_earning_cap_cents: -1\n"
            "migration:\n"
            "  batch_size: 0\n"
            "  start_delay_seconds: -2\n"
        )

        with pytest.raises(InvalidConfigError) as exc_info:
            get_active_config(override)

        errors = exc_info.value.errors
        assert exc_info.value.code == "INVALID_CONFIG"
        assert len(errors) == 5
        assert any("conversion.rate" in e for e in errors)
        assert any("per_item_discount_cap_percent" in e for e in errors)
        assert any("monthly_earning_cap_cents" in e for e in errors)
        assert any("batch_size" in e for e in errors)
        assert any("start_delay_seconds" in e for e in errors)

    def test_contribution_range(self, tmp_path):
        override = tmp_path / "range.yaml"
        override.write_text(
            "settings:\n"
            "  earning_values:\n"
            "    contribution_min: 200\n"
            "    contribution_max: 100\n"
        )

        with pytest.raises(InvalidConfigError, match="contribution_min"):
            get_active_config(override)

    def test_missing_required_key(self, tmp_path):
        override = tmp_path / "missing.yaml"
        override.write_text("conversion: null\n")

        with pytest.raises(InvalidConfigError, match="missing or malformed"):
            get_active_config(override)


class TestMergeConfig:

    def test_nested_merge_does_not_mutate_base(self):
        base = {"a": {"b": 1, "c": 2}, "d": 3}

        merged = merge_config(base, {"a": {"b": 10}})

        assert merged == {"a": {"b": 10, "c": 2}, "d": 3}
        assert base == {"a": {"b": 1, "c": 2}, "d": 3}

    def test_checksum_ignores_key_order(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})
