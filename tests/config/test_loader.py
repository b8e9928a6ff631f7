"""Tests for ledger_config: YAML loading, schema validation, env overrides."""

from __future__ import annotations

from decimal import Decimal

import pytest
import yaml

from ledger_config import (
    CONFIG_PATH_ENV,
    DATABASE_URL_ENV,
    DEFAULTS_PATH,
    get_active_config,
)
from ledger_config.bridges import build_tax_policy
from ledger_config.loader import load_config, parse_config, parse_decimal
from ledger_config.schema import DatabaseConfig, InvoicingConfig, RetryConfig, TaxConfig
from ledger_kernel.domain.tax import FlatRateTaxPolicy, ZeroTaxPolicy


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch):
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)


def _write(tmp_path, data) -> str:
    path = tmp_path / "ledger.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestPackagedDefaults:

    def test_defaults_file_matches_schema_defaults(self):
        config = load_config(DEFAULTS_PATH)
        assert config.database == DatabaseConfig()
        assert config.invoicing == InvoicingConfig()
        assert config.retry == RetryConfig()
        assert config.log_level == "INFO"

    def test_get_active_config_without_env_uses_defaults(self):
        config = get_active_config()
        assert config.source == str(DEFAULTS_PATH)
        assert config.invoicing.number_prefix == "INV"
        assert config.invoicing.tax.policy == "zero"


class TestYamlLoading:

    def test_partial_file_keeps_schema_defaults(self, tmp_path):
        path = _write(tmp_path, {"invoicing": {"number_prefix": "BIL"}})
        config = get_active_config(path)
        assert config.invoicing.number_prefix == "BIL"
        assert config.invoicing.number_width == 6
        assert config.database.url == "sqlite:///ledger.db"

    def test_config_env_variable_selects_file(self, tmp_path, monkeypatch):
        path = _write(tmp_path, {"log_level": "debug"})
        monkeypatch.setenv(CONFIG_PATH_ENV, path)
        config = get_active_config()
        assert config.source == path
        assert config.log_level == "DEBUG"

    def test_database_url_env_wins(self, tmp_path, monkeypatch):
        path = _write(tmp_path, {"database": {"url": "sqlite:///a.db"}})
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql://u:p@db/ledger")
        config = get_active_config(path)
        assert config.database.url == "postgresql://u:p@db/ledger"

    def test_empty_file_is_all_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        config = load_config(path)
        assert config.invoicing == InvoicingConfig()

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")

    def test_flat_rate_tax_parsed_as_decimal(self, tmp_path):
        path = _write(
            tmp_path, {"invoicing": {"tax": {"policy": "flat_rate", "rate": 0.2}}}
        )
        config = load_config(path)
        assert config.invoicing.tax.rate == Decimal("0.2")

    def test_load_logs_source(self, tmp_path, captured_logs):
        path = _write(tmp_path, {})
        get_active_config(path)
        logs = [r for r in captured_logs() if r["message"] == "ledger_config_loaded"]
        assert logs and logs[0]["source"] == path


class TestValidation:

    def test_unknown_top_level_key_rejected(self):
        with pytest.raises(ValueError, match="Unknown keys in configuration: colour"):
            parse_config({"colour": "blue"})

    def test_unknown_section_key_rejected(self):
        with pytest.raises(ValueError, match="invoicing"):
            parse_config({"invoicing": {"prefix": "X"}})

    def test_unknown_tax_policy_rejected(self):
        with pytest.raises(ValueError, match="policy"):
            parse_config({"invoicing": {"tax": {"policy": "vat_by_region"}}})

    def test_negative_tax_rate_rejected(self):
        with pytest.raises(ValueError, match="rate"):
            TaxConfig(policy="flat_rate", rate=Decimal("-0.1"))

    @pytest.mark.parametrize(
        "section",
        [
            {"database": {"pool_size": 0}},
            {"database": {"lock_timeout_seconds": 0}},
            {"invoicing": {"number_width": 0}},
            {"retry": {"conflict_attempts": 0}},
            {"log_level": "LOUD"},
        ],
    )
    def test_out_of_range_values_rejected(self, section):
        with pytest.raises(ValueError):
            parse_config(section)

    def test_parse_decimal_rejects_text(self):
        with pytest.raises(ValueError, match="not a number"):
            parse_decimal("ten percent", "rate")


class TestBridges:

    def test_zero_policy(self):
        assert isinstance(build_tax_policy(TaxConfig()), ZeroTaxPolicy)

    def test_flat_rate_policy(self):
        policy = build_tax_policy(TaxConfig(policy="flat_rate", rate=Decimal("0.10")))
        assert isinstance(policy, FlatRateTaxPolicy)
        assert policy.rate == Decimal("0.10")
