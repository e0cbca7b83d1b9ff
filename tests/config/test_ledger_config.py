"""
Tests for runtime configuration loading.

Verifies:
- LedgerConfig defaults and validation
- YAML loading through get_active_config() (explicit path, env var, packaged defaults)
- Unknown keys are rejected
"""

from decimal import Decimal

import pytest

from ledger_config import CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH, get_active_config
from ledger_config.loader import compute_checksum, load_yaml, parse_config
from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.roles import DEFAULT_ROLE_CODES


class TestLedgerConfigDefaults:

    def test_defaults(self):
        config = LedgerConfig()
        assert config.default_base_currency == "SAR"
        assert config.fx_rate_mode == "lenient"
        assert not config.strict_fx
        assert config.materiality_threshold == Decimal("0.01")
        assert config.cash_account_prefix == "10"
        assert config.settlement_credit_basis == "invoice_total"
        assert config.role_codes == DEFAULT_ROLE_CODES

    def test_with_defaults_matches_constructor(self):
        assert LedgerConfig.with_defaults() == LedgerConfig()

    def test_role_codes_merge_over_defaults(self):
        config = LedgerConfig(role_codes={"AR": "1100"})
        assert config.role_codes["AR"] == "1100"
        assert config.role_codes["Bank"] == "1010"

    def test_threshold_coerced_to_decimal(self):
        assert LedgerConfig(materiality_threshold="0.5").materiality_threshold == Decimal("0.5")


class TestLedgerConfigValidation:

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"default_base_currency": "XX"},
            {"fx_rate_mode": "sometimes"},
            {"settlement_credit_basis": "whatever"},
            {"materiality_threshold": "-1"},
            {"materiality_threshold": "abc"},
            {"cash_account_prefix": ""},
        ],
    )
    def test_invalid_values_raise(self, kwargs):
        with pytest.raises(ValueError):
            LedgerConfig(**kwargs)

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValueError, match="Unknown configuration keys"):
            LedgerConfig.from_dict({"fx_mode": "strict"})


class TestLoader:

    def test_packaged_defaults_parse(self):
        config = parse_config(load_yaml(DEFAULT_CONFIG_PATH))
        assert config == LedgerConfig()

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text(
            "ledger:\n"
            "  default_base_currency: USD\n"
            "  fx_rate_mode: strict\n"
            "  role_codes:\n"
            "    FxGain: '7310'\n"
        )
        config = get_active_config(path)
        assert config.default_base_currency == "USD"
        assert config.strict_fx
        assert config.role_codes["FxGain"] == "7310"

    def test_env_var_path(self, tmp_path, monkeypatch):
        path = tmp_path / "env.yaml"
        path.write_text("ledger:\n  settlement_credit_basis: carrying_value\n")
        monkeypatch.setenv(CONFIG_PATH_ENV, str(path))
        assert get_active_config().settlement_credit_basis == "carrying_value"

    def test_falls_back_to_packaged_defaults(self, monkeypatch):
        monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
        assert get_active_config() == LedgerConfig()

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert get_active_config(path) == LedgerConfig()

    def test_non_mapping_root_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            get_active_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")

    def test_checksum_is_order_independent(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    def test_load_is_logged(self, tmp_path, captured_logs):
        path = tmp_path / "ledger.yaml"
        path.write_text("ledger: {}\n")
        get_active_config(path)
        records = [r for r in captured_logs() if r["message"] == "ledger_config_loaded"]
        assert len(records) == 1
        assert records[0]["source"] == str(path)
        assert len(records[0]["checksum"]) == 64
