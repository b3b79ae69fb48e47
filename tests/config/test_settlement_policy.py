"""
Tests for settlement policy loading and bridging.

Covers:
- Loader (parse_policy, parse_decimal, parse_provider) -- YAML dict parsing
- End-to-end (get_active_policy) -- packaged defaults and SETTLEMENT_CONFIG
- Bridge (build_settlement_rules) -- policy to kernel SettlementRules
- Audit trace -- settlement_config_trace log line
"""

from __future__ import annotations

import copy
import dataclasses
from decimal import Decimal

import pytest
import yaml

from settlement_config import (
    CONFIG_ENV_VAR,
    DEFAULT_POLICY_PATH,
    build_settlement_rules,
    get_active_policy,
    get_active_rules,
)
from settlement_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_decimal,
    parse_policy,
    parse_provider,
)
from settlement_kernel.domain.rules import SettlementRules


@pytest.fixture
def defaults_data() -> dict:
    return load_yaml_file(DEFAULT_POLICY_PATH)


# =========================================================================
# 1. Loader
# =========================================================================


class TestParseDecimal:

    @pytest.mark.parametrize("raw, expected", [("2.50", "2.50"), (0.035, "0.035"), (30, "30")])
    def test_accepts_numbers(self, raw, expected):
        assert parse_decimal(raw, "x") == Decimal(expected)

    @pytest.mark.parametrize("raw", [None, True, "abc", "-0.01"])
    def test_rejects_bad_figures(self, raw):
        with pytest.raises(ValueError):
            parse_decimal(raw, "x")


class TestParsePolicy:

    def test_defaults_parse(self, defaults_data):
        policy = parse_policy(defaults_data, environ={})
        assert policy.version == 1
        assert policy.fees.card_credit_rate == Decimal("0.035")
        assert policy.billing.default_payment_terms_days == 30
        assert policy.card_settlement.credit_lag_days == 2
        assert policy.provider.base_url == "https://matls-clients.api.cora.com.br"
        assert [a.name for a in policy.provider.accounts] == ["GENUINO", "ESPETOS"]

    def test_checksum_is_deterministic(self, defaults_data):
        first = parse_policy(defaults_data, environ={})
        second = parse_policy(copy.deepcopy(defaults_data), environ={})
        assert first.checksum == second.checksum == compute_checksum(defaults_data)
        assert len(first.checksum) == 64

    def test_negative_fee_rejected(self, defaults_data):
        defaults_data["fees"]["billing_artifact_fee"] = "-1"
        with pytest.raises(ValueError, match="billing_artifact_fee"):
            parse_policy(defaults_data, environ={})

    def test_missing_section_is_key_error(self, defaults_data):
        del defaults_data["tolerances"]
        with pytest.raises(KeyError):
            parse_policy(defaults_data, environ={})

    def test_unknown_default_account_rejected(self, defaults_data):
        defaults_data["billing"]["default_provider_account"] = "NOWHERE"
        with pytest.raises(ValueError, match="NOWHERE"):
            parse_policy(defaults_data, environ={})

    def test_policy_is_frozen(self, defaults_data):
        policy = parse_policy(defaults_data, environ={})
        with pytest.raises(dataclasses.FrozenInstanceError):
            policy.version = 2  # type: ignore[misc]


class TestProviderAccounts:

    def test_credentials_come_from_environment(self, defaults_data):
        environ = {
            "CORA_GENUINO_CLIENT_ID": "client-1",
            "CORA_GENUINO_CERTIFICATE_PATH": "/certs/genuino.pem",
            "CORA_GENUINO_PRIVATE_KEY_PATH": "/certs/genuino.key",
        }
        provider = parse_provider(defaults_data["provider"], environ)
        genuino = provider.account("GENUINO")
        assert genuino.client_id == "client-1"
        assert genuino.is_configured
        assert not provider.account("ESPETOS").is_configured

    def test_literal_value_wins_over_env(self):
        provider = parse_provider(
            {
                "base_url": "https://example.invalid/",
                "accounts": [{"name": "A", "client_id": "literal", "client_id_env": "X"}],
            },
            {"X": "from-env"},
        )
        assert provider.account("A").client_id == "literal"
        assert provider.base_url == "https://example.invalid"

    def test_duplicate_account_names_rejected(self):
        with pytest.raises(ValueError, match="duplicate"):
            parse_provider(
                {"base_url": "https://example.invalid", "accounts": [{"name": "A"}, {"name": "A"}]},
                {},
            )


# =========================================================================
# 2. End-to-end loading
# =========================================================================


class TestGetActivePolicy:

    def test_packaged_defaults(self):
        policy = get_active_policy(environ={})
        assert policy.billing.default_provider_account == "GENUINO"

    def test_override_file_from_environment(self, tmp_path, defaults_data):
        defaults_data["fees"]["billing_artifact_fee"] = "3.00"
        override = tmp_path / "policy.yaml"
        override.write_text(yaml.safe_dump(defaults_data))

        policy = get_active_policy(environ={CONFIG_ENV_VAR: str(override)})
        assert policy.fees.billing_artifact_fee == Decimal("3.00")

    def test_missing_override_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_policy(environ={CONFIG_ENV_VAR: str(tmp_path / "missing.yaml")})

    def test_load_emits_trace(self, captured_logs):
        environ = {"CORA_CLIENT_ID": "c", "CORA_CERTIFICATE_PATH": "p", "CORA_PRIVATE_KEY_PATH": "k"}
        policy = get_active_policy(environ=environ)
        traces = [r for r in captured_logs() if r["message"] == "settlement_config_trace"]
        assert len(traces) == 1
        trace = traces[0]
        assert trace["checksum"] == policy.checksum
        assert trace["config_version"] == 1
        assert trace["configured_accounts"] == ["ESPETOS"]


# =========================================================================
# 3. Bridge
# =========================================================================


class TestBuildSettlementRules:

    def test_defaults_match_kernel_defaults(self):
        assert get_active_rules(environ={}) == SettlementRules()

    def test_overrides_flow_through(self, defaults_data):
        defaults_data["inventory"]["allow_negative_stock"] = True
        defaults_data["card_settlement"]["debit_lag_days"] = 3
        rules = build_settlement_rules(parse_policy(defaults_data, environ={}))
        assert rules.allow_negative_stock
        assert rules.debit_settlement_lag_days == 3
