"""
Configuration Loader (``settlement_config.loader``).

Responsibility
--------------
Loads a settlement policy YAML file and parses it into the typed
``settlement_config.schema`` dataclasses.  Callers at runtime go through
``settlement_config.get_active_policy()``; this module is the parsing
layer underneath it and is used directly by tests.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required sections have no silent defaults.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  policy data for the config trace log line.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Non-numeric or negative figures  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import os
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from settlement_config.schema import (
    BillingPolicy,
    BillingProviderSettings,
    CardSettlementPolicy,
    FeePolicy,
    InstantPaymentFeePolicy,
    InventoryPolicy,
    ProviderAccountSettings,
    SettlementPolicy,
    TolerancePolicy,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, name: str) -> Decimal:
    """Parse a non-negative Decimal; floats go through ``str`` to keep cents exact."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{name}: expected a number, got {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{name}: expected a number, got {value!r}") from None
    if result < 0:
        raise ValueError(f"{name}: must be non-negative, got {result}")
    return result


def parse_days(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{name}: expected a non-negative integer, got {value!r}")
    return value


def parse_fees(data: dict[str, Any]) -> FeePolicy:
    return FeePolicy(
        card_credit_rate=parse_decimal(data["card_credit_rate"], "fees.card_credit_rate"),
        card_debit_rate=parse_decimal(data["card_debit_rate"], "fees.card_debit_rate"),
        billing_artifact_fee=parse_decimal(data["billing_artifact_fee"], "fees.billing_artifact_fee"),
    )


def parse_billing(data: dict[str, Any]) -> BillingPolicy:
    return BillingPolicy(
        minimum_artifact_amount=parse_decimal(
            data["minimum_artifact_amount"], "billing.minimum_artifact_amount"
        ),
        default_payment_terms_days=parse_days(
            data["default_payment_terms_days"], "billing.default_payment_terms_days"
        ),
        default_provider_account=str(data["default_provider_account"]),
    )


def parse_tolerances(data: dict[str, Any]) -> TolerancePolicy:
    return TolerancePolicy(
        price_epsilon=parse_decimal(data["price_epsilon"], "tolerances.price_epsilon"),
        split_tolerance=parse_decimal(data["split_tolerance"], "tolerances.split_tolerance"),
        instant_payment_tolerance=parse_decimal(
            data["instant_payment_tolerance"], "tolerances.instant_payment_tolerance"
        ),
    )


def parse_card_settlement(data: dict[str, Any]) -> CardSettlementPolicy:
    return CardSettlementPolicy(
        debit_fee_percent=parse_decimal(data["debit_fee_percent"], "card_settlement.debit_fee_percent"),
        credit_fee_percent=parse_decimal(data["credit_fee_percent"], "card_settlement.credit_fee_percent"),
        debit_lag_days=parse_days(data["debit_lag_days"], "card_settlement.debit_lag_days"),
        credit_lag_days=parse_days(data["credit_lag_days"], "card_settlement.credit_lag_days"),
    )


def parse_instant_payment(data: dict[str, Any]) -> InstantPaymentFeePolicy:
    return InstantPaymentFeePolicy(
        threshold=parse_decimal(data["threshold"], "instant_payment.threshold"),
        rate_below_threshold=parse_decimal(
            data["rate_below_threshold"], "instant_payment.rate_below_threshold"
        ),
        flat_fee=parse_decimal(data["flat_fee"], "instant_payment.flat_fee"),
    )


def _from_env(data: dict[str, Any], key: str, environ: Mapping[str, str]) -> str | None:
    """A literal ``key`` wins; otherwise read the variable named by ``<key>_env``."""
    if data.get(key):
        return str(data[key])
    env_name = data.get(f"{key}_env")
    if env_name:
        return environ.get(env_name) or None
    return None


def parse_provider(data: dict[str, Any], environ: Mapping[str, str]) -> BillingProviderSettings:
    accounts = tuple(
        ProviderAccountSettings(
            name=str(item["name"]),
            client_id=_from_env(item, "client_id", environ),
            cert_path=_from_env(item, "cert_path", environ),
            key_path=_from_env(item, "key_path", environ),
        )
        for item in data.get("accounts", [])
    )
    names = [a.name for a in accounts]
    if len(names) != len(set(names)):
        raise ValueError(f"provider.accounts: duplicate account names in {names}")
    return BillingProviderSettings(
        base_url=str(data["base_url"]).rstrip("/"),
        token_path=str(data.get("token_path", "/token")),
        timeout_seconds=float(parse_decimal(data.get("timeout_seconds", 30), "provider.timeout_seconds")),
        token_ttl_seconds=parse_days(data.get("token_ttl_seconds", 3000), "provider.token_ttl_seconds"),
        fine_percent=parse_decimal(data.get("fine_percent", "2.0"), "provider.fine_percent"),
        monthly_interest_percent=parse_decimal(
            data.get("monthly_interest_percent", "1.0"), "provider.monthly_interest_percent"
        ),
        accounts=accounts,
    )


def parse_policy(data: dict[str, Any], environ: Mapping[str, str] | None = None) -> SettlementPolicy:
    """
    Parse a ``SettlementPolicy`` from a dict.

    Raises:
        KeyError: if a required section or key is missing.
        ValueError: if a figure is malformed or negative.
    """
    environ = os.environ if environ is None else environ
    policy = SettlementPolicy(
        version=int(data.get("version", 1)),
        fees=parse_fees(data["fees"]),
        billing=parse_billing(data["billing"]),
        tolerances=parse_tolerances(data["tolerances"]),
        card_settlement=parse_card_settlement(data["card_settlement"]),
        instant_payment=parse_instant_payment(data["instant_payment"]),
        inventory=InventoryPolicy(
            allow_negative_stock=bool(data.get("inventory", {}).get("allow_negative_stock", False))
        ),
        provider=parse_provider(data["provider"], environ),
        checksum=compute_checksum(data),
    )
    if policy.provider.accounts and policy.provider.account(policy.billing.default_provider_account) is None:
        raise ValueError(
            f"billing.default_provider_account {policy.billing.default_provider_account!r} "
            "is not one of provider.accounts"
        )
    return policy


def load_policy(path: Path, environ: Mapping[str, str] | None = None) -> SettlementPolicy:
    return parse_policy(load_yaml_file(Path(path)), environ)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
