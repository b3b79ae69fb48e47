"""
Configuration schema (``settlement_config.schema``).

Responsibility
--------------
Frozen dataclasses describing the settlement policy as authored in YAML:
fee rates, billing-artifact rules, reconciliation tolerances, card
settlement defaults, the instant-payment fee schedule, inventory rules,
and the billing provider connection settings.  These are the *source*
shape; ``settlement_config.bridges`` translates them into the kernel's
``SettlementRules``.

Architecture position
---------------------
**Config layer** -- pure data definitions with no I/O and no dependency
on the kernel.

Invariants enforced
-------------------
* All dataclasses are ``frozen=True``.
* Money and rate figures are ``Decimal``; never ``float``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class FeePolicy:
    card_credit_rate: Decimal
    card_debit_rate: Decimal
    billing_artifact_fee: Decimal


@dataclass(frozen=True)
class BillingPolicy:
    minimum_artifact_amount: Decimal
    default_payment_terms_days: int
    default_provider_account: str


@dataclass(frozen=True)
class TolerancePolicy:
    price_epsilon: Decimal
    split_tolerance: Decimal
    instant_payment_tolerance: Decimal


@dataclass(frozen=True)
class CardSettlementPolicy:
    debit_fee_percent: Decimal
    credit_fee_percent: Decimal
    debit_lag_days: int
    credit_lag_days: int


@dataclass(frozen=True)
class InstantPaymentFeePolicy:
    """Provider fee: ``rate_below_threshold`` under ``threshold``, else ``flat_fee``."""

    threshold: Decimal
    rate_below_threshold: Decimal
    flat_fee: Decimal


@dataclass(frozen=True)
class InventoryPolicy:
    allow_negative_stock: bool = False


@dataclass(frozen=True)
class ProviderAccountSettings:
    """Credentials for one provider sub-account (mTLS client certificate + OAuth2 client id)."""

    name: str
    client_id: str | None = None
    cert_path: str | None = None
    key_path: str | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.cert_path and self.key_path)


@dataclass(frozen=True)
class BillingProviderSettings:
    base_url: str
    token_path: str = "/token"
    timeout_seconds: float = 30.0
    token_ttl_seconds: int = 3000
    fine_percent: Decimal = Decimal("2.0")
    monthly_interest_percent: Decimal = Decimal("1.0")
    accounts: tuple[ProviderAccountSettings, ...] = ()

    def account(self, name: str) -> ProviderAccountSettings | None:
        for account in self.accounts:
            if account.name == name:
                return account
        return None


@dataclass(frozen=True)
class SettlementPolicy:
    """The complete settlement policy, one per YAML file."""

    version: int
    fees: FeePolicy
    billing: BillingPolicy
    tolerances: TolerancePolicy
    card_settlement: CardSettlementPolicy
    instant_payment: InstantPaymentFeePolicy
    inventory: InventoryPolicy
    provider: BillingProviderSettings
    checksum: str = field(default="", compare=False)
