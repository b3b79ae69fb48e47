"""
SettlementRules -- kernel-side numeric rules for one settlement run.

Responsibility:
    Carries every rate, flat fee, tolerance, and lag the pure domain
    functions need.  The configuration layer builds one of these from the
    YAML policy; the kernel never reads configuration files itself.

Architecture position:
    Kernel > Domain -- pure value object, zero I/O.

Invariants enforced:
    - Rates are fractions (0.035 == 3.5%); settlement fee percentages are
      percents (3.24 == 3.24%), matching how CardFeeConfig rows store them.
    - All amounts are Decimal.  Construction rejects negative values.
"""

from dataclasses import dataclass, fields
from decimal import Decimal


@dataclass(frozen=True)
class SettlementRules:
    """Numeric settlement rules with production defaults."""

    # Fee calculator
    card_credit_fee_rate: Decimal = Decimal("0.035")
    card_debit_fee_rate: Decimal = Decimal("0.01")
    billing_artifact_fee: Decimal = Decimal("2.50")

    # Billing artifacts
    minimum_artifact_amount: Decimal = Decimal("5.00")
    default_payment_terms_days: int = 30

    # Tolerances
    price_epsilon: Decimal = Decimal("0.01")
    split_tolerance: Decimal = Decimal("0.01")
    instant_payment_tolerance: Decimal = Decimal("2.00")

    # Card settlement schedule
    default_debit_settlement_fee_percent: Decimal = Decimal("0.9")
    default_credit_settlement_fee_percent: Decimal = Decimal("3.24")
    debit_settlement_lag_days: int = 1
    credit_settlement_lag_days: int = 2

    # Instant-payment provider fee schedule
    instant_fee_threshold: Decimal = Decimal("50.00")
    instant_fee_rate_below_threshold: Decimal = Decimal("0.01")
    instant_fee_flat: Decimal = Decimal("0.50")

    # Inventory
    allow_negative_stock: bool = False

    # Billing provider sub-account used when the request names none
    default_provider_account: str = "GENUINO"

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or isinstance(value, str):
                continue
            if value < 0:
                raise ValueError(f"{f.name} must be non-negative, got {value}")
