"""
Bridges (``settlement_config.bridges``).

Translate the authored ``SettlementPolicy`` into the kernel's own value
objects.  The kernel never imports ``settlement_config``; this is the only
place the two shapes meet.
"""

from __future__ import annotations

from settlement_config.schema import SettlementPolicy
from settlement_kernel.domain.rules import SettlementRules


def build_settlement_rules(policy: SettlementPolicy) -> SettlementRules:
    return SettlementRules(
        card_credit_fee_rate=policy.fees.card_credit_rate,
        card_debit_fee_rate=policy.fees.card_debit_rate,
        billing_artifact_fee=policy.fees.billing_artifact_fee,
        minimum_artifact_amount=policy.billing.minimum_artifact_amount,
        default_payment_terms_days=policy.billing.default_payment_terms_days,
        default_provider_account=policy.billing.default_provider_account,
        price_epsilon=policy.tolerances.price_epsilon,
        split_tolerance=policy.tolerances.split_tolerance,
        instant_payment_tolerance=policy.tolerances.instant_payment_tolerance,
        default_debit_settlement_fee_percent=policy.card_settlement.debit_fee_percent,
        default_credit_settlement_fee_percent=policy.card_settlement.credit_fee_percent,
        debit_settlement_lag_days=policy.card_settlement.debit_lag_days,
        credit_settlement_lag_days=policy.card_settlement.credit_lag_days,
        instant_fee_threshold=policy.instant_payment.threshold,
        instant_fee_rate_below_threshold=policy.instant_payment.rate_below_threshold,
        instant_fee_flat=policy.instant_payment.flat_fee,
        allow_negative_stock=policy.inventory.allow_negative_stock,
    )
