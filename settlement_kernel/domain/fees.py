"""
Fee Calculator -- card, billing-artifact, and delivery fees.

Responsibility:
    Computes the fees added on top of the goods total (subtotal minus
    discounts) and distributes them onto the payment slices so that the
    final slice amounts sum to the order total.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Rules:
    - Card fee: credit rate (3.5%) for credit and generic card slices,
      debit rate (1%) for debit slices, applied to each card slice's base
      amount and summed.  Wholesale and retail orders are treated alike.
    - The card-fee exemption is overridden when any line carries an active
      promotion and at least one slice is a card slice.
    - Flat billing-artifact fee once per billing-artifact slice, unless the
      artifact fee is exempted.
    - Delivery fee passes through unchanged and is carried by the primary
      slice.

Invariants enforced:
    - sum(final slice amounts) == goods_total + fees.total
"""

from dataclasses import dataclass
from decimal import Decimal

from settlement_kernel.db.types import ZERO, round_money
from settlement_kernel.domain.payment import PaymentSlice, SliceRole
from settlement_kernel.domain.rules import SettlementRules


@dataclass(frozen=True)
class FeeBreakdown:
    card_fee: Decimal
    billing_artifact_fee: Decimal
    delivery_fee: Decimal
    card_fee_forced: bool = False

    @property
    def total(self) -> Decimal:
        return self.card_fee + self.billing_artifact_fee + self.delivery_fee


@dataclass(frozen=True)
class FeeResult:
    fees: FeeBreakdown
    slices: tuple[PaymentSlice, ...]


def card_fee_rate(slice_: PaymentSlice, rules: SettlementRules) -> Decimal:
    if slice_.method.is_debit_card:
        return rules.card_debit_fee_rate
    return rules.card_credit_fee_rate


def compute_fees(
    slices: tuple[PaymentSlice, ...],
    *,
    rules: SettlementRules,
    exempt_card_fee: bool = False,
    exempt_billing_artifact_fee: bool = False,
    has_promotional_item: bool = False,
    delivery_fee: Decimal = ZERO,
) -> FeeResult:
    """
    Compute fees for the given base slices.

    Preconditions:
        Every slice carries a concrete base amount (goods share, pre-fee).
    Postconditions:
        Returned slices carry their final amounts: base + own card fee +
        own artifact fee (+ delivery fee on the primary slice).
    """
    any_card = any(s.method.is_card for s in slices)
    forced = bool(exempt_card_fee and has_promotional_item and any_card)
    charge_card_fee = not exempt_card_fee or forced

    card_fee_total = ZERO
    artifact_fee_total = ZERO
    final: list[PaymentSlice] = []

    for s in slices:
        amount = s.amount
        if s.method.is_card and charge_card_fee:
            fee = round_money(amount * card_fee_rate(s, rules))
            card_fee_total += fee
            amount += fee
        if s.method.is_billing_artifact and not exempt_billing_artifact_fee:
            artifact_fee_total += rules.billing_artifact_fee
            amount += rules.billing_artifact_fee
        if s.role is SliceRole.PRIMARY:
            amount += delivery_fee
        final.append(s.with_amount(amount))

    return FeeResult(
        fees=FeeBreakdown(
            card_fee=card_fee_total,
            billing_artifact_fee=artifact_fee_total,
            delivery_fee=delivery_fee,
            card_fee_forced=forced,
        ),
        slices=tuple(final),
    )


def instant_payment_fee(amount: Decimal, rules: SettlementRules) -> Decimal:
    """Provider fee for a confirmed instant payment: 1% below the threshold, flat above."""
    if amount < rules.instant_fee_threshold:
        return round_money(amount * rules.instant_fee_rate_below_threshold)
    return rules.instant_fee_flat
