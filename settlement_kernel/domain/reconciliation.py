"""
Reconciliation Guard -- computed total vs. confirmed instant payment.

Responsibility:
    Compares the computed order total against the amount of a pre-confirmed
    instant payment.  Beyond the tolerance the settlement is rejected; a
    difference above one cent but within tolerance normalises the order
    total to the confirmed amount.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
"""

from dataclasses import dataclass
from decimal import Decimal

from settlement_kernel.exceptions import (
    InstantPaymentAmountMismatchError,
    InstantPaymentNotConfirmedError,
)

CONFIRMED_STATUS = "PAID"
_NORMALISE_ABOVE = Decimal("0.01")


@dataclass(frozen=True)
class ConfirmedInstantPayment:
    charge_id: str
    amount: Decimal
    fee_amount: Decimal
    net_amount: Decimal
    sub_account: str
    status: str


@dataclass(frozen=True)
class ReconciliationOutcome:
    total: Decimal
    adjustment: Decimal
    normalised: bool


def ensure_confirmed(payment: ConfirmedInstantPayment) -> None:
    if payment.status != CONFIRMED_STATUS:
        raise InstantPaymentNotConfirmedError(charge_id=payment.charge_id, status=payment.status)


def reconcile_instant_payment(
    computed_total: Decimal,
    confirmed_amount: Decimal,
    tolerance: Decimal = Decimal("2.00"),
) -> ReconciliationOutcome:
    """
    Accept, normalise, or reject.

    Raises:
        InstantPaymentAmountMismatchError: |difference| > tolerance.
    """
    difference = abs(computed_total - confirmed_amount)
    if difference > tolerance:
        raise InstantPaymentAmountMismatchError(
            cart_total=computed_total,
            confirmed_amount=confirmed_amount,
            difference=difference,
        )
    if difference > _NORMALISE_ABOVE:
        return ReconciliationOutcome(
            total=confirmed_amount,
            adjustment=confirmed_amount - computed_total,
            normalised=True,
        )
    return ReconciliationOutcome(total=computed_total, adjustment=Decimal("0"), normalised=False)
