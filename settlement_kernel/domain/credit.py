"""
Credit Guard -- eligibility and sufficiency checks for credit-consuming plans.

Responsibility:
    Decides whether a payer may use the credit-consuming methods in the plan
    and whether the amounts they cover fit in the payer's available credit.
    The in-transaction reservation of the full order total lives in
    CreditService; this module holds the pure rules.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Failure modes:
    - CreditNotAllowedError: employee or casual buyer with BOLETO / CREDIT.
    - PaymentMethodNotAllowedError: final consumer paying by BOLETO.
    - InsufficientCreditError: required > available.
"""

from decimal import Decimal

from settlement_kernel.db.types import ZERO
from settlement_kernel.domain.payer import Payer
from settlement_kernel.domain.payment import PaymentMethod, PaymentSlice
from settlement_kernel.exceptions import (
    CreditNotAllowedError,
    InsufficientCreditError,
    PaymentMethodNotAllowedError,
)


def check_method_eligibility(payer: Payer, methods: tuple[PaymentMethod, ...]) -> None:
    for method in methods:
        if method.is_credit_consuming and not payer.can_use_credit_methods:
            raise CreditNotAllowedError(payer_kind=payer.kind, method=method.value)
        if method.is_billing_artifact and payer.is_final_consumer:
            raise PaymentMethodNotAllowedError(
                method=method.value,
                reason="Final-consumer sales cannot be paid by billing artifact",
            )


def required_credit(slices: tuple[PaymentSlice, ...]) -> Decimal:
    """Sum of the amounts assigned to credit-consuming methods."""
    return sum((s.amount for s in slices if s.method.is_credit_consuming), ZERO)


def check_credit(payer: Payer, slices: tuple[PaymentSlice, ...]) -> Decimal:
    """
    Pre-transaction credit check.

    Returns the required credit (0 when no slice consumes credit).
    """
    check_method_eligibility(payer, tuple(s.method for s in slices))
    required = required_credit(slices)
    if required <= ZERO:
        return ZERO
    available = payer.available_credit or ZERO
    if required > available:
        raise InsufficientCreditError(required=required, available=available)
    return required
