"""
CreditService -- credit checks and the in-transaction reservation.

Responsibility:
    ``check`` runs the pure Credit Guard before any side effect.
    ``reserve`` decrements a customer's available credit by the full order
    total under a row lock inside the settlement transaction, re-checking
    against the locked value so concurrent settlements cannot drive it
    below zero.

Architecture position:
    Kernel > Services -- imperative shell around domain/credit.py.

Invariants enforced:
    - Available credit never goes below zero through settlement.
    - Only customer accounts carry a standing credit commitment; employees
      and casual buyers reserve nothing (they may not use credit methods).
"""

from decimal import Decimal

from settlement_kernel.domain.credit import check_credit
from settlement_kernel.domain.payer import Payer
from settlement_kernel.domain.payment import PaymentSlice
from settlement_kernel.exceptions import InsufficientCreditError
from settlement_kernel.logging_config import get_logger
from settlement_kernel.services.base import BaseService
from settlement_kernel.services.payer_service import PayerService

logger = get_logger("services.credit")


class CreditService(BaseService):

    def check(self, payer: Payer, slices: tuple[PaymentSlice, ...]) -> Decimal:
        required = check_credit(payer, slices)
        if required:
            logger.info(
                "credit_check_passed",
                extra={"required": required, "available": payer.available_credit},
            )
        return required

    def reserve(self, payer: Payer, total: Decimal) -> Decimal | None:
        """
        Reserve ``total`` against the customer's credit.

        Returns the new available credit, or None when the payer is not a
        customer account.

        Raises:
            InsufficientCreditError: the locked available credit is below total.
        """
        if payer.kind != "customer":
            return None

        customer = PayerService(self.session).lock_customer(payer.id)
        available = customer.available_credit
        if available < total:
            raise InsufficientCreditError(required=total, available=available)

        customer.available_credit = available - total
        self.session.flush()

        logger.info(
            "credit_reserved",
            extra={"customer_id": str(payer.id), "reserved": total, "remaining": customer.available_credit},
        )
        return customer.available_credit
