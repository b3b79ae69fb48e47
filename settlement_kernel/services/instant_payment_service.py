"""
InstantPaymentService -- pre-confirmed instant payments ("PIX").

Responsibility:
    ``load_confirmed`` finds a confirmed charge, first in the local
    ``instant_payment_charges`` table and then through the
    InstantPaymentLookup port, and refuses anything not confirmed or already
    linked to another order.  ``link_to_order`` runs inside the settlement
    transaction: it stores or locks the charge row, links it to the order,
    posts the net amount to the sub-account's bank account against the PIX
    receivable and flips that receivable to PAID.  The order itself turns
    PAID only once no artifact or pending receivable is left on it.

Architecture position:
    Kernel > Services.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import select

from settlement_kernel.domain.ports import InstantPaymentLookup
from settlement_kernel.domain.reconciliation import ConfirmedInstantPayment, ensure_confirmed
from settlement_kernel.exceptions import InstantPaymentChargeNotFoundError, ValidationError
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.billing import BillingArtifact
from settlement_kernel.models.instant_payment import InstantPaymentCharge
from settlement_kernel.models.order import Order, PaymentStatus
from settlement_kernel.models.receivable import Receivable, ReceivableStatus
from settlement_kernel.services.base import BaseService
from settlement_kernel.services.ledger_poster import LedgerPoster
from settlement_kernel.services.receivable_service import ReceivableService

logger = get_logger("services.instant_payment")


def _to_confirmed(row: InstantPaymentCharge) -> ConfirmedInstantPayment:
    return ConfirmedInstantPayment(
        charge_id=row.charge_id,
        amount=row.amount,
        fee_amount=row.fee_amount,
        net_amount=row.net_amount,
        sub_account=row.provider_account,
        status=row.status,
    )


class InstantPaymentService(BaseService):

    def __init__(self, session, lookup: InstantPaymentLookup | None = None):
        super().__init__(session)
        self._lookup = lookup

    def _local_charge(self, charge_id: str, *, lock: bool = False) -> InstantPaymentCharge | None:
        stmt = select(InstantPaymentCharge).where(InstantPaymentCharge.charge_id == charge_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def load_confirmed(self, charge_id: str) -> ConfirmedInstantPayment:
        """
        Raises:
            InstantPaymentChargeNotFoundError: unknown locally and to the lookup.
            InstantPaymentNotConfirmedError: status is not PAID.
            ValidationError: the charge already belongs to an order.
        """
        row = self._local_charge(charge_id)
        if row is not None:
            if row.order_id is not None:
                raise ValidationError(
                    f"Instant payment {charge_id} is already linked to an order",
                    field="instant_payment_charge_id",
                )
            payment = _to_confirmed(row)
        else:
            payment = self._lookup.get_confirmed_payment(charge_id) if self._lookup else None
            if payment is None:
                raise InstantPaymentChargeNotFoundError(charge_id=charge_id)
        ensure_confirmed(payment)
        logger.info(
            "instant_payment_loaded",
            extra={"charge_id": charge_id, "amount": payment.amount, "sub_account": payment.sub_account},
        )
        return payment

    def link_to_order(
        self,
        payment: ConfirmedInstantPayment,
        order: Order,
        *,
        receivable: Receivable,
        paid_at: datetime,
        entry_date: date,
        actor_id: UUID,
    ) -> InstantPaymentCharge:
        """
        Settle the order's PIX receivable with a confirmed charge.

        The order turns PAID only when nothing else on it is outstanding:
        no billing artifact and no PENDING receivable.
        """
        row = self._local_charge(payment.charge_id, lock=True)
        if row is None:
            row = InstantPaymentCharge(
                charge_id=payment.charge_id,
                provider_account=payment.sub_account,
                amount=payment.amount,
                fee_amount=payment.fee_amount,
                net_amount=payment.net_amount,
                status=payment.status,
                paid_at=paid_at,
            )
            self.session.add(row)
        elif row.order_id is not None and row.order_id != order.id:
            raise ValidationError(
                f"Instant payment {payment.charge_id} is already linked to an order",
                field="instant_payment_charge_id",
            )
        row.order_id = order.id
        order.instant_payment_charge_id = payment.charge_id
        self.session.flush()

        LedgerPoster(self.session).post_instant_payment(
            payment,
            receivable,
            order_number=order.order_number,
            entry_date=entry_date,
            actor_id=actor_id,
        )
        ReceivableService(self.session).mark_paid(receivable, paid_at)
        if self._nothing_outstanding(order):
            order.payment_status = PaymentStatus.PAID.value
            self.session.flush()

        logger.info(
            "instant_payment_linked",
            extra={
                "charge_id": payment.charge_id,
                "net_amount": payment.net_amount,
                "payment_status": order.payment_status,
            },
        )
        return row

    def _nothing_outstanding(self, order: Order) -> bool:
        pending = self.session.execute(
            select(Receivable.id).where(
                Receivable.order_id == order.id,
                Receivable.status != ReceivableStatus.PAID.value,
            )
        ).first()
        artifact = self.session.execute(
            select(BillingArtifact.id).where(BillingArtifact.order_id == order.id)
        ).first()
        return pending is None and artifact is None
