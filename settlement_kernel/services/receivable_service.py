"""
ReceivableService -- one receivable per non-artifact payment slice.

Status rules:
    PAID only when the caller marked the order already paid AND the slice's
    method settles immediately (cash, instant payment).  Card slices stay
    PENDING regardless of the flag; their funds clear via CardSettlement.
"""

from datetime import date, datetime, timedelta
from uuid import UUID

from settlement_kernel.domain.payer import Payer
from settlement_kernel.domain.payment import PaymentSlice
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.receivable import Receivable, ReceivableStatus
from settlement_kernel.services.base import BaseService

logger = get_logger("services.receivable")


def receivable_status(slice_: PaymentSlice, already_paid: bool) -> ReceivableStatus:
    if already_paid and slice_.method.settles_immediately:
        return ReceivableStatus.PAID
    return ReceivableStatus.PENDING


class ReceivableService(BaseService):

    def create_for_slice(
        self,
        slice_: PaymentSlice,
        payer: Payer,
        *,
        order_id: UUID,
        order_number: str,
        base_date: date,
        already_paid: bool,
        paid_at: datetime,
        bank_account_id: UUID | None,
        actor_id: UUID,
    ) -> Receivable:
        status = receivable_status(slice_, already_paid)
        terms = payer.payment_terms_days or 0
        receivable = Receivable(
            order_id=order_id,
            customer_id=payer.id if payer.kind == "customer" else None,
            employee_id=payer.id if payer.kind == "employee" else None,
            description=f"Order {order_number} - {slice_.method.value} ({slice_.role.value.lower()})",
            amount=slice_.amount,
            due_date=base_date + timedelta(days=terms),
            payment_date=paid_at if status is ReceivableStatus.PAID else None,
            status=status.value,
            payment_method=slice_.method.value,
            slice_role=slice_.role.value,
            bank_account_id=bank_account_id,
            created_by_id=actor_id,
        )
        self.session.add(receivable)
        self.session.flush()
        logger.info(
            "receivable_created",
            extra={
                "method": slice_.method.value,
                "role": slice_.role.value,
                "amount": slice_.amount,
                "status": status.value,
            },
        )
        return receivable

    def mark_paid(self, receivable: Receivable, paid_at: datetime) -> None:
        receivable.status = ReceivableStatus.PAID.value
        receivable.payment_date = paid_at
        self.session.flush()
