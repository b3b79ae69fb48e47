"""
OverduePaymentGuard -- block wholesale orders from customers with overdue debt.

Responsibility:
    Before any side effect, counts PENDING billing artifacts and PENDING
    receivables (those not tracking an artifact, to avoid counting the same
    debt twice) whose due date is before today.  Any overdue item blocks the
    settlement unless staff manually unblocked the customer.

Architecture position:
    Kernel > Services -- read-only pre-transaction check.

Failure modes:
    - OverduePaymentsError(overdue_count, overdue_amount).
"""

from datetime import date

from sqlalchemy import func, select

from settlement_kernel.db.types import to_decimal
from settlement_kernel.domain.payer import Payer
from settlement_kernel.domain.pricing import OrderType
from settlement_kernel.exceptions import OverduePaymentsError
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.billing import BillingArtifact, BillingArtifactStatus
from settlement_kernel.models.receivable import Receivable, ReceivableStatus
from settlement_kernel.services.base import BaseService

logger = get_logger("services.overdue")


class OverduePaymentGuard(BaseService):

    def check(self, payer: Payer, order_type: OrderType, today: date) -> None:
        if payer.kind != "customer" or order_type is not OrderType.WHOLESALE:
            return
        if payer.manually_unblocked:
            logger.info("overdue_check_skipped_manual_unblock", extra={"customer_id": str(payer.id)})
            return

        artifact_count, artifact_amount = self.session.execute(
            select(func.count(BillingArtifact.id), func.coalesce(func.sum(BillingArtifact.amount), 0))
            .where(
                BillingArtifact.customer_id == payer.id,
                BillingArtifact.status == BillingArtifactStatus.PENDING.value,
                BillingArtifact.due_date < today,
            )
        ).one()
        receivable_count, receivable_amount = self.session.execute(
            select(func.count(Receivable.id), func.coalesce(func.sum(Receivable.amount), 0))
            .where(
                Receivable.customer_id == payer.id,
                Receivable.billing_artifact_id.is_(None),
                Receivable.status == ReceivableStatus.PENDING.value,
                Receivable.due_date < today,
            )
        ).one()

        count = artifact_count + receivable_count
        if count:
            amount = to_decimal(artifact_amount) + to_decimal(receivable_amount)
            logger.warning(
                "customer_blocked_overdue",
                extra={"customer_id": str(payer.id), "overdue_count": count, "overdue_amount": amount},
            )
            raise OverduePaymentsError(overdue_count=count, overdue_amount=amount)
