"""
Module: settlement_kernel.models.receivable
Responsibility: Accounts-receivable record for one non-artifact payment
    slice of an order.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Exactly one receivable per non-artifact slice; none for a billing-
      artifact slice (the artifact itself is the receivable document).
    - status is PAID only for already-paid cash / instant-payment slices.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase


class ReceivableStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class Receivable(TrackedBase):
    __tablename__ = "receivables"

    __table_args__ = (
        Index("idx_receivable_order", "order_id"),
        Index("idx_receivable_customer_status", "customer_id", "status"),
    )

    order_id: Mapped[UUID] = mapped_column(ForeignKey("orders.id"), nullable=False)
    customer_id: Mapped[UUID | None] = mapped_column(ForeignKey("customers.id"), nullable=True)
    employee_id: Mapped[UUID | None] = mapped_column(ForeignKey("employees.id"), nullable=True)
    # Set only for receivables tracking an externally issued artifact
    billing_artifact_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("billing_artifacts.id"), nullable=True
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    slice_role: Mapped[str] = mapped_column(String(20), nullable=False)
    bank_account_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("bank_accounts.id"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Receivable {self.payment_method} {self.amount} {self.status}>"
