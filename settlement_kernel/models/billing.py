"""
Module: settlement_kernel.models.billing
Responsibility: Persisted copy of a billing artifact ("boleto") that was
    minted with the external billing provider before the settlement
    transaction began.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - artifact_number is unique and equals the idempotency code sent to the
      provider (BOL<order number> or BOL<order number>-<i>).
    - No Receivable is created for the slice an artifact covers.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase


class BillingArtifactStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class BillingArtifact(TrackedBase):
    __tablename__ = "billing_artifacts"

    __table_args__ = (
        UniqueConstraint("artifact_number", name="uq_billing_artifact_number"),
        Index("idx_billing_artifact_customer_status", "customer_id", "status"),
    )

    artifact_number: Mapped[str] = mapped_column(String(60), nullable=False)
    customer_id: Mapped[UUID | None] = mapped_column(ForeignKey("customers.id"), nullable=True)
    order_id: Mapped[UUID] = mapped_column(ForeignKey("orders.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BillingArtifactStatus.PENDING.value
    )
    installment_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    installment_total: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Provider-issued identifiers
    provider_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    provider_account: Mapped[str | None] = mapped_column(String(40), nullable=True)
    barcode: Mapped[str | None] = mapped_column(String(100), nullable=True)
    digitable_line: Mapped[str | None] = mapped_column(String(100), nullable=True)
    instant_payment_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    document_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def __repr__(self) -> str:
        return f"<BillingArtifact {self.artifact_number} {self.amount} due {self.due_date}>"
