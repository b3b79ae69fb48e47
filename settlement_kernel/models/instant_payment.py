"""
Module: settlement_kernel.models.instant_payment
Responsibility: Locally stored record of an instant payment ("PIX") charge
    confirmed by the provider.  Linked to an order after the fact.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - A charge links to at most one order (order_id is set once).
    - net_amount == amount - fee_amount.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import Base


class InstantPaymentCharge(Base):
    __tablename__ = "instant_payment_charges"

    __table_args__ = (UniqueConstraint("charge_id", name="uq_instant_payment_charge"),)

    charge_id: Mapped[str] = mapped_column(String(100), nullable=False)
    provider_account: Mapped[str] = mapped_column(String(40), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    fee_amount: Mapped[Decimal] = mapped_column(nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    order_id: Mapped[UUID | None] = mapped_column(ForeignKey("orders.id"), nullable=True)
