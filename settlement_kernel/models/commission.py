"""
Module: settlement_kernel.models.commission
Responsibility: A seller's cut of one order total, created once at
    settlement when the customer is linked to a seller.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase


class Commission(TrackedBase):
    __tablename__ = "commissions"

    __table_args__ = (UniqueConstraint("order_id", name="uq_commission_order"),)

    seller_id: Mapped[UUID] = mapped_column(ForeignKey("sellers.id"), nullable=False)
    order_id: Mapped[UUID] = mapped_column(ForeignKey("orders.id"), nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
