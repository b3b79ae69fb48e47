"""
Module: settlement_kernel.models.card
Responsibility: Card processing fee configuration and the pending
    settlement record created for every card-paid slice.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import Base, TrackedBase


class CardType(str, Enum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class CardFeeConfig(Base):
    """Acquirer fee percentage per card type; the active row wins."""

    __tablename__ = "card_fee_configs"

    card_type: Mapped[str] = mapped_column(String(10), nullable=False)
    # Percent, e.g. 3.24 == 3.24%
    fee_percentage: Mapped[Decimal] = mapped_column(nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class CardSettlement(TrackedBase):
    __tablename__ = "card_settlements"

    __table_args__ = (
        Index("idx_card_settlement_order", "order_id"),
        Index("idx_card_settlement_expected", "expected_date"),
    )

    order_id: Mapped[UUID] = mapped_column(ForeignKey("orders.id"), nullable=False)
    customer_id: Mapped[UUID | None] = mapped_column(ForeignKey("customers.id"), nullable=True)
    card_type: Mapped[str] = mapped_column(String(10), nullable=False)
    slice_role: Mapped[str] = mapped_column(String(20), nullable=False)
    gross_amount: Mapped[Decimal] = mapped_column(nullable=False)
    fee_percentage: Mapped[Decimal] = mapped_column(nullable=False)
    fee_amount: Mapped[Decimal] = mapped_column(nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    sale_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
