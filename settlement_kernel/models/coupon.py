"""
Module: settlement_kernel.models.coupon
Responsibility: Coupons and their usage ledger.  Every settled order that
    applied a coupon bumps usage_count and leaves one CouponUsage row.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import Base, TrackedBase


class Coupon(Base):
    __tablename__ = "coupons"

    __table_args__ = (UniqueConstraint("code", name="uq_coupon_code"),)

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    usage_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class CouponUsage(TrackedBase):
    __tablename__ = "coupon_usages"

    coupon_id: Mapped[UUID] = mapped_column(ForeignKey("coupons.id"), nullable=False)
    customer_id: Mapped[UUID | None] = mapped_column(ForeignKey("customers.id"), nullable=True)
    order_id: Mapped[UUID] = mapped_column(ForeignKey("orders.id"), nullable=False)
    used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
