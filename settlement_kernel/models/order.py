"""
Module: settlement_kernel.models.order
Responsibility: ORM persistence for orders and their line items -- the
    anchor every other settlement record points back to.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - order_number is unique and comes from the locked sequence counter.
    - idempotency_key is unique when present; a replayed key returns the
      stored order instead of creating a second one.
    - A line item references exactly one of product_id / raw_material_id.
    - subtotal - discount - coupon_discount + card_fee + billing_artifact_fee
      + delivery_fee + reconciliation_adjustment == total (within 0.01).

Audit relevance:
    Orders are created once per settlement.  Later status transitions
    (delivery, payment) happen outside the settlement pipeline.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_kernel.db.base import TrackedBase


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"


class Order(TrackedBase):
    """One settled sale."""

    __tablename__ = "orders"

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_order_number"),
        UniqueConstraint("idempotency_key", name="uq_order_idempotency_key"),
        Index("idx_order_customer", "customer_id"),
        Index("idx_order_employee", "employee_id"),
    )

    order_number: Mapped[str] = mapped_column(String(40), nullable=False)
    idempotency_key: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Payer: at most one of customer_id / employee_id; casual buyers by name only
    customer_id: Mapped[UUID | None] = mapped_column(ForeignKey("customers.id"), nullable=True)
    employee_id: Mapped[UUID | None] = mapped_column(ForeignKey("employees.id"), nullable=True)
    casual_customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    seller_id: Mapped[UUID | None] = mapped_column(ForeignKey("sellers.id"), nullable=True)

    # Contact snapshot at settlement time
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)

    order_type: Mapped[str] = mapped_column(String(20), nullable=False)
    delivery_type: Mapped[str] = mapped_column(String(20), nullable=False, default="DELIVERY")
    delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    delivery_time: Mapped[str | None] = mapped_column(String(20), nullable=True)

    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    secondary_payment_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    primary_payment_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    secondary_payment_amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    discount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    discount_percent: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    coupon_id: Mapped[UUID | None] = mapped_column(ForeignKey("coupons.id"), nullable=True)
    coupon_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    coupon_discount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    card_fee: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    billing_artifact_fee: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    delivery_fee: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    # Non-zero only when the total was normalised to a confirmed instant payment
    reconciliation_adjustment: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )
    total: Mapped[Decimal] = mapped_column(nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.UNPAID.value
    )

    instant_payment_charge_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    provider_account: Mapped[str | None] = mapped_column(String(40), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.position",
    )

    def __repr__(self) -> str:
        return f"<Order {self.order_number} total={self.total} {self.payment_status}>"


class OrderItem(TrackedBase):
    """Line item: quantity, resolved unit price, and line total."""

    __tablename__ = "order_items"

    __table_args__ = (
        CheckConstraint(
            "(product_id IS NULL) <> (raw_material_id IS NULL)",
            name="ck_order_item_single_source",
        ),
        Index("idx_order_item_order", "order_id"),
    )

    order_id: Mapped[UUID] = mapped_column(ForeignKey("orders.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    product_id: Mapped[UUID | None] = mapped_column(ForeignKey("products.id"), nullable=True)
    raw_material_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("raw_materials.id"), nullable=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    total: Mapped[Decimal] = mapped_column(nullable=False)
    is_gift: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Which priority rule produced unit_price (PROMOTION, TIER, BASE, ...)
    price_rule: Mapped[str] = mapped_column(String(30), nullable=False)

    order: Mapped["Order"] = relationship(back_populates="items")

    @property
    def is_stock_tracked(self) -> bool:
        return self.product_id is not None
