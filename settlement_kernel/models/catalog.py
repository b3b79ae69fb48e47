"""
Module: settlement_kernel.models.catalog
Responsibility: ORM persistence for sellable items -- catalog products
    (stock-tracked), raw materials (sellable, never stock-tracked by
    settlement), and per-customer personalised catalog entries.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - current_stock is only changed through InventoryService, which writes an
      InventoryMovement for every decrement.
    - A personalised price applies only when strictly positive; zero or NULL
      means "visible in catalog, no special price".
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import Base


class Product(Base):
    """Catalog product with wholesale/retail prices, promotion, and quantity tier."""

    __tablename__ = "products"

    __table_args__ = (Index("idx_product_active", "is_active"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    price_wholesale: Mapped[Decimal] = mapped_column(nullable=False)
    price_retail: Mapped[Decimal] = mapped_column(nullable=False)

    is_on_promotion: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    promotional_price: Mapped[Decimal | None] = mapped_column(nullable=True)

    # Quantity tier: tier price applies when quantity >= bulk_discount_min_qty
    bulk_discount_min_qty: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bulk_discount_price: Mapped[Decimal | None] = mapped_column(nullable=True)

    current_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Product {self.name} stock={self.current_stock}>"


class RawMaterial(Base):
    """Raw material sold by weight/unit alongside catalog products."""

    __tablename__ = "raw_materials"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price_wholesale: Mapped[Decimal | None] = mapped_column(nullable=True)
    cost_per_unit: Mapped[Decimal | None] = mapped_column(nullable=True)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="KG")

    def __repr__(self) -> str:
        return f"<RawMaterial {self.name}>"


class CustomerProduct(Base):
    """Personalised catalog entry for one customer and one product."""

    __tablename__ = "customer_products"

    __table_args__ = (
        UniqueConstraint("customer_id", "product_id", name="uq_customer_product"),
    )

    customer_id: Mapped[UUID] = mapped_column(ForeignKey("customers.id"), nullable=False)
    product_id: Mapped[UUID] = mapped_column(ForeignKey("products.id"), nullable=False)
    custom_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def applicable_price(self) -> Decimal | None:
        if self.custom_price is not None and self.custom_price > 0:
            return self.custom_price
        return None
