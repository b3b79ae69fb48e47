"""
Module: settlement_kernel.models.inventory
Responsibility: Append-only audit record of every stock change made by a
    settlement.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - new_stock == previous_stock + quantity (quantity is negative for EXIT).
    - Rows are immutable after insert (db/immutability.py listeners).
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase


class MovementType(str, Enum):
    EXIT = "EXIT"
    ENTRY = "ENTRY"


class InventoryMovement(TrackedBase):
    __tablename__ = "inventory_movements"

    __table_args__ = (
        Index("idx_movement_product", "product_id"),
        Index("idx_movement_reference", "reference_id"),
    )

    product_id: Mapped[UUID] = mapped_column(ForeignKey("products.id"), nullable=False)
    movement_type: Mapped[str] = mapped_column(String(10), nullable=False)
    # Signed: negative for an EXIT
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    new_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    reference_id: Mapped[UUID | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<InventoryMovement {self.movement_type} {self.quantity} ({self.previous_stock}->{self.new_stock})>"
