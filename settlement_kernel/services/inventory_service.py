"""
InventoryService -- stock decrements with an audit movement per line.

Responsibility:
    Locks the product row, checks stock, decrements it, and writes an
    immutable InventoryMovement carrying the before/after figures and a
    reference to the order.  Raw materials are never stock-tracked here.

Architecture position:
    Kernel > Services -- called inside the settlement transaction.

Invariants enforced:
    - movement.new_stock == movement.previous_stock + movement.quantity,
      with quantity negative for an exit.
    - Stock cannot go negative unless the rules allow it.

Failure modes:
    - ItemNotFoundError: product disappeared between pricing and settlement.
    - InsufficientStockError(product_id, requested, available).
"""

from uuid import UUID

from sqlalchemy import select

from settlement_kernel.exceptions import InsufficientStockError, ItemNotFoundError
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.catalog import Product
from settlement_kernel.models.inventory import InventoryMovement, MovementType
from settlement_kernel.services.base import BaseService

logger = get_logger("services.inventory")


class InventoryService(BaseService):

    def __init__(self, session, allow_negative_stock: bool = False):
        super().__init__(session)
        self._allow_negative = allow_negative_stock

    def _lock_product(self, product_id: UUID) -> Product:
        product = self.session.execute(
            select(Product)
            .where(Product.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if product is None:
            raise ItemNotFoundError(item_id=str(product_id))
        return product

    def current_stock(self, product_id: UUID) -> int:
        product = self.session.get(Product, product_id)
        if product is None:
            raise ItemNotFoundError(item_id=str(product_id))
        return product.current_stock

    def decrement_stock(
        self,
        product_id: UUID,
        quantity: int,
        *,
        order_id: UUID,
        order_number: str,
        actor_id: UUID,
    ) -> InventoryMovement:
        product = self._lock_product(product_id)
        previous = product.current_stock
        if previous < quantity and not self._allow_negative:
            raise InsufficientStockError(
                product_id=str(product_id), requested=quantity, available=previous
            )

        product.current_stock = previous - quantity
        movement = self.record_movement(
            product_id=product_id,
            quantity=-quantity,
            previous_stock=previous,
            new_stock=product.current_stock,
            reason=f"Sale for order {order_number}",
            reference_id=order_id,
            actor_id=actor_id,
        )
        logger.info(
            "stock_decremented",
            extra={
                "product_id": str(product_id),
                "quantity": quantity,
                "previous_stock": previous,
                "new_stock": product.current_stock,
            },
        )
        return movement

    def record_movement(
        self,
        *,
        product_id: UUID,
        quantity: int,
        previous_stock: int,
        new_stock: int,
        reason: str,
        reference_id: UUID | None,
        actor_id: UUID,
    ) -> InventoryMovement:
        movement = InventoryMovement(
            product_id=product_id,
            movement_type=MovementType.EXIT.value if quantity < 0 else MovementType.ENTRY.value,
            quantity=quantity,
            previous_stock=previous_stock,
            new_stock=new_stock,
            reason=reason,
            reference_id=reference_id,
            created_by_id=actor_id,
        )
        self.session.add(movement)
        self.session.flush()
        return movement
