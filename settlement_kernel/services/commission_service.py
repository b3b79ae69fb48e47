"""
CommissionService -- the seller's cut of an order.

Only customer payers earn their seller a commission; employee self-orders
and casual buyers never do.
"""

from decimal import Decimal
from uuid import UUID

from settlement_kernel.db.types import round_money
from settlement_kernel.domain.payer import Payer
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.commission import Commission
from settlement_kernel.models.parties import Seller
from settlement_kernel.services.base import BaseService

logger = get_logger("services.commission")


class CommissionService(BaseService):

    def create_for_order(
        self,
        payer: Payer,
        *,
        order_id: UUID,
        order_number: str,
        total: Decimal,
        actor_id: UUID,
    ) -> Commission | None:
        if not payer.earns_commission:
            return None
        seller = self.session.get(Seller, payer.seller_id)
        if seller is None or not seller.is_active:
            logger.warning("commission_seller_missing", extra={"seller_id": str(payer.seller_id)})
            return None

        amount = round_money(total * seller.commission_rate / Decimal(100))
        commission = Commission(
            seller_id=seller.id,
            order_id=order_id,
            commission_rate=seller.commission_rate,
            amount=amount,
            description=f"Commission on order {order_number} - {payer.name}",
            created_by_id=actor_id,
        )
        self.session.add(commission)
        self.session.flush()
        logger.info(
            "commission_created",
            extra={"seller_id": str(seller.id), "rate": seller.commission_rate, "amount": amount},
        )
        return commission
