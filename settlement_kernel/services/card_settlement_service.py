"""
CardSettlementService -- pending acquirer settlement per card slice.

Responsibility:
    For every card-paid slice, looks up the fee percentage for the card type
    (active CardFeeConfig row, else the default from the rules), computes
    fee and net amounts, and schedules the expected settlement date
    (sale date + lag, rolled past weekends).

Architecture position:
    Kernel > Services -- called inside the settlement transaction.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from settlement_kernel.db.types import round_money
from settlement_kernel.domain.calendar import expected_settlement_date
from settlement_kernel.domain.payment import PaymentSlice
from settlement_kernel.domain.rules import SettlementRules
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.card import CardFeeConfig, CardSettlement, CardType
from settlement_kernel.services.base import BaseService

logger = get_logger("services.card_settlement")


class CardSettlementService(BaseService):

    def __init__(self, session, rules: SettlementRules):
        super().__init__(session)
        self._rules = rules

    def fee_percentage(self, card_type: str) -> Decimal:
        configured = self.session.execute(
            select(CardFeeConfig.fee_percentage)
            .where(CardFeeConfig.card_type == card_type, CardFeeConfig.is_active.is_(True))
            .limit(1)
        ).scalar_one_or_none()
        if configured is not None:
            return configured
        if card_type == CardType.DEBIT.value:
            return self._rules.default_debit_settlement_fee_percent
        return self._rules.default_credit_settlement_fee_percent

    def lag_days(self, card_type: str) -> int:
        if card_type == CardType.DEBIT.value:
            return self._rules.debit_settlement_lag_days
        return self._rules.credit_settlement_lag_days

    def create_for_slice(
        self,
        slice_: PaymentSlice,
        *,
        order_id: UUID,
        order_number: str,
        customer_id: UUID | None,
        sale_date: date,
        actor_id: UUID,
    ) -> CardSettlement:
        card_type = slice_.method.card_type
        percent = self.fee_percentage(card_type)
        fee = round_money(slice_.amount * percent / Decimal(100))
        settlement = CardSettlement(
            order_id=order_id,
            customer_id=customer_id,
            card_type=card_type,
            slice_role=slice_.role.value,
            gross_amount=slice_.amount,
            fee_percentage=percent,
            fee_amount=fee,
            net_amount=slice_.amount - fee,
            sale_date=sale_date,
            expected_date=expected_settlement_date(sale_date, self.lag_days(card_type)),
            description=f"Order {order_number} - {card_type.lower()} card",
            created_by_id=actor_id,
        )
        self.session.add(settlement)
        self.session.flush()
        logger.info(
            "card_settlement_created",
            extra={
                "card_type": card_type,
                "gross_amount": settlement.gross_amount,
                "fee_amount": fee,
                "expected_date": settlement.expected_date,
            },
        )
        return settlement
