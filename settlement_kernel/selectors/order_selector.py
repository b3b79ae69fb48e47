"""
Module: settlement_kernel.selectors.order_selector
Responsibility: Read-only views of a settled order and everything the
    settlement transaction wrote for it: line items, billing artifacts,
    receivables, card settlements, inventory movements and ledger entries.
    Used by the pipeline's response builder, the CLI and tests.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from settlement_kernel.domain.results import BillingArtifactView, LineItemView, OrderView
from settlement_kernel.models.billing import BillingArtifact
from settlement_kernel.models.card import CardSettlement
from settlement_kernel.models.inventory import InventoryMovement
from settlement_kernel.models.ledger import BankLedgerEntry
from settlement_kernel.models.order import Order
from settlement_kernel.models.receivable import Receivable
from settlement_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ReceivableView:
    id: UUID
    payment_method: str
    slice_role: str
    amount: Decimal
    due_date: date
    status: str
    bank_account_id: UUID | None


@dataclass(frozen=True)
class CardSettlementView:
    id: UUID
    card_type: str
    slice_role: str
    gross_amount: Decimal
    fee_percentage: Decimal
    fee_amount: Decimal
    net_amount: Decimal
    sale_date: date
    expected_date: date
    status: str


@dataclass(frozen=True)
class MovementView:
    product_id: UUID
    movement_type: str
    quantity: int
    previous_stock: int
    new_stock: int
    reason: str


@dataclass(frozen=True)
class LedgerEntryView:
    bank_account_id: UUID
    amount: Decimal
    balance_after: Decimal
    description: str
    reference_type: str
    reference_id: str


@dataclass(frozen=True)
class OrderDetail:
    """An order with every record its settlement produced."""

    order: OrderView
    artifacts: tuple[BillingArtifactView, ...]
    receivables: tuple[ReceivableView, ...]
    card_settlements: tuple[CardSettlementView, ...]
    movements: tuple[MovementView, ...]
    ledger_entries: tuple[LedgerEntryView, ...]


def order_view(order: Order) -> OrderView:
    return OrderView(
        id=order.id,
        order_number=order.order_number,
        order_type=order.order_type,
        status=order.status,
        payment_status=order.payment_status,
        payment_method=order.payment_method,
        secondary_payment_method=order.secondary_payment_method,
        primary_payment_amount=order.primary_payment_amount,
        secondary_payment_amount=order.secondary_payment_amount,
        subtotal=order.subtotal,
        discount=order.discount,
        coupon_discount=order.coupon_discount,
        card_fee=order.card_fee,
        billing_artifact_fee=order.billing_artifact_fee,
        delivery_fee=order.delivery_fee,
        reconciliation_adjustment=order.reconciliation_adjustment,
        total=order.total,
        customer_id=order.customer_id,
        employee_id=order.employee_id,
        casual_name=order.casual_customer_name,
        items=tuple(
            LineItemView(
                id=item.id,
                product_id=item.product_id,
                raw_material_id=item.raw_material_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=item.total,
                is_gift=item.is_gift,
            )
            for item in order.items
        ),
    )


def artifact_view(artifact: BillingArtifact) -> BillingArtifactView:
    return BillingArtifactView(
        id=artifact.id,
        artifact_number=artifact.artifact_number,
        amount=artifact.amount,
        due_date=artifact.due_date,
        status=artifact.status,
        installment_number=artifact.installment_number,
        installment_total=artifact.installment_total,
        provider_id=artifact.provider_id,
        barcode=artifact.barcode,
        digitable_line=artifact.digitable_line,
        instant_payment_code=artifact.instant_payment_code,
        document_url=artifact.document_url,
    )


class OrderSelector(BaseSelector):
    """Read-side queries over settled orders."""

    def _order(self, *criteria) -> Order | None:
        return self.session.execute(select(Order).where(*criteria)).scalar_one_or_none()

    def get_by_id(self, order_id: UUID) -> OrderView | None:
        order = self._order(Order.id == order_id)
        return order_view(order) if order else None

    def get_by_number(self, order_number: str) -> OrderView | None:
        order = self._order(Order.order_number == order_number)
        return order_view(order) if order else None

    def get_by_idempotency_key(self, key: str) -> OrderView | None:
        order = self._order(Order.idempotency_key == key)
        return order_view(order) if order else None

    def artifacts_for(self, order_id: UUID) -> tuple[BillingArtifactView, ...]:
        rows = self.session.execute(
            select(BillingArtifact)
            .where(BillingArtifact.order_id == order_id)
            .order_by(BillingArtifact.due_date, BillingArtifact.artifact_number)
        ).scalars()
        return tuple(artifact_view(row) for row in rows)

    def receivables_for(self, order_id: UUID) -> tuple[ReceivableView, ...]:
        rows = self.session.execute(
            select(Receivable).where(Receivable.order_id == order_id).order_by(Receivable.slice_role)
        ).scalars()
        return tuple(
            ReceivableView(
                id=r.id,
                payment_method=r.payment_method,
                slice_role=r.slice_role,
                amount=r.amount,
                due_date=r.due_date,
                status=r.status,
                bank_account_id=r.bank_account_id,
            )
            for r in rows
        )

    def card_settlements_for(self, order_id: UUID) -> tuple[CardSettlementView, ...]:
        rows = self.session.execute(
            select(CardSettlement)
            .where(CardSettlement.order_id == order_id)
            .order_by(CardSettlement.slice_role)
        ).scalars()
        return tuple(
            CardSettlementView(
                id=c.id,
                card_type=c.card_type,
                slice_role=c.slice_role,
                gross_amount=c.gross_amount,
                fee_percentage=c.fee_percentage,
                fee_amount=c.fee_amount,
                net_amount=c.net_amount,
                sale_date=c.sale_date,
                expected_date=c.expected_date,
                status=c.status,
            )
            for c in rows
        )

    def movements_for(self, order_id: UUID) -> tuple[MovementView, ...]:
        rows = self.session.execute(
            select(InventoryMovement)
            .where(InventoryMovement.reference_id == order_id)
            .order_by(InventoryMovement.created_at)
        ).scalars()
        return tuple(
            MovementView(
                product_id=m.product_id,
                movement_type=m.movement_type,
                quantity=m.quantity,
                previous_stock=m.previous_stock,
                new_stock=m.new_stock,
                reason=m.reason,
            )
            for m in rows
        )

    def ledger_entries_for(self, order_id: UUID) -> tuple[LedgerEntryView, ...]:
        references = [
            str(rid)
            for rid in self.session.execute(
                select(Receivable.id).where(Receivable.order_id == order_id)
            ).scalars()
        ]
        if not references:
            return ()
        rows = self.session.execute(
            select(BankLedgerEntry)
            .where(BankLedgerEntry.reference_id.in_(references))
            .order_by(BankLedgerEntry.created_at)
        ).scalars()
        return tuple(
            LedgerEntryView(
                bank_account_id=e.bank_account_id,
                amount=e.amount,
                balance_after=e.balance_after,
                description=e.description,
                reference_type=e.reference_type,
                reference_id=e.reference_id,
            )
            for e in rows
        )

    def detail(self, order_number: str) -> OrderDetail | None:
        order = self._order(Order.order_number == order_number)
        if order is None:
            return None
        return OrderDetail(
            order=order_view(order),
            artifacts=self.artifacts_for(order.id),
            receivables=self.receivables_for(order.id),
            card_settlements=self.card_settlements_for(order.id),
            movements=self.movements_for(order.id),
            ledger_entries=self.ledger_entries_for(order.id),
        )
