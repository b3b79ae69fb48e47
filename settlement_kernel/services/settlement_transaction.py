"""
SettlementTransaction -- the atomic unit of a settlement.

Responsibility:
    Given a fully prepared settlement (priced cart, fees, final payment
    slices, allocated order number, and any billing artifacts already
    minted), writes every durable record in one database transaction:

        1. Order + line items
        2. stock decrement + InventoryMovement per stock-tracked line
        3. coupon usage (customer payers only)
        4. seller commission
        5. CardSettlement per card slice
        6. BillingArtifact rows for the minted artifacts (no receivable)
        7. Receivable per non-artifact slice
        8. ledger posting for PAID receivables with a target bank account,
           and the confirmed instant payment link (net amount posting)
        9. credit reservation of the full order total

Architecture position:
    Kernel > Services -- only flushes.  The caller owns the session scope
    and therefore commit or rollback of the whole unit.

Invariants enforced:
    - Any exception in steps 1-9 leaves no durable state (caller rolls back).
    - sum(slice amounts) == order.total.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from settlement_kernel.db.types import ZERO
from settlement_kernel.domain.dtos import SettlementRequest
from settlement_kernel.domain.fees import FeeBreakdown
from settlement_kernel.domain.payer import Payer
from settlement_kernel.domain.payment import PaymentMethod, PaymentSlice, SliceRole, SplitPayment
from settlement_kernel.domain.reconciliation import ConfirmedInstantPayment
from settlement_kernel.domain.rules import SettlementRules
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.billing import BillingArtifact
from settlement_kernel.models.ledger import LedgerReferenceType
from settlement_kernel.models.order import Order, OrderItem, PaymentStatus
from settlement_kernel.models.receivable import Receivable, ReceivableStatus
from settlement_kernel.services.billing_service import MintedArtifact
from settlement_kernel.services.card_settlement_service import CardSettlementService
from settlement_kernel.services.commission_service import CommissionService
from settlement_kernel.services.coupon_service import CouponService
from settlement_kernel.services.credit_service import CreditService
from settlement_kernel.services.instant_payment_service import InstantPaymentService
from settlement_kernel.services.inventory_service import InventoryService
from settlement_kernel.services.ledger_poster import LedgerPoster
from settlement_kernel.services.pricing_service import PricedCart
from settlement_kernel.services.receivable_service import ReceivableService

logger = get_logger("services.settlement_transaction")


@dataclass(frozen=True)
class PreparedSettlement:
    """Everything the transaction needs, computed before it starts."""

    request: SettlementRequest
    payer: Payer
    cart: PricedCart
    order_number: str
    discount: Decimal
    discount_percent: Decimal
    coupon_discount: Decimal
    fees: FeeBreakdown
    slices: tuple[PaymentSlice, ...]
    total: Decimal
    base_date: date
    now: datetime
    reconciliation_adjustment: Decimal = ZERO
    instant_payment: ConfirmedInstantPayment | None = None
    artifacts: tuple[MintedArtifact, ...] = field(default_factory=tuple)

    @property
    def actor_id(self) -> UUID:
        return self.request.actor_id


class SettlementTransaction:

    def __init__(self, session: Session, rules: SettlementRules):
        self.session = session
        self._rules = rules

    def execute(self, prepared: PreparedSettlement) -> Order:
        order = self._create_order(prepared)
        self._decrement_stock(prepared, order)

        # Usage is tracked per customer; casual and employee sales only get the discount
        if prepared.request.coupon is not None and order.customer_id is not None:
            CouponService(self.session).record_usage(
                prepared.request.coupon.coupon_id,
                order_id=order.id,
                customer_id=order.customer_id,
                used_at=prepared.now,
                actor_id=prepared.actor_id,
            )

        CommissionService(self.session).create_for_order(
            prepared.payer,
            order_id=order.id,
            order_number=order.order_number,
            total=order.total,
            actor_id=prepared.actor_id,
        )

        cards = CardSettlementService(self.session, self._rules)
        for slice_ in prepared.slices:
            if slice_.method.is_card:
                cards.create_for_slice(
                    slice_,
                    order_id=order.id,
                    order_number=order.order_number,
                    customer_id=order.customer_id,
                    sale_date=prepared.now.date(),
                    actor_id=prepared.actor_id,
                )

        self._persist_artifacts(prepared, order)
        receivables = self._create_receivables(prepared, order)
        self._post_paid_receivables(prepared, order, receivables)

        if prepared.instant_payment is not None:
            InstantPaymentService(self.session).link_to_order(
                prepared.instant_payment,
                order,
                receivable=receivables[PaymentMethod.PIX],
                paid_at=prepared.now,
                entry_date=prepared.now.date(),
                actor_id=prepared.actor_id,
            )

        CreditService(self.session).reserve(prepared.payer, order.total)

        if (
            receivables
            and not prepared.artifacts
            and all(r.status == ReceivableStatus.PAID.value for r in receivables.values())
        ):
            order.payment_status = PaymentStatus.PAID.value
        self.session.flush()

        logger.info(
            "settlement_transaction_completed",
            extra={
                "order_id": str(order.id),
                "total": order.total,
                "line_count": len(order.items),
                "artifact_count": len(prepared.artifacts),
                "receivable_count": len(receivables),
            },
        )
        return order

    def _create_order(self, prepared: PreparedSettlement) -> Order:
        request = prepared.request
        payer = prepared.payer
        primary = prepared.slices[0]
        secondary = prepared.slices[1] if len(prepared.slices) > 1 else None

        order = Order(
            order_number=prepared.order_number,
            idempotency_key=request.idempotency_key,
            customer_id=payer.id if payer.kind == "customer" else None,
            employee_id=payer.id if payer.kind == "employee" else None,
            casual_customer_name=payer.name if payer.kind == "casual" else None,
            seller_id=request.seller_id or payer.seller_id,
            customer_name=payer.name,
            customer_phone=payer.contact.phone,
            customer_email=payer.contact.email,
            address=payer.contact.address,
            city=payer.contact.city,
            order_type=request.order_type.value,
            delivery_type=request.delivery_type,
            delivery_date=request.delivery_date,
            delivery_time=request.delivery_time,
            payment_method=primary.method.value,
            secondary_payment_method=secondary.method.value if secondary else None,
            primary_payment_amount=primary.amount if secondary else None,
            secondary_payment_amount=secondary.amount if secondary else None,
            subtotal=prepared.cart.subtotal,
            discount=prepared.discount,
            discount_percent=prepared.discount_percent,
            coupon_id=request.coupon.coupon_id if request.coupon else None,
            coupon_code=request.coupon.code if request.coupon else None,
            coupon_discount=prepared.coupon_discount,
            card_fee=prepared.fees.card_fee,
            billing_artifact_fee=prepared.fees.billing_artifact_fee,
            delivery_fee=prepared.fees.delivery_fee,
            reconciliation_adjustment=prepared.reconciliation_adjustment,
            total=prepared.total,
            provider_account=request.provider_account,
            notes=request.notes,
            created_by_id=prepared.actor_id,
        )
        order.items = [
            OrderItem(
                position=position,
                product_id=line.product_id,
                raw_material_id=line.raw_material_id,
                quantity=line.item.quantity,
                unit_price=line.resolved.unit_price,
                total=line.resolved.line_total,
                is_gift=line.item.is_gift,
                price_rule=line.resolved.rule.value,
                created_by_id=prepared.actor_id,
            )
            for position, line in enumerate(prepared.cart.lines)
        ]
        self.session.add(order)
        self.session.flush()

        logger.info(
            "order_created",
            extra={"order_id": str(order.id), "order_number": order.order_number, "total": order.total},
        )
        return order

    def _decrement_stock(self, prepared: PreparedSettlement, order: Order) -> None:
        inventory = InventoryService(self.session, allow_negative_stock=self._rules.allow_negative_stock)
        for line in prepared.cart.lines:
            if not line.is_stock_tracked:
                continue
            inventory.decrement_stock(
                line.product_id,
                line.item.quantity,
                order_id=order.id,
                order_number=order.order_number,
                actor_id=prepared.actor_id,
            )

    def _persist_artifacts(self, prepared: PreparedSettlement, order: Order) -> None:
        for minted in prepared.artifacts:
            self.session.add(
                BillingArtifact(
                    artifact_number=minted.code,
                    customer_id=order.customer_id,
                    order_id=order.id,
                    amount=minted.amount,
                    due_date=minted.planned.due_date,
                    installment_number=minted.planned.installment_number,
                    installment_total=minted.planned.installment_total,
                    description=f"Order {order.order_number}",
                    provider_id=minted.provider.id,
                    provider_account=minted.provider_account,
                    barcode=minted.provider.barcode,
                    digitable_line=minted.provider.digitable_line,
                    instant_payment_code=minted.provider.instant_payment_code,
                    document_url=minted.provider.document_url,
                    created_by_id=prepared.actor_id,
                )
            )
        self.session.flush()

    def _bank_account_for(self, slice_: PaymentSlice, request: SettlementRequest) -> UUID | None:
        if slice_.role is SliceRole.SECONDARY and isinstance(request.payment, SplitPayment):
            return request.secondary_bank_account_id or request.bank_account_id
        return request.bank_account_id

    def _create_receivables(
        self, prepared: PreparedSettlement, order: Order
    ) -> dict[PaymentMethod, Receivable]:
        service = ReceivableService(self.session)
        receivables: dict[PaymentMethod, Receivable] = {}
        for slice_ in prepared.slices:
            if slice_.method.is_billing_artifact:
                continue
            receivables[slice_.method] = service.create_for_slice(
                slice_,
                prepared.payer,
                order_id=order.id,
                order_number=order.order_number,
                base_date=prepared.base_date,
                already_paid=prepared.request.already_paid,
                paid_at=prepared.now,
                bank_account_id=self._bank_account_for(slice_, prepared.request),
                actor_id=prepared.actor_id,
            )
        return receivables

    def _post_paid_receivables(
        self,
        prepared: PreparedSettlement,
        order: Order,
        receivables: dict[PaymentMethod, Receivable],
    ) -> None:
        poster = LedgerPoster(self.session)
        for method, receivable in receivables.items():
            if receivable.status != ReceivableStatus.PAID.value:
                continue
            # A linked instant payment posts its own net amount
            if method is PaymentMethod.PIX and prepared.instant_payment is not None:
                continue
            if receivable.bank_account_id is None:
                logger.warning(
                    "ledger_posting_skipped_no_account",
                    extra={"receivable_id": str(receivable.id), "amount": receivable.amount},
                )
                continue
            poster.post(
                receivable.bank_account_id,
                receivable.amount,
                f"Order {order.order_number} - {method.value} received",
                reference_type=LedgerReferenceType.RECEIVABLE,
                reference_id=str(receivable.id),
                entry_date=prepared.now.date(),
                actor_id=prepared.actor_id,
            )
