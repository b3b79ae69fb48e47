"""
SettlementPipeline -- staged orchestration of one settlement request.

Responsibility:
    Turns a SettlementRequest into a SettlementResult by running, in order:

        validate     resolve the payer, check payment-method eligibility
        price        resolve every line under the pricing priority policy
        fees         discounts, coupon, card / artifact / delivery fees
        reconcile    compare against a pre-confirmed instant payment
        guard        credit check and overdue-payment check
        number       allocate the order number (own short transaction)
        mint         issue billing artifacts with the external provider
        commit       the SettlementTransaction, in one database transaction
        after_commit custom-catalog enrolment and notification (never fail)

    Each stage receives the previous stage's typed output; nothing is
    shared through mutable request-scoped state.  The log trace context
    (correlation id, order number, payer, actor and the running stage) is
    bound explicitly.

Architecture position:
    Kernel > Services -- the outermost kernel entry point.  Outbound
    collaborators arrive as protocol implementations (domain/ports.py).

Invariants enforced:
    - No durable local state exists unless the commit stage succeeds.
    - Billing artifacts are minted before the transaction and are not
      retracted on a later failure; each one is reported as orphaned.
    - A request with an idempotency key that already produced an order
      returns that order (replayed) without running any stage.

Failure modes:
    - SettlementError   -> SettlementRejected(code, message, details, status)
    - any other error   -> SettlementFailed(reference=correlation id)
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from settlement_kernel.db.engine import session_scope
from settlement_kernel.db.types import ZERO, round_money
from settlement_kernel.domain.clock import Clock, SystemClock
from settlement_kernel.domain.credit import check_method_eligibility
from settlement_kernel.domain.discounts import PercentDiscount, discount_percent_of
from settlement_kernel.domain.dtos import SettlementRequest
from settlement_kernel.domain.fees import FeeBreakdown, compute_fees
from settlement_kernel.domain.payer import Payer
from settlement_kernel.domain.payment import PaymentMethod, PaymentSlice, SplitPayment, uses_method
from settlement_kernel.domain.ports import BillingProvider, InstantPaymentLookup, NotificationDispatcher
from settlement_kernel.domain.pricing import OrderType
from settlement_kernel.domain.reconciliation import ConfirmedInstantPayment, reconcile_instant_payment
from settlement_kernel.domain.results import (
    SettlementFailed,
    SettlementRejected,
    SettlementResult,
    SettlementSucceeded,
)
from settlement_kernel.domain.rules import SettlementRules
from settlement_kernel.exceptions import (
    BillingProviderNotConfiguredError,
    SettlementError,
    SplitAmountMismatchError,
    ValidationError,
)
from settlement_kernel.logging_config import LogContext, get_logger
from settlement_kernel.selectors.order_selector import OrderSelector, order_view
from settlement_kernel.services.billing_service import BillingService, MintedArtifact
from settlement_kernel.services.catalog_service import CatalogService
from settlement_kernel.services.credit_service import CreditService
from settlement_kernel.services.instant_payment_service import InstantPaymentService
from settlement_kernel.services.overdue_guard import OverduePaymentGuard
from settlement_kernel.services.payer_service import PayerService
from settlement_kernel.services.pricing_service import PricedCart, PricingService
from settlement_kernel.services.sequence_service import SequenceService
from settlement_kernel.services.settlement_transaction import PreparedSettlement, SettlementTransaction

logger = get_logger("services.pipeline")

OrphanedArtifactsHook = Callable[[tuple[MintedArtifact, ...], BaseException], None]


@dataclass(frozen=True)
class SettlementQuote:
    """Output of the pre-transaction stages: every figure, no side effects."""

    payer: Payer
    cart: PricedCart
    discount: Decimal
    discount_percent: Decimal
    coupon_discount: Decimal
    goods_total: Decimal
    fees: FeeBreakdown
    slices: tuple[PaymentSlice, ...]
    total: Decimal
    base_date: date
    now: datetime
    reconciliation_adjustment: Decimal = ZERO
    instant_payment: ConfirmedInstantPayment | None = None


class SettlementPipeline:
    """
    Entry point for settling one order.

    Usage:
        pipeline = SettlementPipeline(get_session_factory(), billing_provider=client)
        result = pipeline.settle(SettlementRequest.from_dict(payload))
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        rules: SettlementRules | None = None,
        clock: Clock | None = None,
        billing_provider: BillingProvider | None = None,
        instant_payment_lookup: InstantPaymentLookup | None = None,
        notifier: NotificationDispatcher | None = None,
        on_orphaned_artifacts: OrphanedArtifactsHook | None = None,
    ):
        self._factory = session_factory
        self._rules = rules or SettlementRules()
        self._clock = clock or SystemClock()
        self._billing_provider = billing_provider
        self._lookup = instant_payment_lookup
        self._notifier = notifier
        self._on_orphaned = on_orphaned_artifacts

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def settle(self, request: SettlementRequest) -> SettlementResult:
        correlation_id = str(uuid4())
        minted: list[MintedArtifact] = []

        payer_id = str(request.payer.id) if request.payer.id else None
        with LogContext.bind(
            correlation_id=correlation_id,
            actor_id=str(request.actor_id),
            payer_id=payer_id,
            trace_id=request.idempotency_key,
            stage="received",
        ):
            logger.info(
                "settlement_started",
                extra={
                    "payer_kind": request.payer.kind.value,
                    "order_type": request.order_type.value,
                    "line_count": len(request.items),
                    "idempotency_key": request.idempotency_key,
                },
            )
            try:
                replayed = self._replay(request)
                if replayed is not None:
                    return replayed

                with session_scope(self._factory) as session:
                    quote = self._quote(session, request)

                LogContext.set(stage="number")
                order_number = self._allocate_order_number()
                with LogContext.bind(order_number=order_number):
                    LogContext.set(stage="mint")
                    self._mint(request, quote, order_number, minted)
                    LogContext.set(stage="commit")
                    result = self._commit(request, quote, order_number, minted)
                    LogContext.set(stage="after_commit")
                    self._after_commit(quote, result)
                return result

            except SettlementError as exc:
                self._report_orphans(minted, exc)
                # Expected outcome: figures without a traceback
                logger.warning("settlement_rejected", exc_info=exc)
                return SettlementRejected(
                    code=exc.code,
                    message=str(exc),
                    details=exc.to_details(),
                    status=exc.http_status,
                )
            except IntegrityError as exc:
                # Two requests with the same idempotency key raced to commit
                replayed = self._replay(request) if request.idempotency_key else None
                self._report_orphans(minted, exc)
                if replayed is not None:
                    return replayed
                logger.error("settlement_failed", exc_info=True)
                return SettlementFailed(reference=correlation_id)
            except Exception as exc:
                self._report_orphans(minted, exc)
                logger.error("settlement_failed", exc_info=True)
                return SettlementFailed(reference=correlation_id)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _replay(self, request: SettlementRequest) -> SettlementSucceeded | None:
        if not request.idempotency_key:
            return None
        with session_scope(self._factory) as session:
            selector = OrderSelector(session)
            order = selector.get_by_idempotency_key(request.idempotency_key)
            if order is None:
                return None
            artifacts = selector.artifacts_for(order.id)
        logger.info(
            "settlement_replayed",
            extra={"order_number": order.order_number, "idempotency_key": request.idempotency_key},
        )
        return SettlementSucceeded(order=order, artifacts=artifacts, replayed=True)

    def _quote(self, session: Session, request: SettlementRequest) -> SettlementQuote:
        now = self._clock.now()
        today = self._clock.today()

        LogContext.set(stage="validate")
        payer = PayerService(session).resolve(request.payer)
        check_method_eligibility(payer, request.payment.methods)
        if request.instant_payment_charge_id and PaymentMethod.PIX not in request.payment.methods:
            # A confirmed charge only ever settles the PIX slice
            raise ValidationError(
                f"Instant payment {request.instant_payment_charge_id} requires a PIX payment slice",
                field="instant_payment_charge_id",
            )

        LogContext.set(stage="price")
        billing_artifact_payment = uses_method(request.payment, lambda m: m.is_billing_artifact)
        cart = PricingService(session).price_cart(
            request.items,
            payer,
            request.order_type,
            billing_artifact_payment=billing_artifact_payment,
            rules=self._rules,
        )

        LogContext.set(stage="fees")
        discount_spec = request.discount
        if (
            discount_spec is None
            and payer.kind == "customer"
            and request.order_type is OrderType.WHOLESALE
            and payer.custom_discount_percent > 0
        ):
            discount_spec = PercentDiscount(payer.custom_discount_percent)
        discount = discount_spec.amount_for(cart.subtotal) if discount_spec else ZERO
        coupon_discount = ZERO
        if request.coupon is not None:
            coupon_discount = min(round_money(request.coupon.discount), cart.subtotal - discount)
        goods_total = cart.subtotal - discount - coupon_discount

        base_slices = self._base_slices(request, goods_total)
        fee_result = compute_fees(
            base_slices,
            rules=self._rules,
            exempt_card_fee=request.exempt_card_fee,
            exempt_billing_artifact_fee=request.exempt_billing_artifact_fee,
            has_promotional_item=cart.has_promotional_item,
            delivery_fee=round_money(request.delivery_fee),
        )
        slices = fee_result.slices
        total = goods_total + fee_result.fees.total
        if fee_result.fees.card_fee_forced:
            logger.info("card_fee_exemption_overridden", extra={"card_fee": fee_result.fees.card_fee})

        LogContext.set(stage="reconcile")
        adjustment = ZERO
        instant_payment = None
        if request.instant_payment_charge_id:
            instant_payment = InstantPaymentService(session, self._lookup).load_confirmed(
                request.instant_payment_charge_id
            )
            outcome = reconcile_instant_payment(
                total, instant_payment.amount, self._rules.instant_payment_tolerance
            )
            if outcome.normalised:
                adjustment = outcome.adjustment
                slices = _apply_adjustment(slices, adjustment)
                logger.info(
                    "order_total_normalised",
                    extra={
                        "computed_total": total,
                        "confirmed_amount": instant_payment.amount,
                        "adjustment": adjustment,
                    },
                )
            total = outcome.total

        LogContext.set(stage="guard")
        CreditService(session).check(payer, slices)
        OverduePaymentGuard(session).check(payer, request.order_type, today)

        logger.info(
            "settlement_quoted",
            extra={
                "subtotal": cart.subtotal,
                "discount": discount,
                "coupon_discount": coupon_discount,
                "card_fee": fee_result.fees.card_fee,
                "billing_artifact_fee": fee_result.fees.billing_artifact_fee,
                "delivery_fee": fee_result.fees.delivery_fee,
                "total": total,
            },
        )
        return SettlementQuote(
            payer=payer,
            cart=cart,
            discount=discount,
            discount_percent=discount_percent_of(discount_spec),
            coupon_discount=coupon_discount,
            goods_total=goods_total,
            fees=fee_result.fees,
            slices=slices,
            total=total,
            base_date=request.delivery_date or today,
            now=now,
            reconciliation_adjustment=adjustment,
            instant_payment=instant_payment,
        )

    def _base_slices(self, request: SettlementRequest, goods_total: Decimal) -> tuple[PaymentSlice, ...]:
        plan = request.payment
        if isinstance(plan, SplitPayment):
            tolerance = self._rules.split_tolerance
            primary = plan.primary_amount
            if primary is None:
                primary = goods_total - plan.secondary_amount
            if primary < 0 or abs(primary + plan.secondary_amount - goods_total) > tolerance:
                raise SplitAmountMismatchError(
                    primary_amount=primary,
                    secondary_amount=plan.secondary_amount,
                    total=goods_total,
                )
        return plan.slices(goods_total)

    def _allocate_order_number(self) -> str:
        with session_scope(self._factory) as session:
            return SequenceService(session).next_order_number()

    def _mint(
        self,
        request: SettlementRequest,
        quote: SettlementQuote,
        order_number: str,
        minted: list[MintedArtifact],
    ) -> None:
        artifact_slices = [s for s in quote.slices if s.method.is_billing_artifact]
        if not artifact_slices:
            return
        if self._billing_provider is None:
            raise BillingProviderNotConfiguredError(
                account=request.provider_account or self._rules.default_provider_account
            )
        billing = BillingService(self._billing_provider, self._rules)
        for slice_ in artifact_slices:
            billing.mint(
                slice_.amount,
                quote.payer,
                order_number=order_number,
                base_date=quote.base_date,
                installments=request.installments,
                provider_account=request.provider_account,
                minted=minted,
            )

    def _commit(
        self,
        request: SettlementRequest,
        quote: SettlementQuote,
        order_number: str,
        minted: list[MintedArtifact],
    ) -> SettlementSucceeded:
        prepared = PreparedSettlement(
            request=request,
            payer=quote.payer,
            cart=quote.cart,
            order_number=order_number,
            discount=quote.discount,
            discount_percent=quote.discount_percent,
            coupon_discount=quote.coupon_discount,
            fees=quote.fees,
            slices=quote.slices,
            total=quote.total,
            base_date=quote.base_date,
            now=quote.now,
            reconciliation_adjustment=quote.reconciliation_adjustment,
            instant_payment=quote.instant_payment,
            artifacts=tuple(minted),
        )
        with session_scope(self._factory) as session:
            order = SettlementTransaction(session, self._rules).execute(prepared)
            view = order_view(order)
            artifacts = OrderSelector(session).artifacts_for(order.id)

        logger.info(
            "settlement_committed",
            extra={"order_id": str(view.id), "total": view.total, "payment_status": view.payment_status},
        )
        return SettlementSucceeded(order=view, artifacts=artifacts)

    def _after_commit(self, quote: SettlementQuote, result: SettlementSucceeded) -> None:
        """Best-effort follow-ups; the order is already committed."""
        payer = quote.payer
        if payer.kind == "customer" and payer.use_custom_catalog:
            product_ids = [line.product_id for line in quote.cart.lines if line.product_id is not None]
            try:
                with session_scope(self._factory) as session:
                    CatalogService(session).enrol_purchased_products(payer.id, product_ids)
            except Exception:
                logger.warning("catalog_enrolment_failed", exc_info=True)

        if self._notifier is not None:
            try:
                self._notifier.send_order_created(result.order.to_dict())
            except Exception:
                logger.warning("notification_failed", exc_info=True)

    def _report_orphans(self, minted: list[MintedArtifact], error: BaseException) -> None:
        if not minted:
            return
        for artifact in minted:
            logger.error(
                "orphaned_billing_artifact",
                extra={
                    "artifact_code": artifact.code,
                    "provider_id": artifact.provider.id,
                    "provider_account": artifact.provider_account,
                    "amount": artifact.amount,
                    "due_date": artifact.planned.due_date,
                    "cause": str(error),
                },
            )
        if self._on_orphaned is not None:
            try:
                self._on_orphaned(tuple(minted), error)
            except Exception:
                logger.error("orphaned_artifact_hook_failed", exc_info=True)


def _apply_adjustment(slices: tuple[PaymentSlice, ...], adjustment: Decimal) -> tuple[PaymentSlice, ...]:
    """Move a reconciliation adjustment onto the PIX slice."""
    target = next(i for i, s in enumerate(slices) if s.method is PaymentMethod.PIX)
    return tuple(
        s.with_amount(s.amount + adjustment) if i == target else s
        for i, s in enumerate(slices)
    )
