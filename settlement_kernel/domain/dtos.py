"""
Settlement request DTOs.

Responsibility:
    The explicit, tagged request type for one settlement: cart items, payer
    reference, payment plan, discount, coupon, installments, delivery, and
    the flags that steer fees and receivable status.  ``from_dict`` turns a
    JSON-shaped payload into this type, normalising payment labels and
    rejecting malformed fields before any side effect.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from settlement_kernel.db.types import ZERO, to_decimal
from settlement_kernel.domain.discounts import DiscountSpec, FixedDiscount, PercentDiscount
from settlement_kernel.domain.installments import InstallmentSpec
from settlement_kernel.domain.payment import (
    PaymentPlan,
    SinglePayment,
    SplitPayment,
    parse_payment_method,
)
from settlement_kernel.domain.pricing import OrderType
from settlement_kernel.exceptions import ValidationError


@dataclass(frozen=True)
class CartItem:
    item_id: UUID
    quantity: int
    expected_unit_price: Decimal | None = None
    is_gift: bool = False

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValidationError(
                f"Quantity must be positive for item {self.item_id}",
                field="quantity",
            )


class PayerKind(str, Enum):
    CUSTOMER = "customer"
    EMPLOYEE = "employee"
    CASUAL = "casual"


@dataclass(frozen=True)
class PayerRef:
    kind: PayerKind
    id: UUID | None = None
    name: str | None = None
    phone: str | None = None

    @classmethod
    def customer(cls, customer_id: UUID) -> "PayerRef":
        return cls(kind=PayerKind.CUSTOMER, id=customer_id)

    @classmethod
    def employee(cls, employee_id: UUID) -> "PayerRef":
        return cls(kind=PayerKind.EMPLOYEE, id=employee_id)

    @classmethod
    def casual(cls, name: str, phone: str | None = None) -> "PayerRef":
        if not name or not name.strip():
            raise ValidationError("Casual buyer requires a name", field="casual_name")
        return cls(kind=PayerKind.CASUAL, name=name.strip(), phone=phone)


@dataclass(frozen=True)
class CouponRef:
    coupon_id: UUID
    code: str
    discount: Decimal = ZERO


@dataclass(frozen=True)
class SettlementRequest:
    items: tuple[CartItem, ...]
    payer: PayerRef
    order_type: OrderType
    payment: PaymentPlan
    actor_id: UUID
    discount: DiscountSpec | None = None
    coupon: CouponRef | None = None
    installments: InstallmentSpec | None = None
    bank_account_id: UUID | None = None
    secondary_bank_account_id: UUID | None = None
    provider_account: str | None = None
    already_paid: bool = False
    instant_payment_charge_id: str | None = None
    delivery_type: str = "DELIVERY"
    delivery_date: date | None = None
    delivery_time: str | None = None
    delivery_fee: Decimal = ZERO
    exempt_card_fee: bool = False
    exempt_billing_artifact_fee: bool = False
    notes: str | None = None
    idempotency_key: str | None = None
    seller_id: UUID | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.items:
            raise ValidationError("Cart is empty", field="items")
        if self.delivery_fee < 0:
            raise ValidationError("Delivery fee must be non-negative", field="delivery_fee")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SettlementRequest":
        """
        Build a request from a JSON-shaped payload.

        Field names follow the storefront payload (``items``, ``customerId``,
        ``employeeId``, ``casualName``, ``paymentMethod``,
        ``secondaryPaymentMethod``, ``primaryPaymentAmount``,
        ``secondaryPaymentAmount``, ``discountPercent``, ``discountAmount``,
        ``couponId``, ``installments``, ``bankAccountId``, ``alreadyPaid``,
        ``instantPaymentChargeId``, ``deliveryDate`` ...).
        """
        try:
            return _request_from_dict(data)
        except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
            raise ValidationError(f"Malformed settlement request: {exc}") from exc


def _uuid(value: Any) -> UUID | None:
    if value in (None, ""):
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid identifier: {value!r}") from None


def _decimal_or_none(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    return to_decimal(value)


def _parse_payer(data: dict[str, Any]) -> PayerRef:
    if data.get("customerId"):
        return PayerRef.customer(_uuid(data["customerId"]))
    if data.get("employeeId"):
        return PayerRef.employee(_uuid(data["employeeId"]))
    if data.get("casualName"):
        return PayerRef.casual(data["casualName"], data.get("casualPhone"))
    raise ValidationError("A customer, employee, or casual buyer name is required", field="payer")


def _parse_plan(data: dict[str, Any]) -> PaymentPlan:
    if not data.get("paymentMethod"):
        raise ValidationError("paymentMethod is required", field="paymentMethod")
    primary = parse_payment_method(data["paymentMethod"])
    if not data.get("secondaryPaymentMethod"):
        return SinglePayment(primary)
    secondary_amount = _decimal_or_none(data.get("secondaryPaymentAmount"))
    if secondary_amount is None:
        raise ValidationError(
            "secondaryPaymentAmount is required for a split payment",
            field="secondaryPaymentAmount",
        )
    return SplitPayment(
        primary_method=primary,
        secondary_method=parse_payment_method(data["secondaryPaymentMethod"]),
        primary_amount=_decimal_or_none(data.get("primaryPaymentAmount")),
        secondary_amount=secondary_amount,
    )


def _parse_discount(data: dict[str, Any]) -> DiscountSpec | None:
    percent = _decimal_or_none(data.get("discountPercent"))
    if percent is not None and percent > 0:
        return PercentDiscount(percent)
    amount = _decimal_or_none(data.get("discountAmount"))
    if amount is not None and amount > 0:
        return FixedDiscount(amount)
    return None


def _parse_installments(value: Any) -> InstallmentSpec | None:
    if not value:
        return None
    if isinstance(value, str):
        return InstallmentSpec.parse(value)
    return InstallmentSpec(count=int(value["count"]), day_offsets=tuple(int(d) for d in value["dayOffsets"]))


def _request_from_dict(data: dict[str, Any]) -> SettlementRequest:
    items = tuple(
        CartItem(
            item_id=_uuid(raw.get("productId") or raw.get("itemId")),
            quantity=int(raw["quantity"]),
            expected_unit_price=_decimal_or_none(raw.get("expectedUnitPrice")),
            is_gift=bool(raw.get("isGift", False)),
        )
        for raw in data.get("items") or ()
    )
    coupon = None
    if data.get("couponId"):
        coupon = CouponRef(
            coupon_id=_uuid(data["couponId"]),
            code=str(data.get("couponCode") or ""),
            discount=to_decimal(data.get("couponDiscount") or 0),
        )
    order_type = data.get("orderType") or OrderType.WHOLESALE.value
    try:
        order_type = OrderType(order_type)
    except ValueError:
        raise ValidationError(f"Unknown order type: {order_type!r}", field="orderType") from None
    delivery_date = data.get("deliveryDate")
    if isinstance(delivery_date, str) and delivery_date:
        delivery_date = date.fromisoformat(delivery_date[:10])
    actor_id = _uuid(data.get("actorId"))
    if actor_id is None:
        raise ValidationError("actorId is required", field="actorId")

    return SettlementRequest(
        items=items,
        payer=_parse_payer(data),
        order_type=order_type,
        payment=_parse_plan(data),
        actor_id=actor_id,
        discount=_parse_discount(data),
        coupon=coupon,
        installments=_parse_installments(data.get("installments")),
        bank_account_id=_uuid(data.get("bankAccountId")),
        secondary_bank_account_id=_uuid(data.get("secondaryBankAccountId")),
        provider_account=data.get("providerAccount"),
        already_paid=bool(data.get("alreadyPaid", False)),
        instant_payment_charge_id=data.get("instantPaymentChargeId"),
        delivery_type=data.get("deliveryType") or "DELIVERY",
        delivery_date=delivery_date or None,
        delivery_time=data.get("deliveryTime"),
        delivery_fee=to_decimal(data.get("deliveryFee") or 0),
        exempt_card_fee=bool(data.get("exemptCardFee", False)),
        exempt_billing_artifact_fee=bool(data.get("exemptBillingArtifactFee", False)),
        notes=data.get("notes"),
        idempotency_key=data.get("idempotencyKey"),
        seller_id=_uuid(data.get("sellerId")),
    )
