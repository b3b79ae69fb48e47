"""
Settlement results -- a typed outcome instead of exceptions-as-control-flow.

Responsibility:
    ``SettlementSucceeded`` carries the created (or replayed) order and its
    billing artifacts.  ``SettlementRejected`` carries a business rejection
    with a stable machine-readable code and figures.  ``SettlementFailed``
    marks an internal fault and exposes nothing but a reference id.  The
    two failure kinds never share a channel.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID


def _money(value: Decimal | None) -> float | None:
    return None if value is None else float(value)


@dataclass(frozen=True)
class LineItemView:
    id: UUID
    product_id: UUID | None
    raw_material_id: UUID | None
    quantity: int
    unit_price: Decimal
    total: Decimal
    is_gift: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "productId": str(self.product_id) if self.product_id else None,
            "rawMaterialId": str(self.raw_material_id) if self.raw_material_id else None,
            "quantity": self.quantity,
            "unitPrice": _money(self.unit_price),
            "total": _money(self.total),
            "isGift": self.is_gift,
        }


@dataclass(frozen=True)
class BillingArtifactView:
    id: UUID
    artifact_number: str
    amount: Decimal
    due_date: date
    status: str
    installment_number: int | None
    installment_total: int | None
    provider_id: str | None
    barcode: str | None
    digitable_line: str | None
    instant_payment_code: str | None
    document_url: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "boletoNumber": self.artifact_number,
            "amount": _money(self.amount),
            "dueDate": self.due_date.isoformat(),
            "status": self.status,
            "installmentNumber": self.installment_number,
            "totalInstallments": self.installment_total,
            "providerId": self.provider_id,
            "barcode": self.barcode,
            "digitableLine": self.digitable_line,
            "pixQrCode": self.instant_payment_code,
            "documentUrl": self.document_url,
        }


@dataclass(frozen=True)
class OrderView:
    id: UUID
    order_number: str
    order_type: str
    status: str
    payment_status: str
    payment_method: str
    secondary_payment_method: str | None
    primary_payment_amount: Decimal | None
    secondary_payment_amount: Decimal | None
    subtotal: Decimal
    discount: Decimal
    coupon_discount: Decimal
    card_fee: Decimal
    billing_artifact_fee: Decimal
    delivery_fee: Decimal
    reconciliation_adjustment: Decimal
    total: Decimal
    customer_id: UUID | None
    employee_id: UUID | None
    casual_name: str | None
    items: tuple[LineItemView, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "orderNumber": self.order_number,
            "orderType": self.order_type,
            "status": self.status,
            "paymentStatus": self.payment_status,
            "paymentMethod": self.payment_method,
            "secondaryPaymentMethod": self.secondary_payment_method,
            "primaryPaymentAmount": _money(self.primary_payment_amount),
            "secondaryPaymentAmount": _money(self.secondary_payment_amount),
            "subtotal": _money(self.subtotal),
            "discount": _money(self.discount),
            "couponDiscount": _money(self.coupon_discount),
            "cardFee": _money(self.card_fee),
            "boletoFee": _money(self.billing_artifact_fee),
            "deliveryFee": _money(self.delivery_fee),
            "reconciliationAdjustment": _money(self.reconciliation_adjustment),
            "total": _money(self.total),
            "customerId": str(self.customer_id) if self.customer_id else None,
            "employeeId": str(self.employee_id) if self.employee_id else None,
            "casualCustomerName": self.casual_name,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass(frozen=True)
class SettlementSucceeded:
    order: OrderView
    artifacts: tuple[BillingArtifactView, ...] = ()
    replayed: bool = False

    ok = True
    status = 201

    def to_dict(self) -> dict[str, Any]:
        return {
            "order": self.order.to_dict(),
            "boletos": [a.to_dict() for a in self.artifacts],
            "replayed": self.replayed,
            "status": 200 if self.replayed else self.status,
        }


@dataclass(frozen=True)
class SettlementRejected:
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    status: int = 400

    ok = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
            "status": self.status,
        }


@dataclass(frozen=True)
class SettlementFailed:
    reference: str
    code: str = "INTERNAL_ERROR"
    status: int = 500

    ok = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "Failed to create order",
            "code": self.code,
            "reference": self.reference,
            "status": self.status,
        }


SettlementResult = SettlementSucceeded | SettlementRejected | SettlementFailed
