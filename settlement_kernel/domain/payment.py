"""
Payment configuration -- methods, slices, and the single/split plan sum type.

Responsibility:
    Normalises request payment labels into ``PaymentMethod`` values, exposes
    per-method capabilities (card, credit-consuming, billing artifact,
    immediate settlement), and models the payment plan as an explicit
    ``SinglePayment`` | ``SplitPayment`` choice instead of optional fields
    inferred by presence.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - A split plan always has two slices; their concrete amounts sum to the
      order total once fees are applied (checked by the fee calculator and
      the pipeline within the split tolerance).
    - Unknown method labels never fall through silently.

Failure modes:
    - UnsupportedPaymentMethodError for an unrecognised label.
    - ValidationError for a split plan with a missing or negative amount.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from settlement_kernel.exceptions import UnsupportedPaymentMethodError, ValidationError


class PaymentMethod(str, Enum):
    CASH = "CASH"
    PIX = "PIX"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT = "DEBIT"
    CARD = "CARD"
    BOLETO = "BOLETO"
    CREDIT = "CREDIT"

    @property
    def is_card(self) -> bool:
        return self in _CARD_METHODS

    @property
    def is_debit_card(self) -> bool:
        return self is PaymentMethod.DEBIT

    @property
    def is_credit_consuming(self) -> bool:
        return self in (PaymentMethod.BOLETO, PaymentMethod.CREDIT)

    @property
    def is_billing_artifact(self) -> bool:
        return self is PaymentMethod.BOLETO

    @property
    def settles_immediately(self) -> bool:
        return self in (PaymentMethod.CASH, PaymentMethod.PIX)

    @property
    def card_type(self) -> str | None:
        """Card network type used for settlement records (DEBIT or CREDIT)."""
        if not self.is_card:
            return None
        return "DEBIT" if self is PaymentMethod.DEBIT else "CREDIT"


_CARD_METHODS = frozenset({PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT, PaymentMethod.CARD})

# Labels sent by older storefront builds
_LEGACY_LABELS: dict[str, PaymentMethod] = {
    "Dinheiro": PaymentMethod.CASH,
    "Cartão": PaymentMethod.CARD,
    "Cartão de Crédito": PaymentMethod.CREDIT_CARD,
    "Cartão de Débito": PaymentMethod.DEBIT,
    "Crédito (30 dias)": PaymentMethod.CREDIT,
    "NOTINHA": PaymentMethod.CREDIT,
    "Boleto": PaymentMethod.BOLETO,
}


def parse_payment_method(label: "str | PaymentMethod") -> PaymentMethod:
    """Map an enum value or a legacy storefront label to a PaymentMethod."""
    if isinstance(label, PaymentMethod):
        return label
    if not label:
        raise UnsupportedPaymentMethodError(str(label))
    try:
        return PaymentMethod(label)
    except ValueError:
        pass
    try:
        return _LEGACY_LABELS[label]
    except KeyError:
        raise UnsupportedPaymentMethodError(label) from None


class SliceRole(str, Enum):
    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"


@dataclass(frozen=True)
class PaymentSlice:
    """One payment method and the amount it covers."""

    method: PaymentMethod
    amount: Decimal | None = None
    role: SliceRole = SliceRole.PRIMARY

    def __post_init__(self) -> None:
        if self.amount is not None and self.amount < 0:
            raise ValidationError(
                f"Payment amount must be non-negative, got {self.amount}",
                field="amount",
            )

    def with_amount(self, amount: Decimal) -> "PaymentSlice":
        return PaymentSlice(method=self.method, amount=amount, role=self.role)


@dataclass(frozen=True)
class SinglePayment:
    """The whole order is paid with one method; the amount is the order total."""

    method: PaymentMethod

    @property
    def methods(self) -> tuple[PaymentMethod, ...]:
        return (self.method,)

    def slices(self, base_total: Decimal) -> tuple[PaymentSlice, ...]:
        return (PaymentSlice(self.method, base_total, SliceRole.PRIMARY),)


@dataclass(frozen=True)
class SplitPayment:
    """
    Two concurrently recorded slices.

    Amounts are expressed against the order's goods total (subtotal minus
    discounts, before fees).  The primary amount may be omitted; it is then
    the remainder after the secondary amount.
    """

    primary_method: PaymentMethod
    secondary_method: PaymentMethod
    secondary_amount: Decimal
    primary_amount: Decimal | None = None

    def __post_init__(self) -> None:
        if self.secondary_amount is None or self.secondary_amount < 0:
            raise ValidationError(
                "Split payment requires a non-negative secondary amount",
                field="secondary_amount",
            )
        if self.primary_amount is not None and self.primary_amount < 0:
            raise ValidationError(
                "Split payment primary amount must be non-negative",
                field="primary_amount",
            )
        if self.primary_method is self.secondary_method:
            raise ValidationError(
                f"Split payment uses {self.primary_method.value} for both slices",
                field="secondary_payment_method",
            )

    @property
    def methods(self) -> tuple[PaymentMethod, ...]:
        return (self.primary_method, self.secondary_method)

    def slices(self, base_total: Decimal) -> tuple[PaymentSlice, ...]:
        primary = self.primary_amount
        if primary is None:
            primary = base_total - self.secondary_amount
        return (
            PaymentSlice(self.primary_method, primary, SliceRole.PRIMARY),
            PaymentSlice(self.secondary_method, self.secondary_amount, SliceRole.SECONDARY),
        )


PaymentPlan = SinglePayment | SplitPayment


def uses_method(plan: PaymentPlan, predicate) -> bool:
    """True if any method in the plan satisfies ``predicate``."""
    return any(predicate(m) for m in plan.methods)
