"""Order-level discount specs (percent of subtotal or fixed amount)."""

from dataclasses import dataclass
from decimal import Decimal

from settlement_kernel.db.types import ZERO, round_money
from settlement_kernel.exceptions import ValidationError


@dataclass(frozen=True)
class PercentDiscount:
    percent: Decimal

    def __post_init__(self) -> None:
        if self.percent < 0 or self.percent > 100:
            raise ValidationError(
                f"Discount percent must be between 0 and 100, got {self.percent}",
                field="discount_percent",
            )

    def amount_for(self, subtotal: Decimal) -> Decimal:
        return round_money(subtotal * self.percent / Decimal(100))


@dataclass(frozen=True)
class FixedDiscount:
    amount: Decimal

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValidationError(
                f"Discount amount must be non-negative, got {self.amount}",
                field="discount_amount",
            )

    def amount_for(self, subtotal: Decimal) -> Decimal:
        return min(round_money(self.amount), subtotal)


DiscountSpec = PercentDiscount | FixedDiscount


def discount_percent_of(spec: DiscountSpec | None) -> Decimal:
    if isinstance(spec, PercentDiscount):
        return spec.percent
    return ZERO
