"""
Pricing Resolver -- unit price resolution under the priority policy.

Responsibility:
    Given a catalog entry, the optional personalised price for the payer,
    the order type, whether the plan involves a billing artifact, the
    requested quantity, and an optional client-expected unit price, produce
    the resolved unit price and the line total.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Called once per cart
    line by PricingService.

Priority policy (first match wins):
    1. PROMOTION          -- active promotion, unless paid by billing artifact
    2. PERSONALISED_OR_TIER -- personalised and tier both apply: the lesser
    3. PERSONALISED       -- personalised price only
    4. TIER               -- quantity tier only (quantity >= threshold)
    5. BASE               -- wholesale or retail base price

Raw materials have a single price: wholesale price, or cost per unit when
the wholesale price is absent or zero.

Failure modes:
    - PriceMismatchError when an expected price differs from the resolved
      price by more than the epsilon.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from settlement_kernel.db.types import ZERO, round_money
from settlement_kernel.exceptions import PriceMismatchError


class OrderType(str, Enum):
    WHOLESALE = "WHOLESALE"
    RETAIL = "RETAIL"


class PriceRule(str, Enum):
    PROMOTION = "PROMOTION"
    PERSONALISED_OR_TIER = "PERSONALISED_OR_TIER"
    PERSONALISED = "PERSONALISED"
    TIER = "TIER"
    BASE = "BASE"
    RAW_MATERIAL = "RAW_MATERIAL"


@dataclass(frozen=True)
class PricedEntry:
    """Price-relevant snapshot of a catalog product."""

    name: str
    price_wholesale: Decimal
    price_retail: Decimal
    is_on_promotion: bool = False
    promotional_price: Decimal | None = None
    tier_min_quantity: int | None = None
    tier_price: Decimal | None = None

    @property
    def has_active_promotion(self) -> bool:
        return bool(self.is_on_promotion and self.promotional_price and self.promotional_price > 0)

    def tier_applies(self, quantity: int) -> bool:
        return bool(
            self.tier_min_quantity
            and self.tier_price
            and self.tier_price > 0
            and quantity >= self.tier_min_quantity
        )

    def base_price(self, order_type: OrderType) -> Decimal:
        if order_type is OrderType.WHOLESALE:
            return self.price_wholesale
        return self.price_retail


@dataclass(frozen=True)
class RawMaterialEntry:
    """Price-relevant snapshot of a raw-material item."""

    name: str
    price_wholesale: Decimal | None
    cost_per_unit: Decimal | None

    @property
    def unit_price(self) -> Decimal:
        if self.price_wholesale:
            return self.price_wholesale
        return self.cost_per_unit or ZERO


@dataclass(frozen=True)
class ResolvedLine:
    unit_price: Decimal
    line_total: Decimal
    rule: PriceRule
    has_promotion: bool
    list_price: Decimal


def _select_price(
    entry: PricedEntry,
    order_type: OrderType,
    quantity: int,
    personalised_price: Decimal | None,
    billing_artifact_payment: bool,
) -> tuple[Decimal, PriceRule]:
    if entry.has_active_promotion and not billing_artifact_payment:
        return entry.promotional_price, PriceRule.PROMOTION

    personalised = personalised_price if personalised_price and personalised_price > 0 else None
    tier = entry.tier_price if entry.tier_applies(quantity) else None

    if personalised is not None and tier is not None:
        return min(personalised, tier), PriceRule.PERSONALISED_OR_TIER
    if personalised is not None:
        return personalised, PriceRule.PERSONALISED
    if tier is not None:
        return tier, PriceRule.TIER
    return entry.base_price(order_type), PriceRule.BASE


def _check_expected(
    item_name: str,
    expected: Decimal | None,
    resolved: Decimal,
    epsilon: Decimal,
) -> None:
    if expected is not None and abs(expected - resolved) > epsilon:
        raise PriceMismatchError(
            item_name=item_name,
            expected_price=expected,
            resolved_price=resolved,
        )


def _finish(
    price: Decimal,
    rule: PriceRule,
    quantity: int,
    is_gift: bool,
) -> ResolvedLine:
    # Gifts keep their list price for audit but charge nothing.
    if is_gift:
        return ResolvedLine(
            unit_price=ZERO,
            line_total=ZERO,
            rule=rule,
            has_promotion=rule is PriceRule.PROMOTION,
            list_price=price,
        )
    return ResolvedLine(
        unit_price=price,
        line_total=round_money(price * quantity),
        rule=rule,
        has_promotion=rule is PriceRule.PROMOTION,
        list_price=price,
    )


def resolve_product_price(
    entry: PricedEntry,
    order_type: OrderType,
    quantity: int,
    *,
    personalised_price: Decimal | None = None,
    billing_artifact_payment: bool = False,
    expected_unit_price: Decimal | None = None,
    is_gift: bool = False,
    epsilon: Decimal = Decimal("0.01"),
) -> ResolvedLine:
    """
    Resolve a product line.

    Preconditions:
        quantity > 0.
    Postconditions:
        line_total == unit_price * quantity (rounded to cents), or 0 for a gift.
    Raises:
        PriceMismatchError: expected_unit_price differs by more than epsilon
            from the resolved list price.
    """
    price, rule = _select_price(
        entry, order_type, quantity, personalised_price, billing_artifact_payment
    )
    _check_expected(entry.name, expected_unit_price, price, epsilon)
    return _finish(price, rule, quantity, is_gift)


def resolve_raw_material_price(
    entry: RawMaterialEntry,
    quantity: int,
    *,
    expected_unit_price: Decimal | None = None,
    is_gift: bool = False,
    epsilon: Decimal = Decimal("0.01"),
) -> ResolvedLine:
    """Resolve a raw-material line (no promotion, tier, or personalisation)."""
    price = entry.unit_price
    _check_expected(entry.name, expected_unit_price, price, epsilon)
    return _finish(price, PriceRule.RAW_MATERIAL, quantity, is_gift)
