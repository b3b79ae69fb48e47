"""
Tests for the Pricing Resolver (``settlement_kernel.domain.pricing``).

Priority policy, first match wins:
    PROMOTION > min(PERSONALISED, TIER) > PERSONALISED > TIER > BASE
with promotions ignored whenever the plan is paid by billing artifact.
"""

from decimal import Decimal

import pytest

from settlement_kernel.domain.pricing import (
    OrderType,
    PricedEntry,
    PriceRule,
    RawMaterialEntry,
    resolve_product_price,
    resolve_raw_material_price,
)
from settlement_kernel.exceptions import PriceMismatchError


def _entry(**overrides) -> PricedEntry:
    values = dict(
        name="Espeto de Carne",
        price_wholesale=Decimal("10.00"),
        price_retail=Decimal("12.00"),
    )
    values.update(overrides)
    return PricedEntry(**values)


PROMO = dict(is_on_promotion=True, promotional_price=Decimal("8.00"))
TIER = dict(tier_min_quantity=10, tier_price=Decimal("9.00"))


class TestPromotion:

    def test_promotion_wins_over_base(self):
        line = resolve_product_price(_entry(**PROMO), OrderType.WHOLESALE, 2)
        assert line.unit_price == Decimal("8.00")
        assert line.line_total == Decimal("16.00")
        assert line.rule is PriceRule.PROMOTION
        assert line.has_promotion

    def test_promotion_wins_over_personalised_and_tier(self):
        line = resolve_product_price(
            _entry(**PROMO, **TIER),
            OrderType.WHOLESALE,
            20,
            personalised_price=Decimal("7.00"),
        )
        assert line.unit_price == Decimal("8.00")
        assert line.rule is PriceRule.PROMOTION

    def test_billing_artifact_payment_ignores_promotion(self):
        line = resolve_product_price(
            _entry(**PROMO), OrderType.WHOLESALE, 2, billing_artifact_payment=True
        )
        assert line.unit_price == Decimal("10.00")
        assert line.rule is PriceRule.BASE
        assert not line.has_promotion

    def test_promotion_flag_without_price_is_not_a_promotion(self):
        line = resolve_product_price(
            _entry(is_on_promotion=True, promotional_price=Decimal("0")), OrderType.RETAIL, 1
        )
        assert line.rule is PriceRule.BASE
        assert line.unit_price == Decimal("12.00")


class TestPersonalisedAndTier:

    def test_lesser_of_personalised_and_tier(self):
        line = resolve_product_price(
            _entry(**TIER), OrderType.WHOLESALE, 10, personalised_price=Decimal("9.50")
        )
        assert line.unit_price == Decimal("9.00")
        assert line.rule is PriceRule.PERSONALISED_OR_TIER

    def test_personalised_below_tier(self):
        line = resolve_product_price(
            _entry(**TIER), OrderType.WHOLESALE, 10, personalised_price=Decimal("8.50")
        )
        assert line.unit_price == Decimal("8.50")

    def test_personalised_only(self):
        line = resolve_product_price(
            _entry(), OrderType.WHOLESALE, 3, personalised_price=Decimal("9.25")
        )
        assert line.unit_price == Decimal("9.25")
        assert line.rule is PriceRule.PERSONALISED
        assert line.line_total == Decimal("27.75")

    def test_tier_requires_threshold(self):
        below = resolve_product_price(_entry(**TIER), OrderType.WHOLESALE, 9)
        at = resolve_product_price(_entry(**TIER), OrderType.WHOLESALE, 10)
        assert below.rule is PriceRule.BASE
        assert at.rule is PriceRule.TIER
        assert at.unit_price == Decimal("9.00")

    def test_zero_personalised_price_is_ignored(self):
        line = resolve_product_price(_entry(), OrderType.WHOLESALE, 1, personalised_price=Decimal("0"))
        assert line.rule is PriceRule.BASE


class TestBasePrice:

    @pytest.mark.parametrize(
        "order_type, expected",
        [(OrderType.WHOLESALE, Decimal("10.00")), (OrderType.RETAIL, Decimal("12.00"))],
    )
    def test_base_price_follows_order_type(self, order_type, expected):
        assert resolve_product_price(_entry(), order_type, 1).unit_price == expected


class TestExpectedPrice:

    def test_within_epsilon_is_accepted(self):
        line = resolve_product_price(
            _entry(**PROMO), OrderType.WHOLESALE, 1, expected_unit_price=Decimal("8.01")
        )
        assert line.unit_price == Decimal("8.00")

    def test_mismatch_carries_both_prices(self):
        with pytest.raises(PriceMismatchError) as exc_info:
            resolve_product_price(
                _entry(**PROMO), OrderType.WHOLESALE, 1, expected_unit_price=Decimal("10.00")
            )
        exc = exc_info.value
        assert exc.code == "PRICE_MISMATCH"
        assert exc.expected_price == Decimal("10.00")
        assert exc.resolved_price == Decimal("8.00")
        assert exc.item_name == "Espeto de Carne"

    def test_gift_is_checked_against_list_price(self):
        with pytest.raises(PriceMismatchError):
            resolve_product_price(
                _entry(), OrderType.WHOLESALE, 1, is_gift=True, expected_unit_price=Decimal("0")
            )


class TestGiftsAndRawMaterials:

    def test_gift_costs_nothing_but_keeps_list_price(self):
        line = resolve_product_price(_entry(), OrderType.WHOLESALE, 3, is_gift=True)
        assert line.unit_price == Decimal("0")
        assert line.line_total == Decimal("0")
        assert line.list_price == Decimal("10.00")

    def test_raw_material_uses_wholesale_price(self):
        line = resolve_raw_material_price(
            RawMaterialEntry(name="Carvao", price_wholesale=Decimal("25.00"), cost_per_unit=Decimal("18.00")),
            2,
        )
        assert line.unit_price == Decimal("25.00")
        assert line.rule is PriceRule.RAW_MATERIAL

    def test_raw_material_falls_back_to_cost(self):
        line = resolve_raw_material_price(
            RawMaterialEntry(name="Carvao", price_wholesale=Decimal("0"), cost_per_unit=Decimal("18.00")),
            2,
        )
        assert line.unit_price == Decimal("18.00")
        assert line.line_total == Decimal("36.00")
