"""
PricingService -- price a whole cart.

Responsibility:
    Loads the products, raw materials, and personalised prices referenced
    by a cart (one query each), runs the Pricing Resolver per line, and
    returns the priced cart with its subtotal.

Architecture position:
    Kernel > Services -- imperative shell around domain/pricing.py.

Failure modes:
    - ItemNotFoundError: id matches neither a product nor a raw material.
    - PriceMismatchError: propagated from the resolver.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from settlement_kernel.db.types import ZERO
from settlement_kernel.domain.dtos import CartItem
from settlement_kernel.domain.payer import Payer
from settlement_kernel.domain.pricing import (
    OrderType,
    PricedEntry,
    RawMaterialEntry,
    ResolvedLine,
    resolve_product_price,
    resolve_raw_material_price,
)
from settlement_kernel.domain.rules import SettlementRules
from settlement_kernel.exceptions import ItemNotFoundError
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.catalog import CustomerProduct, Product, RawMaterial
from settlement_kernel.services.base import BaseService

logger = get_logger("services.pricing")


@dataclass(frozen=True)
class PricedLine:
    item: CartItem
    name: str
    resolved: ResolvedLine
    product_id: UUID | None = None
    raw_material_id: UUID | None = None

    @property
    def is_stock_tracked(self) -> bool:
        return self.product_id is not None


@dataclass(frozen=True)
class PricedCart:
    lines: tuple[PricedLine, ...]
    subtotal: Decimal
    has_promotional_item: bool


def _priced_entry(product: Product) -> PricedEntry:
    return PricedEntry(
        name=product.name,
        price_wholesale=product.price_wholesale,
        price_retail=product.price_retail,
        is_on_promotion=product.is_on_promotion,
        promotional_price=product.promotional_price,
        tier_min_quantity=product.bulk_discount_min_qty,
        tier_price=product.bulk_discount_price,
    )


class PricingService(BaseService):
    """Cart pricing under the priority policy."""

    def price_cart(
        self,
        items: tuple[CartItem, ...],
        payer: Payer,
        order_type: OrderType,
        *,
        billing_artifact_payment: bool,
        rules: SettlementRules,
    ) -> PricedCart:
        ids = {item.item_id for item in items}

        products = {
            p.id: p
            for p in self.session.execute(select(Product).where(Product.id.in_(list(ids)))).scalars()
        }
        raw_materials = {
            r.id: r
            for r in self.session.execute(
                select(RawMaterial).where(RawMaterial.id.in_(list(ids - products.keys())))
            ).scalars()
        }
        personalised = self._personalised_prices(payer, products.keys())

        lines: list[PricedLine] = []
        for item in items:
            product = products.get(item.item_id)
            if product is not None:
                resolved = resolve_product_price(
                    _priced_entry(product),
                    order_type,
                    item.quantity,
                    personalised_price=personalised.get(product.id),
                    billing_artifact_payment=billing_artifact_payment,
                    expected_unit_price=item.expected_unit_price,
                    is_gift=item.is_gift,
                    epsilon=rules.price_epsilon,
                )
                lines.append(
                    PricedLine(item=item, name=product.name, resolved=resolved, product_id=product.id)
                )
                continue

            material = raw_materials.get(item.item_id)
            if material is None:
                raise ItemNotFoundError(item_id=str(item.item_id))
            resolved = resolve_raw_material_price(
                RawMaterialEntry(
                    name=material.name,
                    price_wholesale=material.price_wholesale,
                    cost_per_unit=material.cost_per_unit,
                ),
                item.quantity,
                expected_unit_price=item.expected_unit_price,
                is_gift=item.is_gift,
                epsilon=rules.price_epsilon,
            )
            lines.append(
                PricedLine(item=item, name=material.name, resolved=resolved, raw_material_id=material.id)
            )

        for line in lines:
            logger.debug(
                "line_priced",
                extra={
                    "item_id": str(line.item.item_id),
                    "item_name": line.name,
                    "rule": line.resolved.rule.value,
                    "unit_price": line.resolved.unit_price,
                    "quantity": line.item.quantity,
                },
            )

        return PricedCart(
            lines=tuple(lines),
            subtotal=sum((line.resolved.line_total for line in lines), ZERO),
            has_promotional_item=any(line.resolved.has_promotion for line in lines),
        )

    def _personalised_prices(self, payer: Payer, product_ids) -> dict[UUID, Decimal]:
        if payer.kind != "customer" or not product_ids:
            return {}
        rows = self.session.execute(
            select(CustomerProduct).where(
                CustomerProduct.customer_id == payer.id,
                CustomerProduct.product_id.in_(list(product_ids)),
            )
        ).scalars()
        return {
            row.product_id: row.applicable_price
            for row in rows
            if row.applicable_price is not None
        }
