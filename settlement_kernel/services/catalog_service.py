"""CatalogService -- keep a custom-catalog customer's product list current."""

from uuid import UUID

from sqlalchemy import select

from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.catalog import CustomerProduct
from settlement_kernel.services.base import BaseService

logger = get_logger("services.catalog")


class CatalogService(BaseService):

    def enrol_purchased_products(self, customer_id: UUID, product_ids) -> list[UUID]:
        """Add visible CustomerProduct rows for purchased products not yet listed."""
        wanted = set(product_ids)
        if not wanted:
            return []
        existing = set(
            self.session.execute(
                select(CustomerProduct.product_id).where(
                    CustomerProduct.customer_id == customer_id,
                    CustomerProduct.product_id.in_(list(wanted)),
                )
            ).scalars()
        )
        added = sorted(wanted - existing, key=str)
        for product_id in added:
            self.session.add(CustomerProduct(customer_id=customer_id, product_id=product_id, is_visible=True))
        self.session.flush()
        if added:
            logger.info(
                "catalog_products_enrolled",
                extra={"customer_id": str(customer_id), "count": len(added)},
            )
        return added
