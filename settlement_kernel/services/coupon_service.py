"""CouponService -- record coupon usage for a settled order."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from settlement_kernel.exceptions import ValidationError
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.coupon import Coupon, CouponUsage
from settlement_kernel.services.base import BaseService

logger = get_logger("services.coupon")


class CouponService(BaseService):

    def record_usage(
        self,
        coupon_id: UUID,
        *,
        order_id: UUID,
        customer_id: UUID,
        used_at: datetime,
        actor_id: UUID,
    ) -> CouponUsage:
        """Increment the coupon's usage counter and write a CouponUsage row."""
        coupon = self.session.execute(
            select(Coupon)
            .where(Coupon.id == coupon_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if coupon is None or not coupon.is_active:
            raise ValidationError(f"Coupon {coupon_id} not found or inactive", field="coupon_id")
        if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
            raise ValidationError(f"Coupon {coupon.code} has reached its usage limit", field="coupon_id")

        coupon.usage_count += 1
        usage = CouponUsage(
            coupon_id=coupon.id,
            customer_id=customer_id,
            order_id=order_id,
            used_at=used_at,
            created_by_id=actor_id,
        )
        self.session.add(usage)
        self.session.flush()
        logger.info(
            "coupon_usage_recorded",
            extra={"coupon_code": coupon.code, "usage_count": coupon.usage_count},
        )
        return usage
