"""Read-side queries over settled orders."""

from decimal import Decimal
from uuid import uuid4

import pytest

from settlement_kernel.domain.dtos import PayerRef
from settlement_kernel.domain.installments import InstallmentSpec
from settlement_kernel.domain.payment import PaymentMethod, SinglePayment, SplitPayment
from settlement_kernel.selectors.order_selector import OrderSelector
from tests.conftest import item, make_request


@pytest.fixture
def cash_order(pipeline, promo_product, plain_product):
    return pipeline.settle(
        make_request(item(promo_product, 2), item(plain_product, 1), idempotency_key="sel-1")
    ).order


class TestLookups:

    def test_by_id_number_and_key(self, cash_order, read):
        by_id = read(lambda s: OrderSelector(s).get_by_id(cash_order.id))
        by_number = read(lambda s: OrderSelector(s).get_by_number("ESP000001"))
        by_key = read(lambda s: OrderSelector(s).get_by_idempotency_key("sel-1"))
        assert by_id == by_number == by_key == cash_order

    def test_unknown_order(self, db_tables, read):
        assert read(lambda s: OrderSelector(s).get_by_id(uuid4())) is None
        assert read(lambda s: OrderSelector(s).get_by_idempotency_key("nope")) is None
        assert read(lambda s: OrderSelector(s).detail("ESP999999")) is None

    def test_line_items(self, cash_order):
        assert [(line.quantity, line.unit_price, line.total) for line in cash_order.items] == [
            (2, Decimal("8.00"), Decimal("16.00")),
            (1, Decimal("25.00"), Decimal("25.00")),
        ]
        assert cash_order.subtotal == Decimal("41.00")


class TestDetail:

    def test_movements_follow_the_cart(self, cash_order, read, promo_product, plain_product):
        detail = read(lambda s: OrderSelector(s).detail(cash_order.order_number))
        assert {(m.product_id, m.quantity, m.new_stock) for m in detail.movements} == {
            (promo_product.id, -2, 98),
            (plain_product.id, -1, 99),
        }
        assert all(m.movement_type == "EXIT" for m in detail.movements)

    def test_split_receivables_are_labelled_by_role(self, pipeline, read, plain_product):
        order = pipeline.settle(
            make_request(
                item(plain_product, 2),
                payment=SplitPayment(PaymentMethod.CASH, PaymentMethod.PIX, Decimal("20.00")),
            )
        ).order
        receivables = read(lambda s: OrderSelector(s).receivables_for(order.id))
        assert {(r.slice_role, r.payment_method, r.amount) for r in receivables} == {
            ("PRIMARY", "CASH", Decimal("30.00")),
            ("SECONDARY", "PIX", Decimal("20.00")),
        }

    def test_artifacts_in_installment_order(self, pipeline, read, customer, plain_product):
        order = pipeline.settle(
            make_request(
                item(plain_product, 8),
                payer=PayerRef.customer(customer.id),
                payment=SinglePayment(PaymentMethod.BOLETO),
                installments=InstallmentSpec.parse("2x-15-30"),
                exempt_billing_artifact_fee=True,
            )
        ).order
        artifacts = read(lambda s: OrderSelector(s).artifacts_for(order.id))
        assert [a.installment_number for a in artifacts] == [1, 2]
        assert all(a.installment_total == 2 for a in artifacts)
        assert sum(a.amount for a in artifacts) == order.total
