"""
Settlement log lines: trace binding, stage tracking and rejection figures.

The first classes drive settlement_kernel.logging_config directly; the
last one runs real settlements and reads the JSON lines they emit.
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from settlement_kernel.domain.dtos import PayerRef
from settlement_kernel.domain.payment import PaymentMethod, SinglePayment
from settlement_kernel.exceptions import InsufficientCreditError, InsufficientStockError
from settlement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from settlement_kernel.models import Customer
from tests.conftest import item, make_request


@pytest.fixture
def unconfigured():
    """Start from an unconfigured logger; restore the suite's setup afterwards."""
    reset_logging()
    yield
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def lines(unconfigured):
    """Route settlement_kernel logs into a fresh stream; return a reader."""
    stream = StringIO()
    configure_logging(level=logging.DEBUG, handler=logging.StreamHandler(stream))

    def _read() -> list[dict]:
        return [json.loads(raw) for raw in stream.getvalue().splitlines() if raw]

    return _read


def _raise(exc: Exception):
    try:
        raise exc
    except Exception as caught:
        return caught


class TestTraceBinding:

    def test_stage_set_inside_bind_is_undone_on_exit(self):
        with LogContext.bind(correlation_id="c-1", stage="received"):
            LogContext.set(stage="guard")
            assert LogContext.get_all() == {"correlation_id": "c-1", "stage": "guard"}
        assert LogContext.get_all() == {}

    def test_order_number_binds_inside_the_settlement_trace(self):
        with LogContext.bind(correlation_id="c-2", payer_id="p-1"):
            with LogContext.bind(order_number="ESP000007"):
                assert LogContext.get_all()["order_number"] == "ESP000007"
            assert "order_number" not in LogContext.get_all()
            assert LogContext.get_all()["payer_id"] == "p-1"

    def test_none_leaves_the_outer_value(self):
        with LogContext.bind(trace_id="idem-1"):
            with LogContext.bind(trace_id=None, stage="mint"):
                assert LogContext.get_all()["trace_id"] == "idem-1"

    def test_unknown_field_is_refused(self):
        with pytest.raises(TypeError):
            LogContext.set(event_id="x")
        with pytest.raises(TypeError):
            with LogContext.bind(producer="x"):
                pass


class TestRenderedLines:

    def test_trace_and_extras(self, lines):
        with LogContext.bind(correlation_id="c-3", order_number="ESP000042", stage="commit"):
            get_logger("services.pipeline").info("settlement_committed", extra={"payment_status": "PAID"})

        (line,) = lines()
        assert line["logger"] == "settlement_kernel.services.pipeline"
        assert line["message"] == "settlement_committed"
        assert line["stage"] == "commit"
        assert line["order_number"] == "ESP000042"
        assert line["payment_status"] == "PAID"
        assert "error" not in line

    def test_trace_fields_win_over_extras(self, lines):
        with LogContext.bind(order_number="ESP000001"):
            get_logger("t").info("order_created", extra={"order_number": "ESP999999"})
        assert lines()[0]["order_number"] == "ESP000001"

    def test_money_dates_and_ids(self, lines):
        order_id = uuid4()
        get_logger("t").info(
            "receivable_created",
            extra={"order_id": order_id, "amount": Decimal("16.21"), "due_date": date(2024, 4, 11)},
        )
        line = lines()[0]
        assert line["order_id"] == str(order_id)
        assert line["amount"] == "16.21"
        assert line["due_date"] == "2024-04-11"

    def test_rejection_carries_code_status_and_figures(self, lines):
        exc = _raise(InsufficientCreditError(required=Decimal("300.00"), available=Decimal("100.00")))
        get_logger("t").warning("settlement_rejected", exc_info=exc)

        error = lines()[0]["error"]
        assert error["type"] == "InsufficientCreditError"
        assert error["code"] == "INSUFFICIENT_CREDIT"
        assert error["status"] == exc.http_status
        assert error["details"] == {"required": 300.0, "available": 100.0}
        assert "traceback" not in lines()[0]

    def test_error_level_keeps_the_traceback(self, lines):
        exc = _raise(InsufficientStockError(product_id="p-1", requested=5, available=2))
        get_logger("t").error("settlement_failed", exc_info=exc)

        line = lines()[0]
        assert line["error"]["details"]["requested"] == 5
        assert "InsufficientStockError" in line["traceback"]

    def test_foreign_exception_has_no_details(self, lines):
        get_logger("t").error("notification_failed", exc_info=_raise(ConnectionError("refused")))
        error = lines()[0]["error"]
        assert error == {"type": "ConnectionError", "message": "refused"}


class TestConfigureLogging:

    def test_second_call_is_a_no_op(self, unconfigured):
        first = logging.StreamHandler(StringIO())
        configure_logging(handler=first)
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert logging.getLogger("settlement_kernel").handlers == [first]

    def test_level_name_from_the_command_line(self, unconfigured):
        stream = StringIO()
        configure_logging(level="WARNING", handler=logging.StreamHandler(stream))
        get_logger("t").info("settlement_started")
        get_logger("t").warning("settlement_rejected")
        assert [json.loads(raw)["message"] for raw in stream.getvalue().splitlines()] == [
            "settlement_rejected"
        ]

    def test_handler_gets_the_json_formatter(self, lines):
        assert isinstance(logging.getLogger("settlement_kernel").handlers[0].formatter, StructuredFormatter)


class TestSettlementStages:

    def _messages(self, lines, message):
        return [line for line in lines() if line["message"] == message]

    def test_successful_run_walks_every_stage(self, pipeline, promo_product, lines):
        result = pipeline.settle(make_request(item(promo_product, 1), idempotency_key="stages-1"))
        assert result.ok

        (started,) = self._messages(lines, "settlement_started")
        (quoted,) = self._messages(lines, "settlement_quoted")
        (committed,) = self._messages(lines, "settlement_committed")
        assert started["stage"] == "received"
        assert quoted["stage"] == "guard"
        assert committed["stage"] == "commit"
        assert committed["order_number"] == result.order.order_number
        assert started["correlation_id"] == committed["correlation_id"]
        assert LogContext.get_all() == {}

    def test_credit_rejection_names_the_guard_stage(self, pipeline, persist, plain_product, lines):
        customer = persist(
            Customer(
                name="Pouco Credito",
                cpf_cnpj="12.345.678/0001-90",
                credit_limit=Decimal("100"),
                available_credit=Decimal("100"),
            )
        )
        result = pipeline.settle(
            make_request(
                item(plain_product, 12),
                payer=PayerRef.customer(customer.id),
                payment=SinglePayment(PaymentMethod.BOLETO),
                exempt_billing_artifact_fee=True,
            )
        )

        (rejected,) = self._messages(lines, "settlement_rejected")
        assert rejected["level"] == "WARNING"
        assert rejected["stage"] == "guard"
        assert rejected["error"]["code"] == result.code
        assert rejected["error"]["details"] == {"required": 300.0, "available": 100.0}
        assert "order_number" not in rejected

    def test_reservation_rejection_names_the_commit_stage(self, pipeline, persist, promo_product, lines):
        customer = persist(
            Customer(name="Limite Baixo", credit_limit=Decimal("10"), available_credit=Decimal("10"))
        )
        pipeline.settle(make_request(item(promo_product, 2), payer=PayerRef.customer(customer.id)))

        (rejected,) = self._messages(lines, "settlement_rejected")
        assert rejected["stage"] == "commit"
        assert rejected["error"]["details"]["required"] == 16.0
