"""
Tests for billing artifact minting and the outbound collaborators:
BillingService, CoraBillingClient (against a fake HTTP session),
CancelOrphanedArtifacts and the notification dispatchers.

No network access: the Cora client is given an object with the
``requests.Session.request`` signature that replays canned responses.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
import requests

from settlement_config.schema import BillingProviderSettings, ProviderAccountSettings
from settlement_kernel.domain.installments import InstallmentSpec
from settlement_kernel.domain.payer import CustomerPayer, PayerContact
from settlement_kernel.domain.rules import SettlementRules
from settlement_kernel.exceptions import (
    BillingAmountBelowMinimumError,
    BillingProviderError,
    BillingProviderNotConfiguredError,
    InvalidPayerDocumentError,
    MissingPayerDocumentError,
)
from settlement_kernel.services.billing_service import BillingService, document_digits
from settlement_services import (
    CancelOrphanedArtifacts,
    CoraBillingClient,
    InMemoryBillingProvider,
    LoggingNotificationDispatcher,
    RecordingNotificationDispatcher,
)
from settlement_services.cora_client import document_type

BASE = date(2024, 4, 1)


def _payer(document: str | None = "12.345.678/0001-90", **overrides) -> CustomerPayer:
    values = dict(
        id=uuid4(),
        name="Bar do Ze",
        contact=PayerContact(email="financeiro@bardoze.invalid"),
        document=document,
        available_credit=Decimal("5000"),
        credit_limit=Decimal("5000"),
    )
    values.update(overrides)
    return CustomerPayer(**values)


def _mint(provider, amount="300.00", payer=None, installments="3x-10-20-30", minted=None):
    service = BillingService(provider, SettlementRules())
    return service.mint(
        Decimal(amount),
        payer or _payer(),
        order_number="ESP000001",
        base_date=BASE,
        installments=InstallmentSpec.parse(installments) if installments else None,
        minted=minted,
    )


# =========================================================================
# BillingService
# =========================================================================


class TestPayerDocument:

    @pytest.mark.parametrize(
        "document, digits",
        [("123.456.789-01", "12345678901"), ("12345678000190", "12345678000190")],
    )
    def test_cpf_and_cnpj(self, document, digits):
        assert document_digits(_payer(document)) == digits

    def test_missing(self):
        with pytest.raises(MissingPayerDocumentError):
            document_digits(_payer(None))

    def test_wrong_length(self):
        with pytest.raises(InvalidPayerDocumentError) as exc_info:
            document_digits(_payer("1234"))
        assert exc_info.value.digits == 4


class TestBillingServiceMint:

    def test_one_provider_call_per_installment(self):
        provider = InMemoryBillingProvider()
        minted = _mint(provider)
        assert [m.code for m in minted] == ["BOLESP000001-1", "BOLESP000001-2", "BOLESP000001-3"]
        assert [c.amount_minor_units for c in provider.calls] == [10000, 10000, 10000]
        assert {c.payer_document for c in provider.calls} == {"12345678000190"}
        assert provider.calls[0].payer_email == "financeiro@bardoze.invalid"
        assert provider.calls[0].sub_account == "GENUINO"
        assert provider.calls[1].description == "Order ESP000001 - installment 2/3"
        assert minted[0].provider.document_url == "https://billing.invalid/BOLESP000001-1.pdf"

    def test_single_artifact_uses_default_terms(self):
        provider = InMemoryBillingProvider()
        (minted,) = _mint(provider, amount="80.00", installments=None)
        assert minted.code == "BOLESP000001"
        assert minted.planned.due_date == date(2024, 5, 1)

    def test_customer_terms_override_default(self):
        provider = InMemoryBillingProvider()
        (minted,) = _mint(provider, amount="80.00", installments=None, payer=_payer(payment_terms_days=7))
        assert minted.planned.due_date == date(2024, 4, 8)

    def test_below_minimum_makes_no_call(self):
        provider = InMemoryBillingProvider()
        with pytest.raises(BillingAmountBelowMinimumError):
            _mint(provider, amount="12.00")
        assert provider.calls == []

    def test_missing_document_makes_no_call(self):
        provider = InMemoryBillingProvider()
        with pytest.raises(MissingPayerDocumentError):
            _mint(provider, payer=_payer(None))
        assert provider.calls == []

    def test_partial_failure_keeps_earlier_artifacts(self):
        provider = InMemoryBillingProvider(fail_on=2)
        minted = []
        with pytest.raises(BillingProviderError):
            _mint(provider, minted=minted)
        assert [m.code for m in minted] == ["BOLESP000001-1"]

    def test_foreign_exception_is_wrapped(self, captured_logs):
        provider = InMemoryBillingProvider(fail_on=1, error=RuntimeError("socket closed"))
        with pytest.raises(BillingProviderError) as exc_info:
            _mint(provider)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.artifact_code == "BOLESP000001-1"
        failures = [r for r in captured_logs() if r["message"] == "billing_provider_call_failed"]
        assert failures and failures[0]["level"] == "ERROR"
        assert failures[0]["error"] == {"type": "RuntimeError", "message": "socket closed"}


class TestInMemoryProvider:

    def test_repeated_code_returns_first_artifact(self):
        provider = InMemoryBillingProvider()
        kwargs = dict(
            payer_name="X",
            payer_document="12345678901",
            amount_minor_units=500,
            due_date=BASE,
            description="d",
            sub_account="GENUINO",
        )
        first = provider.create_artifact(code="BOL1", **kwargs)
        again = provider.create_artifact(code="BOL1", **kwargs)
        assert first == again
        assert len(provider.issued) == 1


# =========================================================================
# CoraBillingClient
# =========================================================================


class FakeResponse:

    def __init__(self, status_code: int, payload: dict | None = None, text: str = ""):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text

    def json(self):
        return self._payload


class FakeHttp:
    """Replays queued responses and records each request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[tuple[str, str, dict]] = []

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


TOKEN = FakeResponse(200, {"access_token": "tok-1"})

INVOICE = FakeResponse(
    201,
    {
        "id": "inv_abc",
        "payment_options": {
            "bank_slip": {
                "barcode": "2379000",
                "digitable": "23790.0000",
                "url": "https://cora.invalid/b.pdf",
            }
        },
        "pix": {"emv": "000201PIX"},
    },
)


@pytest.fixture
def cora_settings() -> BillingProviderSettings:
    return BillingProviderSettings(
        base_url="https://cora.invalid",
        token_ttl_seconds=3000,
        accounts=(
            ProviderAccountSettings(name="GENUINO", client_id="cid", cert_path="/c.pem", key_path="/k.key"),
            ProviderAccountSettings(name="ESPETOS"),
        ),
    )


def _client(settings, http, clock=lambda: 0.0):
    return CoraBillingClient(settings, rules=SettlementRules(), session=http, monotonic=clock)


def _create(client, code="BOLESP000001", sub_account="GENUINO"):
    return client.create_artifact(
        code=code,
        payer_name="Bar do Ze",
        payer_document="12.345.678/0001-90",
        amount_minor_units=10000,
        due_date=date(2024, 4, 11),
        description="Order ESP000001",
        sub_account=sub_account,
        payer_email="financeiro@bardoze.invalid",
    )


class TestCoraCreateArtifact:

    def test_invoice_request_and_parsing(self, cora_settings):
        http = FakeHttp(TOKEN, INVOICE)
        artifact = _create(_client(cora_settings, http))

        token_call, invoice_call = http.requests
        assert token_call[0] == "POST"
        assert token_call[1] == "https://cora.invalid/token"
        assert token_call[2]["cert"] == ("/c.pem", "/k.key")

        method, url, kwargs = invoice_call
        assert (method, url) == ("POST", "https://cora.invalid/v2/invoices")
        assert kwargs["headers"]["Authorization"] == "Bearer tok-1"
        assert kwargs["headers"]["Idempotency-Key"] == "BOLESP000001"
        body = kwargs["json"]
        assert body["customer"]["document"] == {"identity": "12345678000190", "type": "CNPJ"}
        assert body["services"][0]["amount"] == 10000
        assert body["payment_terms"]["due_date"] == "2024-04-11"

        assert artifact.id == "inv_abc"
        assert artifact.digitable_line == "23790.0000"
        assert artifact.instant_payment_code == "000201PIX"
        assert artifact.document_url == "https://cora.invalid/b.pdf"

    def test_token_is_cached_until_expiry(self, cora_settings):
        now = [0.0]
        http = FakeHttp(TOKEN, INVOICE, INVOICE, TOKEN, INVOICE)
        client = _client(cora_settings, http, clock=lambda: now[0])
        _create(client, "A")
        _create(client, "B")
        now[0] = 3001.0
        _create(client, "C")
        paths = [url.rsplit("/", 1)[-1] for _, url, _ in http.requests]
        assert paths == ["token", "invoices", "invoices", "token", "invoices"]

    def test_http_error(self, cora_settings):
        http = FakeHttp(TOKEN, FakeResponse(422, text="invalid document"))
        with pytest.raises(BillingProviderError) as exc_info:
            _create(_client(cora_settings, http))
        assert exc_info.value.status_code == 422
        assert exc_info.value.artifact_code == "BOLESP000001"

    def test_transport_error(self, cora_settings):
        http = FakeHttp(requests.ConnectionError("refused"))
        with pytest.raises(BillingProviderError):
            _create(_client(cora_settings, http))

    def test_unconfigured_account_makes_no_request(self, cora_settings):
        http = FakeHttp()
        with pytest.raises(BillingProviderNotConfiguredError):
            _create(_client(cora_settings, http), sub_account="ESPETOS")
        assert http.requests == []

    @pytest.mark.parametrize("digits, kind", [("12345678901", "CPF"), ("12345678000190", "CNPJ")])
    def test_document_type(self, digits, kind):
        assert document_type(digits) == kind


class TestCoraLookupAndCancel:

    def test_confirmed_payment(self, cora_settings):
        http = FakeHttp(TOKEN, FakeResponse(200, {"id": "inv_9", "status": "PAID", "total_paid": 5000}))
        payment = _client(cora_settings, http).get_confirmed_payment("inv_9")
        assert payment.amount == Decimal("50.00")
        assert payment.fee_amount == Decimal("0.50")
        assert payment.net_amount == Decimal("49.50")
        assert payment.sub_account == "GENUINO"
        assert payment.status == "PAID"

    def test_unknown_charge(self, cora_settings):
        http = FakeHttp(TOKEN, FakeResponse(404))
        assert _client(cora_settings, http).get_confirmed_payment("inv_missing") is None

    def test_cancel_accepts_no_content(self, cora_settings):
        http = FakeHttp(TOKEN, FakeResponse(204))
        _client(cora_settings, http).cancel_artifact("inv_abc", "GENUINO")
        assert http.requests[1][:2] == ("DELETE", "https://cora.invalid/v2/invoices/inv_abc")


# =========================================================================
# Compensation and notifications
# =========================================================================


class FlakyCancelProvider(InMemoryBillingProvider):

    def cancel_artifact(self, provider_id, sub_account):
        if provider_id == "inv_000001":
            raise BillingProviderError(artifact_code=provider_id, reason="already paid")
        super().cancel_artifact(provider_id, sub_account)


class TestCancelOrphanedArtifacts:

    def test_cancels_every_artifact(self):
        provider = InMemoryBillingProvider()
        minted = _mint(provider)
        CancelOrphanedArtifacts(provider)(tuple(minted), RuntimeError("commit failed"))
        assert provider.cancelled == ["inv_000001", "inv_000002", "inv_000003"]

    def test_one_failed_cancel_does_not_stop_the_rest(self, captured_logs):
        provider = FlakyCancelProvider()
        minted = _mint(provider)
        CancelOrphanedArtifacts(provider)(tuple(minted), RuntimeError("commit failed"))
        assert provider.cancelled == ["inv_000002", "inv_000003"]
        messages = [r["message"] for r in captured_logs()]
        assert "orphaned_artifact_cancel_failed" in messages


class TestNotificationDispatchers:

    def test_recording(self):
        dispatcher = RecordingNotificationDispatcher()
        dispatcher.send_order_created({"orderNumber": "ESP000001"})
        assert dispatcher.sent == [{"orderNumber": "ESP000001"}]

    def test_logging(self, captured_logs):
        LoggingNotificationDispatcher().send_order_created(
            {"orderNumber": "ESP000001", "total": 16.0, "paymentMethod": "CASH"}
        )
        (record,) = [r for r in captured_logs() if r["message"] == "order_created_notification"]
        assert record["total"] == 16.0
        assert record["payment_method"] == "CASH"
