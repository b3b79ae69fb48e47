"""
CoraBillingClient -- HTTP adapter for the Cora billing provider.

Responsibility:
    Implements the kernel's ``BillingProvider`` and ``InstantPaymentLookup``
    ports over Cora's mTLS API: an OAuth2 client-credentials token per
    provider sub-account (cached until shortly before expiry), invoice
    creation with both bank-slip and instant-payment forms, invoice lookup
    and cancellation.

Architecture position:
    Outbound services -- depends on ``settlement_kernel`` ports and
    exceptions and on ``settlement_config`` settings.  The kernel never
    imports this module.

Failure modes:
    - BillingProviderNotConfiguredError: the sub-account has no client id or
      certificate configured.
    - BillingProviderError: transport failure or a non-2xx response.  The
      artifact code is used as the Idempotency-Key, so a retry by the caller
      never mints a second invoice.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from datetime import date
from typing import Any

import requests

from settlement_config.schema import BillingProviderSettings, ProviderAccountSettings
from settlement_kernel.db.types import money_from_minor_units
from settlement_kernel.domain.fees import instant_payment_fee
from settlement_kernel.domain.ports import ProviderArtifact
from settlement_kernel.domain.reconciliation import ConfirmedInstantPayment
from settlement_kernel.domain.rules import SettlementRules
from settlement_kernel.exceptions import BillingProviderError, BillingProviderNotConfiguredError
from settlement_kernel.logging_config import get_logger

logger = get_logger("services.cora")

_SUCCESS = (200, 201)


def document_type(digits: str) -> str:
    return "CPF" if len(digits) == 11 else "CNPJ"


class CoraBillingClient:
    """
    Usage:
        client = CoraBillingClient(policy.provider, rules=rules)
        artifact = client.create_artifact(code="BOLESP000001", ...)
    """

    def __init__(
        self,
        settings: BillingProviderSettings,
        *,
        rules: SettlementRules | None = None,
        session: requests.Session | None = None,
        lookup_account: str | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self._settings = settings
        self._rules = rules or SettlementRules()
        self._http = session or requests.Session()
        self._lookup_account = lookup_account or self._rules.default_provider_account
        self._monotonic = monotonic
        self._tokens: dict[str, tuple[str, float]] = {}

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _account(self, name: str) -> ProviderAccountSettings:
        account = self._settings.account(name)
        if account is None or not account.is_configured:
            raise BillingProviderNotConfiguredError(account=name)
        return account

    def _token(self, account: ProviderAccountSettings) -> str:
        cached = self._tokens.get(account.name)
        if cached is not None and cached[1] > self._monotonic():
            return cached[0]

        response = self._send(
            "POST",
            self._settings.token_path,
            account,
            reference="token",
            data={"grant_type": "client_credentials", "client_id": account.client_id},
        )
        token = response.json()["access_token"]
        self._tokens[account.name] = (token, self._monotonic() + self._settings.token_ttl_seconds)
        logger.info("provider_token_issued", extra={"provider_account": account.name})
        return token

    def _send(
        self,
        method: str,
        path: str,
        account: ProviderAccountSettings,
        *,
        reference: str,
        ok: tuple[int, ...] = _SUCCESS,
        **kwargs: Any,
    ) -> requests.Response:
        try:
            response = self._http.request(
                method,
                f"{self._settings.base_url}{path}",
                cert=(account.cert_path, account.key_path),
                timeout=self._settings.timeout_seconds,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise BillingProviderError(artifact_code=reference, reason=str(exc)) from exc
        if response.status_code not in ok:
            logger.warning(
                "provider_request_failed",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "provider_account": account.name,
                },
            )
            raise BillingProviderError(
                artifact_code=reference,
                reason=f"HTTP {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )
        return response

    def _authorised(self, account: ProviderAccountSettings, headers: dict[str, str] | None = None):
        return {"Authorization": f"Bearer {self._token(account)}", **(headers or {})}

    # ------------------------------------------------------------------
    # BillingProvider
    # ------------------------------------------------------------------

    def create_artifact(
        self,
        code: str,
        payer_name: str,
        payer_document: str,
        amount_minor_units: int,
        due_date: date,
        description: str,
        sub_account: str,
        payer_email: str | None = None,
    ) -> ProviderArtifact:
        account = self._account(sub_account)
        digits = re.sub(r"\D", "", payer_document)
        customer: dict[str, Any] = {
            "name": payer_name,
            "document": {"identity": digits, "type": document_type(digits)},
        }
        if payer_email:
            customer["email"] = payer_email
        payload = {
            "code": code,
            "customer": customer,
            "services": [{"name": description, "quantity": 1, "amount": amount_minor_units}],
            "payment_terms": {
                "due_date": due_date.isoformat(),
                "fine": {"mode": "FIXED", "rate": float(self._settings.fine_percent)},
                "interest": {"mode": "MONTHLY", "rate": float(self._settings.monthly_interest_percent)},
            },
            "payment_forms": ["BANK_SLIP", "PIX"],
        }
        response = self._send(
            "POST",
            "/v2/invoices",
            account,
            reference=code,
            json=payload,
            headers=self._authorised(account, {"Idempotency-Key": code}),
        )
        data = response.json()
        bank_slip = (data.get("payment_options") or {}).get("bank_slip") or {}
        artifact = ProviderArtifact(
            id=data["id"],
            barcode=bank_slip.get("barcode"),
            digitable_line=bank_slip.get("digitable"),
            instant_payment_code=(data.get("pix") or {}).get("emv"),
            document_url=bank_slip.get("url"),
        )
        logger.info(
            "provider_invoice_created",
            extra={"artifact_code": code, "provider_id": artifact.id, "provider_account": sub_account},
        )
        return artifact

    def cancel_artifact(self, provider_id: str, sub_account: str) -> None:
        account = self._account(sub_account)
        self._send(
            "DELETE",
            f"/v2/invoices/{provider_id}",
            account,
            reference=provider_id,
            ok=(200, 204),
            headers=self._authorised(account),
        )
        logger.info("provider_invoice_cancelled", extra={"provider_id": provider_id})

    # ------------------------------------------------------------------
    # InstantPaymentLookup
    # ------------------------------------------------------------------

    def get_confirmed_payment(self, charge_id: str) -> ConfirmedInstantPayment | None:
        account = self._account(self._lookup_account)
        response = self._send(
            "GET",
            f"/v2/invoices/{charge_id}",
            account,
            reference=charge_id,
            ok=(200, 404),
            headers=self._authorised(account),
        )
        if response.status_code == 404:
            return None
        data = response.json()
        amount = money_from_minor_units(int(data.get("total_paid") or data.get("total_amount") or 0))
        fee = instant_payment_fee(amount, self._rules)
        return ConfirmedInstantPayment(
            charge_id=str(data.get("id", charge_id)),
            amount=amount,
            fee_amount=fee,
            net_amount=amount - fee,
            sub_account=account.name,
            status=str(data.get("status", "")),
        )
