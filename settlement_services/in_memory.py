"""
In-memory collaborators -- deterministic stand-ins for the billing
provider and the instant-payment lookup.

Used by the test suite and by the CLI when no provider credentials are
configured.  They honour the same contracts as CoraBillingClient: a repeated
artifact code returns the artifact minted the first time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from settlement_kernel.db.types import money_from_minor_units
from settlement_kernel.domain.fees import instant_payment_fee
from settlement_kernel.domain.ports import ProviderArtifact
from settlement_kernel.domain.reconciliation import ConfirmedInstantPayment
from settlement_kernel.domain.rules import SettlementRules
from settlement_kernel.exceptions import BillingProviderError


@dataclass(frozen=True)
class ArtifactCall:
    code: str
    payer_name: str
    payer_document: str
    amount_minor_units: int
    due_date: date
    description: str
    sub_account: str
    payer_email: str | None = None


class InMemoryBillingProvider:
    """
    Records every call; ``fail_on`` makes the n-th call (1-based) raise.
    """

    def __init__(self, fail_on: int | None = None, error: Exception | None = None):
        self.calls: list[ArtifactCall] = []
        self.issued: dict[str, ProviderArtifact] = {}
        self.cancelled: list[str] = []
        self._fail_on = fail_on
        self._error = error

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
        self.calls.append(
            ArtifactCall(
                code=code,
                payer_name=payer_name,
                payer_document=payer_document,
                amount_minor_units=amount_minor_units,
                due_date=due_date,
                description=description,
                sub_account=sub_account,
                payer_email=payer_email,
            )
        )
        if self._fail_on is not None and len(self.calls) == self._fail_on:
            raise self._error or BillingProviderError(artifact_code=code, reason="simulated failure")
        if code in self.issued:
            return self.issued[code]

        sequence = len(self.issued) + 1
        artifact = ProviderArtifact(
            id=f"inv_{sequence:06d}",
            barcode=f"23790{amount_minor_units:010d}{sequence:06d}",
            digitable_line=f"23790.{sequence:05d} {amount_minor_units:010d}",
            instant_payment_code=f"00020126PIX{code}",
            document_url=f"https://billing.invalid/{code}.pdf",
        )
        self.issued[code] = artifact
        return artifact

    def cancel_artifact(self, provider_id: str, sub_account: str) -> None:
        self.cancelled.append(provider_id)


class InMemoryInstantPaymentLookup:

    def __init__(self, rules: SettlementRules | None = None):
        self._rules = rules or SettlementRules()
        self._payments: dict[str, ConfirmedInstantPayment] = {}

    def add(
        self,
        charge_id: str,
        amount: Decimal,
        *,
        sub_account: str = "GENUINO",
        status: str = "PAID",
        fee_amount: Decimal | None = None,
    ) -> ConfirmedInstantPayment:
        fee = instant_payment_fee(amount, self._rules) if fee_amount is None else fee_amount
        payment = ConfirmedInstantPayment(
            charge_id=charge_id,
            amount=amount,
            fee_amount=fee,
            net_amount=amount - fee,
            sub_account=sub_account,
            status=status,
        )
        self._payments[charge_id] = payment
        return payment

    def add_minor_units(self, charge_id: str, amount_minor_units: int, **kwargs) -> ConfirmedInstantPayment:
        return self.add(charge_id, money_from_minor_units(amount_minor_units), **kwargs)

    def get_confirmed_payment(self, charge_id: str) -> ConfirmedInstantPayment | None:
        return self._payments.get(charge_id)
