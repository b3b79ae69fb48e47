"""
BillingService -- mint billing artifacts with the external provider.

Responsibility:
    Validates the payer's tax document, plans the installments for a
    billing-artifact slice, and calls the BillingProvider once per planned
    artifact.  Runs BEFORE the settlement transaction: minting is an
    irreversible external side effect that a local rollback cannot undo.

Architecture position:
    Kernel > Services -- the only kernel service that talks to an outbound
    port.  Holds no session; nothing durable is written here.

Failure modes:
    - MissingPayerDocumentError / InvalidPayerDocumentError (CPF 11 or
      CNPJ 14 digits).
    - BillingAmountBelowMinimumError: raised by planning, before any call.
    - BillingProviderError: any provider failure.  Artifacts minted earlier
      in the same run stay in the caller-supplied ``minted`` list.
"""

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from settlement_kernel.db.types import money_to_minor_units
from settlement_kernel.domain.installments import InstallmentSpec, PlannedArtifact, plan_artifacts
from settlement_kernel.domain.payer import Payer
from settlement_kernel.domain.ports import BillingProvider, ProviderArtifact
from settlement_kernel.domain.rules import SettlementRules
from settlement_kernel.exceptions import (
    BillingProviderError,
    InvalidPayerDocumentError,
    MissingPayerDocumentError,
    SettlementError,
)
from settlement_kernel.logging_config import get_logger

logger = get_logger("services.billing")

_DOCUMENT_LENGTHS = (11, 14)


@dataclass(frozen=True)
class MintedArtifact:
    planned: PlannedArtifact
    provider: ProviderArtifact
    provider_account: str

    @property
    def code(self) -> str:
        return self.planned.code

    @property
    def amount(self) -> Decimal:
        return self.planned.amount


def document_digits(payer: Payer) -> str:
    """Digits of the payer's CPF/CNPJ, validated."""
    if not payer.document:
        raise MissingPayerDocumentError(payer_name=payer.name)
    digits = re.sub(r"\D", "", payer.document)
    if len(digits) not in _DOCUMENT_LENGTHS:
        raise InvalidPayerDocumentError(payer_name=payer.name, digits=len(digits))
    return digits


class BillingService:
    """Plans and mints the artifacts for one billing-artifact slice."""

    def __init__(self, provider: BillingProvider, rules: SettlementRules):
        self._provider = provider
        self._rules = rules

    def plan(
        self,
        amount: Decimal,
        payer: Payer,
        *,
        order_number: str,
        base_date: date,
        installments: InstallmentSpec | None,
    ) -> list[PlannedArtifact]:
        terms = payer.payment_terms_days or self._rules.default_payment_terms_days
        return plan_artifacts(
            amount,
            order_number,
            base_date=base_date,
            spec=installments,
            payment_terms_days=terms,
            minimum_amount=self._rules.minimum_artifact_amount,
        )

    def mint(
        self,
        amount: Decimal,
        payer: Payer,
        *,
        order_number: str,
        base_date: date,
        installments: InstallmentSpec | None,
        provider_account: str | None = None,
        minted: list[MintedArtifact] | None = None,
    ) -> list[MintedArtifact]:
        """
        Mint every planned artifact.

        ``minted`` collects artifacts as they are issued, so a caller still
        sees the ones minted before a later call failed.
        """
        digits = document_digits(payer)
        planned = self.plan(
            amount,
            payer,
            order_number=order_number,
            base_date=base_date,
            installments=installments,
        )
        account = provider_account or self._rules.default_provider_account

        if minted is None:
            minted = []
        for artifact in planned:
            description = f"Order {order_number}"
            if artifact.installment_number is not None:
                description += f" - installment {artifact.installment_number}/{artifact.installment_total}"
            try:
                issued = self._provider.create_artifact(
                    code=artifact.code,
                    payer_name=payer.name,
                    payer_document=digits,
                    amount_minor_units=money_to_minor_units(artifact.amount),
                    due_date=artifact.due_date,
                    description=description,
                    sub_account=account,
                    payer_email=payer.contact.email,
                )
            except SettlementError:
                raise
            except Exception as exc:
                logger.error(
                    "billing_provider_call_failed",
                    extra={"artifact_code": artifact.code},
                    exc_info=True,
                )
                raise BillingProviderError(artifact_code=artifact.code, reason=str(exc)) from exc

            minted.append(MintedArtifact(planned=artifact, provider=issued, provider_account=account))
            logger.info(
                "billing_artifact_minted",
                extra={
                    "artifact_code": artifact.code,
                    "provider_id": issued.id,
                    "amount": artifact.amount,
                    "due_date": artifact.due_date,
                },
            )
        return minted
