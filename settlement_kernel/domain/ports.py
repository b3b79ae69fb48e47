"""
Outbound ports -- protocols for the collaborators the pipeline calls.

Implementations live in ``settlement_services`` (HTTP billing provider
client, in-memory fakes, notification dispatchers).  The kernel depends on
these protocols only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol, runtime_checkable

from settlement_kernel.domain.reconciliation import ConfirmedInstantPayment


@dataclass(frozen=True)
class ProviderArtifact:
    """Identifiers returned by the billing provider for one minted artifact."""

    id: str
    barcode: str | None = None
    digitable_line: str | None = None
    instant_payment_code: str | None = None
    qr_image: str | None = None
    document_url: str | None = None


@runtime_checkable
class BillingProvider(Protocol):
    """Mints billing artifacts with an external provider.

    ``code`` doubles as the idempotency key: calling twice with the same code
    must not create a second artifact at the provider.
    """

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
    ) -> ProviderArtifact: ...


@runtime_checkable
class InstantPaymentLookup(Protocol):
    """Looks up a confirmed instant payment by provider charge id."""

    def get_confirmed_payment(self, charge_id: str) -> ConfirmedInstantPayment | None: ...


@runtime_checkable
class NotificationDispatcher(Protocol):
    """Fire-and-forget notification after a settlement commits."""

    def send_order_created(self, order: dict[str, Any]) -> None: ...
