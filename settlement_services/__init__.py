"""
settlement_services -- outbound collaborators for the settlement kernel.

Implementations of the kernel's ports (``settlement_kernel.domain.ports``):
the Cora HTTP client, in-memory fakes, notification dispatchers, and an
opt-in compensation hook for orphaned billing artifacts.
"""

from settlement_services.compensation import CancelOrphanedArtifacts
from settlement_services.cora_client import CoraBillingClient
from settlement_services.in_memory import InMemoryBillingProvider, InMemoryInstantPaymentLookup
from settlement_services.notifications import (
    LoggingNotificationDispatcher,
    RecordingNotificationDispatcher,
)

__all__ = [
    "CancelOrphanedArtifacts",
    "CoraBillingClient",
    "InMemoryBillingProvider",
    "InMemoryInstantPaymentLookup",
    "LoggingNotificationDispatcher",
    "RecordingNotificationDispatcher",
]
