"""
Opt-in compensation for billing artifacts orphaned by a failed settlement.

The pipeline never retracts artifacts on its own; it logs each orphan and
hands the batch to ``on_orphaned_artifacts``.  ``CancelOrphanedArtifacts``
is a hook that asks the provider to cancel them.
"""

from __future__ import annotations

from typing import Protocol

from settlement_kernel.exceptions import SettlementError
from settlement_kernel.logging_config import get_logger
from settlement_kernel.services.billing_service import MintedArtifact

logger = get_logger("services.compensation")


class CancellableProvider(Protocol):
    def cancel_artifact(self, provider_id: str, sub_account: str) -> None: ...


class CancelOrphanedArtifacts:

    def __init__(self, provider: CancellableProvider):
        self._provider = provider

    def __call__(self, artifacts: tuple[MintedArtifact, ...], error: BaseException) -> None:
        for artifact in artifacts:
            try:
                self._provider.cancel_artifact(artifact.provider.id, artifact.provider_account)
            except SettlementError:
                logger.error(
                    "orphaned_artifact_cancel_failed",
                    extra={"artifact_code": artifact.code, "provider_id": artifact.provider.id},
                    exc_info=True,
                )
                continue
            logger.info(
                "orphaned_artifact_cancelled",
                extra={"artifact_code": artifact.code, "provider_id": artifact.provider.id},
            )
