"""
settlement_config -- single public entrypoint for settlement policy.

Responsibility:
    ``get_active_policy()`` returns the ``SettlementPolicy`` in force: the
    packaged ``defaults.yaml``, or the file named by the
    ``SETTLEMENT_CONFIG`` environment variable.  ``get_active_rules()``
    returns the same policy already bridged into the kernel's
    ``SettlementRules``.

Architecture position:
    Configuration -- sits above ``settlement_kernel`` and beside
    ``settlement_services``.  The kernel MUST NEVER import from
    ``settlement_config``; ``bridges`` translates policy into kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- the override file does not exist.
    - ``KeyError`` / ``ValueError`` -- the policy fails to parse.

Audit relevance:
    Every successful load emits a ``settlement_config_trace`` log entry with
    the source path, version, and checksum, tying each settlement run to
    the exact policy that priced it.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from settlement_config.bridges import build_settlement_rules
from settlement_config.loader import load_policy
from settlement_config.schema import (
    BillingProviderSettings,
    ProviderAccountSettings,
    SettlementPolicy,
)
from settlement_kernel.domain.rules import SettlementRules

_logger = logging.getLogger("settlement_kernel.config")

DEFAULT_POLICY_PATH = Path(__file__).parent / "defaults.yaml"
CONFIG_ENV_VAR = "SETTLEMENT_CONFIG"

__all__ = [
    "BillingProviderSettings",
    "ProviderAccountSettings",
    "SettlementPolicy",
    "build_settlement_rules",
    "get_active_policy",
    "get_active_rules",
    "load_policy",
]


def get_active_policy(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> SettlementPolicy:
    """
    Load the policy in force.

    Args:
        path: Explicit policy file.  Defaults to ``$SETTLEMENT_CONFIG`` and
            then the packaged defaults.
        environ: Environment used for the override and for provider
            credential lookups.  Defaults to ``os.environ``.
    """
    environ = os.environ if environ is None else environ
    source = Path(path or environ.get(CONFIG_ENV_VAR) or DEFAULT_POLICY_PATH)
    policy = load_policy(source, environ)

    _logger.info(
        "settlement_config_trace",
        extra={
            "config_path": str(source),
            "config_version": policy.version,
            "checksum": policy.checksum,
            "provider_accounts": [a.name for a in policy.provider.accounts],
            "configured_accounts": [a.name for a in policy.provider.accounts if a.is_configured],
        },
    )
    return policy


def get_active_rules(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> SettlementRules:
    return build_settlement_rules(get_active_policy(path, environ))
