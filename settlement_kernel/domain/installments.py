"""
Installment planning for billing artifacts.

Responsibility:
    Parses installment specs ("3x-10-20-30"), splits a billing-artifact
    slice into N installments, assigns due dates counted from the delivery
    date, and generates the artifact numbers used as idempotency codes.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - len(day_offsets) == count.
    - sum(installment amounts) == slice amount exactly; every installment is
      the slice amount / N rounded half-up, the last absorbs the remainder.
    - No installment is below the minimum payable amount.

Failure modes:
    - ValidationError for a malformed spec.
    - BillingAmountBelowMinimumError when an installment is too small.
"""

import re
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from settlement_kernel.db.types import round_money
from settlement_kernel.exceptions import BillingAmountBelowMinimumError, ValidationError

_SPEC_PATTERN = re.compile(r"^(\d+)x((?:-\d+)+)$")


@dataclass(frozen=True)
class InstallmentSpec:
    count: int
    day_offsets: tuple[int, ...]

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ValidationError("Installment count must be at least 1", field="installments")
        if len(self.day_offsets) != self.count:
            raise ValidationError(
                f"Installment spec has {self.count} installments but "
                f"{len(self.day_offsets)} day offsets",
                field="installments",
            )
        if any(d < 0 for d in self.day_offsets):
            raise ValidationError("Installment day offsets must be non-negative", field="installments")

    @classmethod
    def parse(cls, text: str) -> "InstallmentSpec":
        """Parse ``"<n>x-<d1>-<d2>-..."``, e.g. ``"3x-10-20-30"``."""
        match = _SPEC_PATTERN.match(text.strip()) if text else None
        if match is None:
            raise ValidationError(f"Malformed installment spec: {text!r}", field="installments")
        count = int(match.group(1))
        offsets = tuple(int(p) for p in match.group(2).strip("-").split("-"))
        return cls(count=count, day_offsets=offsets)

    def __str__(self) -> str:
        return f"{self.count}x-" + "-".join(str(d) for d in self.day_offsets)


@dataclass(frozen=True)
class PlannedArtifact:
    code: str
    amount: Decimal
    due_date: date
    installment_number: int | None
    installment_total: int | None


def split_amount(total: Decimal, count: int) -> list[Decimal]:
    """Split into ``count`` cent amounts whose sum is exactly ``total``."""
    share = round_money(total / count)
    amounts = [share] * (count - 1)
    amounts.append(round_money(total) - share * (count - 1))
    return amounts


def artifact_code(order_number: str, index: int | None = None) -> str:
    if index is None:
        return f"BOL{order_number}"
    return f"BOL{order_number}-{index}"


def plan_artifacts(
    amount: Decimal,
    order_number: str,
    *,
    base_date: date,
    spec: InstallmentSpec | None,
    payment_terms_days: int,
    minimum_amount: Decimal,
) -> list[PlannedArtifact]:
    """
    Plan the billing artifacts for one billing-artifact slice.

    ``base_date`` is the delivery date (today when no delivery date is set).
    Without a spec a single artifact is due ``payment_terms_days`` later.
    """
    if spec is None:
        planned = [
            PlannedArtifact(
                code=artifact_code(order_number),
                amount=round_money(amount),
                due_date=base_date + timedelta(days=payment_terms_days),
                installment_number=None,
                installment_total=None,
            )
        ]
    else:
        planned = [
            PlannedArtifact(
                code=artifact_code(order_number, i),
                amount=part,
                due_date=base_date + timedelta(days=offset),
                installment_number=i,
                installment_total=spec.count,
            )
            for i, (part, offset) in enumerate(
                zip(split_amount(amount, spec.count), spec.day_offsets), start=1
            )
        ]

    for artifact in planned:
        if artifact.amount < minimum_amount:
            raise BillingAmountBelowMinimumError(amount=artifact.amount, minimum=minimum_amount)
    return planned
