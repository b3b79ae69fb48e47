"""
Tests for installment planning (``settlement_kernel.domain.installments``).

Invariant: the installments of a slice sum to the slice amount exactly,
each due ``base_date + offset`` days.
"""

from datetime import date
from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from settlement_kernel.domain.installments import (
    InstallmentSpec,
    artifact_code,
    plan_artifacts,
    split_amount,
)
from settlement_kernel.exceptions import BillingAmountBelowMinimumError, ValidationError

BASE = date(2024, 4, 1)
MINIMUM = Decimal("5.00")


class TestInstallmentSpec:

    def test_parse(self):
        spec = InstallmentSpec.parse("3x-10-20-30")
        assert spec.count == 3
        assert spec.day_offsets == (10, 20, 30)
        assert str(spec) == "3x-10-20-30"

    @pytest.mark.parametrize("text", ["", "3x", "x-10", "3-10-20-30", "3x-10-a", "2x-10-20-"])
    def test_malformed(self, text):
        with pytest.raises(ValidationError):
            InstallmentSpec.parse(text)

    def test_offset_count_must_match(self):
        with pytest.raises(ValidationError):
            InstallmentSpec.parse("3x-10-20")

    def test_zero_count_rejected(self):
        with pytest.raises(ValidationError):
            InstallmentSpec(count=0, day_offsets=())


class TestPlanArtifacts:

    def test_three_equal_installments(self):
        planned = plan_artifacts(
            Decimal("300.00"),
            "ESP000001",
            base_date=BASE,
            spec=InstallmentSpec.parse("3x-10-20-30"),
            payment_terms_days=30,
            minimum_amount=MINIMUM,
        )
        assert [p.amount for p in planned] == [Decimal("100.00")] * 3
        assert [p.due_date for p in planned] == [date(2024, 4, 11), date(2024, 4, 21), date(2024, 5, 1)]
        assert [p.code for p in planned] == ["BOLESP000001-1", "BOLESP000001-2", "BOLESP000001-3"]
        assert all(p.installment_total == 3 for p in planned)

    def test_last_installment_absorbs_remainder(self):
        planned = plan_artifacts(
            Decimal("100.00"),
            "ESP000002",
            base_date=BASE,
            spec=InstallmentSpec.parse("3x-30-60-90"),
            payment_terms_days=30,
            minimum_amount=MINIMUM,
        )
        assert [p.amount for p in planned] == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]

    def test_single_artifact_uses_payment_terms(self):
        planned = plan_artifacts(
            Decimal("80.00"),
            "ESP000003",
            base_date=BASE,
            spec=None,
            payment_terms_days=7,
            minimum_amount=MINIMUM,
        )
        assert len(planned) == 1
        assert planned[0].code == artifact_code("ESP000003") == "BOLESP000003"
        assert planned[0].due_date == date(2024, 4, 8)
        assert planned[0].installment_number is None

    def test_installment_below_minimum(self):
        with pytest.raises(BillingAmountBelowMinimumError) as exc_info:
            plan_artifacts(
                Decimal("12.00"),
                "ESP000004",
                base_date=BASE,
                spec=InstallmentSpec.parse("3x-10-20-30"),
                payment_terms_days=30,
                minimum_amount=MINIMUM,
            )
        assert exc_info.value.amount == Decimal("4.00")
        assert exc_info.value.minimum == MINIMUM


class TestSplitAmountProperty:

    @given(
        cents=st.integers(min_value=1, max_value=100_000_000),
        count=st.integers(min_value=1, max_value=24),
    )
    def test_split_sums_exactly(self, cents, count):
        total = Decimal(cents) / 100
        parts = split_amount(total, count)
        assert len(parts) == count
        assert sum(parts) == total
        assert all(p == p.quantize(Decimal("0.01")) for p in parts)
