"""
Tests for the card settlement schedule (``domain.calendar``) and the
Reconciliation Guard (``domain.reconciliation``).
"""

from datetime import date
from decimal import Decimal

import pytest

from settlement_kernel.domain.calendar import expected_settlement_date, roll_past_weekend
from settlement_kernel.domain.reconciliation import (
    ConfirmedInstantPayment,
    ensure_confirmed,
    reconcile_instant_payment,
)
from settlement_kernel.exceptions import (
    InstantPaymentAmountMismatchError,
    InstantPaymentNotConfirmedError,
)

# 2024-03-13 is a Wednesday
WEDNESDAY = date(2024, 3, 13)
FRIDAY = date(2024, 3, 15)


class TestSettlementCalendar:

    def test_weekday_is_kept(self):
        assert roll_past_weekend(WEDNESDAY) == WEDNESDAY

    @pytest.mark.parametrize("weekend_day", [date(2024, 3, 16), date(2024, 3, 17)])
    def test_weekend_rolls_to_monday(self, weekend_day):
        assert roll_past_weekend(weekend_day) == date(2024, 3, 18)

    def test_debit_midweek(self):
        assert expected_settlement_date(WEDNESDAY, 1) == date(2024, 3, 14)

    def test_credit_midweek(self):
        assert expected_settlement_date(WEDNESDAY, 2) == FRIDAY

    def test_friday_debit_settles_monday(self):
        assert expected_settlement_date(FRIDAY, 1) == date(2024, 3, 18)

    def test_thursday_credit_settles_monday(self):
        assert expected_settlement_date(date(2024, 3, 14), 2) == date(2024, 3, 18)


class TestReconciliation:

    def test_exact_match_is_kept(self):
        outcome = reconcile_instant_payment(Decimal("50.00"), Decimal("50.00"))
        assert outcome.total == Decimal("50.00")
        assert not outcome.normalised

    def test_one_cent_is_not_normalised(self):
        outcome = reconcile_instant_payment(Decimal("50.01"), Decimal("50.00"))
        assert outcome.total == Decimal("50.01")
        assert outcome.adjustment == Decimal("0")

    def test_within_tolerance_normalises_to_confirmed(self):
        outcome = reconcile_instant_payment(Decimal("51.50"), Decimal("50.00"), Decimal("2.00"))
        assert outcome.normalised
        assert outcome.total == Decimal("50.00")
        assert outcome.adjustment == Decimal("-1.50")

    def test_at_tolerance_boundary_is_accepted(self):
        outcome = reconcile_instant_payment(Decimal("48.00"), Decimal("50.00"), Decimal("2.00"))
        assert outcome.total == Decimal("50.00")
        assert outcome.adjustment == Decimal("2.00")

    def test_beyond_tolerance_is_rejected(self):
        with pytest.raises(InstantPaymentAmountMismatchError) as exc_info:
            reconcile_instant_payment(Decimal("60.00"), Decimal("50.00"), Decimal("2.00"))
        exc = exc_info.value
        assert exc.code == "PIX_AMOUNT_MISMATCH"
        assert exc.cart_total == Decimal("60.00")
        assert exc.confirmed_amount == Decimal("50.00")
        assert exc.difference == Decimal("10.00")

    def test_unconfirmed_charge_is_refused(self):
        payment = ConfirmedInstantPayment(
            charge_id="inv_1",
            amount=Decimal("50"),
            fee_amount=Decimal("0.5"),
            net_amount=Decimal("49.5"),
            sub_account="GENUINO",
            status="OPEN",
        )
        with pytest.raises(InstantPaymentNotConfirmedError):
            ensure_confirmed(payment)
