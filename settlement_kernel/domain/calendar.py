"""Card settlement schedule: sale date plus lag, rolled past weekends."""

from datetime import date, timedelta

SATURDAY = 5
SUNDAY = 6


def roll_past_weekend(day: date) -> date:
    while day.weekday() in (SATURDAY, SUNDAY):
        day += timedelta(days=1)
    return day


def expected_settlement_date(sale_date: date, lag_days: int) -> date:
    """
    Add ``lag_days`` calendar days, then move forward to the next weekday.

    A Friday debit sale (lag 1) lands on Saturday and settles Monday.
    """
    return roll_past_weekend(sale_date + timedelta(days=lag_days))
