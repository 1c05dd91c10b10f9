from datetime import date
from decimal import Decimal

import pytest

from course_billing.cycles import (
    calculate_first_due_date,
    exclude_paid_cycles,
    get_billing_date_from_due_date,
    get_due_date_from_billing_month,
    get_upcoming_billing_cycles,
)
from course_billing.data_models import BillingCycle, Charge, ChargeStatus


def test_monthly_cycles_within_course_window() -> None:
    cycles = get_upcoming_billing_cycles("monthly", 3, "2026-01-01", "2026-03-31", today=date(2025, 12, 1))

    assert cycles == [date(2026, 1, 5), date(2026, 2, 5), date(2026, 3, 5)]


def test_cycles_stop_at_course_end() -> None:
    cycles = get_upcoming_billing_cycles("monthly", 6, "2026-01-01", "2026-02-20", today=date(2025, 12, 1))

    assert cycles == [date(2026, 1, 5), date(2026, 2, 5)]


def test_past_cycles_are_skipped() -> None:
    cycles = get_upcoming_billing_cycles(
        BillingCycle.QUARTERLY, 3, date(2026, 1, 15), None, today=date(2026, 10, 19)
    )

    assert cycles == [date(2027, 1, 5), date(2027, 4, 5), date(2027, 7, 5)]


def test_start_defaults_to_today() -> None:
    cycles = get_upcoming_billing_cycles("monthly", 3, today=date(2026, 10, 19))

    assert cycles == [date(2026, 11, 5), date(2026, 12, 5), date(2027, 1, 5)]


def test_billing_day_equal_to_today_is_not_upcoming() -> None:
    cycles = get_upcoming_billing_cycles("monthly", 1, "2026-10-01", today=date(2026, 10, 5))

    assert cycles == [date(2026, 11, 5)]


def test_one_time_and_zero_count_yield_nothing() -> None:
    assert get_upcoming_billing_cycles("one_time", 3, today=date(2026, 10, 19)) == []
    assert get_upcoming_billing_cycles("monthly", 0, today=date(2026, 10, 19)) == []


@pytest.mark.parametrize("cycle", ["monthly", "quarterly", "biannually", "yearly"])
def test_cycles_fall_on_the_fifth_and_increase(cycle: str) -> None:
    cycles = get_upcoming_billing_cycles(cycle, 12, "2025-11-30", today=date(2026, 10, 19))

    assert len(cycles) == 12
    assert all(d.day == 5 for d in cycles)
    assert all(a < b for a, b in zip(cycles, cycles[1:]))
    assert cycles[0] > date(2026, 10, 19)


def _paid(paid_on: date, status: ChargeStatus = ChargeStatus.CLEAR) -> Charge:
    return Charge(
        status=status,
        due_date=date(paid_on.year, paid_on.month, 28),
        amount=Decimal("100"),
        amount_paid=Decimal("100"),
        paid_date=paid_on,
    )


def test_exclude_paid_cycles_uses_paid_month() -> None:
    upcoming = [date(2026, 11, 5), date(2026, 12, 5), date(2027, 1, 5), date(2027, 2, 5)]
    charges = [_paid(date(2026, 11, 20)), _paid(date(2026, 12, 2), ChargeStatus.PARTIALLY_PAID)]

    assert exclude_paid_cycles(upcoming, charges) == [date(2026, 12, 5), date(2027, 1, 5), date(2027, 2, 5)]
    assert exclude_paid_cycles(upcoming, charges, limit=2) == [date(2026, 12, 5), date(2027, 1, 5)]


def test_exclude_paid_cycles_accepts_plain_status_tags() -> None:
    upcoming = [date(2026, 11, 5), date(2026, 12, 5)]
    charges = [Charge(status="clear", due_date="2026-11-28", amount="100", amount_paid="100", paid_date="2026-11-20")]

    assert exclude_paid_cycles(upcoming, charges) == [date(2026, 12, 5)]


def test_billing_and_due_dates_of_a_month() -> None:
    assert get_billing_date_from_due_date("2026-03-30") == date(2026, 3, 5)
    assert get_due_date_from_billing_month(date(2026, 3, 5)) == date(2026, 3, 30)
    assert get_due_date_from_billing_month(date(2026, 2, 5)) == date(2026, 2, 28)
    assert get_due_date_from_billing_month(date(2028, 2, 5)) == date(2028, 2, 29)


def test_first_due_date_without_course_start_is_month_end() -> None:
    assert calculate_first_due_date(None, "quarterly", today=date(2026, 10, 19)) == date(2026, 10, 31)
    assert calculate_first_due_date("2026-09-01", "one_time", today=date(2026, 10, 19)) == date(2026, 10, 31)


def test_first_due_date_follows_cycle_from_course_start() -> None:
    assert calculate_first_due_date("2026-09-01", "quarterly", today=date(2026, 10, 19)) == date(2026, 9, 30)
    assert calculate_first_due_date("2026-09-01", "quarterly", today=date(2026, 12, 2)) == date(2026, 12, 31)
    assert calculate_first_due_date("2026-09-01", "monthly", today=date(2027, 2, 10)) == date(2027, 2, 28)


def test_first_due_date_before_course_start_uses_start_month() -> None:
    assert calculate_first_due_date("2027-01-10", "quarterly", today=date(2026, 10, 19)) == date(2027, 1, 31)
