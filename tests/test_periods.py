from datetime import date, timedelta

import pytest

from course_billing.data_models import BillingCycle
from course_billing.errors import InvalidDateError, UnsupportedBillingCycleError
from course_billing.periods import (
    get_billing_period_dates,
    get_billing_period_months,
    get_days_remaining_in_billing_period,
    get_days_remaining_in_month,
    get_total_days_in_billing_period,
    get_total_days_in_month,
)
from course_billing.utils import add_months

RECURRING = [BillingCycle.MONTHLY, BillingCycle.QUARTERLY, BillingCycle.BIANNUALLY, BillingCycle.YEARLY]


def test_quarterly_period_anchored_to_course_start() -> None:
    period = get_billing_period_dates("2026-10-15", "2026-09-01", "quarterly")

    assert period.start == date(2026, 9, 1)
    assert period.end == date(2026, 11, 30)
    assert get_total_days_in_billing_period(period.start, period.end) == 91
    assert get_days_remaining_in_billing_period("2026-10-15", period.end) == 47


def test_quarter_spanning_february_of_leap_year() -> None:
    period = get_billing_period_dates(date(2028, 1, 20), date(2027, 9, 1), BillingCycle.QUARTERLY)

    assert period.start == date(2027, 12, 1)
    assert period.end == date(2028, 2, 29)


def test_course_start_day_is_ignored_for_anchor() -> None:
    period = get_billing_period_dates(date(2027, 3, 1), date(2026, 9, 15), BillingCycle.BIANNUALLY)

    assert period.start == date(2027, 3, 1)
    assert period.end == date(2027, 8, 31)


def test_without_course_start_anchors_to_january() -> None:
    period = get_billing_period_dates(date(2026, 5, 20), None, BillingCycle.QUARTERLY)

    assert period.start == date(2026, 4, 1)
    assert period.end == date(2026, 6, 30)


def test_yearly_period_crosses_calendar_year() -> None:
    period = get_billing_period_dates(date(2027, 1, 10), date(2026, 9, 1), BillingCycle.YEARLY)

    assert period.start == date(2026, 9, 1)
    assert period.end == date(2027, 8, 31)


def test_enrollment_before_anchor_falls_in_earlier_period() -> None:
    period = get_billing_period_dates(date(2026, 8, 10), date(2026, 9, 1), BillingCycle.QUARTERLY)

    assert period.start == date(2026, 6, 1)
    assert period.end == date(2026, 8, 31)


def test_enrollment_on_period_start_is_inside_period() -> None:
    period = get_billing_period_dates(date(2026, 12, 1), date(2026, 9, 1), BillingCycle.QUARTERLY)

    assert period.start == date(2026, 12, 1)
    assert period.end == date(2027, 2, 28)


def test_one_time_period_is_the_calendar_month() -> None:
    period = get_billing_period_dates(date(2026, 2, 14), date(2025, 11, 1), BillingCycle.ONE_TIME)

    assert period.start == date(2026, 2, 1)
    assert period.end == date(2026, 2, 28)


@pytest.mark.parametrize("cycle", list(BillingCycle))
@pytest.mark.parametrize("course_start", [None, date(2025, 9, 1), date(2026, 3, 17)])
def test_period_contains_enrollment(cycle: BillingCycle, course_start) -> None:
    d = date(2025, 1, 1)
    while d < date(2028, 1, 1):
        period = get_billing_period_dates(d, course_start, cycle)
        assert period.start <= d <= period.end
        assert period.start.day == 1
        assert (period.end + timedelta(days=1)).day == 1
        d += timedelta(days=5)


@pytest.mark.parametrize("cycle", RECURRING)
def test_consecutive_periods_tile_without_gaps(cycle: BillingCycle) -> None:
    course_start = date(2026, 9, 1)
    period = get_billing_period_dates(course_start, course_start, cycle)
    for _ in range(10):
        following = get_billing_period_dates(period.end + timedelta(days=1), course_start, cycle)
        assert following.start == period.end + timedelta(days=1)
        assert following.start == add_months(period.start, cycle.months)
        period = following


def test_period_months_per_cycle() -> None:
    assert [get_billing_period_months(c) for c in BillingCycle] == [1, 3, 6, 12, 0]


def test_month_helpers() -> None:
    assert get_total_days_in_month(date(2026, 2, 10)) == 28
    assert get_total_days_in_month("2028-02-10") == 29
    assert get_days_remaining_in_month(date(2026, 2, 10)) == 19
    assert get_days_remaining_in_month(date(2026, 1, 31)) == 1


def test_unknown_cycle_is_rejected() -> None:
    with pytest.raises(UnsupportedBillingCycleError):
        get_billing_period_dates(date(2026, 1, 10), None, "weekly")


@pytest.mark.parametrize("bad", ["2026-02-30", "15/10/2026", "", None])
def test_unparseable_enrollment_date_is_rejected(bad) -> None:
    with pytest.raises(InvalidDateError):
        get_billing_period_dates(bad, None, "monthly")
