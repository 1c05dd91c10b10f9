"""Billing period calculator.

Billing periods are month-aligned windows whose length is the course's
billing cycle. They are anchored to the month of the course start date, or to
January of the enrollment year when the course has no start date. Example
for quarterly billing of a course starting on 1 September:

    Period 1: Sep 1 - Nov 30
    Period 2: Dec 1 - Feb 28/29
    Period 3: Mar 1 - May 31
    Period 4: Jun 1 - Aug 31
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from .data_models import BillingCycle, BillingPeriod
from .utils import DateLike, date_from_month_index, last_day_of_month, month_index, parse_date, parse_optional_date


def get_billing_period_months(billing_cycle: BillingCycle | str) -> int:
    """Return the period length in months (0 for one-time fees)."""
    return BillingCycle.parse(billing_cycle).months


def get_billing_period_dates(
    enrollment_date: DateLike,
    course_start_date: Optional[DateLike],
    billing_cycle: BillingCycle | str,
) -> BillingPeriod:
    """Return the billing period that contains ``enrollment_date``.

    For one-time fees the period is simply the calendar month of the
    enrollment. Otherwise the period index is counted in whole cycles from
    the anchor month; enrollments before the anchor land in a period before
    it (floor division), so the period always contains the enrollment.
    """
    enrolled = parse_date(enrollment_date, "enrollment_date")
    course_start = parse_optional_date(course_start_date, "course_start_date")
    period_months = get_billing_period_months(billing_cycle)

    if period_months == 0:
        start = date(enrolled.year, enrolled.month, 1)
        end = date(enrolled.year, enrolled.month, last_day_of_month(enrolled.year, enrolled.month))
        return BillingPeriod(start=start, end=end)

    anchor = course_start if course_start else date(enrolled.year, 1, 1)
    anchor_month = month_index(anchor)
    period_index = (month_index(enrolled) - anchor_month) // period_months
    start_month = anchor_month + period_index * period_months

    start = date_from_month_index(start_month)
    end = date_from_month_index(start_month + period_months - 1, day=-1)
    return BillingPeriod(start=start, end=end)


def get_total_days_in_billing_period(period_start: DateLike, period_end: DateLike) -> int:
    """Inclusive number of days between the two bounds."""
    start = parse_date(period_start, "period_start")
    end = parse_date(period_end, "period_end")
    return (end - start).days + 1


def get_days_remaining_in_billing_period(enrollment_date: DateLike, period_end: DateLike) -> int:
    """Days from enrollment to the end of the period, both days included."""
    enrolled = parse_date(enrollment_date, "enrollment_date")
    end = parse_date(period_end, "period_end")
    return (end - enrolled).days + 1


def get_total_days_in_month(d: DateLike) -> int:
    value = parse_date(d)
    return last_day_of_month(value.year, value.month)


def get_days_remaining_in_month(d: DateLike) -> int:
    """Days left in the month of ``d``, counting ``d`` itself."""
    value = parse_date(d)
    return get_total_days_in_month(value) - value.day + 1
