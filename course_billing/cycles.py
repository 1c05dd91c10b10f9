"""Upcoming billing dates and charge due dates.

Every billing date falls on the 5th of a month. Recurring courses are billed
every ``cycle.months`` months counted from the course start month.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional, Set, Tuple

from .data_models import BillingCycle, Charge, ChargeStatus
from .payment_status import BILLING_DAY
from .utils import (
    DateLike,
    add_months,
    date_from_month_index,
    last_day_of_month,
    month_index,
    parse_date,
    parse_optional_date,
)

logger = logging.getLogger(__name__)

DUE_DAY = 30


def get_upcoming_billing_cycles(
    billing_cycle: BillingCycle | str,
    count: int = 3,
    start_date: Optional[DateLike] = None,
    end_date: Optional[DateLike] = None,
    *,
    today: DateLike,
) -> List[date]:
    """Return up to ``count`` future billing dates.

    Parameters
    ----------
    billing_cycle:
        The course billing cycle. One-time fees have no recurring billing
        dates, so an empty list is returned for them.
    count:
        Maximum number of dates to return.
    start_date:
        Course start date; defaults to ``today``. Its month is the first
        candidate billing month.
    end_date:
        Course end date. Dates after it are not returned.
    today:
        The evaluation date. Only dates strictly after it are returned.

    Returns
    -------
    List[date]
        Strictly increasing dates, each on the 5th of its month.
    """
    cycle = BillingCycle.parse(billing_cycle)
    current = parse_date(today, "today")
    course_start = parse_optional_date(start_date, "start_date") or current
    course_end = parse_optional_date(end_date, "end_date")

    if not cycle.is_recurring:
        logger.debug("No recurring billing dates for one-time fees")
        return []

    candidate = date(course_start.year, course_start.month, BILLING_DAY)
    # Skip ahead to the first billing date after today
    while candidate <= current:
        candidate = add_months(candidate, cycle.months)

    cycles: List[date] = []
    for _ in range(count):
        if course_end and candidate > course_end:
            break
        cycles.append(candidate)
        candidate = add_months(candidate, cycle.months)
    return cycles


def _paid_months(charges: Iterable[Charge]) -> Set[Tuple[int, int]]:
    months: Set[Tuple[int, int]] = set()
    for charge in charges:
        if charge.status == ChargeStatus.CLEAR and charge.paid_date:
            months.add((charge.paid_date.year, charge.paid_date.month))
    return months


def exclude_paid_cycles(
    cycle_dates: Iterable[date],
    charges: Iterable[Charge],
    limit: Optional[int] = None,
) -> List[date]:
    """Drop billing dates whose month was already settled by a cleared charge.

    The month a cleared charge settles is the month it was paid in, not the
    month it was due.
    """
    paid = _paid_months(charges)
    remaining = [d for d in cycle_dates if (d.year, d.month) not in paid]
    if limit is not None:
        remaining = remaining[:limit]
    return remaining


def get_billing_date_from_due_date(due_date: DateLike) -> date:
    """The billing date of a charge is the 5th of its due month."""
    due = parse_date(due_date, "due_date")
    return date(due.year, due.month, BILLING_DAY)


def get_due_date_from_billing_month(d: DateLike) -> date:
    """Return the 30th of the month, or its last day when shorter (February)."""
    value = parse_date(d)
    return date(value.year, value.month, min(DUE_DAY, last_day_of_month(value.year, value.month)))


def calculate_first_due_date(
    course_start_date: Optional[DateLike],
    billing_cycle: BillingCycle | str,
    *,
    today: DateLike,
) -> date:
    """Due date of the charge raised when a student enrolls ``today``.

    It is the last day of the current billing month. Billing months step
    from the course start month in whole cycles, and a course that has not
    started yet is billed for its start month. Without a start date, or for
    one-time fees, the current calendar month is used.
    """
    cycle = BillingCycle.parse(billing_cycle)
    current = parse_date(today, "today")
    course_start = parse_optional_date(course_start_date, "course_start_date")

    if course_start is None or not cycle.is_recurring:
        return date(current.year, current.month, last_day_of_month(current.year, current.month))

    start_month = month_index(course_start)
    months_diff = month_index(current) - start_month
    cycle_index = 0 if months_diff < 0 else months_diff // cycle.months
    return date_from_month_index(start_month + cycle_index * cycle.months, day=-1)
