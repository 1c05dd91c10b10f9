"""Pro-rated first charges for mid-period enrollments.

The fee for the first billing period is reduced in proportion to the days
left in that period:

    prorated_fee = full_fee / total_days_in_period * days_remaining

rounded half-up to cents. One-time fees are never prorated, and neither are
enrollments made on or before the course start date (the student is billed
for the full first period) or on the first day of a period.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional, Union

from .data_models import BillingCycle, ProratingInfo
from .periods import get_billing_period_dates, get_days_remaining_in_billing_period, get_total_days_in_billing_period
from .utils import DateLike, parse_date, parse_optional_date, round_currency, to_decimal

Amount = Union[Decimal, int, float, str]


def should_prorate_charge(
    enrollment_date: DateLike,
    course_start_date: Optional[DateLike],
    billing_cycle: BillingCycle | str,
) -> bool:
    """Return True when the first charge of the enrollment must be prorated."""
    cycle = BillingCycle.parse(billing_cycle)
    if cycle is BillingCycle.ONE_TIME:
        return False

    enrolled = parse_date(enrollment_date, "enrollment_date")
    course_start = parse_optional_date(course_start_date, "course_start_date")
    # Course not started yet: billed from its own first period
    if course_start and enrolled <= course_start:
        return False

    period = get_billing_period_dates(enrolled, course_start, cycle)
    return enrolled != period.start


def calculate_prorated_fee(
    full_fee: Amount,
    enrollment_date: DateLike,
    course_start_date: Optional[DateLike],
    billing_cycle: BillingCycle | str,
) -> Decimal:
    """Return the first-period fee for an enrollment.

    Parameters
    ----------
    full_fee:
        The fee of one full billing period (monthly, quarterly, ...).
    enrollment_date:
        The date the student enrolls.
    course_start_date:
        The course start date, or ``None``.
    billing_cycle:
        The course billing cycle.

    Returns
    -------
    Decimal
        ``full_fee`` unchanged when no pro-rating applies, otherwise the
        day-weighted fee rounded to two decimal places.
    """
    fee = to_decimal(full_fee)
    if not should_prorate_charge(enrollment_date, course_start_date, billing_cycle):
        return fee

    period = get_billing_period_dates(enrollment_date, course_start_date, billing_cycle)
    total_days = get_total_days_in_billing_period(period.start, period.end)
    days_remaining = get_days_remaining_in_billing_period(enrollment_date, period.end)
    # Multiply first so exact half-cent results stay exact before rounding
    return round_currency(fee * Decimal(days_remaining) / Decimal(total_days))


def get_prorating_info(
    full_fee: Amount,
    enrollment_date: DateLike,
    course_start_date: Optional[DateLike],
    billing_cycle: BillingCycle | str,
) -> ProratingInfo:
    """Bundle the pro-rating figures of an enrollment for display."""
    cycle = BillingCycle.parse(billing_cycle)
    fee = to_decimal(full_fee)
    period = get_billing_period_dates(enrollment_date, course_start_date, cycle)
    is_prorated = should_prorate_charge(enrollment_date, course_start_date, cycle)
    prorated_fee = calculate_prorated_fee(fee, enrollment_date, course_start_date, cycle)
    return ProratingInfo(
        is_prorated=is_prorated,
        prorated_fee=prorated_fee,
        full_fee=fee,
        days_remaining=get_days_remaining_in_billing_period(enrollment_date, period.end),
        total_days=get_total_days_in_billing_period(period.start, period.end),
        savings_amount=round_currency(fee - prorated_fee) if is_prorated else Decimal("0"),
        billing_period_label=cycle.label,
        period_start=period.start,
        period_end=period.end,
    )
