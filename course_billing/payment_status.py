"""Payment status of a course enrollment.

Business rules:

- Bills are sent on the 5th of each month.
- A bill is "outstanding" from its due date through the payment window.
- "scheduled" means every charge is paid and the next bill has not been
  issued yet.
- "fully_paid" means nothing more is expected. It depends on the course fee
  and end date rather than on the charges, so it is decided separately by
  :func:`is_fully_paid`.

The status is recomputed from the charge snapshots on every call; nothing is
stored. ``today`` is always passed in by the caller.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Union

from .data_models import Charge, ChargeStatus, PaymentStatus, PaymentStatusResult
from .utils import DateLike, parse_date, parse_optional_date, to_decimal

logger = logging.getLogger(__name__)

BILLING_DAY = 5
PAYMENT_WINDOW_DAYS = 30


def get_billing_date_for_month(year: int, month: int) -> date:
    return date(year, month, BILLING_DAY)


def get_current_billing_cycle_start(today: DateLike) -> date:
    """Return the billing date that opened the current cycle.

    Before the 5th the current cycle is still the one that started on the 5th
    of the previous month.
    """
    current = parse_date(today, "today")
    if current.day < BILLING_DAY:
        if current.month == 1:
            return get_billing_date_for_month(current.year - 1, 12)
        return get_billing_date_for_month(current.year, current.month - 1)
    return get_billing_date_for_month(current.year, current.month)


def get_next_billing_date(today: DateLike) -> date:
    """Return the 5th of this month if it is still ahead, else of next month."""
    current = parse_date(today, "today")
    if current.day < BILLING_DAY:
        return get_billing_date_for_month(current.year, current.month)
    if current.month == 12:
        return get_billing_date_for_month(current.year + 1, 1)
    return get_billing_date_for_month(current.year, current.month + 1)


def days_between(start: DateLike, end: DateLike) -> int:
    """Whole days from ``start`` to ``end``; negative when ``end`` is earlier."""
    return (parse_date(end) - parse_date(start)).days


def get_days_until_next_billing(today: DateLike) -> int:
    return days_between(today, get_next_billing_date(today))


def calculate_payment_status(charges: Iterable[Charge], today: DateLike) -> PaymentStatusResult:
    """Determine the payment status of an enrollment from its charges.

    Rules are applied in order and the first match wins:

    1. no charges: ``scheduled`` (first bill not issued yet);
    2. an outstanding charge more than 30 days past due: ``outstanding``;
    3. an outstanding charge within its 30-day window: ``outstanding``;
    4. every charge clear: ``scheduled``;
    5. anything else (partial payments, overdue tags, future dues):
       ``outstanding``.

    Rule 2 keeps the long-unpaid case on the ``outstanding`` tag; the
    ``overdue`` tag is never produced here.

    Parameters
    ----------
    charges:
        Charge snapshots for one enrollment.
    today:
        The evaluation date.

    Returns
    -------
    PaymentStatusResult
        The status and the next billing date (the next 5th of a month).
    """
    current = parse_date(today, "today")
    charges = list(charges)
    next_billing = get_next_billing_date(current)

    if not charges:
        return PaymentStatusResult(PaymentStatus.SCHEDULED, next_billing)

    unpaid_ages = [
        days_between(c.due_date, current) for c in charges if c.status == ChargeStatus.OUTSTANDING
    ]

    if any(age > PAYMENT_WINDOW_DAYS for age in unpaid_ages):
        logger.debug("Charge unpaid for more than %d days as of %s", PAYMENT_WINDOW_DAYS, current)
        return PaymentStatusResult(PaymentStatus.OUTSTANDING, next_billing)

    if any(0 <= age <= PAYMENT_WINDOW_DAYS for age in unpaid_ages):
        return PaymentStatusResult(PaymentStatus.OUTSTANDING, next_billing)

    if all(c.status == ChargeStatus.CLEAR for c in charges):
        return PaymentStatusResult(PaymentStatus.SCHEDULED, next_billing)

    logger.debug("Mixed charge states as of %s; treating as outstanding", current)
    return PaymentStatusResult(PaymentStatus.OUTSTANDING, next_billing)


def is_fully_paid(
    total_fee: Union[Decimal, int, float, str],
    total_collected: Union[Decimal, int, float, str],
    course_end_date: Optional[DateLike] = None,
    *,
    today: DateLike,
) -> bool:
    """Return True when no further payment is expected for the enrollment.

    That is the case once the collected amount covers a non-zero fee, or once
    the course has ended and the collected amount covers the fee.
    """
    fee = to_decimal(total_fee)
    collected = to_decimal(total_collected)
    if collected >= fee and fee > 0:
        return True
    course_end = parse_optional_date(course_end_date, "course_end_date")
    if course_end and course_end < parse_date(today, "today") and collected >= fee:
        return True
    return False
