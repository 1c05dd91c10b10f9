"""Utility functions for the billing engine.

This module provides helpers for parsing caller input (ISO date strings and
numeric amounts) into Python data types and for month arithmetic. Dates are
plain calendar dates: no time of day and no timezone conversion is applied,
so a charge due on ``2026-01-05`` stays due on the 5th wherever the caller
runs.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
import calendar
from typing import Optional, Union

from .errors import InvalidDateError

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

CENT = Decimal("0.01")

DateLike = Union[date, datetime, str]


def parse_date(value: Optional[DateLike], field: str = "date") -> date:
    """Convert a caller-supplied value into a ``date``.

    Parameters
    ----------
    value: date, datetime or str
        A ``date``, a ``datetime`` (the time part is dropped as-is) or an
        ISO-8601 string. Strings may carry a time part after the date
        (``"2026-01-05T10:00:00Z"``); only the calendar date is kept.
    field: str
        Name of the input, used in the error message.

    Raises
    ------
    InvalidDateError
        If the value is missing or is not a valid calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        raw = value.strip()
        # Keep only the calendar part of a timestamp
        for sep in ("T", " "):
            if sep in raw:
                raw = raw.split(sep, 1)[0]
        try:
            return date.fromisoformat(raw)
        except ValueError as exc:
            raise InvalidDateError(value, field) from exc
    raise InvalidDateError(value, field)


def parse_optional_date(value: Optional[DateLike], field: str = "date") -> Optional[date]:
    """Like :func:`parse_date` but maps ``None`` and blank strings to ``None``."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return parse_date(value, field)


def last_day_of_month(year: int, month: int) -> int:
    """Return the number of days in the given month (leap years included)."""
    return calendar.monthrange(year, month)[1]


def month_index(d: date) -> int:
    """Return the absolute month number ``year * 12 + (month - 1)``."""
    return d.year * 12 + (d.month - 1)


def date_from_month_index(index: int, day: int = 1) -> date:
    """Inverse of :func:`month_index`.

    ``day`` may be ``-1`` to select the last day of the month.
    """
    year, month0 = divmod(index, 12)
    month = month0 + 1
    if day == -1:
        day = last_day_of_month(year, month)
    return date(year, month, day)


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, last_day_of_month(year, month))
    return date(year, month, day)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.replace(",", "").strip()
        result = Decimal(cleaned)
    except (InvalidOperation, AttributeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def to_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    """Coerce an amount to ``Decimal``.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value}")
    if isinstance(value, (int, float)):
        return decimal_from_str(str(value))
    return decimal_from_str(value)


def round_currency(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
