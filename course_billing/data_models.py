"""Data models for the billing engine.

This module defines the enums and dataclasses used by the calculator: billing
cycles, billing periods, charge records and the derived payment status. All
of them are treated as immutable values; the engine never mutates a charge,
it only reads snapshots handed in by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

from .errors import InvalidChargeError, UnsupportedBillingCycleError
from .utils import parse_date, parse_optional_date, to_decimal


class BillingCycle(str, Enum):
    """Recurrence unit of a course fee."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    BIANNUALLY = "biannually"
    YEARLY = "yearly"
    ONE_TIME = "one_time"

    @property
    def months(self) -> int:
        """Period length in whole months; 0 means the fee is not periodic."""
        return _CYCLE_MONTHS[self]

    @property
    def label(self) -> str:
        """Human-readable name of one billing period (``"quarter"``)."""
        return _CYCLE_LABELS[self]

    @property
    def is_recurring(self) -> bool:
        return self.months > 0

    @classmethod
    def parse(cls, value: Any) -> "BillingCycle":
        """Return the cycle for a tag such as ``"Quarterly"``.

        Raises ``UnsupportedBillingCycleError`` for anything else; unknown
        cycles are never mapped to a default.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise UnsupportedBillingCycleError(value)


_CYCLE_MONTHS = {
    BillingCycle.MONTHLY: 1,
    BillingCycle.QUARTERLY: 3,
    BillingCycle.BIANNUALLY: 6,
    BillingCycle.YEARLY: 12,
    BillingCycle.ONE_TIME: 0,
}

_CYCLE_LABELS = {
    BillingCycle.MONTHLY: "month",
    BillingCycle.QUARTERLY: "quarter",
    BillingCycle.BIANNUALLY: "half-year",
    BillingCycle.YEARLY: "year",
    BillingCycle.ONE_TIME: "payment",
}


class ChargeStatus(str, Enum):
    OUTSTANDING = "outstanding"
    OVERDUE = "overdue"
    CLEAR = "clear"
    PARTIALLY_PAID = "partially_paid"


class PaymentStatus(str, Enum):
    SCHEDULED = "scheduled"
    OUTSTANDING = "outstanding"
    OVERDUE = "overdue"
    FULLY_PAID = "fully_paid"


@dataclass(frozen=True)
class BillingPeriod:
    """A month-aligned billing window.

    Attributes
    ----------
    start: date
        First day of the period (always the 1st of a month).
    end: date
        Last day of the period, inclusive (always the last day of a month).
    """

    start: date
    end: date

    @property
    def total_days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end


@dataclass(frozen=True)
class EnrollmentContext:
    """The minimal input the period calculator needs for one enrollment."""

    enrollment_date: date
    course_start_date: Optional[date]
    billing_cycle: BillingCycle


@dataclass(frozen=True)
class Charge:
    """A single billed amount for one enrollment in one billing period.

    Attributes
    ----------
    status: ChargeStatus
        Payment state of the charge as recorded by payment processing.
    due_date: date
        Date the charge falls due.
    amount: Decimal
        Amount billed.
    amount_paid: Decimal
        Amount collected so far.
    paid_date: date, optional
        Date of the (last) payment; used to work out which billing month a
        cleared charge settled.
    payment_method: str, optional
        Payment method tag, e.g. ``"giro"`` or ``"paynow+cash"``.
    """

    status: ChargeStatus
    due_date: date
    amount: Decimal
    amount_paid: Decimal = Decimal("0")
    paid_date: Optional[date] = None
    payment_method: Optional[str] = None

    def __post_init__(self) -> None:
        # Callers may build charges from plain tags, strings and floats
        object.__setattr__(self, "status", _parse_status(self.status))
        object.__setattr__(self, "due_date", parse_date(self.due_date, "due_date"))
        object.__setattr__(self, "amount", _parse_amount(self.amount, "amount"))
        object.__setattr__(self, "amount_paid", _parse_amount(self.amount_paid or 0, "amount_paid"))
        object.__setattr__(self, "paid_date", parse_optional_date(self.paid_date, "paid_date"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Charge":
        """Build a charge from a plain record (e.g. a JSON row).

        Raises ``InvalidChargeError`` for an unknown status or a negative or
        non-numeric amount, and ``InvalidDateError`` for a bad due date.
        """
        return cls(
            status=data.get("status"),
            due_date=data.get("due_date"),
            amount=data.get("amount", 0),
            amount_paid=data.get("amount_paid") or 0,
            paid_date=data.get("paid_date"),
            payment_method=data.get("payment_method") or None,
        )

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "due_date": self.due_date.isoformat(),
            "amount": float(self.amount),
            "amount_paid": float(self.amount_paid),
            "paid_date": self.paid_date.isoformat() if self.paid_date else None,
            "payment_method": self.payment_method,
        }


def _parse_status(value: Any) -> ChargeStatus:
    if isinstance(value, ChargeStatus):
        return value
    try:
        return ChargeStatus(str(value).strip().lower())
    except ValueError as exc:
        raise InvalidChargeError(f"Unknown charge status: {value!r}") from exc


def _parse_amount(value: Any, field: str) -> Decimal:
    try:
        amount = to_decimal(value)
    except ValueError as exc:
        raise InvalidChargeError(f"Invalid {field}: {value!r}") from exc
    if amount < 0:
        raise InvalidChargeError(f"{field} must not be negative: {value!r}")
    return amount


@dataclass(frozen=True)
class PaymentStatusResult:
    """Payment state of an enrollment, recomputed on every call."""

    status: PaymentStatus
    next_billing_date: Optional[date]


@dataclass(frozen=True)
class ProratingInfo:
    """Display bundle describing the first charge of an enrollment.

    ``savings_amount`` is the difference between the full fee and the
    prorated fee, or zero when no pro-rating applies.
    """

    is_prorated: bool
    prorated_fee: Decimal
    full_fee: Decimal
    days_remaining: int
    total_days: int
    savings_amount: Decimal
    billing_period_label: str
    period_start: date
    period_end: date
