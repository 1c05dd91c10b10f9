"""Output helpers for the billing engine.

This module formats dates, amounts and payment methods the way the
administration screens show them (dates as ``DD/MM/YY``), and renders
billing results as plain text for the terminal. Missing values format as an
em dash placeholder rather than raising.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Optional, Union

from .data_models import BillingPeriod, PaymentStatusResult, ProratingInfo
from .utils import DateLike, parse_date, to_decimal

PLACEHOLDER = "—"

PAYMENT_METHOD_LABELS: Dict[str, str] = {
    "credit_card": "Credit Card",
    "debit_card": "Debit Card",
    "bank_transfer": "Bank Transfer",
    "cash": "Cash",
    "cheque": "Cheque",
    "paynow": "PayNow",
    "giro": "GIRO",
    "edusave": "Edusave",
    "skillsfuture": "SkillsFuture",
    "account_balance": "Account Balance",
}


def _as_date(value: Optional[DateLike]) -> Optional[date]:
    if value is None or value == "":
        return None
    return parse_date(value)


def format_date(value: Optional[DateLike]) -> str:
    """Format a date as ``DD/MM/YY`` (e.g. ``12/01/26``)."""
    d = _as_date(value)
    if d is None:
        return PLACEHOLDER
    return d.strftime("%d/%m/%y")


def format_date_long(value: Optional[DateLike]) -> str:
    """Format a date as ``DD Mon YYYY`` (e.g. ``12 Jan 2026``)."""
    d = _as_date(value)
    if d is None:
        return PLACEHOLDER
    return d.strftime("%d %b %Y")


def format_billing_month(value: Optional[DateLike]) -> str:
    """Label of the billing month of a charge (e.g. ``Jan 2026``)."""
    d = _as_date(value)
    if d is None:
        return PLACEHOLDER
    return d.strftime("%b %Y")


def format_currency(amount: Union[Decimal, int, float, str]) -> str:
    """Format an amount with thousands separators.

    Whole amounts are shown without decimals (``10,000``); anything else keeps
    two decimals (``100.50``).
    """
    value = to_decimal(amount)
    if value == value.to_integral_value():
        return f"{value:,.0f}"
    return f"{value:,.2f}"


def format_payment_method(method: Optional[str]) -> str:
    """Return the display label of a payment method tag.

    Combined payments use ``+`` between methods (``"paynow+cash"``) and are
    shown as ``"PayNow and Cash"``.
    """
    if not method:
        return PLACEHOLDER

    def label(tag: str) -> str:
        tag = tag.strip()
        return PAYMENT_METHOD_LABELS.get(tag.lower(), tag[:1].upper() + tag[1:])

    if "+" in method:
        return " and ".join(label(part) for part in method.split("+"))
    return label(method)


def print_billing_period(period: BillingPeriod) -> None:
    print("Billing period")
    print("-" * 40)
    print(f"Start      : {format_date_long(period.start)}")
    print(f"End        : {format_date_long(period.end)}")
    print(f"Total days : {period.total_days}")
    print("-" * 40)


def print_prorating_info(info: ProratingInfo) -> None:
    """Print the first-charge figures of an enrollment."""
    print("First charge")
    print("-" * 40)
    print(f"Billing period : {format_date(info.period_start)} - {format_date(info.period_end)}")
    print(f"Full fee       : {format_currency(info.full_fee)} per {info.billing_period_label}")
    if info.is_prorated:
        print(f"Days remaining : {info.days_remaining} of {info.total_days}")
        print(f"Prorated fee   : {format_currency(info.prorated_fee)}")
        print(f"Savings        : {format_currency(info.savings_amount)}")
    else:
        print("Prorated fee   : not applicable")
    print("-" * 40)


def print_payment_status(result: PaymentStatusResult) -> None:
    print(f"Status       : {result.status.value}")
    print(f"Next billing : {format_date(result.next_billing_date)}")


def print_billing_cycles(cycle_dates: Iterable[date]) -> None:
    """Print upcoming billing dates, one per line."""
    rows = list(cycle_dates)
    if not rows:
        print("No upcoming billing cycles.")
        return
    print("Billing month\tBilling date")
    for d in rows:
        print(f"{format_billing_month(d)}\t{format_date(d)}")
