"""Command‑line interface for the billing engine.

This module uses the ``click`` library to implement a multi‑command
interface. Administrators can look up the billing period of an enrollment,
work out a prorated first charge, classify the payment status of a set of
charges and list upcoming billing dates. Results can be printed to the
terminal or exported to JSON/CSV files.

The clock is read here, at call time, and passed into the engine; the engine
itself never looks at the current date.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from .cycles import calculate_first_due_date, exclude_paid_cycles, get_upcoming_billing_cycles
from .data_models import BillingCycle, Charge, PaymentStatus, PaymentStatusResult, ProratingInfo
from .errors import BillingError
from .formatter import (
    format_date,
    print_billing_cycles,
    print_billing_period,
    print_payment_status,
    print_prorating_info,
)
from .payment_status import calculate_payment_status, is_fully_paid
from .periods import get_billing_period_dates
from .proration import get_prorating_info
from .utils import decimal_from_str, parse_date, parse_optional_date

logger = logging.getLogger(__name__)

CYCLE_CHOICES = [c.value for c in BillingCycle]


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain amounts ("1200") and shorthand with ``k``/``m`` suffixes
    (e.g., "1.5k" meaning 1_500). Returns a ``Decimal``.
    """
    value = value.strip().lower().replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        amount = decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")
    if amount < 0:
        raise click.BadParameter(f"Amount must not be negative: {value}")
    return amount


def _date_option(value: Optional[str], name: str) -> Optional[date]:
    try:
        return parse_optional_date(value, name)
    except BillingError as exc:
        raise click.BadParameter(str(exc))


def _required_date(value: str, name: str) -> date:
    try:
        return parse_date(value, name)
    except BillingError as exc:
        raise click.BadParameter(str(exc))


def _today_option(value: Optional[str]) -> date:
    # Captured per call so results never depend on a cached clock
    return _date_option(value, "today") or date.today()


def load_charges(path: Path) -> List[Charge]:
    """Read charge records from a JSON file.

    The file holds either a list of charge objects or an object with a
    ``"charges"`` list.
    """
    with path.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise click.BadParameter(f"{path} is not valid JSON: {exc}")
    if isinstance(data, dict):
        data = data.get("charges", [])
    if not isinstance(data, list):
        raise click.BadParameter(f"{path} must contain a list of charges")
    try:
        return [Charge.from_dict(row) for row in data]
    except BillingError as exc:
        raise click.BadParameter(f"{path}: {exc}")


def combine_payment_status(result: PaymentStatusResult, fully_paid: bool) -> PaymentStatusResult:
    """Fold the course-completion check into a billing status.

    The classifier only looks at charges; whether the whole course fee has
    been collected is a separate question answered by ``is_fully_paid``.
    """
    if fully_paid:
        return PaymentStatusResult(PaymentStatus.FULLY_PAID, None)
    return result


def prorating_info_to_dict(info: ProratingInfo) -> Dict[str, Any]:
    return {
        "is_prorated": info.is_prorated,
        "prorated_fee": float(info.prorated_fee),
        "full_fee": float(info.full_fee),
        "days_remaining": info.days_remaining,
        "total_days": info.total_days,
        "savings_amount": float(info.savings_amount),
        "billing_period_label": info.billing_period_label,
        "period_start": info.period_start.isoformat(),
        "period_end": info.period_end.isoformat(),
    }


def status_to_dict(result: PaymentStatusResult) -> Dict[str, Any]:
    return {
        "status": result.status.value,
        "next_billing_date": result.next_billing_date.isoformat() if result.next_billing_date else None,
    }


def export_to_json(path: Path, data: Dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_cycles_to_csv(path: Path, cycle_dates: List[date]) -> None:
    """Export billing dates to a CSV file."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["Cycle", "Billing_Date", "Display_Date"])
        for i, d in enumerate(cycle_dates, start=1):
            writer.writerow([i, d.isoformat(), format_date(d)])


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging verbosity",
)
def cli(log_level: str) -> None:
    """Billing periods, pro-rated fees and payment status for course enrollments."""
    logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(levelname)s %(name)s - %(message)s")


@cli.command()
@click.option("--enrollment-date", "-e", "enrollment_date", required=True, help="Enrollment date (YYYY-MM-DD)")
@click.option("--course-start", "-s", "course_start", help="Course start date (YYYY-MM-DD)")
@click.option("--cycle", "-c", "cycle", type=click.Choice(CYCLE_CHOICES), default="monthly", help="Billing cycle")
def period(enrollment_date: str, course_start: Optional[str], cycle: str) -> None:
    """Show the billing period that contains an enrollment date."""
    enrolled = _required_date(enrollment_date, "enrollment_date")
    start = _date_option(course_start, "course_start_date")
    print_billing_period(get_billing_period_dates(enrolled, start, cycle))


@cli.command()
@click.option("--fee", "-f", "fee", required=True, help="Full fee of one billing period")
@click.option("--enrollment-date", "-e", "enrollment_date", required=True, help="Enrollment date (YYYY-MM-DD)")
@click.option("--course-start", "-s", "course_start", help="Course start date (YYYY-MM-DD)")
@click.option("--cycle", "-c", "cycle", type=click.Choice(CYCLE_CHOICES), default="monthly", help="Billing cycle")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def prorate(
    fee: str,
    enrollment_date: str,
    course_start: Optional[str],
    cycle: str,
    output: Optional[str],
) -> None:
    """Compute the (possibly prorated) first charge of an enrollment."""
    full_fee = parse_amount(fee)
    enrolled = _required_date(enrollment_date, "enrollment_date")
    start = _date_option(course_start, "course_start_date")
    info = get_prorating_info(full_fee, enrolled, start, cycle)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Pro-rating export must use .json extension")
        export_to_json(path, {"prorating": prorating_info_to_dict(info)})
        click.echo(f"Pro-rating exported to {path}")
    else:
        print_prorating_info(info)


@cli.command()
@click.option(
    "--charges",
    "charges_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with charge records",
)
@click.option("--today", "today", help="Evaluation date (YYYY-MM-DD); defaults to the current date")
@click.option("--total-fee", "total_fee", help="Total course fee, to detect a fully paid enrollment")
@click.option("--collected", "collected", help="Total amount collected; defaults to the sum paid on the charges")
@click.option("--course-end", "course_end", help="Course end date (YYYY-MM-DD)")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def status(
    charges_path: Path,
    today: Optional[str],
    total_fee: Optional[str],
    collected: Optional[str],
    course_end: Optional[str],
    output: Optional[str],
) -> None:
    """Classify the payment status of an enrollment's charges."""
    charges = load_charges(charges_path)
    today_value = _today_option(today)
    result = calculate_payment_status(charges, today_value)
    if total_fee:
        collected_value = (
            parse_amount(collected) if collected else sum((c.amount_paid for c in charges), Decimal("0"))
        )
        fully_paid = is_fully_paid(
            parse_amount(total_fee),
            collected_value,
            _date_option(course_end, "course_end_date"),
            today=today_value,
        )
        result = combine_payment_status(result, fully_paid)
    logger.info("Payment status for %d charge(s): %s", len(charges), result.status.value)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Status export must use .json extension")
        export_to_json(path, {"payment_status": status_to_dict(result)})
        click.echo(f"Payment status exported to {path}")
    else:
        print_payment_status(result)


@cli.command()
@click.option("--cycle", "-c", "cycle", type=click.Choice(CYCLE_CHOICES), required=True, help="Billing cycle")
@click.option("--count", "-n", "count", type=int, default=3, show_default=True, help="Number of billing dates")
@click.option("--start", "start", help="Course start date (YYYY-MM-DD)")
@click.option("--end", "end", help="Course end date (YYYY-MM-DD)")
@click.option("--today", "today", help="Evaluation date (YYYY-MM-DD); defaults to the current date")
@click.option(
    "--charges",
    "charges_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with charge records; months already paid are skipped",
)
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def cycles(
    cycle: str,
    count: int,
    start: Optional[str],
    end: Optional[str],
    today: Optional[str],
    charges_path: Optional[Path],
    output: Optional[str],
) -> None:
    """List upcoming billing dates of a recurring course."""
    today_value = _today_option(today)
    start_value = _date_option(start, "start_date")
    end_value = _date_option(end, "end_date")
    if charges_path:
        # Look further ahead so paid months can be dropped without coming up short
        candidates = get_upcoming_billing_cycles(cycle, count * 4, start_value, end_value, today=today_value)
        cycle_dates = exclude_paid_cycles(candidates, load_charges(charges_path), limit=count)
    else:
        cycle_dates = get_upcoming_billing_cycles(cycle, count, start_value, end_value, today=today_value)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, {"billing_dates": [d.isoformat() for d in cycle_dates]})
        elif path.suffix.lower() == ".csv":
            export_cycles_to_csv(path, cycle_dates)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Billing dates exported to {path}")
    else:
        print_billing_cycles(cycle_dates)


@cli.command("due-date")
@click.option("--course-start", "-s", "course_start", help="Course start date (YYYY-MM-DD)")
@click.option("--cycle", "-c", "cycle", type=click.Choice(CYCLE_CHOICES), default="monthly", help="Billing cycle")
@click.option("--today", "today", help="Enrollment date (YYYY-MM-DD); defaults to the current date")
def due_date(course_start: Optional[str], cycle: str, today: Optional[str]) -> None:
    """Show the due date of the first charge for an enrollment made today."""
    due = calculate_first_due_date(
        _date_option(course_start, "course_start_date"),
        cycle,
        today=_today_option(today),
    )
    click.echo(f"Due date: {format_date(due)} ({due.isoformat()})")


if __name__ == "__main__":
    cli()
