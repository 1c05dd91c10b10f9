import logging
import os
from datetime import date
from decimal import Decimal
from uuid import uuid4

from flask import Flask, jsonify, request

from course_billing.cycles import calculate_first_due_date, exclude_paid_cycles, get_upcoming_billing_cycles
from course_billing.data_models import BillingCycle
from course_billing.main import combine_payment_status, prorating_info_to_dict, status_to_dict
from course_billing.payment_status import calculate_payment_status, is_fully_paid
from course_billing.periods import get_billing_period_dates
from course_billing.proration import get_prorating_info
from course_billing.utils import parse_date, parse_optional_date, to_decimal
from course_billing_web.charge_store import ChargeNotFoundError, ChargeStore, create_store_from_env

logging.basicConfig(
    level=os.environ.get("BILLING_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
charge_store = create_store_from_env(os.environ.get("CHARGE_DATABASE_URL"))

UPCOMING_CYCLES_SHOWN = 3


def _payload() -> dict:
    return request.get_json(silent=True) or {}


def _today(value) -> date:
    # Fresh capture per request unless the caller pins the date
    return parse_optional_date(value, "today") or date.today()


def _serialize_charge(record: dict) -> dict:
    """Convert a stored charge into a JSON-friendly dict with numeric amounts."""
    serialized = dict(record)
    serialized["amount"] = float(to_decimal(record["amount"]))
    serialized["amount_paid"] = float(to_decimal(record["amount_paid"]))
    return serialized


def _upcoming_unpaid_cycles(cycle: BillingCycle, start, end, charges, today: date) -> list[date]:
    """Upcoming billing dates minus the months already settled."""
    if not cycle.is_recurring:
        return []
    candidates = get_upcoming_billing_cycles(cycle, 12, start, end, today=today)
    return exclude_paid_cycles(candidates, charges, limit=UPCOMING_CYCLES_SHOWN)


@app.errorhandler(ValueError)
def handle_invalid_input(exc: ValueError):
    logger.info("Rejected request to %s: %s", request.path, exc)
    return jsonify({"error": str(exc)}), 400


@app.errorhandler(ChargeNotFoundError)
def handle_missing_charge(exc: ChargeNotFoundError):
    return jsonify({"error": f"Unknown charge: {exc}"}), 404


@app.get("/billing-period")
def billing_period():
    args = request.args
    period = get_billing_period_dates(
        parse_date(args.get("enrollment_date"), "enrollment_date"),
        parse_optional_date(args.get("course_start"), "course_start_date"),
        args.get("cycle", "monthly"),
    )
    return jsonify(
        {
            "period_start": period.start.isoformat(),
            "period_end": period.end.isoformat(),
            "total_days": period.total_days,
        }
    )


@app.get("/proration")
def proration():
    args = request.args
    fee = to_decimal(args.get("fee", ""))
    if fee < 0:
        raise ValueError("fee must not be negative")
    info = get_prorating_info(
        fee,
        parse_date(args.get("enrollment_date"), "enrollment_date"),
        parse_optional_date(args.get("course_start"), "course_start_date"),
        args.get("cycle", "monthly"),
    )
    return jsonify(prorating_info_to_dict(info))


@app.post("/enrollments/<enrollment_id>/charges")
def create_charge(enrollment_id: str):
    """Bill a new enrollment: store its first (possibly prorated) charge."""
    form = _payload()
    cycle = BillingCycle.parse(form.get("billing_cycle", "monthly"))
    enrolled = parse_optional_date(form.get("enrollment_date"), "enrollment_date") or date.today()
    course_start = parse_optional_date(form.get("course_start"), "course_start_date")
    fee = to_decimal(form.get("fee", ""))
    if fee < 0:
        raise ValueError("fee must not be negative")

    info = get_prorating_info(fee, enrolled, course_start, cycle)
    due = calculate_first_due_date(course_start, cycle, today=enrolled)
    record = charge_store.add_charge(
        enrollment_id,
        uuid4().hex,
        info.prorated_fee,
        due,
        course_name=form.get("course_name"),
    )
    return jsonify({"charge": _serialize_charge(record), "prorating": prorating_info_to_dict(info)}), 201


@app.get("/enrollments/<enrollment_id>/charges")
def list_charges(enrollment_id: str):
    records = charge_store.list_charges(enrollment_id)
    return jsonify({"charges": [_serialize_charge(r) for r in records]})


@app.post("/enrollments/<enrollment_id>/charges/<charge_id>/payments")
def record_payment(enrollment_id: str, charge_id: str):
    form = _payload()
    amount = to_decimal(form.get("amount", ""))
    if amount <= 0:
        raise ValueError("Payment amount must be positive")
    paid_date = parse_optional_date(form.get("paid_date"), "paid_date") or date.today()
    record = charge_store.record_payment(
        enrollment_id,
        charge_id,
        amount,
        paid_date,
        payment_method=form.get("payment_method"),
    )
    return jsonify({"charge": _serialize_charge(record)})


@app.get("/enrollments/<enrollment_id>/status")
def enrollment_status(enrollment_id: str):
    """Payment status of an enrollment, with its next unpaid billing dates.

    Query parameters: ``today``, ``total_fee`` and ``course_end`` (to detect
    a fully paid course), and ``cycle``, ``course_start`` (to list upcoming
    billing dates).
    """
    args = request.args
    today = _today(args.get("today"))
    charges = [ChargeStore.to_charge(r) for r in charge_store.list_charges(enrollment_id)]
    result = calculate_payment_status(charges, today)

    if args.get("total_fee"):
        collected = sum((c.amount_paid for c in charges), Decimal("0"))
        fully_paid = is_fully_paid(
            to_decimal(args["total_fee"]),
            collected,
            parse_optional_date(args.get("course_end"), "course_end_date"),
            today=today,
        )
        result = combine_payment_status(result, fully_paid)

    response = status_to_dict(result)
    if args.get("cycle"):
        upcoming = _upcoming_unpaid_cycles(
            BillingCycle.parse(args["cycle"]),
            parse_optional_date(args.get("course_start"), "course_start_date"),
            parse_optional_date(args.get("course_end"), "course_end_date"),
            charges,
            today,
        )
        response["upcoming_billing_dates"] = [d.isoformat() for d in upcoming]
    return jsonify(response)


if __name__ == "__main__":
    logger.info("Starting course billing service...")
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", "8710")), debug=True)
