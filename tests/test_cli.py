import csv
import json
from pathlib import Path

from click.testing import CliRunner

from course_billing.main import cli


def _write_charges(tmp_path: Path, charges: list) -> Path:
    path = tmp_path / "charges.json"
    path.write_text(json.dumps({"charges": charges}), encoding="utf-8")
    return path


def test_period_command() -> None:
    result = CliRunner().invoke(cli, ["period", "-e", "2026-10-15", "-s", "2026-09-01", "-c", "quarterly"])

    assert result.exit_code == 0, result.output
    assert "Start      : 01 Sep 2026" in result.output
    assert "End        : 30 Nov 2026" in result.output
    assert "Total days : 91" in result.output


def test_prorate_command_prints_and_exports(tmp_path: Path) -> None:
    runner = CliRunner()
    printed = runner.invoke(cli, ["prorate", "--fee", "1.5k", "-e", "2026-04-16", "-c", "monthly"])

    assert printed.exit_code == 0, printed.output
    assert "Prorated fee   : 750" in printed.output

    out = tmp_path / "prorating.json"
    exported = runner.invoke(
        cli,
        ["prorate", "-f", "300", "-e", "2026-10-15", "-s", "2026-09-01", "-c", "quarterly", "--output", str(out)],
    )

    assert exported.exit_code == 0, exported.output
    data = json.loads(out.read_text(encoding="utf-8"))["prorating"]
    assert data["prorated_fee"] == 154.95
    assert data["total_days"] == 91
    assert data["period_end"] == "2026-11-30"


def test_prorate_rejects_bad_date() -> None:
    result = CliRunner().invoke(cli, ["prorate", "-f", "300", "-e", "15/10/2026"])

    assert result.exit_code == 2
    assert "Invalid enrollment_date" in result.output


def test_status_command(tmp_path: Path) -> None:
    charges = _write_charges(tmp_path, [{"status": "outstanding", "due_date": "2026-01-05", "amount": 250}])

    result = CliRunner().invoke(cli, ["status", "--charges", str(charges), "--today", "2026-02-10"])

    assert result.exit_code == 0, result.output
    assert "Status       : outstanding" in result.output
    assert "Next billing : 05/03/26" in result.output


def test_status_command_detects_fully_paid(tmp_path: Path) -> None:
    charges = _write_charges(
        tmp_path,
        [{"status": "clear", "due_date": "2026-09-30", "amount": 500, "amount_paid": 500, "paid_date": "2026-09-12"}],
    )
    out = tmp_path / "status.json"

    result = CliRunner().invoke(
        cli,
        ["status", "--charges", str(charges), "--today", "2026-10-19", "--total-fee", "500", "--output", str(out)],
    )

    assert result.exit_code == 0, result.output
    assert json.loads(out.read_text(encoding="utf-8")) == {
        "payment_status": {"status": "fully_paid", "next_billing_date": None}
    }


def test_status_command_rejects_unknown_charge_status(tmp_path: Path) -> None:
    charges = _write_charges(tmp_path, [{"status": "refunded", "due_date": "2026-01-05", "amount": 10}])

    result = CliRunner().invoke(cli, ["status", "--charges", str(charges)])

    assert result.exit_code == 2
    assert "Unknown charge status" in result.output


def test_cycles_command_exports_csv(tmp_path: Path) -> None:
    out = tmp_path / "cycles.csv"

    result = CliRunner().invoke(
        cli,
        ["cycles", "-c", "monthly", "--start", "2026-01-01", "--end", "2026-03-31", "--today", "2025-12-01",
         "--output", str(out)],
    )

    assert result.exit_code == 0, result.output
    with out.open(newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["Cycle", "Billing_Date", "Display_Date"]
    assert [r[1] for r in rows[1:]] == ["2026-01-05", "2026-02-05", "2026-03-05"]


def test_cycles_command_skips_paid_months(tmp_path: Path) -> None:
    charges = _write_charges(
        tmp_path,
        [{"status": "clear", "due_date": "2026-11-30", "amount": 80, "amount_paid": 80, "paid_date": "2026-11-02"}],
    )

    result = CliRunner().invoke(
        cli, ["cycles", "-c", "monthly", "--today", "2026-10-19", "--charges", str(charges), "-n", "2"]
    )

    assert result.exit_code == 0, result.output
    assert "Nov 2026" not in result.output
    assert "Dec 2026\t05/12/26" in result.output
    assert "Jan 2027\t05/01/27" in result.output


def test_due_date_command() -> None:
    result = CliRunner().invoke(cli, ["due-date", "-s", "2026-09-01", "-c", "quarterly", "--today", "2026-12-02"])

    assert result.exit_code == 0, result.output
    assert "Due date: 31/12/26 (2026-12-31)" in result.output
