import csv
import json
import logging
from decimal import Decimal

from click.testing import CliRunner

from fin_calc.amortization import solve_payment
from fin_calc.logging_setup import setup_logging
from fin_calc.main import cli


def _run(*args):
    return CliRunner().invoke(cli, list(args))


def test_annuity_solves_for_payment():
    result = _run("annuity", "-p", "500k", "-r", "6", "-y", "10")

    assert result.exit_code == 0, result.output
    assert "5,551.03" in result.output
    assert "Schedule has" not in result.output


def test_annuity_requires_exactly_one_unknown():
    result = _run("annuity", "-p", "500k", "-r", "6", "-y", "10", "--payment", "5000")
    assert result.exit_code == 2
    assert "exactly one of --years or --payment" in result.output


def test_annuity_reports_perpetuity():
    result = _run("annuity", "-p", "100k", "-r", "12", "--payment", "1000")

    assert result.exit_code == 0
    assert "never exhausted" in result.output


def test_annuity_invalid_inputs_exit_non_zero():
    result = _run("annuity", "-p", "0", "-r", "6", "-y", "10")
    assert result.exit_code == 1


def test_annuity_rejects_bad_amount():
    result = _run("annuity", "-p", "lots", "-r", "6", "-y", "10")
    assert result.exit_code == 2
    assert "Invalid amount" in result.output


def test_annuity_json_export(tmp_path):
    path = tmp_path / "annuity.json"
    result = _run("annuity", "-p", "500k", "-r", "6", "-y", "10", "--output", str(path))

    assert result.exit_code == 0, result.output
    data = json.loads(path.read_text(encoding="utf-8"))
    assert abs(data["summary"]["payment"] - 5551.03) < 0.01
    assert data["summary"]["status"] == "ok"
    assert len(data["schedule"]) == 120


def test_annuity_rate_is_always_a_percent(tmp_path):
    path = tmp_path / "annuity.json"
    result = _run("annuity", "-p", "100000", "-r", "1", "-y", "10", "--output", str(path))

    assert result.exit_code == 0, result.output
    data = json.loads(path.read_text(encoding="utf-8"))
    expected = solve_payment(Decimal("100000"), Decimal("0.01") / 12, 120)
    assert abs(data["summary"]["payment"] - float(expected)) < 0.01
    assert 870 < data["summary"]["payment"] < 880


def test_annuity_term_beyond_hundred_years_exits_non_zero():
    result = _run("annuity", "-p", "1000", "-r", "0", "-y", "300")
    assert result.exit_code == 1


def test_annuity_yearly_csv_export(tmp_path):
    path = tmp_path / "annuity.csv"
    result = _run("annuity", "-p", "500k", "-r", "6", "-y", "10", "--yearly", "--output", str(path))

    assert result.exit_code == 0, result.output
    with path.open(newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 10
    assert rows[0]["year"] == "1"


def test_unsupported_export_format(tmp_path):
    result = _run("annuity", "-p", "500k", "-r", "6", "-y", "10", "--output", str(tmp_path / "out.txt"))
    assert result.exit_code == 2


def test_lease_fixed_rate():
    result = _run("lease", "--asset", "30000", "--residual-percent", "60", "--term", "36", "--rate", "6")

    assert result.exit_code == 0, result.output
    assert "573.33" in result.output


def test_lease_invalid_residual_exits_non_zero():
    result = _run("lease", "--asset", "30000", "--residual", "40000", "--term", "36", "--rate", "6")
    assert result.exit_code == 1


def test_refinance_recommendation():
    result = _run(
        "refinance",
        "--balance", "250000",
        "--payment", "1800",
        "--rate", "7",
        "--new-rate", "6",
        "--new-term", "240",
        "--points", "2",
        "--fees", "1500",
    )

    assert result.exit_code == 0, result.output
    assert "6,500.00" in result.output
    assert "Recommended        : Yes" in result.output


def test_refinance_json_export_without_savings(tmp_path):
    path = tmp_path / "refi.json"
    result = _run(
        "refinance",
        "--balance", "250000",
        "--payment", "1800",
        "--rate", "7",
        "--new-rate", "9",
        "--new-term", "240",
        "--output", str(path),
    )

    assert result.exit_code == 0, result.output
    text = path.read_text(encoding="utf-8")
    assert "Infinity" not in text
    data = json.loads(text)
    assert data["summary"]["break_even_periods"] is None
    assert data["summary"]["recommended"] is False


def test_refinance_requires_one_current_loan_description():
    result = _run("refinance", "--rate", "7", "--new-rate", "6", "--new-term", "240")
    assert result.exit_code == 2


def test_refinance_from_original_loan_csv(tmp_path):
    path = tmp_path / "refi.csv"
    result = _run(
        "refinance",
        "--original-amount", "300k",
        "--original-term", "360",
        "--months-paid", "60",
        "--rate", "6",
        "--new-rate", "5",
        "--new-term", "300",
        "--output", str(path),
    )

    assert result.exit_code == 0, result.output
    with path.open(newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 300
    assert "cumulative_savings" in rows[0]


def test_tax_single_return():
    result = _run("tax", "--spouse1", "salary=100k")

    assert result.exit_code == 0, result.output
    assert "13,841.00" in result.output


def test_tax_marriage_comparison():
    result = _run("tax", "--spouse1", "salary=200k", "--spouse2", "salary=0")

    assert result.exit_code == 0, result.output
    assert "Marriage bonus" in result.output
    assert "9,856.50" in result.output


def test_tax_rejects_unknown_field():
    result = _run("tax", "--spouse1", "salary=100k,bonus=5k")
    assert result.exit_code == 2
    assert "Unknown field" in result.output


def test_budget_summary():
    result = _run(
        "budget",
        "--income", "6000",
        "--tax-rate", "20",
        "--expense", "housing:1500",
        "--expense", "living:12000:year",
        "--expense", "savings:600",
    )

    assert result.exit_code == 0, result.output
    assert "Net income         : 4,800.00" in result.output
    assert "Surplus            : 1,700.00" in result.output


def test_budget_rejects_unknown_category():
    result = _run("budget", "--income", "6000", "--expense", "pets:100")
    assert result.exit_code == 2


def test_verbose_flag_logs_empty_results():
    result = _run("--verbose", "annuity", "-p", "0", "-r", "6", "-y", "10")
    assert result.exit_code == 1


def test_setup_logging_levels():
    setup_logging(verbose=True)
    assert logging.getLogger().level == logging.DEBUG
    setup_logging()
    assert logging.getLogger().level == logging.WARNING
    assert len(logging.getLogger().handlers) == 1
