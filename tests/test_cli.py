import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

import ledger_categorizer.cli as cli_mod

runner = CliRunner()


@pytest.fixture(autouse=True)
def _no_logging_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    # Keep handler setup and any developer .env out of the test process.
    monkeypatch.setattr(cli_mod, "configure_logging", lambda level=None: None)
    monkeypatch.chdir(tmp_path)


def test_categorize_json_offline(tmp_path: Path):
    src = tmp_path / "rows.json"
    src.write_text(
        json.dumps(
            [
                {"description": "UPI/swiggy/order123", "debit": 250},
                {"description": "INT.PYMT credit", "credit": 50},
            ]
        ),
        encoding="utf-8",
    )
    result = runner.invoke(cli_mod.app, ["categorize", str(src)])
    assert result.exit_code == 0, result.output
    rows = json.loads(result.stdout)
    assert [r["subcategory"] for r in rows] == ["Food & Dining", "Interest"]
    assert [r["category"] for r in rows] == ["EXPENSE", "INCOME"]


def test_categorize_csv_offline(tmp_path: Path):
    src = tmp_path / "rows.csv"
    src.write_text(
        'description,debit,credit\n"SALARY, MARCH",,"90,000"\nXYZ UNKNOWN MERCHANT 123,75,\n',
        encoding="utf-8",
    )
    result = runner.invoke(cli_mod.app, ["categorize", str(src)])
    assert result.exit_code == 0, result.output
    rows = json.loads(result.stdout)
    assert rows[0]["suggestedLedger"] == "Salary Income"
    assert rows[1]["subcategory"] == "Other Expense"
    assert rows[1]["confidence"] == 60


def test_categorize_missing_file(tmp_path: Path):
    result = runner.invoke(cli_mod.app, ["categorize", str(tmp_path / "nope.json")])
    assert result.exit_code == 1


def test_extract_without_key_prints_empty_list(tmp_path: Path):
    src = tmp_path / "statement.txt"
    src.write_text("01/04/2025 UPI/swiggy/order123 250.00 10,250.00\n" * 3, encoding="utf-8")
    result = runner.invoke(cli_mod.app, ["extract", str(src)])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == []


def test_check_key_without_key_fails():
    result = runner.invoke(cli_mod.app, ["check-key"])
    assert result.exit_code == 1
    assert "unavailable" in result.stdout


def test_log_level_option_reaches_logging_setup(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
):
    seen: list[str | None] = []
    monkeypatch.setattr(cli_mod, "configure_logging", seen.append)
    src = tmp_path / "rows.json"
    src.write_text("[]", encoding="utf-8")
    result = runner.invoke(cli_mod.app, ["--log-level", "debug", "categorize", str(src)])
    assert result.exit_code == 0, result.output
    assert seen == ["debug"]
