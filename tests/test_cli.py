import json
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

import finance_insights.cli as cli
from tests.helpers.db import count_rows

runner = CliRunner()

RECORDS = [
    {"id": "r1", "description": "Trattoria", "amount": "550", "category": "Food & Dining",
     "date": "2024-03-05", "type": "expense"},
    {"id": "r2", "description": "Department Store", "amount": "100", "category": "Shopping",
     "date": "2024-03-06", "type": "expense"},
    {"id": "r3", "description": "Netflix", "amount": "15.49", "category": "Entertainment",
     "date": "2024-03-07", "type": "expense"},
    {"id": "r4", "description": "ACME PAYROLL", "amount": "2000", "category": "Salary",
     "date": "2024-03-01", "type": "income"},
]


@pytest.fixture(autouse=True)
def _wide_console(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    # Keep table cells on one line and keep any developer .env out of reach.
    monkeypatch.setattr(cli, "console", Console(width=240))
    monkeypatch.chdir(tmp_path)


def _write(tmp_path: Path, name: str, data) -> Path:
    p = tmp_path / name
    p.write_text(json.dumps(data), encoding="utf-8")
    return p


def test_analyze_json_report(tmp_path: Path):
    records = _write(tmp_path, "tx.json", RECORDS)
    limits = _write(tmp_path, "limits.json", {"Food & Dining": 500, "Shopping": 300})

    result = runner.invoke(
        cli.app,
        ["analyze", str(records), "--limits", str(limits), "--month", "2024-03", "--json",
         "--no-ai"],
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert "transactions" not in payload
    assert payload["reference_month"] == "2024-03-01"
    assert payload["budget"]["total_spent"] == "665.49"
    assert payload["insights"][0]["title"] == "Food & Dining is Over Budget"
    assert payload["insights"][0]["impact_text"] == "$50/month"
    assert 0 <= payload["health"]["current"] <= 100
    assert set(payload["recommendations"]) >= {"spending", "subscriptions", "savings", "debt"}


def test_analyze_tables_accept_wrapped_feed(tmp_path: Path):
    records = _write(tmp_path, "tx.json", {"transactions": RECORDS})
    result = runner.invoke(cli.app, ["analyze", str(records), "--month", "2024-03", "--no-ai"])
    assert result.exit_code == 0, result.output
    assert "Health score:" in result.stdout
    assert "Reduce Your Food & Dining Expenses" in result.stdout


@pytest.mark.parametrize(
    "args",
    [
        ["analyze", "missing.json"],
        ["analyze", "tx.json", "--provider", "csv"],
        ["analyze", "tx.json", "--month", "March"],
        ["challenges", "not-a-list.json"],
    ],
)
def test_bad_input_exits_with_error(tmp_path: Path, args):
    _write(tmp_path, "tx.json", RECORDS)
    _write(tmp_path, "not-a-list.json", {"a": 1})
    result = runner.invoke(cli.app, args)
    assert result.exit_code == 1


def test_ingest_is_idempotent(tmp_path: Path):
    records = _write(tmp_path, "tx.json", RECORDS)
    url = f"sqlite+pysqlite:///{tmp_path / 'fi.db'}"

    for _ in range(2):
        result = runner.invoke(
            cli.app,
            ["ingest", str(records), "--database-url", url, "--create-schema"],
        )
        assert result.exit_code == 0, result.output
        assert "Upserted 4 transactions" in result.stdout
    assert count_rows(url) == 4


def test_ingest_without_database_url_fails(tmp_path: Path):
    records = _write(tmp_path, "tx.json", RECORDS)
    result = runner.invoke(cli.app, ["ingest", str(records)])
    assert result.exit_code == 1


def test_challenges_lists_unjoined_relevant_templates(tmp_path: Path):
    records = _write(tmp_path, "tx.json", RECORDS)
    result = runner.invoke(cli.app, ["challenges", str(records), "--joined", "challenge-1"])
    assert result.exit_code == 0, result.output
    assert "challenge-1" not in result.stdout
    assert "challenge-4" in result.stdout
    assert "Savings Streak" in result.stdout
