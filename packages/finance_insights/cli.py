# ruff: noqa: I001
"""CLI for the ``finance_insights`` package.

Typer-based console interface over :mod:`finance_insights.api`. Environment
variables (``OPENAI_API_KEY``, ``DATABASE_URL``, ``FINANCE_INSIGHTS_*``) are
loaded from a local ``.env`` using ``python-dotenv`` before any command runs.
This is the only place that reads the environment or the wall clock; the
analysis functions receive everything explicitly.

Input files are JSON arrays of raw transaction records in either the
``manual`` or ``plaid`` shape (see :mod:`finance_insights.normalizers`).
"""

from __future__ import annotations

import dataclasses
import json
import os
from datetime import UTC, date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from typer.models import ArgumentInfo, OptionInfo

from .logging_setup import configure_logging

console = Console()
err_console = Console(stderr=True)


# ---- Small module-level helpers used by CLI commands -------------------------


def _load_json(path: Path, *, what: str) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        err_console.print(f"[red]Error:[/red] {what} not found: {path}")
    except PermissionError:
        err_console.print(f"[red]Error:[/red] Permission denied: {path}")
    except json.JSONDecodeError as e:
        err_console.print(f"[red]Error:[/red] {what} is not valid JSON: {e}")
    raise typer.Exit(1)


def _load_records(path: Path) -> list[dict[str, Any]]:
    data = _load_json(path, what="Transactions file")
    # Bank feeds wrap the list as {"transactions": [...]}.
    if isinstance(data, dict) and isinstance(data.get("transactions"), list):
        data = data["transactions"]
    if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
        err_console.print("[red]Error:[/red] Transactions file must hold a JSON array of objects")
        raise typer.Exit(1)
    return data


def _load_limits(path: Path | None) -> dict[str, Decimal]:
    if path is None:
        return {}
    data = _load_json(path, what="Limits file")
    if not isinstance(data, dict):
        err_console.print("[red]Error:[/red] Limits file must hold a JSON object")
        raise typer.Exit(1)
    try:
        return {str(k): Decimal(str(v)) for k, v in data.items()}
    except ArithmeticError:
        err_console.print("[red]Error:[/red] Limits must be numbers")
        raise typer.Exit(1) from None


def _parse_month(raw: str | None, now: datetime) -> date:
    if not raw:
        return now.date().replace(day=1)
    try:
        return datetime.strptime(raw, "%Y-%m").date()
    except ValueError:
        err_console.print(f"[red]Error:[/red] --month must look like YYYY-MM, got {raw!r}")
        raise typer.Exit(1) from None


def _json_default(o: Any) -> Any:
    if isinstance(o, Decimal):
        return str(o)
    if isinstance(o, datetime | date):
        return o.isoformat()
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")


def _money(d: Decimal) -> str:
    return f"${d:,.2f}"


def _render_report(report) -> None:
    totals = Table(title=f"Budget {report.reference_month:%Y-%m}")
    for col in ("Category", "Current", "Previous", "Limit", "Share", "Trend"):
        totals.add_column(col)
    for t in report.category_totals:
        style = "red" if t.is_over_limit else None
        totals.add_row(
            t.category,
            _money(t.current_amount),
            _money(t.previous_amount),
            _money(t.limit) if t.limit > 0 else "-",
            f"{t.percentage_of_total}%",
            f"{t.trend.value} ({t.monthly_change_percent:+d}%)",
            style=style,
        )
    console.print(totals)

    h = report.health
    console.print(
        f"[bold]Health score:[/bold] {h.current}/100 "
        f"({h.delta:+d} from {h.previous})"
    )
    breakdown = Table(title="Score breakdown")
    for col in ("Component", "Score", "Weight", "Why"):
        breakdown.add_column(col)
    for c in h.breakdown:
        breakdown.add_row(c.name, str(c.score), f"{c.weight:.0%}", c.rationale)
    console.print(breakdown)
    for goal in h.next_goals:
        console.print(f"  • {goal}")

    recs = Table(title="Recommendations")
    for col in ("Domain", "Title", "Impact", "Confidence", "Source"):
        recs.add_column(col)
    for domain, items in report.recommendations.by_domain().items():
        for r in items:
            recs.add_row(domain, r.title, r.impact_text, r.confidence.value, r.source)
    for r in report.insights:
        recs.add_row("budget", r.title, r.impact_text, r.confidence.value, r.kind.value)
    console.print(recs)

    if report.recurring.subscriptions or report.recurring.income_sources:
        rec = Table(title="Recurring")
        for col in ("Merchant", "Direction", "Count", "Average", "Total"):
            rec.add_column(col)
        for c in (*report.recurring.subscriptions, *report.recurring.income_sources):
            rec.add_row(
                c.display_name,
                c.direction.value,
                str(c.frequency),
                _money(c.average_amount),
                _money(c.total_amount),
            )
        console.print(rec)

    _render_challenges(report.challenges)


def _render_challenges(challenges) -> None:
    table = Table(title="Challenges")
    for col in ("Id", "Title", "Difficulty", "Days", "Description"):
        table.add_column(col)
    for c in challenges:
        table.add_row(c.template_id, c.title, c.difficulty, str(c.duration_days), c.description)
    console.print(table)


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Analyse transactions: budgets, recurring payments, a health score, "
        "recommendations and challenges. Loads OPENAI_API_KEY from a local .env."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
PATH_ARGUMENT: ArgumentInfo = typer.Argument(
    ..., help="JSON file with raw transaction records", dir_okay=False
)
PROVIDER_OPTION: OptionInfo = typer.Option(
    ..., "--provider", help="Record shape: manual or plaid."
)
LIMITS_OPTION: OptionInfo = typer.Option(
    ..., "--limits", help="JSON object of monthly limits per category.", dir_okay=False
)


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, "--log-level", help="Logging level (falls back to FINANCE_INSIGHTS_LOG_LEVEL)."
    ),
) -> None:
    """Load ``.env`` (without overriding the environment) and set up logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


@app.command("analyze")
def analyze_cmd(
    path: Annotated[Path, PATH_ARGUMENT],
    provider: Annotated[str, PROVIDER_OPTION] = "manual",
    limits: Annotated[Path | None, LIMITS_OPTION] = None,
    month: str | None = typer.Option(None, help="Month to analyse (YYYY-MM); default current."),
    prior_score: int | None = typer.Option(None, help="Last stored health score."),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
    no_ai: bool = typer.Option(False, "--no-ai", help="Skip the enhancement request."),
) -> None:
    """Run the full analysis over a transactions file."""

    from .api import analyze
    from .config import DISABLED, EnhancementConfig
    from .normalizers import TransactionNormalizer

    now = datetime.now(UTC)
    records = _load_records(path)
    try:
        txs = TransactionNormalizer.normalize(provider=provider, records=records, now=now)
        enhancement = DISABLED if no_ai else EnhancementConfig.from_env(os.environ)
    except ValueError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    report = analyze(
        txs,
        category_limits=_load_limits(limits),
        reference_month=_parse_month(month, now),
        now=now,
        prior_score=prior_score,
        enhancement=enhancement,
    )
    if as_json:
        payload = dataclasses.asdict(report)
        # The raw transaction list is the input; keep the output focused.
        payload.pop("transactions", None)
        typer.echo(json.dumps(payload, default=_json_default, indent=2))
        return
    _render_report(report)


@app.command("ingest")
def ingest_cmd(
    path: Annotated[Path, PATH_ARGUMENT],
    provider: Annotated[str, PROVIDER_OPTION] = "manual",
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    create_schema: bool = typer.Option(
        False, help="Create missing tables first (throwaway SQLite databases)."
    ),
) -> None:
    """Normalize a transactions file and upsert it into the database."""

    # Deferred imports keep CLI startup fast for the DB-free commands.
    from db.client import create_schema as _create_schema, session_scope

    from .persistence import SqlTransactionStore, normalize_and_upsert

    records = _load_records(path)
    now = datetime.now(UTC)
    try:
        if create_schema:
            _create_schema(database_url=database_url)
        with session_scope(database_url=database_url) as session:
            txs = normalize_and_upsert(
                records, provider=provider, store=SqlTransactionStore(session), now=now
            )
    except (RuntimeError, ValueError) as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
    console.print(f"[green]Upserted {len(txs)} transactions[/green] from {path}")


@app.command("challenges")
def challenges_cmd(
    path: Annotated[Path, PATH_ARGUMENT],
    provider: Annotated[str, PROVIDER_OPTION] = "manual",
    limits: Annotated[Path | None, LIMITS_OPTION] = None,
    joined: list[str] = typer.Option([], "--joined", help="Challenge id already joined."),
) -> None:
    """List the challenges worth offering for a transactions file."""

    from .challenges import CHALLENGE_CATALOG, build_profile, personalize
    from .normalizers import TransactionNormalizer

    records = _load_records(path)
    try:
        txs = TransactionNormalizer.normalize(
            provider=provider, records=records, now=datetime.now(UTC)
        )
    except ValueError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
    profile = build_profile(txs, budgets=_load_limits(limits))
    _render_challenges(personalize(CHALLENGE_CATALOG, profile, joined))


def main() -> None:  # pragma: no cover - console script entry point
    app()


if __name__ == "__main__":  # pragma: no cover
    app()
