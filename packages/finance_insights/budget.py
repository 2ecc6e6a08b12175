"""Budget aggregation: per-category totals for a month and the month before.

Every expense in either month lands in exactly one bucket: its own category
when the user configured a limit for it, otherwise ``"Other"``. Income is
ignored. The result is sorted by current spend, largest first; the
recommendation rules rely on that order to find the top category.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from .categories import resolve_bucket
from .logging_setup import get_logger
from .models import BudgetSummary, CategoryTotal, Transaction, TransactionType, Trend

_logger = get_logger("finance_insights.budget")

_ZERO = Decimal("0.00")
_TREND_BAND = Decimal("5")


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_dollars(value: Decimal) -> str:
    """Whole-dollar display string, e.g. ``Decimal("49.50")`` → ``"$50"``."""

    return f"${round_half_up(value)}"


def month_key(d: date) -> tuple[int, int]:
    return d.year, d.month


def previous_month(d: date) -> tuple[int, int]:
    if d.month == 1:
        return d.year - 1, 12
    return d.year, d.month - 1


def _trend(current: Decimal, previous: Decimal) -> tuple[Trend, int]:
    # A brand-new category is stable, not an infinite increase.
    if previous <= 0:
        return Trend.STABLE, 0
    change = (current - previous) / previous * 100
    if change > _TREND_BAND:
        trend = Trend.UP
    elif change < -_TREND_BAND:
        trend = Trend.DOWN
    else:
        trend = Trend.STABLE
    return trend, round_half_up(change)


def aggregate(
    transactions: Iterable[Transaction],
    category_limits: Mapping[str, Decimal | int | float | str],
    reference_month: date,
) -> list[CategoryTotal]:
    """Bucket expenses into category totals for ``reference_month``.

    Parameters
    ----------
    transactions:
        Canonical transactions; only expenses are counted.
    category_limits:
        Monthly limit per category name. A limit for ``"Other"`` applies to
        the catch-all bucket.
    reference_month:
        Any date inside the month to report on. The previous month is the
        calendar month before it.
    """

    limits = {k: Decimal(str(v)).quantize(Decimal("0.01")) for k, v in category_limits.items()}
    cur_key = month_key(reference_month)
    prev_key = previous_month(reference_month)

    current: dict[str, Decimal] = {}
    previous: dict[str, Decimal] = {}
    for tx in transactions:
        if tx.type is not TransactionType.EXPENSE:
            continue
        k = month_key(tx.date)
        if k == cur_key:
            target = current
        elif k == prev_key:
            target = previous
        else:
            continue
        bucket = resolve_bucket(tx.category, limits)
        target[bucket] = target.get(bucket, _ZERO) + tx.amount

    buckets = list(dict.fromkeys([*limits, *current, *previous]))
    total_current = sum(current.values(), _ZERO)

    rows: list[CategoryTotal] = []
    for name in buckets:
        cur = current.get(name, _ZERO)
        prev = previous.get(name, _ZERO)
        pct = round_half_up(cur / total_current * 100) if total_current > 0 else 0
        trend, change = _trend(cur, prev)
        rows.append(
            CategoryTotal(
                category=name,
                current_amount=cur,
                previous_amount=prev,
                limit=limits.get(name, _ZERO),
                percentage_of_total=pct,
                trend=trend,
                monthly_change_percent=change,
            )
        )

    rows.sort(key=lambda r: (-r.current_amount, r.category))
    _logger.debug(
        "budget:aggregate month=%04d-%02d buckets=%d total_current=%s",
        cur_key[0],
        cur_key[1],
        len(rows),
        total_current,
    )
    return rows


def summarize(totals: Iterable[CategoryTotal]) -> BudgetSummary:
    spent = _ZERO
    limit = _ZERO
    over = 0
    for t in totals:
        spent += t.current_amount
        limit += t.limit
        if t.is_over_limit:
            over += 1
    return BudgetSummary(total_spent=spent, total_limit=limit, over_limit_count=over)


__all__ = [
    "aggregate",
    "format_dollars",
    "month_key",
    "previous_month",
    "round_half_up",
    "summarize",
]
