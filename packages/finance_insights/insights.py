"""Budget insights: short, prioritized findings over the aggregated totals.

Insights reuse :class:`~finance_insights.models.Recommendation` with
``domain="budget"`` and a ``kind`` (expense / opportunity / achievement).
Ordering is by priority (severe overspend first, achievements last), then by
confidence; at most eight are returned.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal

from .budget import format_dollars, round_half_up
from .categories import category_advice
from .models import CategoryTotal, Confidence, InsightKind, Recommendation, Trend

MAX_INSIGHTS = 8

_SPIKE_CHANGE_PERCENT = 25
_SPIKE_MIN_AMOUNT = Decimal("100")
_ACHIEVEMENT_SHARE = Decimal("0.8")
_TARGET_SAVINGS_RATE = Decimal("20")
_SUBSCRIPTION_REVIEW_FLOOR = Decimal("50")

_CONFIDENCE_RANK = {Confidence.HIGH: 3, Confidence.MEDIUM: 2, Confidence.LOW: 1}


def _slug(text: str) -> str:
    return "-".join("".join(ch if ch.isalnum() else " " for ch in text.lower()).split())


def _over_budget(t: CategoryTotal) -> tuple[int, dict]:
    overspend = round_half_up(t.current_amount - t.limit)
    percent_over = round_half_up(Decimal(overspend) / t.limit * 100)
    if percent_over > 50:
        confidence, priority = Confidence.HIGH, 1
    elif percent_over > 20:
        confidence, priority = Confidence.MEDIUM, 2
    else:
        confidence, priority = Confidence.LOW, 3
    return priority, {
        "rule": "over",
        "category": t.category,
        "title": f"{t.category} is Over Budget",
        "description": (
            f"You've spent {format_dollars(t.current_amount)} on {t.category.lower()}, which is "
            f"${overspend} ({percent_over}%) over your {format_dollars(t.limit)} budget. "
            + category_advice(t.category, "overspend")
        ),
        "impact_text": f"${overspend}/month",
        "confidence": confidence,
        "kind": InsightKind.EXPENSE,
    }


def _spike(t: CategoryTotal) -> tuple[int, dict]:
    high = t.monthly_change_percent > 50
    return (2 if high else 4), {
        "rule": "spike",
        "category": t.category,
        "title": f"{t.category} Spending Spike",
        "description": (
            f"Your {t.category.lower()} spending increased by {t.monthly_change_percent}% this "
            f"month ({format_dollars(t.current_amount)}). "
            + category_advice(t.category, "increase")
        ),
        "impact_text": (
            f"Monitor and reduce by 20% = {format_dollars(t.current_amount * Decimal('0.2'))}/month"
        ),
        "confidence": Confidence.HIGH if high else Confidence.MEDIUM,
        "kind": InsightKind.EXPENSE,
    }


def _achievement(t: CategoryTotal) -> tuple[int, dict]:
    remaining = t.limit - t.current_amount
    used = round_half_up(t.current_amount / t.limit * 100)
    return 6, {
        "rule": "progress",
        "category": t.category,
        "title": f"Great Progress on {t.category}",
        "description": (
            f"You're staying well within your {t.category.lower()} budget with "
            f"{format_dollars(remaining)} to spare ({used}% used)."
        ),
        "impact_text": f"{format_dollars(remaining)} remaining this month",
        "confidence": Confidence.LOW,
        "kind": InsightKind.ACHIEVEMENT,
    }


def _savings(total_income: Decimal, total_spent: Decimal) -> tuple[int, dict] | None:
    saved = total_income - total_spent
    rate = saved / total_income * 100
    if rate < _TARGET_SAVINGS_RATE and saved > 0:
        gap = total_income * _TARGET_SAVINGS_RATE / 100 - saved
        return 2, {
            "rule": "low-savings",
            "category": "Savings",
            "title": "Low Savings Rate Detected",
            "description": (
                f"You're saving {rate:.1f}% of your income. Financial experts recommend 20% "
                "or more."
            ),
            "impact_text": f"Target: {format_dollars(gap)}/month more",
            "confidence": Confidence.HIGH,
            "kind": InsightKind.OPPORTUNITY,
        }
    if rate >= _TARGET_SAVINGS_RATE:
        return 7, {
            "rule": "savings",
            "category": "Savings",
            "title": "Excellent Savings Rate!",
            "description": (
                f"You're saving {rate:.1f}% of your income. Consider investing these savings "
                "for long-term growth or building an emergency fund."
            ),
            "impact_text": f"{format_dollars(saved)}/month saved",
            "confidence": Confidence.HIGH,
            "kind": InsightKind.ACHIEVEMENT,
        }
    return None


def _subscription_review(spend: Decimal) -> tuple[int, dict]:
    return 3, {
        "rule": "subscriptions",
        "category": "Subscriptions",
        "title": "Review Your Subscriptions",
        "description": (
            f"You spent {format_dollars(spend)} on subscriptions this month. "
            "Review and cancel unused services."
        ),
        "impact_text": f"Potential: {format_dollars(spend * Decimal('0.3'))}/month",
        "confidence": Confidence.MEDIUM,
        "kind": InsightKind.OPPORTUNITY,
    }


def budget_insights(
    totals: Iterable[CategoryTotal],
    *,
    total_income: Decimal,
    created_at: datetime,
    category_spend: Mapping[str, Decimal] | None = None,
) -> list[Recommendation]:
    """Derive prioritized insights from the month's category totals.

    ``total_income`` is the reference month's income; savings insights are
    skipped when it is zero. ``category_spend`` is the month's expense spend
    per raw category, before unbudgeted categories are folded into
    ``"Other"``; the subscription review reads it, falling back to the bucket
    totals when it is not given.
    """

    rows = list(totals)
    found: list[tuple[int, dict]] = []
    flagged: set[str] = set()

    for t in rows:
        if t.is_over_limit:
            found.append(_over_budget(t))
            flagged.add(t.category)

    for t in rows:
        if (
            t.category not in flagged
            and t.trend is Trend.UP
            and t.monthly_change_percent > _SPIKE_CHANGE_PERCENT
            and t.current_amount > _SPIKE_MIN_AMOUNT
        ):
            found.append(_spike(t))

    for t in rows:
        if t.limit > 0 and 0 < t.current_amount < t.limit * _ACHIEVEMENT_SHARE:
            found.append(_achievement(t))

    total_spent = sum((t.current_amount for t in rows), Decimal("0.00"))
    if total_income > 0:
        savings = _savings(total_income, total_spent)
        if savings is not None:
            found.append(savings)

    if category_spend is None:
        category_spend = {t.category: t.current_amount for t in rows}
    subscription_spend = sum(
        (amount for cat, amount in category_spend.items() if "subscription" in cat.casefold()),
        Decimal("0.00"),
    )
    if subscription_spend > _SUBSCRIPTION_REVIEW_FLOOR:
        found.append(_subscription_review(subscription_spend))

    # Stable sort keeps rule order within equal priority and confidence.
    found.sort(key=lambda pf: (pf[0], -_CONFIDENCE_RANK[pf[1]["confidence"]]))

    stamp = int(created_at.timestamp() * 1000)
    out: list[Recommendation] = []
    for _priority, f in found[:MAX_INSIGHTS]:
        out.append(
            Recommendation(
                id=f"budget-{f['rule']}-{_slug(f['category'])}-{stamp}",
                title=f["title"],
                description=f["description"],
                impact_text=f["impact_text"],
                confidence=f["confidence"],
                created_at=created_at,
                domain="budget",
                kind=f["kind"],
            )
        )
    return out


__all__ = ["MAX_INSIGHTS", "budget_insights"]
