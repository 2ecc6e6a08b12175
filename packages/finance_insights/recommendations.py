"""Deterministic recommendation rules and the per-domain generation flow.

Public API:
    - :func:`generate`: rule-based recommendations for one domain.
    - :func:`generate_recommendations`: derive every domain's inputs from a
      transaction list, generate, then enhance each domain concurrently.

Every ``impact_text`` is computed from the input data. Rule ids have the form
``<domain>-<rule>-<epoch ms>``; enhanced ids use an ``ai-`` prefix so the two
never collide.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any

from .budget import format_dollars, round_half_up
from .categories import DEFAULT_KEYWORDS, KeywordTables
from .config import DISABLED, EnhancementConfig
from .enhance import enhance
from .logging_setup import get_logger
from .models import (
    Confidence,
    Direction,
    Recommendation,
    RecommendationSet,
    RecurringCandidate,
    RecurringDetection,
    Transaction,
)
from .pmap import p_map
from .recurring import detect_recurring

_logger = get_logger("finance_insights.recommendations")

DOMAINS: tuple[str, ...] = ("spending", "subscriptions", "savings", "debt")

# ---- Rule thresholds ---------------------------------------------------------

_TOP_CATEGORY_SHARE = Decimal("30")
_DINING_FLOOR = Decimal("200")
_SHOPPING_FLOOR = Decimal("300")
_SUBSCRIPTION_COUNT_FLOOR = 3
_EMERGENCY_FUND_MONTHS = 3


def _pct(amount: Decimal, percent: int) -> Decimal:
    return amount * percent / 100


class _Builder:
    """Shared id/timestamp plumbing for one domain's rule set."""

    def __init__(self, domain: str, now: datetime) -> None:
        self.domain = domain
        self.now = now
        self._stamp = int(now.timestamp() * 1000)
        self.out: list[Recommendation] = []

    def add(
        self,
        rule: str,
        title: str,
        description: str,
        impact_text: str,
        confidence: Confidence,
    ) -> None:
        self.out.append(
            Recommendation(
                id=f"{self.domain}-{rule}-{self._stamp}",
                title=title,
                description=description,
                impact_text=impact_text,
                confidence=confidence,
                created_at=self.now,
                domain=self.domain,
            )
        )


def _spending(
    b: _Builder, data: Sequence[tuple[str, Decimal]], total: Decimal, kw: KeywordTables
) -> None:
    if not data:
        return
    top_category, top_amount = data[0]
    if total > 0:
        share = top_amount / total * 100
        if share > _TOP_CATEGORY_SHARE:
            b.add(
                "top-category",
                f"Reduce Your {top_category} Expenses",
                f"You're spending {round_half_up(share)}% of your budget on {top_category}. "
                "Try to reduce this to 25% by finding alternatives or cutting back.",
                f"Save {format_dollars(_pct(top_amount, 20))}/month",
                Confidence.HIGH,
            )

    dining = next(((c, a) for c, a in data if kw.is_dining(c)), None)
    if dining is not None and dining[1] > _DINING_FLOOR:
        saving = format_dollars(_pct(dining[1], 30))
        b.add(
            "dining",
            "Optimize Dining Expenses",
            f"You spent {format_dollars(dining[1])} on dining out. Cooking at home 2 more days "
            f"per week could save you approximately {saving} per month.",
            f"{saving}/month savings",
            Confidence.MEDIUM,
        )

    shopping = next(((c, a) for c, a in data if "shopping" in c.casefold()), None)
    if shopping is not None and shopping[1] > _SHOPPING_FLOOR:
        saving = format_dollars(_pct(shopping[1], 20))
        b.add(
            "shopping",
            "Optimize Shopping Habits",
            f"You spent {format_dollars(shopping[1])} on shopping. Waiting 24 hours before "
            "non-essential purchases could trim this noticeably.",
            f"{saving}/month savings",
            Confidence.MEDIUM,
        )


def _subscriptions(b: _Builder, data: Sequence[RecurringCandidate]) -> None:
    if len(data) <= _SUBSCRIPTION_COUNT_FLOOR:
        return
    monthly = sum((c.average_amount for c in data), Decimal("0.00"))
    b.add(
        "audit",
        "Subscription Audit Recommended",
        f"You have {len(data)} active subscriptions totaling {format_dollars(monthly)}/month. "
        "Consider reviewing and canceling unused services.",
        f"Save up to {format_dollars(_pct(monthly, 30))}/month",
        Confidence.HIGH,
    )


def _savings(b: _Builder, data: Sequence[RecurringCandidate], total: Decimal) -> None:
    fund = format_dollars(total * _EMERGENCY_FUND_MONTHS)
    b.add(
        "emergency",
        "Build Your Emergency Fund",
        f"Based on your spending patterns, aim for an emergency fund of {fund} "
        "(3 months of expenses). Start by setting aside 5-10% of your income each month.",
        f"{fund} safety net (3 months of expenses)",
        Confidence.HIGH,
    )

    income = [c for c in data if c.direction is Direction.CREDIT]
    if income:
        monthly_income = sum((c.average_amount for c in income), Decimal("0.00"))
        saved = format_dollars(_pct(monthly_income, 10))
        b.add(
            "automate",
            "Automate Your Savings",
            f"You have {len(income)} recurring income source(s). Schedule an automatic "
            f"transfer of {saved} to savings right after each payday.",
            f"{saved}/month saved",
            Confidence.MEDIUM,
        )


def _debt(b: _Builder, data: Sequence[Transaction]) -> None:
    if not data:
        return
    payments = sum((t.amount for t in data), Decimal("0.00"))
    b.add(
        "high-interest",
        "Focus on High-Interest Debt First",
        "Prioritize paying off high-interest debt like credit cards before lower-interest "
        "loans. This 'debt avalanche' method will save you the most money in interest.",
        f"Potential interest savings of {format_dollars(_pct(payments, 15))} or more",
        Confidence.HIGH,
    )


def generate(
    domain: str,
    data: Sequence[Any],
    total_spending: Decimal,
    *,
    now: datetime,
    keywords: KeywordTables = DEFAULT_KEYWORDS,
) -> list[Recommendation]:
    """Return 0–3 deterministic recommendations for ``domain``.

    ``data`` depends on the domain:

    - ``spending``: ``(category, amount)`` pairs sorted by amount descending.
    - ``subscriptions``: subscription candidates.
    - ``savings``: recurring candidates (subscriptions and income sources).
    - ``debt``: debt-servicing transactions.
    """

    if domain not in DOMAINS:
        raise ValueError(f"unknown recommendation domain: {domain!r}")
    b = _Builder(domain, now)
    if domain == "spending":
        _spending(b, data, total_spending, keywords)
    elif domain == "subscriptions":
        _subscriptions(b, data)
    elif domain == "savings":
        _savings(b, data, total_spending)
    else:
        _debt(b, data)
    return b.out


# ---- Full flow ---------------------------------------------------------------


def spending_by_category(transactions: Iterable[Transaction]) -> list[tuple[str, Decimal]]:
    """Expense totals per raw category, largest first (ties by name)."""

    totals: dict[str, Decimal] = {}
    for t in transactions:
        if t.is_expense:
            totals[t.category] = totals.get(t.category, Decimal("0.00")) + t.amount
    return sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))


def domain_inputs(
    transactions: Sequence[Transaction],
    *,
    keywords: KeywordTables = DEFAULT_KEYWORDS,
    detection: RecurringDetection | None = None,
) -> dict[str, Sequence[Any]]:
    det = detection or detect_recurring(transactions, keywords=keywords)
    return {
        "spending": spending_by_category(transactions),
        "subscriptions": det.subscriptions,
        "savings": (*det.subscriptions, *det.income_sources),
        "debt": [t for t in transactions if t.is_expense and keywords.is_debt(t.category)],
    }


def generate_recommendations(
    transactions: Iterable[Transaction],
    *,
    now: datetime,
    config: EnhancementConfig | None = None,
    keywords: KeywordTables = DEFAULT_KEYWORDS,
    concurrency: int = 4,
    detection: RecurringDetection | None = None,
    client: Any | None = None,
) -> RecommendationSet:
    """Generate and enhance recommendations for every domain.

    Domains run concurrently (bounded by ``concurrency``); each one's
    enhancement is independent and falls back on its own.
    """

    txs = list(transactions)
    cfg = config or DISABLED
    total = sum((t.amount for t in txs if t.is_expense), Decimal("0.00"))
    inputs = domain_inputs(txs, keywords=keywords, detection=detection)

    def _run(domain: str) -> list[Recommendation]:
        data = inputs[domain]
        base = generate(domain, data, total, now=now, keywords=keywords)
        return enhance(domain, base, data, total, config=cfg, now=now, client=client)

    results = p_map(DOMAINS, _run, concurrency=concurrency)
    by_domain: dict[str, tuple[Recommendation, ...]] = {
        d: tuple(r) for d, r in zip(DOMAINS, results, strict=True)
    }
    _logger.info(
        "recommendations:done %s",
        " ".join(f"{d}={len(r)}" for d, r in by_domain.items()),
    )
    return RecommendationSet(
        spending=by_domain["spending"],
        subscriptions=by_domain["subscriptions"],
        savings=by_domain["savings"],
        debt=by_domain["debt"],
        last_updated=now,
    )


__all__ = [
    "DOMAINS",
    "domain_inputs",
    "generate",
    "generate_recommendations",
    "spending_by_category",
]
