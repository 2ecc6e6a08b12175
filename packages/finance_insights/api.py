"""Public API and orchestration for the ``finance_insights`` package.

:func:`analyze` runs the whole pipeline over canonical transactions:

    normalizer output → {recurring detector, budget aggregator}
                      → {health scorer, recommendations, insights, challenges}

Every step is a pure function of its inputs; the only blocking call is the
optional enhancement request, which falls back on failure. Data defects never
raise here. Contract violations in the arguments (bad weights, unknown
domain) still do.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from .budget import aggregate, month_key, summarize
from .categories import DEFAULT_KEYWORDS, KeywordTables
from .challenges import CHALLENGE_CATALOG, build_profile, personalize
from .config import EnhancementConfig
from .health import DEFAULT_WEIGHTS, HealthWeights, SubScores, score
from .insights import budget_insights
from .logging_setup import get_logger
from .models import (
    BudgetSummary,
    CategoryTotal,
    ChallengeTemplate,
    HealthScore,
    PersonalizedChallenge,
    Recommendation,
    RecommendationSet,
    RecurringDetection,
    SpendingProfile,
    Transaction,
    TransactionType,
)
from .normalizers import TransactionNormalizer, normalize
from .recommendations import generate_recommendations, spending_by_category
from .recurring import detect_recurring

_logger = get_logger("finance_insights.api")


@dataclass(frozen=True, slots=True)
class AnalysisReport:
    """Everything one pipeline run produces, ready for display or storage."""

    reference_month: date
    transactions: tuple[Transaction, ...]
    recurring: RecurringDetection
    category_totals: tuple[CategoryTotal, ...]
    budget: BudgetSummary
    health: HealthScore
    recommendations: RecommendationSet
    insights: tuple[Recommendation, ...]
    profile: SpendingProfile
    challenges: tuple[PersonalizedChallenge, ...]


def _month_income(transactions: Iterable[Transaction], reference_month: date) -> Decimal:
    key = month_key(reference_month)
    return sum(
        (
            t.amount
            for t in transactions
            if t.type is TransactionType.INCOME and month_key(t.date) == key
        ),
        Decimal("0.00"),
    )


def analyze(
    transactions: Iterable[Transaction],
    *,
    category_limits: Mapping[str, Any],
    reference_month: date,
    now: datetime,
    prior_score: int | None = None,
    sub_scores: SubScores | None = None,
    weights: HealthWeights = DEFAULT_WEIGHTS,
    enhancement: EnhancementConfig | None = None,
    joined_challenge_ids: Iterable[str] = (),
    challenge_templates: Sequence[ChallengeTemplate] = CHALLENGE_CATALOG,
    keywords: KeywordTables = DEFAULT_KEYWORDS,
    concurrency: int = 4,
    client: Any | None = None,
) -> AnalysisReport:
    """Run the analysis pipeline.

    Parameters
    ----------
    transactions:
        Canonical transactions (see :mod:`finance_insights.normalizers`).
    category_limits:
        Monthly budget limit per category; ``"Other"`` limits the catch-all.
    reference_month:
        Any date inside the month to analyse.
    now:
        Timestamp stamped on recommendations; the pipeline never reads the
        clock.
    prior_score:
        Last stored health score, when history exists.
    sub_scores:
        Saving/debt/investment scores. When omitted, ``saving`` is derived
        from the reference month's income and spending.
    enhancement:
        Generative-text settings; ``None`` or a disabled config keeps the
        deterministic recommendations.
    joined_challenge_ids:
        Challenge ids the user already joined or completed.
    client:
        Optional pre-built Responses client, forwarded to enhancement.
    """

    txs = tuple(transactions)
    recurring = detect_recurring(txs, keywords=keywords)
    totals = aggregate(txs, category_limits, reference_month)
    summary = summarize(totals)

    income = _month_income(txs, reference_month)
    subs = sub_scores or SubScores.from_income(income, summary.total_spent)
    health = score(totals, prior_score, sub_scores=subs, weights=weights)

    recs = generate_recommendations(
        txs,
        now=now,
        config=enhancement,
        keywords=keywords,
        concurrency=concurrency,
        detection=recurring,
        client=client,
    )
    month = month_key(reference_month)
    month_spend = dict(spending_by_category(t for t in txs if month_key(t.date) == month))
    insights = budget_insights(
        totals, total_income=income, created_at=now, category_spend=month_spend
    )

    profile = build_profile(
        txs,
        budgets=category_limits,
        subscription_count=len(recurring.subscriptions),
        keywords=keywords,
    )
    challenges = personalize(
        challenge_templates, profile, joined_challenge_ids, keywords=keywords
    )

    _logger.info(
        "analyze:done transactions=%d buckets=%d score=%d insights=%d challenges=%d",
        len(txs),
        len(totals),
        health.current,
        len(insights),
        len(challenges),
    )
    return AnalysisReport(
        reference_month=reference_month,
        transactions=txs,
        recurring=recurring,
        category_totals=tuple(totals),
        budget=summary,
        health=health,
        recommendations=recs,
        insights=tuple(insights),
        profile=profile,
        challenges=tuple(challenges),
    )


__all__ = ["AnalysisReport", "TransactionNormalizer", "analyze", "normalize"]
