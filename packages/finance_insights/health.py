"""Composite financial health score.

The score is a weighted sum of four 0–100 sub-scores:

- ``spending``: budget adherence, derived from the category totals. No
  penalty up to 80% of the combined limit, then linear down to 0 at 130%
  (``100 - clamp(0, 100, (ratio - 0.8) * 200)``), minus 5 points for every
  category over its own limit.
- ``saving``, ``debt``, ``investment``: supplied by the caller via
  :class:`SubScores`, or placeholders when nothing richer is known.

Placeholder values (and the ``current - 6`` previous score used without
history) keep the shape of the result stable; they are not business rules.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from .budget import round_half_up
from .logging_setup import get_logger
from .models import CategoryTotal, HealthScore, ScoreComponent

_logger = get_logger("finance_insights.health")

PLACEHOLDER_SAVING = 50
PLACEHOLDER_DEBT = 70
PLACEHOLDER_INVESTMENT = 60
PLACEHOLDER_PREVIOUS_OFFSET = 6

_OVER_LIMIT_PENALTY = 5
_PENALTY_FREE_RATIO = Decimal("0.8")
_WEIGHT_TOLERANCE = 1e-9


@dataclass(frozen=True, slots=True)
class HealthWeights:
    spending: float = 0.3
    saving: float = 0.2
    debt: float = 0.3
    investment: float = 0.2

    def __post_init__(self) -> None:
        values = (self.spending, self.saving, self.debt, self.investment)
        if any(w < 0 or w > 1 for w in values):
            raise ValueError(f"health weights must each be within [0, 1], got {values}")
        if abs(sum(values) - 1.0) > _WEIGHT_TOLERANCE:
            raise ValueError(f"health weights must sum to 1.0, got {sum(values)!r}")


DEFAULT_WEIGHTS = HealthWeights()


def savings_rate_score(rate: float) -> float:
    """Map a savings rate (percent of income) onto 0–100.

    20% or more is full marks; 10–20% scores 50–100; 0–10% scores 0–50;
    spending more than you earn scores 0.
    """

    if rate >= 20:
        return 100.0
    if rate >= 10:
        return 50 + (rate - 10) * 5
    if rate >= 0:
        return rate * 5
    return 0.0


@dataclass(frozen=True, slots=True)
class SubScores:
    """Externally supplied sub-scores; ``None`` means use the placeholder."""

    saving: float | None = None
    debt: float | None = None
    investment: float | None = None
    savings_rate: float | None = None

    @classmethod
    def from_income(
        cls,
        total_income: Decimal,
        total_spending: Decimal,
        *,
        debt: float | None = None,
        investment: float | None = None,
    ) -> SubScores:
        if total_income <= 0:
            return cls(debt=debt, investment=investment)
        rate = float((total_income - total_spending) / total_income * 100)
        return cls(
            saving=savings_rate_score(rate),
            debt=debt,
            investment=investment,
            savings_rate=rate,
        )


def _clamp(value: float, lo: float = 0, hi: float = 100) -> float:
    return max(lo, min(hi, value))


def spending_score(category_totals: Iterable[CategoryTotal]) -> tuple[float, str, int]:
    """Return ``(raw score, rationale, over-limit count)``.

    The raw score is not floored; the over-limit penalty may push it below 0
    and only the composite is clamped.
    """

    rows = list(category_totals)
    spent = sum((t.current_amount for t in rows), Decimal("0"))
    limit = sum((t.limit for t in rows), Decimal("0"))
    over = sum(1 for t in rows if t.is_over_limit)
    ratio = spent / limit if limit > 0 else Decimal("0")
    penalty = _clamp((ratio - _PENALTY_FREE_RATIO) * 200, Decimal("0"), Decimal("100"))
    score = float(100 - penalty - _OVER_LIMIT_PENALTY * over)
    if limit > 0:
        rationale = f"Using {ratio * 100:.1f}% of budget with {over} categories over limit"
    else:
        rationale = "Set up budgets to improve financial control"
    return score, rationale, over


def _next_goals(spending: float, saving: float, over: int) -> tuple[str, ...]:
    goals: list[str] = []
    if spending < 70:
        goals.append("Bring all spending categories within budget limits")
    if saving < 60:
        goals.append("Increase savings rate to at least 15% of income")
    if over > 0:
        goals.append(f"Reduce spending in {over} over-budget categories")
    if not goals:
        goals = [
            "Maintain current positive spending habits",
            "Consider increasing investment contributions",
            "Build emergency fund to 6 months of expenses",
        ]
    return tuple(goals[:3])


def score(
    category_totals: Iterable[CategoryTotal],
    prior_score: int | None = None,
    *,
    sub_scores: SubScores | None = None,
    weights: HealthWeights = DEFAULT_WEIGHTS,
) -> HealthScore:
    """Compute the weighted composite score and its breakdown.

    Parameters
    ----------
    category_totals:
        Output of :func:`finance_insights.budget.aggregate`.
    prior_score:
        Last stored score. Without one, the previous score is a placeholder
        six points below the current one.
    sub_scores:
        Saving/debt/investment scores from richer sources, if any.
    weights:
        Component weights; validated to sum to 1.0.
    """

    subs = sub_scores or SubScores()
    spend_raw, spend_why, over = spending_score(category_totals)

    saving = subs.saving if subs.saving is not None else PLACEHOLDER_SAVING
    debt = subs.debt if subs.debt is not None else PLACEHOLDER_DEBT
    investment = subs.investment if subs.investment is not None else PLACEHOLDER_INVESTMENT

    if subs.savings_rate is not None:
        saving_why = f"Saving {subs.savings_rate:.1f}% of income"
    elif subs.saving is not None:
        saving_why = "Provided savings score"
    else:
        saving_why = "Track income to calculate savings rate"
    debt_why = "Provided debt score" if subs.debt is not None else "No debt history tracked yet"
    investment_why = (
        "Provided investment score"
        if subs.investment is not None
        else "No investment history tracked yet"
    )

    parts = (
        ("Spending", spend_raw, weights.spending, spend_why),
        ("Saving", saving, weights.saving, saving_why),
        ("Debt", debt, weights.debt, debt_why),
        ("Investment", investment, weights.investment, investment_why),
    )

    weighted = sum(Decimal(str(s)) * Decimal(str(w)) for _, s, w, _ in parts)
    current = int(_clamp(round_half_up(weighted)))
    if prior_score is None:
        previous = max(0, current - PLACEHOLDER_PREVIOUS_OFFSET)
    else:
        previous = prior_score

    breakdown = tuple(
        ScoreComponent(
            name=name,
            score=int(_clamp(round_half_up(Decimal(str(s))))),
            weight=w,
            rationale=why,
        )
        for name, s, w, why in parts
    )
    _logger.debug(
        "health:score current=%d previous=%d spending_raw=%.2f over_limit=%d",
        current,
        previous,
        spend_raw,
        over,
    )
    return HealthScore(
        current=current,
        previous=previous,
        delta=current - previous,
        breakdown=breakdown,
        next_goals=_next_goals(spend_raw, float(saving), over),
    )


__all__ = [
    "DEFAULT_WEIGHTS",
    "HealthWeights",
    "SubScores",
    "savings_rate_score",
    "score",
    "spending_score",
]
