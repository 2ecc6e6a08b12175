"""Data models for ``finance_insights``.

Every analysis function takes and returns the frozen dataclasses defined here.
They are plain values: nothing in this module touches the network, the
database, or the clock. Amounts are :class:`~decimal.Decimal` quantized to
cents; scores and percentages are integers.

Pydantic models used to validate generative-text output live in
:mod:`finance_insights.enhance`, next to the code that parses it.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import StrEnum

# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class TransactionType(StrEnum):
    EXPENSE = "expense"
    INCOME = "income"


@dataclass(frozen=True, slots=True)
class Transaction:
    """A canonical transaction as produced by the normalizer.

    ``amount`` is never negative; whether money left or entered the account is
    carried by ``type``. ``external_id`` is the upstream identifier used for
    idempotent upserts; ``id`` equals it when present and is otherwise a
    stable fingerprint.
    """

    id: str
    amount: Decimal
    date: date
    description: str
    category: str
    type: TransactionType
    external_id: str | None = None
    merchant_name: str | None = None
    source: str = "manual"

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"Transaction.amount must be non-negative (id={self.id!r})")

    @property
    def is_expense(self) -> bool:
        return self.type is TransactionType.EXPENSE


# ---------------------------------------------------------------------------
# Budget aggregation
# ---------------------------------------------------------------------------


class Trend(StrEnum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


@dataclass(frozen=True, slots=True)
class CategoryTotal:
    """Spend for one budget bucket in the reference month and the month before."""

    category: str
    current_amount: Decimal
    previous_amount: Decimal
    limit: Decimal
    percentage_of_total: int
    trend: Trend
    monthly_change_percent: int

    @property
    def is_over_limit(self) -> bool:
        return self.limit > 0 and self.current_amount > self.limit

    @property
    def overspend(self) -> Decimal:
        if not self.is_over_limit:
            return Decimal("0.00")
        return self.current_amount - self.limit


@dataclass(frozen=True, slots=True)
class BudgetSummary:
    total_spent: Decimal
    total_limit: Decimal
    over_limit_count: int


# ---------------------------------------------------------------------------
# Recurring detection
# ---------------------------------------------------------------------------


class Direction(StrEnum):
    DEBIT = "debit"
    CREDIT = "credit"


@dataclass(frozen=True, slots=True)
class RecurringCandidate:
    """A merchant grouping proposed as a subscription or an income source.

    The detector only proposes; promoting a candidate to a stored
    subscription/income record is the caller's decision.
    """

    merchant_key: str
    display_name: str
    occurrences: tuple[Transaction, ...]
    total_amount: Decimal
    average_amount: Decimal
    direction: Direction
    classification: str | None = None

    @property
    def frequency(self) -> int:
        return len(self.occurrences)


@dataclass(frozen=True, slots=True)
class RecurringDetection:
    subscriptions: tuple[RecurringCandidate, ...]
    income_sources: tuple[RecurringCandidate, ...]


# ---------------------------------------------------------------------------
# Health score
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ScoreComponent:
    name: str
    score: int
    weight: float
    rationale: str


@dataclass(frozen=True, slots=True)
class HealthScore:
    current: int
    previous: int
    delta: int
    breakdown: tuple[ScoreComponent, ...]
    next_goals: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


class Confidence(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class InsightKind(StrEnum):
    EXPENSE = "expense"
    OPPORTUNITY = "opportunity"
    ACHIEVEMENT = "achievement"


@dataclass(frozen=True, slots=True)
class Recommendation:
    """A single recommendation, deterministic (``source="rule"``) or
    generated by the enhancement step (``source="ai"``).

    Once emitted only ``applied`` and ``dismissed`` may change, and only by
    deriving a new instance via :meth:`mark_applied` / :meth:`mark_dismissed`.
    """

    id: str
    title: str
    description: str
    impact_text: str
    confidence: Confidence
    created_at: datetime
    domain: str
    applied: bool = False
    dismissed: bool = False
    kind: InsightKind | None = None
    source: str = "rule"

    def mark_applied(self) -> Recommendation:
        return dataclasses.replace(self, applied=True)

    def mark_dismissed(self) -> Recommendation:
        return dataclasses.replace(self, dismissed=True)


_REFRESH_INTERVAL = timedelta(days=1)


@dataclass(frozen=True, slots=True)
class RecommendationSet:
    """Recommendations for every domain from one pipeline run."""

    spending: tuple[Recommendation, ...]
    subscriptions: tuple[Recommendation, ...]
    savings: tuple[Recommendation, ...]
    debt: tuple[Recommendation, ...]
    last_updated: datetime

    @property
    def next_update(self) -> datetime:
        return self.last_updated + _REFRESH_INTERVAL

    def by_domain(self) -> dict[str, tuple[Recommendation, ...]]:
        return {
            "spending": self.spending,
            "subscriptions": self.subscriptions,
            "savings": self.savings,
            "debt": self.debt,
        }


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ChallengeCriteria:
    type: str
    threshold: int
    timeframe_days: int


@dataclass(frozen=True, slots=True)
class ChallengeTemplate:
    id: str
    title: str
    description: str
    category: str
    difficulty: str
    duration_days: int
    criteria: ChallengeCriteria
    badge_name: str


@dataclass(frozen=True, slots=True)
class PersonalizedChallenge:
    """A template rewritten with the user's own numbers.

    ``template_id`` points back at the untouched catalog entry.
    """

    template_id: str
    title: str
    description: str
    category: str
    difficulty: str
    duration_days: int
    criteria: ChallengeCriteria
    badge_name: str


@dataclass(frozen=True, slots=True)
class SpendingProfile:
    spending_by_category: dict[str, Decimal] = field(default_factory=dict)
    total_income: Decimal = Decimal("0.00")
    total_spending: Decimal = Decimal("0.00")
    savings_rate: float = 0.0
    subscription_count: int = 0
    budget_count: int = 0
    average_monthly_spending: Decimal = Decimal("0.00")


__all__ = [
    "BudgetSummary",
    "CategoryTotal",
    "ChallengeCriteria",
    "ChallengeTemplate",
    "Confidence",
    "Direction",
    "HealthScore",
    "InsightKind",
    "PersonalizedChallenge",
    "Recommendation",
    "RecommendationSet",
    "RecurringCandidate",
    "RecurringDetection",
    "ScoreComponent",
    "SpendingProfile",
    "Transaction",
    "TransactionType",
    "Trend",
]
