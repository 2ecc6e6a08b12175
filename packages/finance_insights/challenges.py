"""Challenge catalog and personalization against a spending profile.

``personalize`` filters the catalog down to the challenges that make sense for
a user (relevance depends on each template's criteria type) and rewrites the
description with the user's own numbers. Templates are never mutated; each
result carries ``template_id`` back to its catalog entry.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal

from .budget import format_dollars, month_key
from .categories import DEFAULT_KEYWORDS, KeywordTables
from .logging_setup import get_logger
from .models import (
    ChallengeCriteria,
    ChallengeTemplate,
    PersonalizedChallenge,
    SpendingProfile,
    Transaction,
)
from .recurring import detect_recurring

_logger = get_logger("finance_insights.challenges")

CHALLENGE_CATALOG: tuple[ChallengeTemplate, ...] = (
    ChallengeTemplate(
        id="challenge-1",
        title="No-Spend Weekend",
        description=(
            "Challenge yourself to spend $0 for an entire weekend. Plan free activities "
            "and use what you already have."
        ),
        category="saving",
        difficulty="easy",
        duration_days=2,
        criteria=ChallengeCriteria(type="no_spending", threshold=0, timeframe_days=2),
        badge_name="Weekend Warrior",
    ),
    ChallengeTemplate(
        id="challenge-2",
        title="Coffee Budget Challenge",
        description=(
            "Cut your coffee shop spending in half for 7 days. Make coffee at home and "
            "track your savings."
        ),
        category="budgeting",
        difficulty="medium",
        duration_days=7,
        criteria=ChallengeCriteria(type="category_reduction", threshold=50, timeframe_days=7),
        badge_name="Coffee Conqueror",
    ),
    ChallengeTemplate(
        id="challenge-3",
        title="Debt Snowball Sprint",
        description=(
            "Pay an extra $100 toward your smallest debt this month to accelerate your "
            "debt-free journey."
        ),
        category="debt",
        difficulty="medium",
        duration_days=30,
        criteria=ChallengeCriteria(type="debt_payment", threshold=100, timeframe_days=30),
        badge_name="Debt Destroyer",
    ),
    ChallengeTemplate(
        id="challenge-4",
        title="Investment Starter",
        description="Set up an automatic investment of at least $50 into an index fund or ETF.",
        category="investing",
        difficulty="hard",
        duration_days=14,
        criteria=ChallengeCriteria(type="investment", threshold=50, timeframe_days=14),
        badge_name="Investment Initiator",
    ),
    ChallengeTemplate(
        id="challenge-5",
        title="Meal Prep Master",
        description=(
            "Prepare all your lunches for the work week in advance to save money on "
            "eating out."
        ),
        category="budgeting",
        difficulty="easy",
        duration_days=7,
        criteria=ChallengeCriteria(type="category_reduction", threshold=30, timeframe_days=7),
        badge_name="Meal Prep Master",
    ),
    ChallengeTemplate(
        id="challenge-6",
        title="Monthly Budget Champion",
        description="Stay under your monthly budget in all categories for a full month.",
        category="budgeting",
        difficulty="hard",
        duration_days=30,
        criteria=ChallengeCriteria(type="under_budget", threshold=100, timeframe_days=30),
        badge_name="Budget Champion",
    ),
    ChallengeTemplate(
        id="challenge-7",
        title="Savings Streak",
        description="Save at least 10% of your income for 3 consecutive months.",
        category="saving",
        difficulty="medium",
        duration_days=90,
        criteria=ChallengeCriteria(type="savings_rate", threshold=10, timeframe_days=90),
        badge_name="Savings Streaker",
    ),
    ChallengeTemplate(
        id="challenge-8",
        title="Subscription Slasher",
        description="Cancel or reduce at least 2 subscription services this month.",
        category="budgeting",
        difficulty="easy",
        duration_days=30,
        criteria=ChallengeCriteria(
            type="subscription_reduction", threshold=2, timeframe_days=30
        ),
        badge_name="Subscription Slasher",
    ),
)

_SAVINGS_TARGET_STEP = 5
_CUT_IN_HALF = re.compile(r"Cut your .* spending in half")


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


def build_profile(
    transactions: Iterable[Transaction],
    *,
    budgets: Mapping[str, object],
    subscription_count: int | None = None,
    keywords: KeywordTables = DEFAULT_KEYWORDS,
) -> SpendingProfile:
    """Summarize a transaction history for challenge relevance checks.

    ``subscription_count`` defaults to the number of subscription candidates
    the recurring detector finds in ``transactions``.
    """

    txs = list(transactions)
    by_category: dict[str, Decimal] = {}
    by_month: dict[tuple[int, int], Decimal] = {}
    income = Decimal("0.00")
    for t in txs:
        if t.is_expense:
            by_category[t.category] = by_category.get(t.category, Decimal("0.00")) + t.amount
            k = month_key(t.date)
            by_month[k] = by_month.get(k, Decimal("0.00")) + t.amount
        else:
            income += t.amount

    spending = sum(by_category.values(), Decimal("0.00"))
    rate = float((income - spending) / income * 100) if income > 0 else 0.0
    average = (spending / len(by_month)) if by_month else Decimal("0.00")

    if subscription_count is None:
        subscription_count = len(detect_recurring(txs, keywords=keywords).subscriptions)

    return SpendingProfile(
        spending_by_category=by_category,
        total_income=income,
        total_spending=spending,
        savings_rate=rate,
        subscription_count=subscription_count,
        budget_count=len(budgets),
        average_monthly_spending=average.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
    )


# ---------------------------------------------------------------------------
# Relevance and rewriting
# ---------------------------------------------------------------------------


def _matching_category(
    profile: SpendingProfile, keyword: str, *, require_spend: bool
) -> str | None:
    for category, amount in profile.spending_by_category.items():
        if keyword in category.casefold() and (amount > 0 or not require_spend):
            return category
    return None


def _debt_categories(profile: SpendingProfile, keywords: KeywordTables) -> list[str]:
    return [c for c in profile.spending_by_category if keywords.is_debt(c)]


def is_relevant(
    template: ChallengeTemplate,
    profile: SpendingProfile,
    *,
    keywords: KeywordTables = DEFAULT_KEYWORDS,
) -> bool:
    kind = template.criteria.type
    if kind == "category_reduction":
        keyword = keywords.challenge_category_keyword(template.title)
        if keyword is None:
            return True
        return _matching_category(profile, keyword, require_spend=True) is not None
    if kind == "debt_payment":
        return bool(_debt_categories(profile, keywords))
    if kind == "under_budget":
        return profile.budget_count > 0
    if kind == "savings_rate":
        return profile.total_income > 0
    if kind == "subscription_reduction":
        return profile.subscription_count >= template.criteria.threshold
    # no_spending, investment and unknown types are always on offer.
    return True


def _rewrite(
    template: ChallengeTemplate,
    profile: SpendingProfile,
    keywords: KeywordTables,
) -> tuple[str, int]:
    """Return ``(description, threshold)`` personalized for ``profile``."""

    desc = template.description
    threshold = template.criteria.threshold
    kind = template.criteria.type

    if kind == "category_reduction":
        keyword = keywords.challenge_category_keyword(template.title)
        category = (
            _matching_category(profile, keyword, require_spend=False) if keyword else None
        )
        if category is not None:
            spend = profile.spending_by_category[category]
            if _CUT_IN_HALF.search(desc):
                cut = format_dollars(spend * threshold / 100)
                desc = _CUT_IN_HALF.sub(
                    lambda _m: f"Cut your {category} spending by {cut}", desc, count=1
                )
            else:
                desc = f"{desc} You spent {format_dollars(spend)} on {category} recently."
    elif kind == "debt_payment":
        debts = _debt_categories(profile, keywords)
        if debts:
            # Ties keep the first category.
            smallest = min(debts, key=lambda c: profile.spending_by_category[c])
            desc = desc.replace("your smallest debt", f"your {smallest}", 1)
    elif kind == "under_budget":
        if profile.budget_count > 0:
            desc = desc.replace(
                "in all categories", f"in all {profile.budget_count} categories", 1
            )
    elif kind == "savings_rate":
        if profile.total_income > 0:
            target = max(threshold, math.ceil(profile.savings_rate) + _SAVINGS_TARGET_STEP)
            desc = desc.replace(
                f"at least {threshold}% of your income",
                f"at least {target}% of your income "
                f"(you're currently at {profile.savings_rate:.1f}%)",
                1,
            )
            threshold = target
    elif kind == "subscription_reduction":
        if profile.subscription_count > 0:
            target = min(profile.subscription_count, threshold)
            desc = desc.replace(
                f"at least {threshold} subscription", f"at least {target} subscription", 1
            )
            threshold = target
    return desc, threshold


def personalize(
    templates: Sequence[ChallengeTemplate],
    profile: SpendingProfile,
    already_joined_ids: Iterable[str] = (),
    *,
    keywords: KeywordTables = DEFAULT_KEYWORDS,
) -> list[PersonalizedChallenge]:
    """Return the relevant, not-yet-joined templates rewritten for ``profile``.

    Catalog order is preserved.
    """

    joined = set(already_joined_ids)
    out: list[PersonalizedChallenge] = []
    for t in templates:
        if t.id in joined:
            continue
        if not is_relevant(t, profile, keywords=keywords):
            continue
        description, threshold = _rewrite(t, profile, keywords)
        out.append(
            PersonalizedChallenge(
                template_id=t.id,
                title=t.title,
                description=description,
                category=t.category,
                difficulty=t.difficulty,
                duration_days=t.duration_days,
                criteria=ChallengeCriteria(
                    type=t.criteria.type,
                    threshold=threshold,
                    timeframe_days=t.criteria.timeframe_days,
                ),
                badge_name=t.badge_name,
            )
        )
    _logger.debug(
        "challenges:personalize templates=%d joined=%d offered=%d",
        len(templates),
        len(joined),
        len(out),
    )
    return out


__all__ = ["CHALLENGE_CATALOG", "build_profile", "is_relevant", "personalize"]
