"""Budget categories and the keyword tables that drive classification.

Category names are free-form strings upstream (bank feeds and manual entry
both produce them), but budget aggregation is exhaustive over a fixed set:
every expense lands either in a category that has a limit configured or in
the ``"Other"`` catch-all. ``BudgetCategory`` lists the categories the
product knows how to give advice about.

Keyword matching (subscriptions, dining, debt, challenge titles) is data, not
code: callers pass a :class:`KeywordTables` and may extend any table without
touching the algorithms.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Literal

UNCATEGORIZED = "Uncategorized"


class BudgetCategory(StrEnum):
    FOOD_AND_DINING = "Food & Dining"
    GROCERIES = "Groceries"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    TRANSPORTATION = "Transportation"
    UTILITIES = "Utilities"
    HOUSING = "Housing"
    HEALTH = "Health"
    SUBSCRIPTIONS = "Subscriptions"
    DEBT_PAYMENTS = "Debt Payments"
    TRAVEL = "Travel"
    EDUCATION = "Education"
    PERSONAL_CARE = "Personal Care"
    OTHER = "Other"


OTHER = BudgetCategory.OTHER.value


def resolve_bucket(category: str, limits: Mapping[str, object]) -> str:
    """Return the budget bucket for ``category``.

    A category with a configured limit is its own bucket; anything else rolls
    into ``"Other"``. Matching is exact (budget names are chosen from the same
    list the transactions are tagged with).
    """

    if category in limits and category != OTHER:
        return category
    return OTHER


# ---------------------------------------------------------------------------
# Keyword tables
# ---------------------------------------------------------------------------

_SUBSCRIPTION_KEYWORDS: dict[str, str] = {
    "netflix": "streaming",
    "spotify": "streaming",
    "hulu": "streaming",
    "disney": "streaming",
    "amazon prime": "streaming",
    "streaming": "streaming",
    "apple": "software",
    "google": "software",
    "software": "software",
    "gym": "fitness",
    "membership": "membership",
    "subscription": "subscription",
    "monthly": "subscription",
    "recurring": "subscription",
}


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    lowered = text.casefold()
    return any(k in lowered for k in keywords)


@dataclass(frozen=True, slots=True)
class KeywordTables:
    """Case-insensitive substring tables used by the analysis modules.

    Attributes
    ----------
    subscription:
        keyword → classification label for the subscription fast path.
    dining:
        keywords identifying a dining/restaurant category name.
    debt:
        keywords identifying a debt-servicing category name.
    challenge_title:
        challenge title keyword → category keyword it targets.
    """

    subscription: Mapping[str, str] = field(default_factory=lambda: dict(_SUBSCRIPTION_KEYWORDS))
    dining: tuple[str, ...] = ("dining", "restaurant", "food")
    debt: tuple[str, ...] = ("debt", "loan", "credit")
    challenge_title: Mapping[str, str] = field(
        default_factory=lambda: {"coffee": "coffee", "meal": "dining"}
    )

    def match_subscription(self, *texts: str | None) -> str | None:
        """Return the classification of the first keyword found in ``texts``."""

        for text in texts:
            if not text:
                continue
            lowered = text.casefold()
            for keyword, classification in self.subscription.items():
                if keyword in lowered:
                    return classification
        return None

    def is_dining(self, category: str) -> bool:
        return _contains_any(category, self.dining)

    def is_debt(self, category: str) -> bool:
        return _contains_any(category, self.debt)

    def challenge_category_keyword(self, title: str) -> str | None:
        lowered = title.casefold()
        for title_keyword, category_keyword in self.challenge_title.items():
            if title_keyword in lowered:
                return category_keyword
        return None


DEFAULT_KEYWORDS = KeywordTables()


# ---------------------------------------------------------------------------
# Per-category advice
# ---------------------------------------------------------------------------

AdviceKind = Literal["overspend", "increase"]

_CATEGORY_ADVICE: dict[str, dict[str, str]] = {
    BudgetCategory.FOOD_AND_DINING: {
        "overspend": (
            "Try meal prepping on weekends and limit dining out to 1-2 times per week."
        ),
        "increase": "Review recent restaurant and grocery receipts to find where it went up.",
    },
    BudgetCategory.GROCERIES: {
        "overspend": "Shop from a list, use coupons, and prefer store brands.",
        "increase": "Check whether prices went up or whether you are buying more than usual.",
    },
    BudgetCategory.SHOPPING: {
        "overspend": "Wait 24 hours before non-essential purchases and drop retailer emails.",
        "increase": "Look for a few large purchases that drove this month up.",
    },
    BudgetCategory.ENTERTAINMENT: {
        "overspend": "Swap paid outings for free events, library loans and movie nights in.",
        "increase": "Set a weekly entertainment allowance and pick lower-cost options.",
    },
    BudgetCategory.TRANSPORTATION: {
        "overspend": "Combine trips, use public transport, or carpool where you can.",
        "increase": "Check whether fuel prices rose or you drove more than usual.",
    },
    BudgetCategory.UTILITIES: {
        "overspend": "Cut peak-hour usage and unplug idle electronics.",
        "increase": "Compare with the same season last year before changing plans.",
    },
    BudgetCategory.SUBSCRIPTIONS: {
        "overspend": "Cancel services you have not used in the past 30 days.",
        "increase": "Make sure each new subscription is worth what it costs.",
    },
}

_GENERIC_ADVICE: dict[str, str] = {
    "overspend": "Review this category and pick one or two expenses to cut back on.",
    "increase": "Find what caused the increase and decide whether it will continue.",
}


def category_advice(category: str, kind: AdviceKind) -> str:
    return _CATEGORY_ADVICE.get(category, _GENERIC_ADVICE)[kind]


__all__ = [
    "DEFAULT_KEYWORDS",
    "OTHER",
    "UNCATEGORIZED",
    "BudgetCategory",
    "KeywordTables",
    "category_advice",
    "resolve_bucket",
]
