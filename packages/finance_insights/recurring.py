"""Recurring-payment detection: subscription and income-source candidates.

Transactions are partitioned by ``type`` and grouped by a merchant key
(``merchant_name`` when present, else ``description``; whitespace-collapsed
and case-folded). Grouping is exact on that key; no fuzzy matching, so
``"NETFLIX.COM"`` and ``"Netflix"`` are two merchants.

- Income groups need at least two credits; a one-off deposit is not income
  in the recurring sense.
- Expense groups qualify with two debits, or with one when the merchant or
  description matches the subscription keyword table (a brand-new
  subscription shows up once but is recurring by name).
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from .categories import DEFAULT_KEYWORDS, KeywordTables
from .logging_setup import get_logger
from .models import (
    Direction,
    RecurringCandidate,
    RecurringDetection,
    Transaction,
    TransactionType,
)

_logger = get_logger("finance_insights.recurring")

_CENTS = Decimal("0.01")


def merchant_key(tx: Transaction) -> str:
    raw = tx.merchant_name or tx.description
    s = unicodedata.normalize("NFKC", raw)
    return " ".join(s.split()).casefold()


def _group(txs: Iterable[Transaction]) -> dict[str, list[Transaction]]:
    by_key: dict[str, list[Transaction]] = {}
    for tx in txs:
        by_key.setdefault(merchant_key(tx), []).append(tx)
    return by_key


def _candidate(
    key: str,
    occurrences: list[Transaction],
    direction: Direction,
    classification: str | None = None,
) -> RecurringCandidate:
    total = sum((t.amount for t in occurrences), Decimal("0.00"))
    average = (total / len(occurrences)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    first = occurrences[0]
    return RecurringCandidate(
        merchant_key=key,
        display_name=first.merchant_name or first.description,
        occurrences=tuple(sorted(occurrences, key=lambda t: (t.date, t.id))),
        total_amount=total,
        average_amount=average,
        direction=direction,
        classification=classification,
    )


def _ordered(candidates: list[RecurringCandidate]) -> tuple[RecurringCandidate, ...]:
    return tuple(sorted(candidates, key=lambda c: (-c.total_amount, c.merchant_key)))


def detect_recurring(
    transactions: Iterable[Transaction],
    *,
    keywords: KeywordTables = DEFAULT_KEYWORDS,
) -> RecurringDetection:
    """Propose subscription and income-source candidates.

    Returns candidates ordered by ``total_amount`` descending, then key.
    """

    txs = list(transactions)
    debits = [t for t in txs if t.type is TransactionType.EXPENSE]
    credits = [t for t in txs if t.type is TransactionType.INCOME]

    subscriptions: list[RecurringCandidate] = []
    for key, group in _group(debits).items():
        classification = None
        for t in group:
            classification = keywords.match_subscription(t.merchant_name, t.description)
            if classification:
                break
        if len(group) >= 2 or classification:
            subscriptions.append(_candidate(key, group, Direction.DEBIT, classification))

    income_sources = [
        _candidate(key, group, Direction.CREDIT)
        for key, group in _group(credits).items()
        if len(group) >= 2
    ]

    _logger.debug(
        "recurring:done debits=%d credits=%d subscriptions=%d income_sources=%d",
        len(debits),
        len(credits),
        len(subscriptions),
        len(income_sources),
    )
    return RecurringDetection(
        subscriptions=_ordered(subscriptions),
        income_sources=_ordered(income_sources),
    )


_ID_UNSAFE = re.compile(r"[^\w]+")


def _doc_id(prefix: str, candidate: RecurringCandidate) -> str:
    slug = _ID_UNSAFE.sub("_", candidate.merchant_key).strip("_")
    return f"{prefix}_{slug or 'unknown'}"


def subscription_id(candidate: RecurringCandidate) -> str:
    """Stable record id used when the caller promotes a subscription candidate."""

    return _doc_id("sub", candidate)


def income_source_id(candidate: RecurringCandidate) -> str:
    return _doc_id("income", candidate)


__all__ = [
    "detect_recurring",
    "income_source_id",
    "merchant_key",
    "subscription_id",
]
