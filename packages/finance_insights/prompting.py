"""Prompt construction and payload serialization for recommendation enhancement.

This module builds:
- A deterministic JSON view of the domain data items (transactions, recurring
  candidates, or ``(category, amount)`` pairs) with a fixed field order.
- The JSON context embedded in the prompt.
- The user prompt itself, from a fixed template.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from .models import Recommendation, RecurringCandidate, Transaction

PROMPT_TEMPLATE = """\
You are a financial advisor AI for a personal finance app.
Based on the following financial data and base recommendations, provide 2-3 improved, \
personalized financial recommendations.

DATA:
{{DATA_CONTEXT}}

For each recommendation, provide:
1. A concise, actionable title (max 50 chars)
2. A helpful description with specific advice (max 200 chars)
3. The potential impact (e.g., "$X/month savings")
4. A confidence level (High, Medium, or Low)

Format your response as a valid JSON array of recommendations with these fields: \
title, description, impact, confidence
"""


def _num(d: Decimal) -> float:
    return float(d)


def serialize_data_item(item: Any) -> dict[str, Any]:
    """Return a JSON-ready mapping for one domain data item.

    Field order is fixed per item type so identical inputs produce identical
    prompts.
    """

    if isinstance(item, Transaction):
        return {
            "description": item.description,
            "amount": _num(item.amount),
            "category": item.category,
            "date": item.date.isoformat(),
            "type": item.type.value,
        }
    if isinstance(item, RecurringCandidate):
        return {
            "merchant": item.display_name,
            "frequency": item.frequency,
            "totalAmount": _num(item.total_amount),
            "averageAmount": _num(item.average_amount),
            "direction": item.direction.value,
        }
    if isinstance(item, tuple) and len(item) == 2:
        category, amount = item
        return {"category": str(category), "amount": _num(Decimal(str(amount)))}
    raise TypeError(f"unsupported data item for prompt serialization: {type(item).__name__}")


def build_data_context(
    domain: str,
    base: Sequence[Recommendation],
    data: Sequence[Any],
    total_spending: Decimal,
    *,
    max_items: int,
) -> str:
    """Serialize the size-bounded context the model sees.

    Only the first ``max_items`` data items are included.
    """

    payload = {
        "category": domain,
        "totalSpending": _num(total_spending),
        "data": [serialize_data_item(x) for x in list(data)[:max_items]],
        "baseRecommendations": [
            {"title": r.title, "description": r.description, "impact": r.impact_text}
            for r in base
        ],
    }
    return json.dumps(payload, ensure_ascii=False)


def build_enhancement_prompt(data_context: str) -> str:
    return PROMPT_TEMPLATE.replace("{{DATA_CONTEXT}}", data_context)


__all__ = [
    "PROMPT_TEMPLATE",
    "build_data_context",
    "build_enhancement_prompt",
    "serialize_data_item",
]
