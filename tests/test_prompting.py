import json
from datetime import date
from decimal import Decimal

import pytest

from finance_insights import detect_recurring
from finance_insights.prompting import (
    build_data_context,
    build_enhancement_prompt,
    serialize_data_item,
)
from tests.helpers.factories import tx


def test_serializes_each_data_item_kind():
    t = tx("12.34", category="Groceries", description="Market", on=date(2024, 3, 2))
    assert serialize_data_item(t) == {
        "description": "Market",
        "amount": 12.34,
        "category": "Groceries",
        "date": "2024-03-02",
        "type": "expense",
    }

    [c] = detect_recurring([tx("9.99", description="Netflix")]).subscriptions
    assert list(serialize_data_item(c)) == [
        "merchant",
        "frequency",
        "totalAmount",
        "averageAmount",
        "direction",
    ]

    assert serialize_data_item(("Travel", Decimal("50"))) == {"category": "Travel", "amount": 50.0}


def test_unknown_item_type_raises():
    with pytest.raises(TypeError):
        serialize_data_item({"category": "x"})


def test_context_is_deterministic_and_bounded():
    data = [(f"Cat {i}", Decimal(i)) for i in range(10)]
    a = build_data_context("spending", [], data, Decimal("45"), max_items=3)
    b = build_data_context("spending", [], data, Decimal("45"), max_items=3)
    assert a == b
    payload = json.loads(a)
    assert list(payload) == ["category", "totalSpending", "data", "baseRecommendations"]
    assert len(payload["data"]) == 3


def test_prompt_embeds_context():
    prompt = build_enhancement_prompt('{"category": "debt"}')
    assert '\n{"category": "debt"}\n' in prompt
    assert "{{DATA_CONTEXT}}" not in prompt
    assert "title, description, impact, confidence" in prompt
