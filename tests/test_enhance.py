import importlib
import json
import logging
import re
from decimal import Decimal

import pydantic
import pytest

from finance_insights import EnhancementConfig, enhance, generate
from finance_insights.enhance import parse_enhanced
from finance_insights.models import Confidence
from tests.helpers.factories import NOW
from tests.helpers.openai_stub import OpenAIStub, extract_data_context, recommendation_items

# The package re-exports the enhance function under the module's name.
enhance_mod = importlib.import_module("finance_insights.enhance")

ENABLED = EnhancementConfig(api_key="sk-test", model="gpt-test", max_data_items=2)
DATA = [
    ("Food & Dining", Decimal("600")),
    ("Shopping", Decimal("350")),
    ("Travel", Decimal("50")),
]


def _base():
    return generate("spending", DATA, Decimal("1000"), now=NOW)


def test_disabled_config_returns_base_without_calling():
    stub = OpenAIStub(recommendation_items("X"))
    base = _base()
    out = enhance(
        "spending", base, DATA, Decimal("1000"), config=EnhancementConfig(), now=NOW, client=stub
    )
    assert out == base
    assert stub.calls == []


def test_empty_base_short_circuits():
    stub = OpenAIStub(recommendation_items("X"))
    assert enhance("debt", [], [], Decimal("0"), config=ENABLED, now=NOW, client=stub) == []
    assert stub.calls == []


def test_successful_enhancement_replaces_base():
    stub = OpenAIStub(recommendation_items("Cook at home", "Shop with a list", confidence="Medium"))
    out = enhance("spending", _base(), DATA, Decimal("1000"), config=ENABLED, now=NOW, client=stub)

    assert [r.title for r in out] == ["Cook at home", "Shop with a list"]
    assert all(r.source == "ai" and r.domain == "spending" for r in out)
    assert all(r.confidence is Confidence.MEDIUM for r in out)
    assert all(r.created_at == NOW for r in out)
    assert all(re.fullmatch(r"ai-spending-\d+-[a-z0-9]{7}", r.id) for r in out)
    assert out[0].impact_text == "$25/month savings"

    [call] = stub.calls
    assert call["model"] == "gpt-test"
    assert call["temperature"] == 0.7
    assert call["max_output_tokens"] == 1000
    assert call["timeout"] == 20.0
    ctx = extract_data_context(call["input"])
    assert ctx["category"] == "spending"
    assert ctx["totalSpending"] == 1000.0
    # Only the first max_data_items items are sent.
    assert ctx["data"] == [
        {"category": "Food & Dining", "amount": 600.0},
        {"category": "Shopping", "amount": 350.0},
    ]
    assert [b["title"] for b in ctx["baseRecommendations"]] == [r.title for r in _base()]


def test_code_fenced_reply_is_accepted():
    fenced = "```json\n" + recommendation_items("Cook at home") + "\n```"
    stub = OpenAIStub(fenced)
    out = enhance("spending", _base(), DATA, Decimal("1000"), config=ENABLED, now=NOW, client=stub)
    assert [r.title for r in out] == ["Cook at home"]


@pytest.mark.parametrize(
    "reply",
    [
        "Here are some ideas: save more.",
        json.dumps({"title": "x", "description": "y", "impact": "z", "confidence": "High"}),
        "[]",
        json.dumps([{"title": "x", "description": "y", "confidence": "High"}]),
        json.dumps([{"title": "x", "description": "y", "impact": "z", "confidence": "urgent"}]),
        json.dumps([{"title": "", "description": "y", "impact": "z", "confidence": "Low"}]),
        "",
    ],
)
def test_malformed_replies_fall_back_to_base(reply, caplog):
    caplog.set_level(logging.WARNING, logger="finance_insights")
    base = _base()
    out = enhance(
        "spending", base, DATA, Decimal("1000"), config=ENABLED, now=NOW, client=OpenAIStub(reply)
    )
    assert out == base
    assert any("enhance:fallback domain=spending" in r.getMessage() for r in caplog.records)


def test_transport_error_falls_back_to_base():
    base = _base()
    stub = OpenAIStub(error=ConnectionError("down"))
    out = enhance("spending", base, DATA, Decimal("1000"), config=ENABLED, now=NOW, client=stub)
    assert out == base
    assert len(stub.calls) == 1


def test_client_built_from_config_when_not_supplied(monkeypatch):
    created = {}

    class _Factory(OpenAIStub):
        def __init__(self, **kwargs):
            created.update(kwargs)
            super().__init__(recommendation_items("Cook at home"))

    monkeypatch.setattr(enhance_mod, "OpenAI", _Factory)
    out = enhance("spending", _base(), DATA, Decimal("1000"), config=ENABLED, now=NOW)
    assert [r.title for r in out] == ["Cook at home"]
    assert created == {"api_key": "sk-test", "timeout": 20.0, "max_retries": 0}


def test_injected_client_still_gets_the_configured_timeout():
    stub = OpenAIStub(recommendation_items("Cook at home"))
    config = EnhancementConfig(api_key="k", timeout_seconds=3.0)
    enhance("spending", _base(), DATA, Decimal("1000"), config=config, now=NOW, client=stub)
    [call] = stub.calls
    assert call["timeout"] == 3.0


def test_parse_enhanced_errors_are_value_errors():
    with pytest.raises(ValueError, match="not valid JSON"):
        parse_enhanced("nope")
    with pytest.raises(ValueError, match="empty array"):
        parse_enhanced("[]")
    with pytest.raises(pydantic.ValidationError):
        parse_enhanced('[{"title": "x"}]')


def test_parse_enhanced_ignores_extra_fields_and_normalizes_confidence():
    [item] = parse_enhanced(
        json.dumps(
            [
                {
                    "title": " Trim dining ",
                    "description": "Cook twice more a week.",
                    "impact": "$90/month",
                    "confidence": " HIGH ",
                    "emoji": "x",
                }
            ]
        )
    )
    assert item.title == "Trim dining"
    assert item.confidence is Confidence.HIGH
