from datetime import date, timedelta
from decimal import Decimal

import pytest

from finance_insights import EnhancementConfig, detect_recurring, generate
from finance_insights.models import Confidence
from finance_insights.recommendations import (
    DOMAINS,
    domain_inputs,
    generate_recommendations,
    spending_by_category,
)
from tests.helpers.factories import NOW, tx
from tests.helpers.openai_stub import OpenAIStub, recommendation_items

STAMP = int(NOW.timestamp() * 1000)


def _spend_pairs(*pairs):
    return [(c, Decimal(a)) for c, a in pairs]


def test_spending_rules_fire_from_data():
    data = _spend_pairs(("Food & Dining", "600"), ("Shopping", "350"), ("Travel", "50"))
    out = generate("spending", data, Decimal("1000"), now=NOW)
    assert [(r.title, r.impact_text, r.confidence) for r in out] == [
        ("Reduce Your Food & Dining Expenses", "Save $120/month", Confidence.HIGH),
        ("Optimize Dining Expenses", "$180/month savings", Confidence.MEDIUM),
        ("Optimize Shopping Habits", "$70/month savings", Confidence.MEDIUM),
    ]
    assert out[0].id == f"spending-top-category-{STAMP}"
    assert all(r.source == "rule" and r.domain == "spending" for r in out)
    assert "60% of your budget" in out[0].description


def test_spending_rules_stay_quiet_for_balanced_small_budgets():
    data = _spend_pairs(("Food & Dining", "150"), ("Shopping", "150"), ("Travel", "200"))
    assert generate("spending", data, Decimal("1000"), now=NOW) == []
    assert generate("spending", [], Decimal("0"), now=NOW) == []


def _subscriptions(n):
    names = ["Netflix", "Spotify", "Hulu", "Gym Membership", "Apple iCloud"][:n]
    return detect_recurring([tx("10", description=name) for name in names]).subscriptions


def test_subscription_audit_needs_more_than_three():
    assert generate("subscriptions", _subscriptions(3), Decimal("30"), now=NOW) == []

    [r] = generate("subscriptions", _subscriptions(4), Decimal("40"), now=NOW)
    assert r.title == "Subscription Audit Recommended"
    assert r.impact_text == "Save up to $12/month"
    assert "4 active subscriptions totaling $40/month" in r.description


def test_savings_always_suggests_emergency_fund():
    [r] = generate("savings", [], Decimal("1000"), now=NOW)
    assert r.title == "Build Your Emergency Fund"
    assert r.impact_text == "$3000 safety net (3 months of expenses)"


def test_savings_automation_from_recurring_income():
    det = detect_recurring(
        [
            tx("2000", description="ACME PAYROLL", income=True, on=date(2024, 3, 1)),
            tx("2000", description="ACME PAYROLL", income=True, on=date(2024, 3, 15)),
        ]
    )
    out = generate("savings", det.income_sources, Decimal("1000"), now=NOW)
    assert [r.title for r in out] == ["Build Your Emergency Fund", "Automate Your Savings"]
    assert out[1].impact_text == "$200/month saved"


def test_debt_rule_scales_with_payments():
    assert generate("debt", [], Decimal("0"), now=NOW) == []
    payments = [tx("400", category="Credit Card"), tx("100", category="Student Loan")]
    [r] = generate("debt", payments, Decimal("500"), now=NOW)
    assert r.title == "Focus on High-Interest Debt First"
    assert r.impact_text == "Potential interest savings of $75 or more"


def test_unknown_domain_raises():
    with pytest.raises(ValueError, match="unknown recommendation domain"):
        generate("taxes", [], Decimal("0"), now=NOW)


def test_domain_inputs_shape():
    txs = [
        tx("300", category="Food & Dining", description="Trattoria"),
        tx("500", category="Rent", description="Landlord"),
        tx("120", category="Credit Card Payment", description="Card autopay"),
        tx("9.99", description="Netflix", category="Entertainment"),
    ]
    inputs = domain_inputs(txs)
    assert [c for c, _ in inputs["spending"]] == [
        "Rent",
        "Food & Dining",
        "Credit Card Payment",
        "Entertainment",
    ]
    assert [c.display_name for c in inputs["subscriptions"]] == ["Netflix"]
    assert [t.category for t in inputs["debt"]] == ["Credit Card Payment"]
    assert spending_by_category([]) == []


def test_generate_recommendations_without_enhancement():
    txs = [tx("600", category="Food & Dining"), tx("100", category="Travel")]
    recs = generate_recommendations(txs, now=NOW)
    assert recs.last_updated == NOW
    assert recs.next_update == NOW + timedelta(days=1)
    assert set(recs.by_domain()) == set(DOMAINS)
    assert [r.title for r in recs.savings] == ["Build Your Emergency Fund"]
    assert recs.savings[0].impact_text == "$2100 safety net (3 months of expenses)"
    assert recs.debt == ()
    assert all(r.source == "rule" for rs in recs.by_domain().values() for r in rs)


def test_generate_recommendations_enhances_only_non_empty_domains():
    calls = []
    stub = OpenAIStub(recommendation_items("Cook at home", "Set a cap"), calls_out=calls)
    txs = [tx("600", category="Food & Dining"), tx("100", category="Travel")]
    recs = generate_recommendations(
        txs, now=NOW, config=EnhancementConfig(api_key="sk-test"), client=stub
    )
    # spending and savings have rule output; subscriptions and debt do not.
    assert len(calls) == 2
    assert [r.title for r in recs.spending] == ["Cook at home", "Set a cap"]
    assert all(r.source == "ai" for r in (*recs.spending, *recs.savings))
    assert recs.subscriptions == () and recs.debt == ()


def test_generate_recommendations_falls_back_per_domain():
    stub = OpenAIStub(error=TimeoutError("slow"))
    txs = [tx("600", category="Food & Dining")]
    recs = generate_recommendations(
        txs, now=NOW, config=EnhancementConfig(api_key="sk-test"), client=stub
    )
    assert [r.title for r in recs.spending][:1] == ["Reduce Your Food & Dining Expenses"]
    assert all(r.source == "rule" for r in (*recs.spending, *recs.savings))
