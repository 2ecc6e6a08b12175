import logging
from datetime import date
from decimal import Decimal

import pytest

from finance_insights import TransactionNormalizer, normalize
from finance_insights.models import TransactionType
from finance_insights.normalizers import _to_decimal, compute_fingerprint
from tests.helpers.factories import NOW


# ---- Amount parsing ----------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("12.5", Decimal("12.50")),
        ("$1,234.56", Decimal("1234.56")),
        ("(12.00)", Decimal("-12.00")),
        ("-$(3.10)", Decimal("-3.10")),
        (7, Decimal("7.00")),
        (19.999, Decimal("20.00")),
    ],
)
def test_to_decimal_accepts_common_money_formats(raw, expected):
    assert _to_decimal(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", True, float("nan"), "1e30"])
def test_to_decimal_rejects_missing_or_garbage(raw):
    with pytest.raises(ValueError):
        _to_decimal(raw)


# ---- Manual records ----------------------------------------------------------


def test_manual_record_keeps_fields_and_uses_id_as_external_id():
    [t] = normalize(
        [
            {
                "id": "m-1",
                "description": "  Corner   Cafe ",
                "amount": "4.50",
                "category": "Food & Dining",
                "date": "2024-03-02",
                "type": "expense",
                "merchantName": "Corner Cafe",
            }
        ],
        now=NOW,
    )
    assert t.id == "m-1"
    assert t.external_id == "m-1"
    assert t.description == "Corner Cafe"
    assert t.amount == Decimal("4.50")
    assert t.date == date(2024, 3, 2)
    assert t.type is TransactionType.EXPENSE
    assert t.merchant_name == "Corner Cafe"
    assert t.source == "manual"


def test_manual_record_recovers_dirty_fields():
    [t] = normalize([{"amount": "-30", "date": "not a date"}], now=NOW)
    # Missing type falls back to the sign; amount is stored unsigned.
    assert t.type is TransactionType.INCOME
    assert t.amount == Decimal("30.00")
    assert t.category == "Uncategorized"
    assert t.description == "Unknown"
    assert t.date == NOW.date()
    assert t.id.startswith("tx_") and len(t.id) == 27


@pytest.mark.parametrize(
    "raw_date",
    [
        {"seconds": 1709251200},
        1709251200,
        1709251200000,
        "2024-03-01T08:00:00Z",
        "03/01/2024",
    ],
)
def test_manual_dates_accept_timestamps_and_strings(raw_date):
    [t] = normalize([{"amount": 1, "date": raw_date}], now=NOW)
    assert t.date == date(2024, 3, 1)


def test_record_without_amount_is_skipped_with_warning(caplog):
    caplog.set_level(logging.WARNING, logger="finance_insights")
    txs = normalize([{"description": "no amount"}, {"amount": "2", "id": "ok"}], now=NOW)
    assert [t.id for t in txs] == ["ok"]
    assert any("normalize:skipped" in r.getMessage() for r in caplog.records)


def test_unrepresentable_amount_and_non_mapping_entries_are_skipped(caplog):
    caplog.set_level(logging.WARNING, logger="finance_insights")
    records = [{"amount": "1e30", "id": "big"}, None, "junk", {"amount": "2", "id": "ok"}]
    txs = normalize(records, now=NOW)
    assert [t.id for t in txs] == ["ok"]
    skipped = [r for r in caplog.records if "normalize:skipped" in r.getMessage()]
    assert len(skipped) == 3


def test_later_version_of_same_external_id_wins():
    txs = normalize(
        [
            {"id": "a", "amount": "10", "category": "Shopping"},
            {"id": "a", "amount": "12", "category": "Groceries"},
        ],
        now=NOW,
    )
    assert len(txs) == 1
    assert txs[0].amount == Decimal("12.00")
    assert txs[0].category == "Groceries"


def test_identical_records_without_id_collapse_to_one_fingerprint():
    rec = {"amount": "9.99", "description": "Netflix", "date": "2024-03-01"}
    txs = normalize([rec, dict(rec)], now=NOW)
    assert len(txs) == 1


# ---- Aggregator feed ---------------------------------------------------------


def test_plaid_sign_convention_category_mapping_and_pending():
    feed = [
        {
            "transaction_id": "p1",
            "amount": 15.25,
            "date": "2024-03-03",
            "name": "UBER *TRIP",
            "merchant_name": "Uber",
            "personal_finance_category": {"primary": "TRANSPORTATION"},
        },
        {
            "transaction_id": "p2",
            "amount": -2500,
            "date": "2024-03-01",
            "name": "ACME PAYROLL",
            "category": ["Transfer", "Payroll"],
        },
        {"transaction_id": "p3", "amount": 5, "date": "2024-03-04", "pending": True},
    ]
    txs = TransactionNormalizer.normalize(provider="plaid", records=feed, now=NOW)
    by_id = {t.id: t for t in txs}
    assert set(by_id) == {"p1", "p2"}

    assert by_id["p1"].type is TransactionType.EXPENSE
    assert by_id["p1"].category == "Transportation"
    assert by_id["p1"].merchant_name == "Uber"

    assert by_id["p2"].type is TransactionType.INCOME
    assert by_id["p2"].amount == Decimal("2500.00")
    assert by_id["p2"].category == "Transfer"
    assert by_id["p2"].merchant_name == "ACME PAYROLL"


def test_unknown_provider_raises():
    with pytest.raises(ValueError, match="unknown provider"):
        TransactionNormalizer.normalize(provider="csv", records=[], now=NOW)


def test_provider_aliases_resolve():
    [t] = TransactionNormalizer.normalize(
        provider="Aggregator", records=[{"transaction_id": "x", "amount": 1}], now=NOW
    )
    assert t.source == "plaid"


def test_fingerprint_is_stable_and_field_sensitive():
    kwargs = dict(
        source="manual",
        external_id=None,
        amount=Decimal("1.00"),
        tx_date=date(2024, 1, 1),
        description="x",
        tx_type=TransactionType.EXPENSE,
    )
    fp = compute_fingerprint(**kwargs)
    assert fp == compute_fingerprint(**kwargs)
    assert len(fp) == 64
    assert fp != compute_fingerprint(**{**kwargs, "amount": Decimal("1.01")})
