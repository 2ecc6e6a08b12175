"""Raw record → :class:`~finance_insights.models.Transaction` normalizers.

Two upstream shapes are supported:

- ``manual``: records submitted through the transaction form
  (``description``, ``amount``, ``category``, ``date``, ``type`` and an
  optional ``merchantName``/``merchant_name`` and ``id``).
- ``plaid``: entries from the bank-aggregation transactions feed
  (``transaction_id``, ``amount``, ``date``, ``name``, ``merchant_name``,
  ``personal_finance_category``, ``pending``). The feed reports debits as
  positive and credits as negative amounts.

Whatever the source, the output amount is non-negative and direction is
carried by ``type``. Dirty input is recovered, not rejected: a missing
category becomes ``"Uncategorized"`` and a missing or unparseable date
becomes ``now``'s date. Only a record without a usable amount is dropped
(with a warning), because nothing downstream can analyse it.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Mapping
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from .categories import UNCATEGORIZED, BudgetCategory
from .logging_setup import get_logger
from .models import Transaction, TransactionType

_logger = get_logger("finance_insights.normalizers")

_CENTS = Decimal("0.01")

# Plaid personal_finance_category.primary → budget category name. Unknown
# primaries pass through unchanged and end up in the "Other" bucket unless
# the user budgets for them explicitly.
_PLAID_PRIMARY_CATEGORIES: dict[str, str] = {
    "FOOD_AND_DRINK": BudgetCategory.FOOD_AND_DINING,
    "GENERAL_MERCHANDISE": BudgetCategory.SHOPPING,
    "ENTERTAINMENT": BudgetCategory.ENTERTAINMENT,
    "TRANSPORTATION": BudgetCategory.TRANSPORTATION,
    "RENT_AND_UTILITIES": BudgetCategory.UTILITIES,
    "HOME_IMPROVEMENT": BudgetCategory.HOUSING,
    "MEDICAL": BudgetCategory.HEALTH,
    "PERSONAL_CARE": BudgetCategory.PERSONAL_CARE,
    "LOAN_PAYMENTS": BudgetCategory.DEBT_PAYMENTS,
    "TRAVEL": BudgetCategory.TRAVEL,
}


# ---------------------------------------------------------------------------
# Helpers (amount/date/text normalization)
# ---------------------------------------------------------------------------


def _to_decimal(raw: Any) -> Decimal:
    """Parse a signed amount; raises ``ValueError`` when there is none."""

    if raw is None or isinstance(raw, bool):
        raise ValueError("amount is required")
    if isinstance(raw, Decimal):
        d = raw
    elif isinstance(raw, int | float):
        d = Decimal(str(raw))
    else:
        s = str(raw).strip()
        if not s:
            raise ValueError("amount is empty")
        negative = False
        # Strip leading sign, currency symbol, and surrounding parentheses in
        # any order, e.g. "-($1,234.56)" or "$(12.00)".
        while True:
            changed = False
            if s.startswith("+"):
                s = s[1:].lstrip()
                changed = True
            elif s.startswith("-"):
                negative = True
                s = s[1:].lstrip()
                changed = True
            if s.startswith("$"):
                s = s[1:].lstrip()
                changed = True
            if s.startswith("(") and s.endswith(")") and len(s) >= 2:
                negative = True
                s = s[1:-1].strip()
                changed = True
            if not changed:
                break
        s = s.replace(",", "").strip()
        try:
            d = Decimal(s)
        except InvalidOperation as exc:
            raise ValueError(f"invalid amount: {raw!r}") from exc
        if negative:
            d = -abs(d)
    if not d.is_finite():
        raise ValueError(f"invalid amount: {raw!r}")
    try:
        return d.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {raw!r}") from exc


def _coerce_date(raw: Any, now: datetime) -> date:
    """Best-effort date parsing; anything unusable becomes ``now``'s date."""

    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        if isinstance(raw, Mapping) and "seconds" in raw:
            return datetime.fromtimestamp(float(raw["seconds"]), tz=UTC).date()
        if isinstance(raw, int | float) and not isinstance(raw, bool):
            seconds = float(raw)
            # Millisecond epochs are what the web client stores.
            if abs(seconds) > 1e11:
                seconds /= 1000.0
            return datetime.fromtimestamp(seconds, tz=UTC).date()
        if isinstance(raw, str) and raw.strip():
            first = raw.strip().split()[0].split("T", 1)[0]
            try:
                return date.fromisoformat(first)
            except ValueError:
                return datetime.strptime(first, "%m/%d/%Y").date()
    except (ValueError, OverflowError, OSError, TypeError):
        pass
    _logger.debug("normalize:date_defaulted raw=%r", raw)
    return now.date()


def _norm_str(v: Any) -> str | None:
    if v is None:
        return None
    s = " ".join(str(v).split())
    return s or None


def compute_fingerprint(
    *,
    source: str,
    external_id: str | None,
    amount: Decimal,
    tx_date: date,
    description: str,
    tx_type: TransactionType,
) -> str:
    """Stable SHA-256 over the canonical fields of a transaction."""

    payload = {
        "source": source.strip().lower(),
        "id": external_id,
        "amount": f"{amount:.2f}",
        "date": tx_date.isoformat(),
        "description": description,
        "type": tx_type.value,
    }
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _build(
    *,
    source: str,
    external_id: str | None,
    signed_amount: Decimal,
    raw_date: Any,
    description: str | None,
    category: str | None,
    tx_type: TransactionType,
    merchant_name: str | None,
    now: datetime,
) -> Transaction:
    amount = abs(signed_amount)
    tx_date = _coerce_date(raw_date, now)
    desc = description or merchant_name or "Unknown"
    tx_id = external_id or (
        "tx_"
        + compute_fingerprint(
            source=source,
            external_id=None,
            amount=amount,
            tx_date=tx_date,
            description=desc,
            tx_type=tx_type,
        )[:24]
    )
    return Transaction(
        id=tx_id,
        amount=amount,
        date=tx_date,
        description=desc,
        category=category or UNCATEGORIZED,
        type=tx_type,
        external_id=external_id,
        merchant_name=merchant_name,
        source=source,
    )


# ---------------------------------------------------------------------------
# Provider-specific normalizers
# ---------------------------------------------------------------------------


def _normalize_manual(record: Mapping[str, Any], now: datetime) -> Transaction:
    signed = _to_decimal(record.get("amount"))
    raw_type = str(record.get("type") or "").strip().lower()
    if raw_type in (TransactionType.EXPENSE, TransactionType.INCOME):
        tx_type = TransactionType(raw_type)
    else:
        tx_type = TransactionType.INCOME if signed < 0 else TransactionType.EXPENSE
    external_id = _norm_str(
        record.get("externalId") or record.get("external_id") or record.get("id")
    )
    return _build(
        source="manual",
        external_id=external_id,
        signed_amount=signed,
        raw_date=record.get("date"),
        description=_norm_str(record.get("description")),
        category=_norm_str(record.get("category")),
        tx_type=tx_type,
        merchant_name=_norm_str(record.get("merchantName") or record.get("merchant_name")),
        now=now,
    )


def _plaid_category(record: Mapping[str, Any]) -> str | None:
    pfc = record.get("personal_finance_category")
    primary = _norm_str(pfc.get("primary")) if isinstance(pfc, Mapping) else None
    if primary:
        return _PLAID_PRIMARY_CATEGORIES.get(primary.upper(), primary)
    # Legacy feeds carry a list of category labels, most general first.
    legacy = record.get("category")
    if isinstance(legacy, list) and legacy:
        return _norm_str(legacy[0])
    return _norm_str(legacy) if isinstance(legacy, str) else None


def _normalize_plaid(record: Mapping[str, Any], now: datetime) -> Transaction:
    signed = _to_decimal(record.get("amount"))
    # Aggregator convention: positive = money out, negative = money in.
    tx_type = TransactionType.INCOME if signed < 0 else TransactionType.EXPENSE
    name = _norm_str(record.get("name"))
    return _build(
        source="plaid",
        external_id=_norm_str(record.get("transaction_id")),
        signed_amount=signed,
        raw_date=record.get("date") or record.get("authorized_date"),
        description=name,
        category=_plaid_category(record),
        tx_type=tx_type,
        merchant_name=_norm_str(record.get("merchant_name")) or name,
        now=now,
    )


_PROVIDERS = {
    "manual": _normalize_manual,
    "form": _normalize_manual,
    "plaid": _normalize_plaid,
    "aggregator": _normalize_plaid,
}


class TransactionNormalizer:
    """Normalize raw provider records into canonical transactions.

    Usage
    -----
    txs = TransactionNormalizer.normalize(provider="plaid", records=feed, now=now)
    """

    @staticmethod
    def normalize(
        *,
        provider: str,
        records: Iterable[Mapping[str, Any]],
        now: datetime,
    ) -> list[Transaction]:
        p = provider.strip().lower().replace(" ", "_")
        try:
            convert = _PROVIDERS[p]
        except KeyError:
            raise ValueError(f"unknown provider: {provider!r}") from None

        by_key: dict[str, Transaction] = {}
        skipped = 0
        for pos, record in enumerate(records):
            if not isinstance(record, Mapping):
                skipped += 1
                _logger.warning(
                    "normalize:skipped provider=%s pos=%d reason=not a mapping", p, pos
                )
                continue
            if p in ("plaid", "aggregator") and record.get("pending"):
                continue
            try:
                tx = convert(record, now)
            except ValueError as e:
                skipped += 1
                _logger.warning("normalize:skipped provider=%s pos=%d reason=%s", p, pos, e)
                continue
            # Later versions of the same upstream id replace earlier ones.
            by_key[tx.external_id or tx.id] = tx

        _logger.info(
            "normalize:done provider=%s transactions=%d skipped=%d", p, len(by_key), skipped
        )
        return list(by_key.values())


def normalize(
    raw_records: Iterable[Mapping[str, Any]],
    *,
    provider: str = "manual",
    now: datetime,
) -> list[Transaction]:
    """Functional alias for :meth:`TransactionNormalizer.normalize`."""

    return TransactionNormalizer.normalize(provider=provider, records=raw_records, now=now)


__all__ = ["TransactionNormalizer", "compute_fingerprint", "normalize"]
