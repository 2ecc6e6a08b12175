# ruff: noqa: I001
"""Persistence integration for finance_insights.

The analysis core never touches storage; these helpers sit next to it for
callers that keep normalized transactions around between runs. Two stores
share one contract:

- :class:`InMemoryTransactionStore` for tests and one-shot CLI runs.
- :class:`SqlTransactionStore`, writing to ``fi_transactions`` (owned by
  ``libs/db``) through a caller-provided SQLAlchemy session.

Idempotency rules (both stores):
- A transaction with an ``external_id`` replaces the stored row with the same
  id, overwriting its mutable fields.
- Otherwise the row is keyed by its content fingerprint.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from db.models.finance import FiTransaction
from .logging_setup import get_logger
from .models import Transaction, TransactionType
from .normalizers import TransactionNormalizer, compute_fingerprint

_logger = get_logger("finance_insights.persistence")

# Columns an upstream update may change for an existing external id.
_MUTABLE_COLUMNS: tuple[str, ...] = (
    "amount",
    "category",
    "date",
    "description",
    "merchant_name",
    "type",
    "fingerprint_sha256",
)


class TransactionStore(Protocol):
    def upsert(self, transactions: Iterable[Transaction]) -> int: ...

    def all(self) -> list[Transaction]: ...


def fingerprint_of(tx: Transaction) -> str:
    return compute_fingerprint(
        source=tx.source,
        external_id=tx.external_id,
        amount=tx.amount,
        tx_date=tx.date,
        description=tx.description,
        tx_type=tx.type,
    )


def _store_key(tx: Transaction) -> str:
    return tx.external_id or fingerprint_of(tx)


class InMemoryTransactionStore:
    """Dict-backed store keyed by external id (or fingerprint)."""

    def __init__(self) -> None:
        self._rows: dict[str, Transaction] = {}

    def upsert(self, transactions: Iterable[Transaction]) -> int:
        n = 0
        for tx in transactions:
            self._rows[_store_key(tx)] = tx
            n += 1
        return n

    def all(self) -> list[Transaction]:
        return list(self._rows.values())

    def __len__(self) -> int:
        return len(self._rows)


def _insert_for(session: Session):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise RuntimeError(f"unsupported database dialect for upsert: {dialect}")


def _row_values(tx: Transaction) -> dict[str, Any]:
    return {
        "tx_id": tx.id,
        "source": tx.source,
        "external_id": tx.external_id,
        "fingerprint_sha256": fingerprint_of(tx),
        "amount": tx.amount,
        "date": tx.date,
        "description": tx.description,
        "category": tx.category,
        "type": tx.type.value,
        "merchant_name": tx.merchant_name,
    }


def _from_row(row: FiTransaction) -> Transaction:
    return Transaction(
        id=row.tx_id,
        amount=Decimal(row.amount).quantize(Decimal("0.01")),
        date=row.date,
        description=row.description,
        category=row.category,
        type=TransactionType(row.type),
        external_id=row.external_id,
        merchant_name=row.merchant_name,
        source=row.source,
    )


class SqlTransactionStore:
    """Upsert transactions into ``fi_transactions``.

    Transaction boundaries belong to the caller (typically
    ``db.client.session_scope``); this class only executes statements.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def upsert(self, transactions: Iterable[Transaction]) -> int:
        now = func.current_timestamp()
        with_eid: list[dict[str, Any]] = []
        without_eid: list[dict[str, Any]] = []
        for tx in transactions:
            values = _row_values(tx)
            (with_eid if tx.external_id is not None else without_eid).append(values)

        insert = _insert_for(self._session)

        if with_eid:
            stmt = insert(FiTransaction).values(with_eid)
            stmt = stmt.on_conflict_do_update(
                index_elements=[FiTransaction.external_id],
                set_={
                    **{c: getattr(stmt.excluded, c) for c in _MUTABLE_COLUMNS},
                    "updated_at": now,
                },
            )
            self._session.execute(stmt)

        if without_eid:
            stmt = insert(FiTransaction).values(without_eid)
            stmt = stmt.on_conflict_do_update(
                index_elements=[FiTransaction.fingerprint_sha256],
                set_={
                    "category": stmt.excluded.category,
                    "merchant_name": stmt.excluded.merchant_name,
                    "updated_at": now,
                },
            )
            self._session.execute(stmt)

        n = len(with_eid) + len(without_eid)
        _logger.info(
            "persist:upsert with_external_id=%d without_external_id=%d",
            len(with_eid),
            len(without_eid),
        )
        return n

    def all(self) -> list[Transaction]:
        rows = self._session.scalars(select(FiTransaction).order_by(FiTransaction.id)).all()
        return [_from_row(r) for r in rows]


def normalize_and_upsert(
    raw_records: Iterable[Mapping[str, Any]],
    *,
    provider: str,
    store: TransactionStore,
    now: datetime,
) -> list[Transaction]:
    """Normalize ``raw_records`` and persist them; returns the normalized list."""

    txs = TransactionNormalizer.normalize(provider=provider, records=raw_records, now=now)
    store.upsert(txs)
    return txs


__all__ = [
    "InMemoryTransactionStore",
    "SqlTransactionStore",
    "TransactionStore",
    "fingerprint_of",
    "normalize_and_upsert",
]
