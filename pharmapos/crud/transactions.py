"""Append-only movement ledger, stored newest first."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy.orm import Session

from ..schemas.transaction import MovementType, Transaction
from .kv_store import TRANSACTIONS_KEY, read_value, set_value


def _load_raw(db: Session) -> list[dict[str, object]]:
    return read_value(db, TRANSACTIONS_KEY)[0] or []


def list_transactions(
    db: Session,
    *,
    limit: int | None = None,
    movement_type: MovementType | None = None,
) -> list[Transaction]:
    """Return ledger entries, most recent first."""

    entries = [Transaction.model_validate(raw) for raw in _load_raw(db)]
    if movement_type is not None:
        entries = [entry for entry in entries if entry.type == movement_type]
    if limit is not None:
        entries = entries[:limit]
    return entries


def extend_transactions(db: Session, transactions: Iterable[Transaction], *, commit: bool = True) -> None:
    """Prepend a batch ahead of the existing entries, keeping the batch order."""

    batch = [
        entry.model_dump(mode="json", by_alias=True, exclude_none=True)
        for entry in transactions
    ]
    if not batch:
        return
    existing, version = read_value(db, TRANSACTIONS_KEY)
    set_value(db, TRANSACTIONS_KEY, batch + (existing or []), expected_version=version, commit=commit)


def append_transaction(db: Session, transaction: Transaction, *, commit: bool = True) -> None:
    extend_transactions(db, [transaction], commit=commit)
