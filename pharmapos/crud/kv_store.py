"""Whole-document key-value storage on top of a single SQLAlchemy table.

Callers read and replace entire collections under fixed keys. Every document
carries a version: :func:`read_value` returns it alongside the value and
:func:`set_value` accepts it back as ``expected_version``. The write is a
compare-and-swap, so replacing a document that someone else changed since it
was read raises :class:`ConcurrentUpdate` instead of overwriting their work.

Writes can be staged with ``commit=False`` and committed together with
:func:`commit_writes`, which gives multi-document updates a single
transaction boundary. A conflict rolls back everything staged so far.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.kv import KeyValueRecord

logger = logging.getLogger(__name__)

INVENTORY_KEY = "pharma_inventory_v1"
TRANSACTIONS_KEY = "pharma_transactions_v1"
SESSION_KEY = "pharma_user_session"

# Version reported for a key that has never been written.
MISSING_VERSION = 0


class ConcurrentUpdate(Exception):
    """Raised when a stored document changed after it was read."""

    def __init__(self, keys: list[str] | None = None) -> None:
        self.keys = keys or []
        label = ", ".join(self.keys) if self.keys else "stored documents"
        super().__init__(f"Concurrent update detected on {label}; reload and retry")


def _timestamp() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="seconds")


def _conflict(db: Session, key: str, expected_version: int) -> ConcurrentUpdate:
    db.rollback()
    logger.warning("kv.conflict", extra={"extra_data": {"key": key, "expected_version": expected_version}})
    return ConcurrentUpdate([key])


def read_value(db: Session, key: str) -> tuple[Any | None, int]:
    """Return ``(document, version)`` for ``key``; ``(None, 0)`` if unset."""

    row = db.execute(
        select(KeyValueRecord.value, KeyValueRecord.version).where(KeyValueRecord.key == key)
    ).first()
    if row is None:
        return None, MISSING_VERSION
    return json.loads(row.value), row.version


def get_value(db: Session, key: str) -> Any | None:
    return read_value(db, key)[0]


def set_value(
    db: Session,
    key: str,
    value: Any,
    *,
    expected_version: int | None = None,
    commit: bool = True,
) -> int:
    """Write ``value`` under ``key`` and return the new version.

    With ``expected_version`` the write only lands if the stored version still
    matches it (``0`` meaning "must not exist yet"). Without it the current
    version is read first, which makes the call a plain replace.
    """

    if expected_version is None:
        _, expected_version = read_value(db, key)
    payload = json.dumps(value, separators=(",", ":"))
    new_version = expected_version + 1

    if expected_version == MISSING_VERSION:
        stmt = insert(KeyValueRecord).values(
            key=key, value=payload, version=new_version, updated_at=_timestamp()
        )
        try:
            db.execute(stmt)
        except IntegrityError as exc:
            raise _conflict(db, key, expected_version) from exc
    else:
        stmt = (
            update(KeyValueRecord)
            .where(KeyValueRecord.key == key, KeyValueRecord.version == expected_version)
            .values(value=payload, version=new_version, updated_at=_timestamp())
        )
        if db.execute(stmt).rowcount != 1:
            raise _conflict(db, key, expected_version)

    if commit:
        commit_writes(db)
    return new_version


def delete_value(db: Session, key: str, *, commit: bool = True) -> None:
    """Remove the document under ``key``. Unknown keys are ignored."""

    db.execute(delete(KeyValueRecord).where(KeyValueRecord.key == key))
    if commit:
        commit_writes(db)


def commit_writes(db: Session) -> None:
    """Commit every staged write as one transaction."""

    db.commit()
