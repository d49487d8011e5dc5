"""Stock movements: single-item adjustments and multi-line sales.

Both operations follow the same protocol: read the current catalog, validate
the whole request against it, compute the new catalog and ledger entries in
memory, then commit the catalog and the ledger together. Nothing is written
unless every check passes, so a rejected request leaves storage untouched.

The catalog write carries the version that was read. If another writer
committed in between, the write raises ConcurrentUpdate and the whole
movement is rolled back.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Callable, Sequence
from uuid import uuid4

from sqlalchemy.orm import Session

from ..crud.inventory import load_items, replace_items
from ..crud.kv_store import commit_writes
from ..crud.transactions import append_transaction, extend_transactions
from ..schemas.inventory import InventoryItem
from ..schemas.pos import CartLine
from ..schemas.transaction import MovementType, Transaction

logger = logging.getLogger(__name__)

SALE_NOTE = "Point of Sale Transaction"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class StockError(Exception):
    """Base class for rejected stock movements."""


class ItemNotFound(StockError):
    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Item {item_id} not found")


class InsufficientStock(StockError):
    def __init__(self, *, item_id: str, item_name: str, requested: int, available: int) -> None:
        self.item_id = item_id
        self.item_name = item_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {item_name}. Requested: {requested}, available: {available}"
        )

    @property
    def shortfall(self) -> int:
        return self.requested - self.available


class EmptyCart(StockError):
    def __init__(self) -> None:
        super().__init__("Cart is empty")


def _find(items: Sequence[InventoryItem], item_id: str) -> int | None:
    return next((index for index, entry in enumerate(items) if entry.id == item_id), None)


def adjust_stock(
    db: Session,
    *,
    item_id: str,
    quantity: int,
    direction: MovementType,
    notes: str = "",
    clock: Clock = _utcnow,
) -> Transaction:
    """Restock (IN) or dispense (OUT) ``quantity`` units of one item."""

    direction = MovementType(direction)
    if direction is MovementType.SALE:
        raise ValueError("sales go through process_sale")

    items, version = load_items(db)
    index = _find(items, item_id)
    if index is None:
        logger.warning("stock.rejected", extra={"extra_data": {"item_id": item_id, "reason": "not_found"}})
        raise ItemNotFound(item_id)
    item = items[index]

    if direction is MovementType.IN:
        new_quantity = item.quantity + quantity
    else:
        if item.quantity < quantity:
            logger.warning(
                "stock.rejected",
                extra={"extra_data": {"item_id": item_id, "reason": "insufficient", "requested": quantity}},
            )
            raise InsufficientStock(
                item_id=item.id, item_name=item.name, requested=quantity, available=item.quantity
            )
        new_quantity = item.quantity - quantity

    transaction = Transaction(
        id=uuid4().hex,
        item_id=item.id,
        item_name=item.name,
        type=direction,
        quantity=quantity,
        date=clock(),
        notes=notes,
    )
    items[index] = item.model_copy(update={"quantity": new_quantity})
    # Fails with ConcurrentUpdate if the catalog changed since load_items.
    replace_items(db, items, expected_version=version, commit=False)
    append_transaction(db, transaction, commit=False)
    commit_writes(db)

    logger.info(
        "stock.adjusted",
        extra={
            "extra_data": {
                "item_id": item.id,
                "direction": direction.value,
                "quantity": quantity,
                "on_hand": new_quantity,
            }
        },
    )
    return transaction


def process_sale(db: Session, cart: Sequence[CartLine], *, clock: Clock = _utcnow) -> list[Transaction]:
    """Sell every cart line or nothing.

    Lines are checked in cart order against a running per-item total, so the
    first line that cannot be served decides the error, and lines naming the
    same item can never sell more units together than are on hand.
    """

    if not cart:
        raise EmptyCart()

    items, version = load_items(db)
    positions = {item.id: index for index, item in enumerate(items)}

    requested: Counter[str] = Counter()
    for line in cart:
        if line.item_id not in positions:
            logger.warning("sale.rejected", extra={"extra_data": {"item_id": line.item_id, "reason": "not_found"}})
            raise ItemNotFound(line.item_id)
        requested[line.item_id] += line.quantity
        stock_item = items[positions[line.item_id]]
        if requested[line.item_id] > stock_item.quantity:
            logger.warning(
                "sale.rejected",
                extra={
                    "extra_data": {
                        "item_id": line.item_id,
                        "reason": "insufficient",
                        "requested": requested[line.item_id],
                    }
                },
            )
            raise InsufficientStock(
                item_id=line.item_id,
                item_name=stock_item.name,
                requested=requested[line.item_id],
                available=stock_item.quantity,
            )

    sold_at = clock()
    transactions: list[Transaction] = []
    for line in cart:
        index = positions[line.item_id]
        stock_item = items[index]
        items[index] = stock_item.model_copy(update={"quantity": stock_item.quantity - line.quantity})
        transactions.append(
            Transaction(
                id=uuid4().hex,
                item_id=stock_item.id,
                item_name=stock_item.name,
                type=MovementType.SALE,
                quantity=line.quantity,
                date=sold_at,
                notes=SALE_NOTE,
                total_price=stock_item.price * line.quantity,
            )
        )

    # Catalog and ledger land in one database transaction, or not at all.
    replace_items(db, items, expected_version=version, commit=False)
    extend_transactions(db, transactions, commit=False)
    commit_writes(db)

    logger.info(
        "sale.committed",
        extra={
            "extra_data": {
                "lines": len(transactions),
                "total": sum(entry.total_price or 0 for entry in transactions),
            }
        },
    )
    return transactions
