"""Inventory collection helpers.

The whole catalog lives in one document; every write replaces that document.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Literal
from uuid import uuid4

from sqlalchemy.orm import Session

from ..schemas.inventory import InventoryItem, InventoryItemCreate, InventoryItemUpdate
from .kv_store import INVENTORY_KEY, read_value, set_value

# Demo catalog written the first time the inventory is read.
DEMO_CATALOG: list[dict[str, object]] = [
    {
        "id": "1",
        "name": "Amoxicillin 500mg",
        "genericName": "Amoxicillin",
        "category": "Antibiotics",
        "quantity": 45,
        "unit": "capsules",
        "price": 12.50,
        "expiryDate": "2025-12-01",
        "minStockLevel": 50,
        "batchNumber": "AMX-2023-001",
        "manufacturer": "PharmaCore",
    },
    {
        "id": "2",
        "name": "Lipitor 20mg",
        "genericName": "Atorvastatin",
        "category": "Cardiovascular",
        "quantity": 120,
        "unit": "tablets",
        "price": 25.00,
        "expiryDate": "2024-06-15",
        "minStockLevel": 30,
        "batchNumber": "LPT-2023-089",
        "manufacturer": "Pfizer",
    },
    {
        "id": "3",
        "name": "Panadol Extra",
        "genericName": "Paracetamol",
        "category": "Pain Relief",
        "quantity": 500,
        "unit": "tablets",
        "price": 5.50,
        "expiryDate": "2026-01-20",
        "minStockLevel": 100,
        "batchNumber": "PAN-2024-002",
        "manufacturer": "GSK",
    },
    {
        "id": "4",
        "name": "Ventolin Inhaler",
        "genericName": "Salbutamol",
        "category": "Respiratory",
        "quantity": 8,
        "unit": "units",
        "price": 18.75,
        "expiryDate": "2024-11-30",
        "minStockLevel": 15,
        "batchNumber": "VEN-2023-555",
        "manufacturer": "GSK",
    },
    {
        "id": "5",
        "name": "Metformin 500mg",
        "genericName": "Metformin",
        "category": "Diabetes",
        "quantity": 200,
        "unit": "tablets",
        "price": 8.00,
        "expiryDate": "2024-02-01",
        "minStockLevel": 100,
        "batchNumber": "MET-2022-999",
        "manufacturer": "Sandoz",
    },
]

StatusFilter = Literal["expired", "out_of_stock", "low_stock", "in_stock", "expiring_soon"]


def _dump(items: Iterable[InventoryItem]) -> list[dict[str, object]]:
    return [item.model_dump(mode="json", by_alias=True) for item in items]


def load_items(db: Session) -> tuple[list[InventoryItem], int]:
    """Return the catalog in storage order together with its stored version.

    The first read of an empty store writes the demo catalog and returns it.
    Pass the version back to :func:`replace_items` to make the write fail if
    the catalog changed in between.
    """

    raw, version = read_value(db, INVENTORY_KEY)
    if raw is None:
        raw = [dict(entry) for entry in DEMO_CATALOG]
        version = set_value(db, INVENTORY_KEY, raw, expected_version=version)
    return [InventoryItem.model_validate(entry) for entry in raw], version


def list_items(db: Session) -> list[InventoryItem]:
    return load_items(db)[0]


def get_item(db: Session, item_id: str) -> InventoryItem | None:
    return next((item for item in list_items(db) if item.id == item_id), None)


def replace_items(
    db: Session,
    items: Iterable[InventoryItem],
    *,
    expected_version: int | None = None,
    commit: bool = True,
) -> int:
    """Write ``items`` as the entire catalog and return the new version."""

    return set_value(db, INVENTORY_KEY, _dump(items), expected_version=expected_version, commit=commit)


def upsert_item(db: Session, item: InventoryItem) -> InventoryItem:
    """Replace the item with the same id in place, or append it."""

    items, version = load_items(db)
    for index, existing in enumerate(items):
        if existing.id == item.id:
            items[index] = item
            break
    else:
        items.append(item)
    replace_items(db, items, expected_version=version)
    return item


def create_item(db: Session, payload: InventoryItemCreate) -> InventoryItem:
    item = InventoryItem(id=uuid4().hex, **payload.model_dump())
    return upsert_item(db, item)


def update_item(db: Session, item_id: str, payload: InventoryItemUpdate) -> InventoryItem | None:
    """Merge the provided fields into the stored item; ``None`` if it is unknown."""

    existing = get_item(db, item_id)
    if existing is None:
        return None
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    updated = InventoryItem.model_validate({**existing.model_dump(), **changes})
    return upsert_item(db, updated)


def remove_item(db: Session, item_id: str) -> None:
    """Drop the item from the catalog. Unknown ids are ignored."""

    items, version = load_items(db)
    remaining = [item for item in items if item.id != item_id]
    if len(remaining) != len(items):
        replace_items(db, remaining, expected_version=version)


def list_categories(items: Iterable[InventoryItem]) -> list[str]:
    return sorted({item.category for item in items})


def _matches_status(item: InventoryItem, status: str, today: date, warning_days: int) -> bool:
    expired = item.is_expired(today)
    if status == "expired":
        return expired
    # Stock statuses leave expired items to the "expired" filter.
    if expired:
        return False
    if status == "out_of_stock":
        return item.is_out_of_stock
    if status == "low_stock":
        return item.is_low_stock
    if status == "in_stock":
        return not item.is_low_stock
    if status == "expiring_soon":
        return item.days_until_expiry(today) <= warning_days
    raise ValueError(f"unknown status filter: {status}")


def search_items(
    items: Iterable[InventoryItem],
    *,
    term: str | None = None,
    category: str | None = None,
    status: str | None = None,
    expires_from: date | None = None,
    expires_to: date | None = None,
    today: date | None = None,
    warning_days: int = 90,
) -> list[InventoryItem]:
    """Filter a catalog the way the inventory list view does."""

    today = today or date.today()
    needle = (term or "").strip().lower()
    results: list[InventoryItem] = []
    for item in items:
        if needle and needle not in item.name.lower() and needle not in item.generic_name.lower():
            continue
        if category and item.category != category:
            continue
        if status and not _matches_status(item, status, today, warning_days):
            continue
        if expires_from and item.expiry_date < expires_from:
            continue
        if expires_to and item.expiry_date > expires_to:
            continue
        results.append(item)
    return results
