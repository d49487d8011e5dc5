import os
import sys
from datetime import date
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from pharmapos.db.session import Base
from pharmapos.crud.inventory import (
    DEMO_CATALOG,
    create_item,
    get_item,
    list_categories,
    list_items,
    remove_item,
    replace_items,
    search_items,
    update_item,
    upsert_item,
)
from pharmapos.crud.kv_store import INVENTORY_KEY, get_value
from pharmapos.crud.transactions import list_transactions
from pharmapos.schemas.inventory import InventoryItem, InventoryItemCreate, InventoryItemUpdate

# Ensure models are imported so metadata is populated
from pharmapos.models import kv as kv_model  # noqa: F401


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_item(item_id, **overrides):
    data = {
        "id": item_id,
        "name": f"Item {item_id}",
        "generic_name": f"Generic {item_id}",
        "category": "General",
        "quantity": 10,
        "unit": "tablets",
        "price": 5.0,
        "expiry_date": date(2030, 1, 1),
        "min_stock_level": 5,
        "batch_number": f"B-{item_id}",
        "manufacturer": "Acme",
    }
    data.update(overrides)
    return InventoryItem(**data)


def test_first_read_seeds_demo_catalog_once(db_session):
    assert get_value(db_session, INVENTORY_KEY) is None

    first = list_items(db_session)
    assert [item.name for item in first] == [entry["name"] for entry in DEMO_CATALOG]
    assert first[0].generic_name == "Amoxicillin"
    assert first[3].quantity == 8

    stored = get_value(db_session, INVENTORY_KEY)
    assert len(stored) == len(DEMO_CATALOG)
    assert stored[0]["genericName"] == "Amoxicillin"

    second = list_items(db_session)
    assert second == first


def test_seeded_catalog_is_not_restored_after_edits(db_session):
    list_items(db_session)
    remove_item(db_session, "1")

    items = list_items(db_session)
    assert [item.id for item in items] == ["2", "3", "4", "5"]


def test_upsert_replaces_in_place_and_appends_new(db_session):
    replace_items(db_session, [make_item("a"), make_item("b"), make_item("c")])

    upsert_item(db_session, make_item("b", name="Renamed", quantity=3))
    upsert_item(db_session, make_item("d"))

    items = list_items(db_session)
    assert [item.id for item in items] == ["a", "b", "c", "d"]
    assert items[1].name == "Renamed"
    assert items[1].quantity == 3


def test_remove_unknown_id_is_a_noop(db_session):
    replace_items(db_session, [make_item("a")])

    remove_item(db_session, "missing")

    assert [item.id for item in list_items(db_session)] == ["a"]


def test_create_item_generates_unique_ids(db_session):
    replace_items(db_session, [])
    payload = InventoryItemCreate(
        name="Cetirizine 10mg",
        generic_name="Cetirizine",
        category="Allergy",
        quantity=30,
        unit="tablets",
        price=4.25,
        expiry_date=date(2027, 3, 1),
        min_stock_level=10,
        batch_number="CET-1",
        manufacturer="Generic Labs",
    )

    first = create_item(db_session, payload)
    second = create_item(db_session, payload)

    assert first.id != second.id
    assert [item.id for item in list_items(db_session)] == [first.id, second.id]


def test_update_item_merges_fields(db_session):
    replace_items(db_session, [make_item("a", price=2.0)])

    updated = update_item(db_session, "a", InventoryItemUpdate(price=3.5, category="Allergy"))

    assert updated.price == pytest.approx(3.5)
    assert updated.category == "Allergy"
    assert updated.name == "Item a"
    assert get_item(db_session, "a") == updated
    assert update_item(db_session, "missing", InventoryItemUpdate(price=1.0)) is None


def test_delete_keeps_ledger_untouched(db_session):
    replace_items(db_session, [make_item("a")])
    remove_item(db_session, "a")

    assert list_items(db_session) == []
    assert list_transactions(db_session) == []


def test_search_by_term_matches_name_or_generic_name():
    items = [
        make_item("a", name="Panadol Extra", generic_name="Paracetamol"),
        make_item("b", name="Lipitor", generic_name="Atorvastatin"),
    ]

    assert [i.id for i in search_items(items, term="para")] == ["a"]
    assert [i.id for i in search_items(items, term="LIPI")] == ["b"]


def test_search_status_filters_exclude_expired_from_stock_statuses():
    today = date(2025, 1, 1)
    items = [
        make_item("expired", expiry_date=date(2024, 12, 31), quantity=0),
        make_item("empty", quantity=0),
        make_item("low", quantity=5, min_stock_level=5),
        make_item("healthy", quantity=50),
        make_item("soon", quantity=50, expiry_date=date(2025, 3, 1)),
    ]

    def ids(status):
        return [i.id for i in search_items(items, status=status, today=today)]

    assert ids("expired") == ["expired"]
    assert ids("out_of_stock") == ["empty"]
    assert ids("low_stock") == ["empty", "low"]
    assert ids("in_stock") == ["healthy", "soon"]
    assert ids("expiring_soon") == ["soon"]


def test_search_by_category_and_expiry_range():
    items = [
        make_item("a", category="Respiratory", expiry_date=date(2025, 6, 1)),
        make_item("b", category="Respiratory", expiry_date=date(2026, 6, 1)),
        make_item("c", category="Diabetes", expiry_date=date(2025, 6, 1)),
    ]

    found = search_items(
        items,
        category="Respiratory",
        expires_from=date(2025, 6, 1),
        expires_to=date(2025, 12, 31),
        today=date(2025, 1, 1),
    )
    assert [i.id for i in found] == ["a"]


def test_list_categories_is_sorted_and_distinct():
    items = [make_item("a", category="Pain Relief"), make_item("b", category="Antibiotics"), make_item("c", category="Pain Relief")]
    assert list_categories(items) == ["Antibiotics", "Pain Relief"]


def test_low_stock_and_expiry_flags():
    item = make_item("a", quantity=5, min_stock_level=5, expiry_date=date(2025, 1, 10))

    assert item.is_low_stock
    assert not item.is_out_of_stock
    assert not item.is_expired(date(2025, 1, 10))
    assert item.is_expired(date(2025, 1, 11))
    assert item.days_until_expiry(date(2025, 1, 1)) == 9
