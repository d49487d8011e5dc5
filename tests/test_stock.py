"""Tests for stock adjustments and multi-line sales."""

import os
import sys
from datetime import date, datetime, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from pharmapos.db.session import Base
from pharmapos.crud.inventory import get_item, list_items, remove_item, replace_items, upsert_item
from pharmapos.crud.transactions import list_transactions
from pharmapos.schemas.inventory import InventoryItem
from pharmapos.schemas.pos import CartLine
from pharmapos.schemas.transaction import MovementType
from pharmapos.services.stock import (
    EmptyCart,
    InsufficientStock,
    ItemNotFound,
    SALE_NOTE,
    adjust_stock,
    process_sale,
)

from pharmapos.models import kv as kv_model  # noqa: F401

FIXED_NOW = datetime(2025, 3, 1, 12, 30, tzinfo=timezone.utc)


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


def make_item(item_id, quantity, price=5.0, min_stock_level=5):
    return InventoryItem(
        id=item_id,
        name=f"Drug {item_id}",
        generic_name=f"Generic {item_id}",
        category="General",
        quantity=quantity,
        unit="tablets",
        price=price,
        expiry_date=date(2030, 1, 1),
        min_stock_level=min_stock_level,
        batch_number=f"B-{item_id}",
        manufacturer="Acme",
    )


@pytest.fixture()
def stocked(db_session):
    replace_items(db_session, [make_item("X", 10, price=5.0), make_item("Y", 0, price=3.0), make_item("Z", 4, price=2.5)])
    return db_session


def quantities(db):
    return {item.id: item.quantity for item in list_items(db)}


def test_dispense_reduces_quantity_and_records_out(stocked):
    transaction = adjust_stock(
        stocked, item_id="X", quantity=3, direction=MovementType.OUT, notes="Ward request", clock=lambda: FIXED_NOW
    )

    assert get_item(stocked, "X").quantity == 7
    ledger = list_transactions(stocked)
    assert len(ledger) == 1
    assert ledger[0] == transaction
    assert ledger[0].type == MovementType.OUT
    assert ledger[0].quantity == 3
    assert ledger[0].item_name == "Drug X"
    assert ledger[0].notes == "Ward request"
    assert ledger[0].date == FIXED_NOW
    assert ledger[0].total_price is None


def test_restock_increases_quantity(stocked):
    adjust_stock(stocked, item_id="Y", quantity=12, direction="IN")

    assert get_item(stocked, "Y").quantity == 12
    assert list_transactions(stocked)[0].type == MovementType.IN


def test_dispense_more_than_on_hand_is_rejected(db_session):
    replace_items(db_session, [make_item("X", 2)])

    with pytest.raises(InsufficientStock) as excinfo:
        adjust_stock(db_session, item_id="X", quantity=5, direction=MovementType.OUT)

    assert excinfo.value.shortfall == 3
    assert excinfo.value.available == 2
    assert get_item(db_session, "X").quantity == 2
    assert list_transactions(db_session) == []


def test_adjust_unknown_item_raises_not_found(stocked):
    before = list_items(stocked)

    with pytest.raises(ItemNotFound):
        adjust_stock(stocked, item_id="missing", quantity=1, direction=MovementType.IN)

    assert list_items(stocked) == before
    assert list_transactions(stocked) == []


def test_adjust_rejects_sale_direction(stocked):
    with pytest.raises(ValueError):
        adjust_stock(stocked, item_id="X", quantity=1, direction=MovementType.SALE)


def test_sale_commits_quantities_and_totals(stocked):
    transactions = process_sale(stocked, [CartLine(item_id="X", quantity=2)], clock=lambda: FIXED_NOW)

    assert get_item(stocked, "X").quantity == 8
    assert len(transactions) == 1
    sale = transactions[0]
    assert sale.type == MovementType.SALE
    assert sale.total_price == pytest.approx(10.0)
    assert sale.notes == SALE_NOTE
    assert list_transactions(stocked) == transactions


def test_sale_with_one_short_line_changes_nothing(stocked):
    with pytest.raises(InsufficientStock) as excinfo:
        process_sale(stocked, [CartLine(item_id="X", quantity=2), CartLine(item_id="Y", quantity=1)])

    assert excinfo.value.item_id == "Y"
    assert excinfo.value.item_name == "Drug Y"
    assert quantities(stocked) == {"X": 10, "Y": 0, "Z": 4}
    assert list_transactions(stocked) == []


def test_sale_with_unknown_item_changes_nothing(stocked):
    adjust_stock(stocked, item_id="X", quantity=1, direction=MovementType.IN)
    ledger_before = list_transactions(stocked)

    with pytest.raises(ItemNotFound) as excinfo:
        process_sale(stocked, [CartLine(item_id="X", quantity=1), CartLine(item_id="ghost", quantity=1)])

    assert excinfo.value.item_id == "ghost"
    assert quantities(stocked) == {"X": 11, "Y": 0, "Z": 4}
    assert list_transactions(stocked) == ledger_before


def test_sale_reports_the_first_failing_line_in_cart_order(stocked):
    with pytest.raises(InsufficientStock) as excinfo:
        process_sale(stocked, [CartLine(item_id="Y", quantity=1), CartLine(item_id="ghost", quantity=1)])

    assert excinfo.value.item_id == "Y"

    with pytest.raises(ItemNotFound) as excinfo:
        process_sale(stocked, [CartLine(item_id="ghost", quantity=1), CartLine(item_id="Y", quantity=1)])

    assert excinfo.value.item_id == "ghost"
    assert quantities(stocked) == {"X": 10, "Y": 0, "Z": 4}
    assert list_transactions(stocked) == []


def test_empty_cart_is_rejected(stocked):
    with pytest.raises(EmptyCart):
        process_sale(stocked, [])


def test_duplicate_lines_are_checked_against_combined_quantity(stocked):
    cart = [CartLine(item_id="Z", quantity=3), CartLine(item_id="Z", quantity=3)]

    with pytest.raises(InsufficientStock) as excinfo:
        process_sale(stocked, cart)

    assert excinfo.value.requested == 6
    assert excinfo.value.shortfall == 2
    assert get_item(stocked, "Z").quantity == 4


def test_duplicate_lines_within_stock_each_get_a_transaction(stocked):
    transactions = process_sale(stocked, [CartLine(item_id="Z", quantity=1), CartLine(item_id="Z", quantity=3)])

    assert get_item(stocked, "Z").quantity == 0
    assert [t.quantity for t in transactions] == [1, 3]


def test_sale_batch_shares_timestamp_and_is_prepended_in_line_order(stocked):
    earlier = adjust_stock(stocked, item_id="Y", quantity=5, direction=MovementType.IN)

    transactions = process_sale(
        stocked,
        [CartLine(item_id="X", quantity=1), CartLine(item_id="Y", quantity=2), CartLine(item_id="Z", quantity=1)],
        clock=lambda: FIXED_NOW,
    )

    ledger = list_transactions(stocked)
    assert [t.item_id for t in ledger] == ["X", "Y", "Z", "Y"]
    assert ledger[-1] == earlier
    assert {t.date for t in transactions} == {FIXED_NOW}
    assert len({t.id for t in transactions}) == 3
    assert [t.total_price for t in transactions] == pytest.approx([5.0, 6.0, 2.5])


def test_sale_uses_price_at_time_of_commit(stocked):
    upsert_item(stocked, get_item(stocked, "X").model_copy(update={"price": 7.25}))

    transactions = process_sale(stocked, [CartLine(item_id="X", quantity=4)])

    assert transactions[0].total_price == pytest.approx(29.0)


def test_ledger_keeps_item_name_after_item_changes(stocked):
    adjust_stock(stocked, item_id="X", quantity=1, direction=MovementType.OUT)
    upsert_item(stocked, get_item(stocked, "X").model_copy(update={"name": "Renamed"}))
    remove_item(stocked, "X")

    ledger = list_transactions(stocked)
    assert ledger[0].item_name == "Drug X"
    assert ledger[0].item_id == "X"


def test_quantities_never_go_negative(stocked):
    operations = [
        ("adjust", "X", 4, MovementType.OUT),
        ("sale", "X", 6, None),
        ("adjust", "X", 1, MovementType.OUT),
        ("adjust", "Z", 2, MovementType.IN),
        ("sale", "Z", 7, None),
        ("sale", "Z", 6, None),
        ("sale", "Y", 1, None),
    ]
    for kind, item_id, quantity, direction in operations:
        try:
            if kind == "adjust":
                adjust_stock(stocked, item_id=item_id, quantity=quantity, direction=direction)
            else:
                process_sale(stocked, [CartLine(item_id=item_id, quantity=quantity)])
        except InsufficientStock:
            pass
        assert all(value >= 0 for value in quantities(stocked).values())

    assert quantities(stocked) == {"X": 0, "Y": 0, "Z": 0}
    assert len(list_transactions(stocked)) == 4


def test_filter_ledger_by_type_and_limit(stocked):
    adjust_stock(stocked, item_id="X", quantity=1, direction=MovementType.OUT)
    process_sale(stocked, [CartLine(item_id="X", quantity=1)])
    adjust_stock(stocked, item_id="X", quantity=5, direction=MovementType.IN)

    assert [t.type for t in list_transactions(stocked, limit=2)] == [MovementType.IN, MovementType.SALE]
    sales = list_transactions(stocked, movement_type=MovementType.SALE)
    assert len(sales) == 1
