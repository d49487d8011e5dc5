from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from ..core.config import settings
from ..crud.inventory import (
    create_item,
    get_item,
    list_categories,
    list_items,
    StatusFilter,
    remove_item,
    search_items,
    update_item,
)
from ..db.session import get_db
from ..deps.auth import get_principal, require_admin
from ..schemas.inventory import (
    InventoryItem,
    InventoryItemCreate,
    InventoryItemUpdate,
    StockAdjustmentRequest,
)
from ..schemas.transaction import MovementType, Transaction
from ..services.stock import adjust_stock

router = APIRouter(prefix="/api/v1/inventory", tags=["inventory"], dependencies=[Depends(get_principal)])


@router.get("", response_model=list[InventoryItem])
def api_list_inventory(
    q: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[StatusFilter] = None,
    expires_from: Optional[date] = None,
    expires_to: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return search_items(
        list_items(db),
        term=q,
        category=category,
        status=status,
        expires_from=expires_from,
        expires_to=expires_to,
        today=date.today(),
        warning_days=settings.EXPIRY_WARNING_DAYS,
    )


@router.get("/categories", response_model=list[str])
def api_list_categories(db: Session = Depends(get_db)):
    return list_categories(list_items(db))


@router.get("/{item_id}", response_model=InventoryItem)
def api_get_item(item_id: str, db: Session = Depends(get_db)):
    item = get_item(db, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


@router.post("", response_model=InventoryItem, status_code=201, dependencies=[Depends(require_admin)])
def api_create_item(payload: InventoryItemCreate, db: Session = Depends(get_db)):
    return create_item(db, payload)


@router.put("/{item_id}", response_model=InventoryItem, dependencies=[Depends(require_admin)])
def api_update_item(item_id: str, payload: InventoryItemUpdate, db: Session = Depends(get_db)):
    item = update_item(db, item_id, payload)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


@router.delete("/{item_id}", status_code=204, response_class=Response, dependencies=[Depends(require_admin)])
def api_delete_item(item_id: str, db: Session = Depends(get_db)):
    remove_item(db, item_id)
    return Response(status_code=204)


@router.post("/{item_id}/adjust", response_model=Transaction, status_code=201)
def api_adjust_stock(item_id: str, payload: StockAdjustmentRequest, db: Session = Depends(get_db)):
    return adjust_stock(
        db,
        item_id=item_id,
        quantity=payload.quantity,
        direction=MovementType(payload.direction),
        notes=payload.notes,
    )
