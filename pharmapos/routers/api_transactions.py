from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..crud.transactions import list_transactions
from ..db.session import get_db
from ..deps.auth import get_principal
from ..schemas.transaction import MovementType, Transaction

router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"], dependencies=[Depends(get_principal)])


@router.get("", response_model=list[Transaction])
def api_list_transactions(
    limit: Optional[int] = Query(default=None, ge=1),
    type: Optional[MovementType] = None,
    db: Session = Depends(get_db),
):
    return list_transactions(db, limit=limit, movement_type=type)
