from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..deps.auth import get_principal
from ..schemas.pos import SaleReceipt, SaleRequest
from ..services.stock import process_sale

router = APIRouter(prefix="/api/v1/pos", tags=["pos"], dependencies=[Depends(get_principal)])


@router.post("/sales", response_model=SaleReceipt, status_code=201)
def api_process_sale(payload: SaleRequest, db: Session = Depends(get_db)):
    transactions = process_sale(db, payload.items)
    total = sum(entry.total_price or 0.0 for entry in transactions)
    return SaleReceipt(transactions=transactions, total=total)
