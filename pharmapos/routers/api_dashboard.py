from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.config import settings
from ..crud.inventory import list_items
from ..crud.transactions import list_transactions
from ..db.session import get_db
from ..deps.auth import get_principal
from ..schemas.dashboard import DashboardOut
from ..services.reporting import inventory_stats, recent_activity, stock_by_category

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"], dependencies=[Depends(get_principal)])


@router.get("", response_model=DashboardOut)
def api_dashboard(db: Session = Depends(get_db)):
    items = list_items(db)
    transactions = list_transactions(db)
    return DashboardOut(
        stats=inventory_stats(
            items,
            transactions,
            today=date.today(),
            warning_days=settings.EXPIRY_WARNING_DAYS,
        ),
        stock_by_category=stock_by_category(items),
        recent_activity=recent_activity(transactions),
    )
