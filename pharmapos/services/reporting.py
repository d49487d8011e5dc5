"""Dashboard figures derived from the catalog and the ledger."""

from __future__ import annotations

from datetime import date
from typing import Sequence

from ..schemas.dashboard import ActivityPoint, ChartDataPoint, InventoryStats
from ..schemas.inventory import InventoryItem
from ..schemas.transaction import MovementType, Transaction


def inventory_stats(
    items: Sequence[InventoryItem],
    transactions: Sequence[Transaction],
    *,
    today: date,
    warning_days: int = 90,
) -> InventoryStats:
    expiring_soon = [
        item for item in items if 0 < item.days_until_expiry(today) <= warning_days
    ]
    revenue = sum(
        entry.total_price or 0.0 for entry in transactions if entry.type == MovementType.SALE
    )
    return InventoryStats(
        total_items=len(items),
        total_stock=sum(item.quantity for item in items),
        low_stock_count=sum(1 for item in items if item.is_low_stock),
        expired_count=sum(1 for item in items if item.is_expired(today)),
        expiring_soon_count=len(expiring_soon),
        total_revenue=revenue,
        stock_value=sum(item.quantity * item.price for item in items),
    )


def stock_by_category(items: Sequence[InventoryItem]) -> list[ChartDataPoint]:
    """Units on hand per category, in first-seen order."""

    totals: dict[str, int] = {}
    for item in items:
        totals[item.category] = totals.get(item.category, 0) + item.quantity
    return [ChartDataPoint(name=name, value=value) for name, value in totals.items()]


def recent_activity(transactions: Sequence[Transaction], limit: int = 7) -> list[ActivityPoint]:
    """Latest ``limit`` movements, oldest first, for the activity chart."""

    points = [
        ActivityPoint(
            date=entry.date.date().isoformat(),
            quantity=entry.quantity,
            revenue=(entry.total_price or 0.0) if entry.type == MovementType.SALE else 0.0,
            type=entry.type,
        )
        for entry in transactions[:limit]
    ]
    points.reverse()
    return points
