from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .transaction import MovementType


class InventoryStats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_items: int
    total_stock: int
    low_stock_count: int
    expired_count: int
    expiring_soon_count: int
    total_revenue: float
    stock_value: float


class ChartDataPoint(BaseModel):
    name: str
    value: float


class ActivityPoint(BaseModel):
    date: str
    quantity: int
    revenue: float
    type: MovementType


class DashboardOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    stats: InventoryStats
    stock_by_category: list[ChartDataPoint]
    recent_activity: list[ActivityPoint]
