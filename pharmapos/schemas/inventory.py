from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Stored documents and API payloads use camelCase keys; Python code uses snake_case.
CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InventoryItemBase(BaseModel):
    model_config = CAMEL_CONFIG

    name: str = Field(min_length=1)
    generic_name: str = ""
    category: str = "General"
    quantity: int = Field(default=0, ge=0)
    unit: str = "units"
    price: float = Field(default=0.0, ge=0)
    expiry_date: date
    min_stock_level: int = Field(default=0, ge=0)
    batch_number: str = ""
    manufacturer: str = ""


class InventoryItemCreate(InventoryItemBase):
    pass


class InventoryItemUpdate(BaseModel):
    model_config = CAMEL_CONFIG

    name: Optional[str] = Field(default=None, min_length=1)
    generic_name: Optional[str] = None
    category: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    unit: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    expiry_date: Optional[date] = None
    min_stock_level: Optional[int] = Field(default=None, ge=0)
    batch_number: Optional[str] = None
    manufacturer: Optional[str] = None


class InventoryItem(InventoryItemBase):
    """One stock-keeping unit as persisted in the inventory collection."""

    id: str

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock_level

    @property
    def is_out_of_stock(self) -> bool:
        return self.quantity == 0

    def is_expired(self, today: date) -> bool:
        return self.expiry_date < today

    def days_until_expiry(self, today: date) -> int:
        return (self.expiry_date - today).days


class StockAdjustmentRequest(BaseModel):
    quantity: int = Field(gt=0)
    direction: Literal["IN", "OUT"]
    notes: str = "Manual adjustment"
