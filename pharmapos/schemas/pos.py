from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .transaction import Transaction


class CartLine(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    item_id: str
    quantity: int = Field(gt=0)


class SaleRequest(BaseModel):
    items: list[CartLine] = Field(min_length=1)


class SaleReceipt(BaseModel):
    transactions: list[Transaction]
    total: float
