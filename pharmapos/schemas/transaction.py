from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    SALE = "SALE"


class Transaction(BaseModel):
    """Immutable ledger entry for one committed stock movement.

    ``item_name`` is a snapshot taken when the movement was written, so later
    edits or deletion of the item never rewrite history.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    item_id: str
    item_name: str
    type: MovementType
    quantity: int = Field(gt=0)
    date: datetime
    notes: Optional[str] = None
    total_price: Optional[float] = None
