"""
Pydantic schemas for InventoryHistory model.
"""
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class InventoryHistoryResponse(BaseModel):
    """One recorded stock change."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    old_qty: int
    new_qty: int
    actor: str
    timestamp: datetime
