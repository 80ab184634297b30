from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional, List
from uuid import UUID
from enum import Enum

class MovementType(str, Enum):
    """Why stock changed. Positive quantities enter stock, negative ones leave it."""
    SALE = "sale"
    PURCHASE = "purchase"
    ADJUSTMENT = "adjustment"
    WASTE = "waste"

class StockMovementCreate(BaseModel):
    tenant_id: UUID
    ingredient_id: UUID
    quantity: float
    movement_type: MovementType
    reference_type: Optional[str] = Field(None, max_length=20)
    reference_id: Optional[UUID] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class StockMovement(StockMovementCreate):
    id: UUID

    class Config:
        from_attributes = True

class StockMovementsResponse(BaseModel):
    success: bool = True
    data: List[StockMovement]
