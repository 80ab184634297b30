# Canonical ingredient shape. Rows from the 'ingredients' table are mapped
# onto it in app/repositories/ingredient_repository.py and nowhere else.
from pydantic import BaseModel, Field
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from app.models.alert import Alert
from app.models.recipe import RecalculationResult

class Ingredient(BaseModel):
    id: UUID
    tenant_id: UUID
    name: str
    unit: str = Field(default="kg", description="Unit the price and stock are expressed in")
    price_per_unit: float = Field(default=0.0, ge=0, description="Current price per unit")
    current_stock: float = Field(default=0.0, ge=0, description="Stock on hand, never negative")
    min_stock: float = Field(default=0.0, ge=0, description="Low-stock threshold")
    is_active: bool = True
    stock_updated_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock < self.min_stock

    @property
    def deficit(self) -> float:
        return max(0.0, self.min_stock - self.current_stock)

class IngredientsListResponse(BaseModel):
    success: bool = True
    total: int
    data: List[Ingredient]

class LowStockIngredient(BaseModel):
    id: UUID
    name: str
    unit: str
    current_stock: float
    min_stock: float
    deficit: float

class LowStockResponse(BaseModel):
    success: bool = True
    data: List[LowStockIngredient]

class PriceUpdate(BaseModel):
    price_per_unit: float = Field(..., ge=0, description="New price per unit")

class PriceChangeResult(BaseModel):
    ingredient_id: UUID
    ingredient_name: str
    old_price: float
    new_price: float
    change_percent: Optional[float] = None
    alert: Optional[Alert] = None
    recalculation: Optional[RecalculationResult] = None

class PriceChangeResponse(BaseModel):
    success: bool = True
    data: PriceChangeResult
