from pydantic import BaseModel, Field, computed_field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from app.models.alert import Alert

# =============================================================================
# RECIPE MODELS
# =============================================================================

class RecipeComponent(BaseModel):
    """One ingredient line of a recipe. The referenced ingredient may no longer exist."""
    ingredient_id: UUID
    quantity: float = Field(default=0.0, ge=0)
    unit: str = Field(default="g")

class Recipe(BaseModel):
    id: UUID
    tenant_id: UUID
    name: str
    portions: int = Field(default=1, ge=1)
    sale_price: float = Field(default=0.0)
    components: List[RecipeComponent] = Field(default_factory=list)
    is_active: bool = True

    # Cached cost fields, derived from the last CostBreakdown
    calculated_cost: Optional[float] = None
    cost_per_portion: Optional[float] = None
    margin_percentage: Optional[float] = None
    food_cost_percentage: Optional[float] = None
    last_cost_calculation: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator('portions', mode='before')
    @classmethod
    def default_portions(cls, value):
        try:
            portions = int(value)
        except (TypeError, ValueError):
            return 1
        return portions if portions >= 1 else 1

    @field_validator('sale_price', mode='before')
    @classmethod
    def default_sale_price(cls, value):
        if value is None:
            return 0.0
        return value

# =============================================================================
# COST BREAKDOWN
# =============================================================================

class CostLine(BaseModel):
    ingredient_id: UUID
    ingredient_name: str
    quantity: float
    unit: str
    normalized_quantity: float
    unit_cost: float
    line_cost: float

class CostBreakdown(BaseModel):
    """Line-by-line cost of one recipe at one point in time. Only its totals are persisted."""
    recipe_id: UUID
    lines: List[CostLine] = Field(default_factory=list)
    missing_ingredients: List[UUID] = Field(default_factory=list)
    total_cost: float = 0.0
    cost_per_portion: float = 0.0
    margin_percentage: float = 0.0
    food_cost_percentage: float = 0.0
    calculated_at: datetime

    @computed_field
    @property
    def is_complete(self) -> bool:
        return not self.missing_ingredients

class RecipeCostResult(BaseModel):
    recipe: Recipe
    breakdown: CostBreakdown
    alerts: List[Alert] = Field(default_factory=list)

class RecipeCostResponse(BaseModel):
    success: bool = True
    data: RecipeCostResult

class RecalculationFailure(BaseModel):
    recipe_id: UUID
    error: str

class RecalculationResult(BaseModel):
    ingredient_id: UUID
    updated_count: int = 0
    recipes: List[RecipeCostResult] = Field(default_factory=list)
    failures: List[RecalculationFailure] = Field(default_factory=list)

class RecalculationResponse(BaseModel):
    success: bool = True
    data: RecalculationResult

class CostStatistics(BaseModel):
    total_recipes: int = 0
    avg_margin: float = 0.0
    avg_food_cost: float = 0.0
    low_margin_count: int = 0
    high_food_cost_count: int = 0

class CostStatisticsResponse(BaseModel):
    success: bool = True
    data: CostStatistics
