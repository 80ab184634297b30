from pydantic import BaseModel, Field
from typing import Optional, List
from uuid import UUID

# =============================================================================
# STOCK DELTA MODELS
# =============================================================================

class StockDeltaRequest(BaseModel):
    delta: float = Field(..., description="Signed quantity in the ingredient's unit")
    reason: Optional[str] = Field(None, max_length=255)

class StockAdjustment(BaseModel):
    """One item of a bulk adjustment. Left loose so bad items are reported, not rejected."""
    ingredient_id: Optional[UUID] = None
    delta: Optional[float] = None

class BulkStockRequest(BaseModel):
    adjustments: List[StockAdjustment] = Field(..., min_length=1)
    reason: Optional[str] = Field(None, max_length=255)

class StockDeltaResult(BaseModel):
    id: UUID
    name: str
    previous_stock: float
    new_stock: float
    delta: float
    truncated: bool = Field(False, description="True when the floor at zero absorbed part of the delta")
    min_stock: float = 0.0

class BulkStockError(BaseModel):
    ingredient_id: Optional[UUID] = None
    error: str

class BulkStockResult(BaseModel):
    success: bool = True
    reason: Optional[str] = None
    results: List[StockDeltaResult] = Field(default_factory=list)
    errors: List[BulkStockError] = Field(default_factory=list)

class StockDeltaResponse(BaseModel):
    success: bool = True
    data: StockDeltaResult

class WasteRequest(BaseModel):
    quantity: float = Field(..., gt=0, description="Quantity lost, in the ingredient's unit")
    reason: Optional[str] = Field(None, max_length=255)

# =============================================================================
# SALE / PURCHASE MODELS
# =============================================================================

class SaleItem(BaseModel):
    recipe_id: UUID
    quantity: float = Field(..., gt=0, description="Portions sold")
    variant_factor: float = Field(1.0, gt=0, description="Portion size multiplier of the sold variant")

class SaleRequest(BaseModel):
    sale_id: UUID
    items: List[SaleItem] = Field(default_factory=list)

class PurchaseReceiptItem(BaseModel):
    ingredient_id: UUID
    quantity: float = Field(..., gt=0)
    unit: Optional[str] = Field(None, description="Unit received; defaults to the ingredient's unit")

class PurchaseReceiptRequest(BaseModel):
    purchase_id: UUID
    items: List[PurchaseReceiptItem] = Field(default_factory=list)

class StockOperationResult(BaseModel):
    success: bool = True
    reference_id: UUID
    movements: List[StockDeltaResult] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)

    @property
    def total_movements(self) -> int:
        return len(self.movements)
