from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict, Any
from uuid import UUID
from enum import Enum

# =============================================================================
# ENUMS FOR TYPE, SEVERITY AND STATUS
# =============================================================================

class AlertType(str, Enum):
    LOW_MARGIN = "low_margin"
    HIGH_FOOD_COST = "high_food_cost"
    LOW_STOCK = "low_stock"
    PRICE_INCREASE = "price_increase"
    COST_DEVIATION = "cost_deviation"

class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

class AlertStatus(str, Enum):
    """Alert lifecycle states"""
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"

class AlertEntityType(str, Enum):
    RECIPE = "recipe"
    INGREDIENT = "ingredient"

# Types that keep at most one ACTIVE alert per entity
DEDUPLICATED_ALERT_TYPES = frozenset({
    AlertType.LOW_MARGIN,
    AlertType.HIGH_FOOD_COST,
    AlertType.LOW_STOCK,
    AlertType.COST_DEVIATION,
})

# =============================================================================
# ALERT MODELS
# =============================================================================

class AlertCreate(BaseModel):
    tenant_id: UUID
    type: AlertType
    severity: AlertSeverity = AlertSeverity.WARNING
    title: str = Field(..., max_length=200)
    message: Optional[str] = None
    entity_type: AlertEntityType
    entity_id: UUID
    data: Dict[str, Any] = Field(default_factory=dict)

class Alert(BaseModel):
    id: UUID
    tenant_id: UUID
    type: AlertType
    severity: AlertSeverity
    status: AlertStatus = AlertStatus.ACTIVE
    title: str
    message: Optional[str] = None
    entity_type: AlertEntityType
    entity_id: UUID
    data: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[UUID] = None
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AlertStats(BaseModel):
    active_count: int = 0
    critical_count: int = 0
    warning_count: int = 0
    acknowledged_count: int = 0

class AlertResponse(BaseModel):
    success: bool = True
    data: Alert

class AlertsListResponse(BaseModel):
    success: bool = True
    total: int
    data: List[Alert]

class AlertStatsResponse(BaseModel):
    success: bool = True
    data: AlertStats
