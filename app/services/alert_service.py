"""
Alert Service
Threshold evaluation and lifecycle of alerts (low stock, margin, food cost, price increases)
"""

from typing import Optional, List
from uuid import UUID
import logging

from app.config import AlertThresholds
from app.core.exceptions import InvalidTransitionError, NotFoundError
from app.models.alert import (
    Alert,
    AlertCreate,
    AlertEntityType,
    AlertSeverity,
    AlertStats,
    AlertStatus,
    AlertType,
    DEDUPLICATED_ALERT_TYPES,
)
from app.models.recipe import CostBreakdown
from app.repositories.alert_repository import AlertRepository

logger = logging.getLogger(__name__)

# =============================================================================
# STATE TRANSITION RULES
# =============================================================================

ALERT_TRANSITIONS = {
    AlertStatus.ACTIVE: [AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED],
    AlertStatus.ACKNOWLEDGED: [AlertStatus.RESOLVED],
    AlertStatus.RESOLVED: [],  # Final state
}

def validate_alert_transition(from_status: AlertStatus, to_status: AlertStatus) -> bool:
    """Validate if a state transition is allowed"""
    allowed_transitions = ALERT_TRANSITIONS.get(AlertStatus(from_status), [])
    return AlertStatus(to_status) in allowed_transitions

def _statuses_allowing(to_status: AlertStatus) -> List[AlertStatus]:
    return [status for status, targets in ALERT_TRANSITIONS.items() if to_status in targets]

class AlertService:
    """
    Evaluates metric thresholds and keeps at most one ACTIVE alert per
    (tenant, entity, alert type) for every type except price increases.

    Every check runs on the caller's connection so it sees, and commits or
    rolls back with, the mutation that triggered it. Severity is decided when
    the alert is created and is not revisited while it stays ACTIVE.
    """

    def __init__(self, alerts: AlertRepository, thresholds: AlertThresholds):
        self._alerts = alerts
        self.thresholds = thresholds

    # =========================================================================
    # THRESHOLD CHECKS
    # =========================================================================

    async def check_recipe_cost_alerts(
        self,
        conn,
        recipe_id: UUID,
        tenant_id: UUID,
        breakdown: CostBreakdown,
        recipe_name: str
    ) -> List[Alert]:
        alerts = []
        margin = breakdown.margin_percentage
        food_cost = breakdown.food_cost_percentage

        if margin < self.thresholds.margin_low:
            alert = await self._ensure_active(conn, AlertCreate(
                tenant_id=tenant_id,
                type=AlertType.LOW_MARGIN,
                severity=AlertSeverity.CRITICAL if margin < self.thresholds.margin_critical else AlertSeverity.WARNING,
                title=f'Low margin on "{recipe_name}"',
                message=f"Margin dropped to {margin:.1f}% (minimum: {self.thresholds.margin_low:g}%)",
                entity_type=AlertEntityType.RECIPE,
                entity_id=recipe_id,
                data={
                    "current_margin": margin,
                    "threshold": self.thresholds.margin_low,
                    "total_cost": breakdown.total_cost,
                },
            ))
            if alert:
                alerts.append(alert)
        else:
            await self._resolve(conn, tenant_id, AlertEntityType.RECIPE, recipe_id, AlertType.LOW_MARGIN)

        if food_cost > self.thresholds.food_cost_high:
            alert = await self._ensure_active(conn, AlertCreate(
                tenant_id=tenant_id,
                type=AlertType.HIGH_FOOD_COST,
                severity=AlertSeverity.WARNING,
                title=f'High food cost on "{recipe_name}"',
                message=f"Food cost is {food_cost:.1f}% (maximum: {self.thresholds.food_cost_high:g}%)",
                entity_type=AlertEntityType.RECIPE,
                entity_id=recipe_id,
                data={
                    "current_food_cost": food_cost,
                    "threshold": self.thresholds.food_cost_high,
                },
            ))
            if alert:
                alerts.append(alert)
        else:
            await self._resolve(conn, tenant_id, AlertEntityType.RECIPE, recipe_id, AlertType.HIGH_FOOD_COST)

        return alerts

    async def check_low_stock_alert(
        self,
        conn,
        ingredient_id: UUID,
        tenant_id: UUID,
        ingredient_name: str,
        current_stock: float,
        min_stock: float
    ) -> Optional[Alert]:
        if current_stock >= min_stock:
            await self._resolve(conn, tenant_id, AlertEntityType.INGREDIENT, ingredient_id, AlertType.LOW_STOCK)
            return None

        return await self._ensure_active(conn, AlertCreate(
            tenant_id=tenant_id,
            type=AlertType.LOW_STOCK,
            severity=AlertSeverity.CRITICAL if current_stock <= 0 else AlertSeverity.WARNING,
            title=f'Low stock: "{ingredient_name}"',
            message=f"Current stock: {current_stock:.2f} (minimum: {min_stock:.2f})",
            entity_type=AlertEntityType.INGREDIENT,
            entity_id=ingredient_id,
            data={
                "current_stock": current_stock,
                "min_stock": min_stock,
                "deficit": min_stock - current_stock,
            },
        ))

    async def check_price_increase_alert(
        self,
        conn,
        ingredient_id: UUID,
        tenant_id: UUID,
        ingredient_name: str,
        old_price: float,
        new_price: float
    ) -> Optional[Alert]:
        """Raised on explicit price changes only. Every qualifying change gets its own alert."""
        if old_price <= 0:
            return None

        increase_percent = (new_price - old_price) / old_price * 100

        if increase_percent < self.thresholds.price_increase:
            return None

        severity = (
            AlertSeverity.CRITICAL
            if increase_percent >= self.thresholds.price_increase_critical
            else AlertSeverity.WARNING
        )
        return await self._ensure_active(conn, AlertCreate(
            tenant_id=tenant_id,
            type=AlertType.PRICE_INCREASE,
            severity=severity,
            title=f'Price increase: "{ingredient_name}"',
            message=f"Price went up {increase_percent:.1f}% (from {old_price:.2f} to {new_price:.2f})",
            entity_type=AlertEntityType.INGREDIENT,
            entity_id=ingredient_id,
            data={
                "old_price": old_price,
                "new_price": new_price,
                "increase_percent": increase_percent,
            },
        ))

    async def _ensure_active(self, conn, alert: AlertCreate) -> Optional[Alert]:
        """Create the alert unless its type is deduplicated and an ACTIVE one exists for the entity"""
        if alert.type in DEDUPLICATED_ALERT_TYPES:
            existing = await self._alerts.find_active_by_entity(
                conn, alert.tenant_id, alert.entity_type, alert.entity_id, alert.type
            )
            if existing:
                return None

        created = await self._alerts.create(conn, alert)
        if created:
            logger.info(
                f"🔔 {created.severity.value} {created.type.value} alert for "
                f"{created.entity_type.value} {created.entity_id}"
            )
        return created

    async def _resolve(self, conn, tenant_id: UUID, entity_type: AlertEntityType, entity_id: UUID, alert_type: AlertType) -> int:
        resolved = await self._alerts.resolve_by_entity(conn, tenant_id, entity_type, entity_id, alert_type)
        if resolved:
            logger.info(f"✅ Auto-resolved {resolved} {alert_type.value} alert(s) for {entity_type.value} {entity_id}")
        return resolved

    # =========================================================================
    # ALERT MANAGEMENT
    # =========================================================================

    async def get_active_alerts(self, conn, tenant_id: UUID, limit: int = 50) -> List[Alert]:
        return await self._alerts.find_active(conn, tenant_id, limit)

    async def get_alert_stats(self, conn, tenant_id: UUID) -> AlertStats:
        return await self._alerts.get_stats(conn, tenant_id)

    async def get_alert_history(
        self,
        conn,
        tenant_id: UUID,
        status: Optional[AlertStatus] = None,
        alert_type: Optional[AlertType] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Alert]:
        return await self._alerts.history(conn, tenant_id, status, alert_type, limit, offset)

    async def acknowledge_alert(self, conn, alert_id: UUID, user_id: Optional[UUID], tenant_id: UUID) -> Alert:
        return await self._transition(conn, alert_id, tenant_id, AlertStatus.ACKNOWLEDGED, user_id)

    async def resolve_alert(self, conn, alert_id: UUID, tenant_id: UUID) -> Alert:
        return await self._transition(conn, alert_id, tenant_id, AlertStatus.RESOLVED)

    async def _transition(
        self,
        conn,
        alert_id: UUID,
        tenant_id: UUID,
        to_status: AlertStatus,
        user_id: Optional[UUID] = None
    ) -> Alert:
        alert = await self._alerts.get(conn, alert_id, tenant_id)
        if not alert:
            raise NotFoundError("Alert", alert_id)

        if not validate_alert_transition(alert.status, to_status):
            raise InvalidTransitionError(
                f"Cannot transition alert from '{alert.status.value}' to '{to_status.value}'",
                details={
                    "current_status": alert.status.value,
                    "allowed": [s.value for s in ALERT_TRANSITIONS[alert.status]],
                }
            )

        updated = await self._alerts.transition(
            conn, alert_id, tenant_id, to_status, _statuses_allowing(to_status), user_id
        )
        if not updated:
            # Status changed between the read and the update
            raise InvalidTransitionError(f"Alert {alert_id} changed state concurrently")
        return updated
