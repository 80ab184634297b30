"""
Stock Ledger

The single code path that mutates ingredient stock. Every delta:

1. locks the ingredient row (SELECT ... FOR UPDATE, scoped to the tenant),
2. applies stock = GREATEST(0, stock + delta),
3. records a stock movement through the outbox (never raises),
4. evaluates the low-stock alert against the new value on the same connection.

All four steps run on the caller's transaction; a delta larger than the
available stock floors at zero instead of failing.
"""

import logging
import math
from contextlib import asynccontextmanager
from typing import List, Optional
from uuid import UUID

from app.core.exceptions import NotFoundError, TransientStoreError, ValidationError
from app.database import TRANSIENT_DB_ERRORS
from app.models.inventory import BulkStockError, BulkStockResult, StockAdjustment, StockDeltaResult
from app.models.stock_movement import MovementType, StockMovementCreate
from app.repositories.ingredient_repository import IngredientRepository
from app.services.alert_service import AlertService
from app.services.movement_outbox import MovementOutbox

logger = logging.getLogger(__name__)

# Connection and lock failures abort the whole bulk operation instead of one item
RETRYABLE_ERRORS = (TransientStoreError,) + TRANSIENT_DB_ERRORS

class StockLedger:

    def __init__(
        self,
        ingredients: IngredientRepository,
        outbox: MovementOutbox,
        connection_factory,
        alert_service: Optional[AlertService] = None
    ):
        self._ingredients = ingredients
        self._outbox = outbox
        self._connection_factory = connection_factory
        self._alert_service = alert_service

    @asynccontextmanager
    async def unit_of_work(self):
        """
        Connection + transaction for one business operation.

        Movements staged in the outbox during the block are promoted only if
        the transaction commits.
        """
        conn = None
        committed = False
        try:
            async with self._connection_factory() as conn:
                yield conn
            committed = True
        finally:
            if conn is not None:
                if committed:
                    self._outbox.promote(conn)
                else:
                    self._outbox.discard(conn)

    async def apply_delta(
        self,
        conn,
        ingredient_id: UUID,
        tenant_id: UUID,
        delta: float,
        reason: Optional[str] = None,
        movement_type: MovementType = MovementType.ADJUSTMENT,
        reference_type: Optional[str] = None,
        reference_id: Optional[UUID] = None
    ) -> StockDeltaResult:
        if delta is None or not math.isfinite(delta):
            raise ValidationError("Delta must be a finite number", details={"ingredient_id": str(ingredient_id)})

        locked = await self._ingredients.lock_for_update(conn, ingredient_id, tenant_id)
        if not locked:
            raise NotFoundError("Ingredient", ingredient_id)

        updated = await self._ingredients.apply_stock_delta(conn, ingredient_id, tenant_id, delta)
        if not updated:
            raise NotFoundError("Ingredient", ingredient_id)

        truncated = locked.current_stock + delta < 0
        if truncated:
            logger.warning(
                f"⚠️ Stock of {updated.name} ({ingredient_id}) floored at 0: "
                f"requested {delta}, available {locked.current_stock}"
            )

        await self._outbox.record(conn, StockMovementCreate(
            tenant_id=tenant_id,
            ingredient_id=ingredient_id,
            quantity=delta,
            movement_type=movement_type,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=reason,
        ))

        if self._alert_service:
            await self._alert_service.check_low_stock_alert(
                conn, ingredient_id, tenant_id, updated.name,
                updated.current_stock, updated.min_stock
            )

        return StockDeltaResult(
            id=updated.id,
            name=updated.name,
            previous_stock=locked.current_stock,
            new_stock=updated.current_stock,
            delta=delta,
            truncated=truncated,
            min_stock=updated.min_stock,
        )

    async def apply_delta_bulk(
        self,
        conn,
        adjustments: List[StockAdjustment],
        tenant_id: UUID,
        reason: Optional[str] = None
    ) -> BulkStockResult:
        """
        Apply adjustments sequentially, each in its own savepoint.

        A failing item rolls back only itself and is reported in errors;
        items before and after it are unaffected.
        """
        results = []
        errors = []

        for adjustment in adjustments:
            if adjustment.ingredient_id is None or adjustment.delta is None or not math.isfinite(adjustment.delta):
                errors.append(BulkStockError(ingredient_id=adjustment.ingredient_id, error="Invalid ingredient id or delta"))
                continue

            mark = self._outbox.staged_count(conn)
            try:
                async with conn.transaction():
                    result = await self.apply_delta(
                        conn, adjustment.ingredient_id, tenant_id, adjustment.delta, reason,
                        movement_type=MovementType.ADJUSTMENT, reference_type='bulk_adjustment'
                    )
                results.append(result)
                continue
            except RETRYABLE_ERRORS:
                # The whole unit of work is lost; unit_of_work discards its movements
                raise
            except NotFoundError:
                error = "Ingredient not found"
            except ValidationError as e:
                error = e.message
            except Exception as e:
                logger.error(f"❌ Bulk adjustment of ingredient {adjustment.ingredient_id} failed: {e}")
                error = str(e)

            # Movements staged inside the rolled back savepoint describe nothing
            self._outbox.discard_since(conn, mark)
            errors.append(BulkStockError(ingredient_id=adjustment.ingredient_id, error=error))

        logger.info(
            f"📦 Bulk stock adjustment ({reason or 'unspecified'}): "
            f"{len(results)} applied, {len(errors)} failed"
        )

        return BulkStockResult(
            success=not errors,
            reason=reason,
            results=results,
            errors=errors,
        )
