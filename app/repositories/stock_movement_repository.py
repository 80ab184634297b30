from typing import List
from uuid import UUID

from app.models.stock_movement import StockMovement, StockMovementCreate

class StockMovementRepository:
    """Append-only access to stock_movements"""

    async def insert(self, conn, movement: StockMovementCreate) -> None:
        await conn.execute("""
            INSERT INTO stock_movements (
                tenant_id, ingredient_id, movement_type, quantity,
                reference_type, reference_id, notes, created_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
        """, movement.tenant_id, movement.ingredient_id, movement.movement_type.value,
        movement.quantity, movement.reference_type, movement.reference_id,
        movement.notes, movement.created_at)

    async def list_by_ingredient(self, conn, ingredient_id: UUID, tenant_id: UUID, limit: int = 100) -> List[StockMovement]:
        rows = await conn.fetch("""
            SELECT
                id, tenant_id, ingredient_id, movement_type,
                CAST(quantity AS float) as quantity,
                reference_type, reference_id, notes, created_at
            FROM stock_movements
            WHERE ingredient_id = $1 AND tenant_id = $2
            ORDER BY created_at DESC
            LIMIT $3
        """, ingredient_id, tenant_id, limit)
        return [StockMovement(**dict(row)) for row in rows]
