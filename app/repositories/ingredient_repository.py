"""
Ingredient persistence.

Only StockLedger calls lock_for_update/apply_stock_delta, so every stock
mutation goes through one locked read-modify-write path.
"""

from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from app.models.ingredient import Ingredient

INGREDIENT_COLUMNS = """
    id,
    tenant_id,
    name,
    unit,
    CAST(price_per_unit AS float) as price_per_unit,
    CAST(current_stock AS float) as current_stock,
    CAST(min_stock AS float) as min_stock,
    is_active,
    stock_updated_at,
    updated_at
"""

def row_to_ingredient(row) -> Ingredient:
    data = dict(row)
    return Ingredient(
        id=data['id'],
        tenant_id=data['tenant_id'],
        name=data['name'],
        unit=data.get('unit') or 'kg',
        price_per_unit=data.get('price_per_unit') or 0.0,
        current_stock=max(0.0, data.get('current_stock') or 0.0),
        min_stock=data.get('min_stock') or 0.0,
        is_active=data.get('is_active') is not False,
        stock_updated_at=data.get('stock_updated_at'),
        updated_at=data.get('updated_at'),
    )

class IngredientRepository:

    async def lock_for_update(self, conn, ingredient_id: UUID, tenant_id: UUID) -> Optional[Ingredient]:
        """Row-lock the ingredient for the rest of the transaction"""
        row = await conn.fetchrow(f"""
            SELECT {INGREDIENT_COLUMNS}
            FROM ingredients
            WHERE id = $1 AND tenant_id = $2 AND deleted_at IS NULL
            FOR UPDATE
        """, ingredient_id, tenant_id)
        return row_to_ingredient(row) if row else None

    async def apply_stock_delta(self, conn, ingredient_id: UUID, tenant_id: UUID, delta: float) -> Optional[Ingredient]:
        row = await conn.fetchrow(f"""
            UPDATE ingredients
            SET
                current_stock = GREATEST(0, COALESCE(current_stock, 0) + $1),
                stock_updated_at = NOW(),
                updated_at = NOW()
            WHERE id = $2 AND tenant_id = $3 AND deleted_at IS NULL
            RETURNING {INGREDIENT_COLUMNS}
        """, delta, ingredient_id, tenant_id)
        return row_to_ingredient(row) if row else None

    async def set_price(self, conn, ingredient_id: UUID, tenant_id: UUID, price_per_unit: float) -> Optional[Ingredient]:
        row = await conn.fetchrow(f"""
            UPDATE ingredients
            SET price_per_unit = $1, updated_at = NOW()
            WHERE id = $2 AND tenant_id = $3 AND deleted_at IS NULL
            RETURNING {INGREDIENT_COLUMNS}
        """, price_per_unit, ingredient_id, tenant_id)
        return row_to_ingredient(row) if row else None

    async def get(self, conn, ingredient_id: UUID, tenant_id: UUID) -> Optional[Ingredient]:
        row = await conn.fetchrow(f"""
            SELECT {INGREDIENT_COLUMNS}
            FROM ingredients
            WHERE id = $1 AND tenant_id = $2 AND deleted_at IS NULL
        """, ingredient_id, tenant_id)
        return row_to_ingredient(row) if row else None

    async def get_many(self, conn, ingredient_ids: Iterable[UUID], tenant_id: UUID) -> Dict[UUID, Ingredient]:
        """Price index keyed by ingredient id. Deleted or foreign ingredients are simply absent."""
        ids = list(dict.fromkeys(ingredient_ids))
        if not ids:
            return {}

        rows = await conn.fetch(f"""
            SELECT {INGREDIENT_COLUMNS}
            FROM ingredients
            WHERE id = ANY($1::uuid[]) AND tenant_id = $2 AND deleted_at IS NULL
        """, ids, tenant_id)

        return {row['id']: row_to_ingredient(row) for row in rows}

    async def list(
        self,
        conn,
        tenant_id: UUID,
        page: int = 1,
        limit: int = 50,
        search: Optional[str] = None
    ) -> Tuple[List[Ingredient], int]:
        base_query = f"""
            SELECT {INGREDIENT_COLUMNS}
            FROM ingredients
            WHERE tenant_id = $1 AND deleted_at IS NULL
        """
        count_query = "SELECT COUNT(*) FROM ingredients WHERE tenant_id = $1 AND deleted_at IS NULL"

        params = [tenant_id]
        param_count = 2

        if search:
            base_query += f" AND LOWER(name) LIKE LOWER(${param_count})"
            count_query += f" AND LOWER(name) LIKE LOWER(${param_count})"
            params.append(f"%{search}%")
            param_count += 1

        offset = (page - 1) * limit
        base_query += f" ORDER BY name ASC LIMIT ${param_count} OFFSET ${param_count + 1}"

        rows = await conn.fetch(base_query, *params, limit, offset)
        count_result = await conn.fetchrow(count_query, *params)

        return [row_to_ingredient(row) for row in rows], count_result['count']

    async def find_low_stock(self, conn, tenant_id: UUID) -> List[Ingredient]:
        rows = await conn.fetch(f"""
            SELECT {INGREDIENT_COLUMNS}
            FROM ingredients
            WHERE tenant_id = $1
              AND is_active = true
              AND deleted_at IS NULL
              AND current_stock < min_stock
            ORDER BY (min_stock - current_stock) DESC
        """, tenant_id)
        return [row_to_ingredient(row) for row in rows]
