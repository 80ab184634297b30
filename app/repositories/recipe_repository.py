import json
import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from app.models.recipe import CostBreakdown, CostStatistics, Recipe, RecipeComponent

logger = logging.getLogger(__name__)

RECIPE_COLUMNS = """
    id,
    tenant_id,
    name,
    portions,
    CAST(sale_price AS float) as sale_price,
    components,
    is_active,
    CAST(calculated_cost AS float) as calculated_cost,
    CAST(cost_per_portion AS float) as cost_per_portion,
    CAST(margin_percentage AS float) as margin_percentage,
    CAST(food_cost_percentage AS float) as food_cost_percentage,
    last_cost_calculation
"""

def parse_components(raw) -> List[RecipeComponent]:
    """Decode the JSONB component list. Unreadable entries are dropped, not fatal."""
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            logger.error(f"❌ Unreadable recipe components: {e}")
            return []

    components = []
    for item in raw or []:
        try:
            components.append(RecipeComponent(
                ingredient_id=item['ingredient_id'],
                quantity=float(item.get('quantity') or 0),
                unit=item.get('unit') or 'g',
            ))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"⚠️ Skipping malformed recipe component {item!r}: {e}")
    return components

def row_to_recipe(row) -> Recipe:
    data = dict(row)
    return Recipe(
        id=data['id'],
        tenant_id=data['tenant_id'],
        name=data['name'],
        portions=data.get('portions'),
        sale_price=data.get('sale_price'),
        components=parse_components(data.get('components')),
        is_active=data.get('is_active') is not False,
        calculated_cost=data.get('calculated_cost'),
        cost_per_portion=data.get('cost_per_portion'),
        margin_percentage=data.get('margin_percentage'),
        food_cost_percentage=data.get('food_cost_percentage'),
        last_cost_calculation=data.get('last_cost_calculation'),
    )

class RecipeRepository:

    async def get(self, conn, recipe_id: UUID, tenant_id: UUID) -> Optional[Recipe]:
        row = await conn.fetchrow(f"""
            SELECT {RECIPE_COLUMNS}
            FROM recipes
            WHERE id = $1 AND tenant_id = $2 AND deleted_at IS NULL
        """, recipe_id, tenant_id)
        return row_to_recipe(row) if row else None

    async def find_ids_by_ingredient(self, conn, ingredient_id: UUID, tenant_id: UUID) -> List[UUID]:
        """Active, non-deleted recipes whose component list references the ingredient"""
        rows = await conn.fetch("""
            SELECT id
            FROM recipes
            WHERE tenant_id = $1
              AND is_active = true
              AND deleted_at IS NULL
              AND components @> jsonb_build_array(jsonb_build_object('ingredient_id', $2::text))
            ORDER BY id
        """, tenant_id, str(ingredient_id))
        return [row['id'] for row in rows]

    async def update_cost(self, conn, recipe_id: UUID, tenant_id: UUID, breakdown: CostBreakdown) -> Optional[datetime]:
        row = await conn.fetchrow("""
            UPDATE recipes
            SET
                calculated_cost = $1,
                cost_per_portion = $2,
                margin_percentage = $3,
                food_cost_percentage = $4,
                last_cost_calculation = $5,
                updated_at = NOW()
            WHERE id = $6 AND tenant_id = $7
            RETURNING last_cost_calculation
        """, breakdown.total_cost, breakdown.cost_per_portion,
        breakdown.margin_percentage, breakdown.food_cost_percentage,
        breakdown.calculated_at, recipe_id, tenant_id)
        return row['last_cost_calculation'] if row else None

    async def cost_statistics(
        self,
        conn,
        tenant_id: UUID,
        margin_threshold: float,
        food_cost_threshold: float
    ) -> CostStatistics:
        row = await conn.fetchrow("""
            SELECT
                COUNT(*) as total_recipes,
                CAST(AVG(margin_percentage) AS float) as avg_margin,
                CAST(AVG(food_cost_percentage) AS float) as avg_food_cost,
                COUNT(*) FILTER (WHERE margin_percentage < $2) as low_margin_count,
                COUNT(*) FILTER (WHERE food_cost_percentage > $3) as high_food_cost_count
            FROM recipes
            WHERE tenant_id = $1
              AND is_active = true
              AND deleted_at IS NULL
              AND calculated_cost IS NOT NULL
        """, tenant_id, margin_threshold, food_cost_threshold)

        return CostStatistics(
            total_recipes=row['total_recipes'] or 0,
            avg_margin=row['avg_margin'] or 0.0,
            avg_food_cost=row['avg_food_cost'] or 0.0,
            low_margin_count=row['low_margin_count'] or 0,
            high_food_cost_count=row['high_food_cost_count'] or 0,
        )
