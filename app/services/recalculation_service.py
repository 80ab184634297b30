"""
Recalculation Orchestrator

Fans an ingredient change out to every recipe that uses it. Each recipe is
recomputed in its own transaction; a failing recipe is recorded and the rest
still run. Recomputation is idempotent, so a partial cascade can be re-run.
"""

from uuid import UUID
import logging

from app.core.exceptions import NotFoundError
from app.models.recipe import RecalculationFailure, RecalculationResult
from app.repositories.recipe_repository import RecipeRepository
from app.services.cost_calculation_service import CostCalculationService

logger = logging.getLogger(__name__)

class RecalculationOrchestrator:

    def __init__(self, recipes: RecipeRepository, cost_service: CostCalculationService, connection_factory):
        self._recipes = recipes
        self._cost_service = cost_service
        self._connection_factory = connection_factory

    async def recalculate_by_ingredient(self, ingredient_id: UUID, tenant_id: UUID) -> RecalculationResult:
        async with self._connection_factory() as conn:
            recipe_ids = await self._recipes.find_ids_by_ingredient(conn, ingredient_id, tenant_id)

        result = RecalculationResult(ingredient_id=ingredient_id)
        if not recipe_ids:
            return result

        logger.info(f"🔄 Recalculating {len(recipe_ids)} recipe(s) using ingredient {ingredient_id}")

        for recipe_id in recipe_ids:
            try:
                async with self._connection_factory() as conn:
                    cost = await self._cost_service.calculate_recipe_cost(conn, recipe_id, tenant_id)
                result.recipes.append(cost)
            except NotFoundError as e:
                # Deleted between the lookup and the recomputation
                logger.warning(f"⚠️ Skipping recipe {recipe_id}: {e.message}")
                result.failures.append(RecalculationFailure(recipe_id=recipe_id, error=e.message))
            except Exception as e:
                logger.error(f"❌ Error recalculating recipe {recipe_id}: {e}")
                result.failures.append(RecalculationFailure(recipe_id=recipe_id, error=str(e)))

        result.updated_count = len(result.recipes)
        logger.info(
            f"✅ Ingredient {ingredient_id}: {result.updated_count} recipe(s) recalculated, "
            f"{len(result.failures)} failed"
        )
        return result
