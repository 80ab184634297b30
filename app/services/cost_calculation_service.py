"""
Cost Calculation Service
Loads a recipe and its ingredient prices, computes the breakdown and stores the totals on the recipe
"""

from typing import Optional
from uuid import UUID
import logging

from app.config import AlertThresholds
from app.core.exceptions import NotFoundError
from app.models.recipe import CostStatistics, RecipeCostResult
from app.repositories.ingredient_repository import IngredientRepository
from app.repositories.recipe_repository import RecipeRepository
from app.services.alert_service import AlertService
from app.services.cost_calculator import CostCalculator

logger = logging.getLogger(__name__)

class CostCalculationService:

    def __init__(
        self,
        recipes: RecipeRepository,
        ingredients: IngredientRepository,
        calculator: CostCalculator,
        thresholds: AlertThresholds,
        alert_service: Optional[AlertService] = None
    ):
        self._recipes = recipes
        self._ingredients = ingredients
        self._calculator = calculator
        self._thresholds = thresholds
        self._alert_service = alert_service

    async def calculate_recipe_cost(
        self,
        conn,
        recipe_id: UUID,
        tenant_id: UUID,
        evaluate_alerts: bool = True
    ) -> RecipeCostResult:
        recipe = await self._recipes.get(conn, recipe_id, tenant_id)
        if not recipe:
            raise NotFoundError("Recipe", recipe_id)

        ingredient_ids = {component.ingredient_id for component in recipe.components}
        prices = await self._ingredients.get_many(conn, ingredient_ids, tenant_id)

        breakdown = self._calculator.calculate(recipe, prices)
        if breakdown.missing_ingredients:
            logger.warning(
                f"⚠️ Recipe {recipe.name} ({recipe_id}) references "
                f"{len(breakdown.missing_ingredients)} missing ingredient(s), cost is partial"
            )

        stored_at = await self._recipes.update_cost(conn, recipe_id, tenant_id, breakdown)
        recipe = recipe.model_copy(update={
            'calculated_cost': breakdown.total_cost,
            'cost_per_portion': breakdown.cost_per_portion,
            'margin_percentage': breakdown.margin_percentage,
            'food_cost_percentage': breakdown.food_cost_percentage,
            'last_cost_calculation': stored_at or breakdown.calculated_at,
        })

        alerts = []
        if self._alert_service and evaluate_alerts:
            alerts = await self._alert_service.check_recipe_cost_alerts(
                conn, recipe_id, tenant_id, breakdown, recipe.name
            )

        return RecipeCostResult(recipe=recipe, breakdown=breakdown, alerts=alerts)

    async def get_cost_statistics(self, conn, tenant_id: UUID) -> CostStatistics:
        return await self._recipes.cost_statistics(
            conn, tenant_id,
            self._thresholds.margin_low,
            self._thresholds.food_cost_high
        )
