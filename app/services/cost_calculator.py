"""
Recipe cost engine.

Pure computation: no I/O, no persistence. CostCalculationService loads the
recipe and prices and stores the totals.
"""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Mapping
from uuid import UUID

from app.models.ingredient import Ingredient
from app.models.recipe import CostBreakdown, CostLine, Recipe
from app.services.unit_normalizer import normalize_quantity

def round_half_up(value: float, places: int) -> float:
    """Round like a cashier does (2.5 -> 3), not like round() (2.5 -> 2)"""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))

class CostCalculator:

    def calculate(self, recipe: Recipe, ingredient_prices: Mapping[UUID, Ingredient]) -> CostBreakdown:
        lines = []
        missing_ingredients = []

        for component in recipe.components:
            ingredient = ingredient_prices.get(component.ingredient_id)

            if ingredient is None:
                missing_ingredients.append(component.ingredient_id)
                continue

            normalized_qty = normalize_quantity(component.quantity, component.unit, ingredient.unit)
            unit_cost = ingredient.price_per_unit

            lines.append(CostLine(
                ingredient_id=ingredient.id,
                ingredient_name=ingredient.name,
                quantity=component.quantity,
                unit=component.unit,
                normalized_quantity=normalized_qty,
                unit_cost=unit_cost,
                line_cost=round_half_up(normalized_qty * unit_cost, 4),
            ))

        total_cost = round_half_up(sum(line.line_cost for line in lines), 2)

        if recipe.portions > 0:
            cost_per_portion = round_half_up(total_cost / recipe.portions, 2)
        else:
            cost_per_portion = total_cost

        margin_percentage = 0.0
        food_cost_percentage = 0.0
        sale_price = recipe.sale_price
        if sale_price > 0:
            margin_percentage = round_half_up((sale_price - cost_per_portion) / sale_price * 1000, 0) / 10
            food_cost_percentage = round_half_up(cost_per_portion / sale_price * 1000, 0) / 10

        return CostBreakdown(
            recipe_id=recipe.id,
            lines=lines,
            missing_ingredients=missing_ingredients,
            total_cost=total_cost,
            cost_per_portion=cost_per_portion,
            margin_percentage=margin_percentage,
            food_cost_percentage=food_cost_percentage,
            calculated_at=datetime.now(timezone.utc),
        )
