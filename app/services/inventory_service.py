"""
Inventory Service
Business stock operations: manual adjustments, sales, purchase receipts and waste.
Every one of them runs in a single ledger unit of work.
"""

from collections import defaultdict
from typing import Dict, List, Optional
from uuid import UUID
import logging

from app.models.ingredient import Ingredient, LowStockIngredient
from app.models.inventory import (
    BulkStockResult,
    PurchaseReceiptItem,
    SaleItem,
    StockAdjustment,
    StockDeltaResult,
    StockOperationResult,
)
from app.models.stock_movement import MovementType, StockMovement
from app.repositories.ingredient_repository import IngredientRepository
from app.repositories.recipe_repository import RecipeRepository
from app.repositories.stock_movement_repository import StockMovementRepository
from app.services.stock_ledger import StockLedger
from app.services.unit_normalizer import normalize_quantity

logger = logging.getLogger(__name__)

class InventoryService:

    def __init__(
        self,
        ledger: StockLedger,
        recipes: RecipeRepository,
        ingredients: IngredientRepository,
        movements: StockMovementRepository,
        connection_factory
    ):
        self._ledger = ledger
        self._recipes = recipes
        self._ingredients = ingredients
        self._movements = movements
        self._connection_factory = connection_factory

    # =========================================================================
    # ADJUSTMENTS
    # =========================================================================

    async def apply_stock_delta(
        self,
        ingredient_id: UUID,
        tenant_id: UUID,
        delta: float,
        reason: Optional[str] = None
    ) -> StockDeltaResult:
        async with self._ledger.unit_of_work() as conn:
            return await self._ledger.apply_delta(conn, ingredient_id, tenant_id, delta, reason)

    async def apply_stock_delta_bulk(
        self,
        adjustments: List[StockAdjustment],
        tenant_id: UUID,
        reason: Optional[str] = None
    ) -> BulkStockResult:
        async with self._ledger.unit_of_work() as conn:
            return await self._ledger.apply_delta_bulk(conn, adjustments, tenant_id, reason)

    async def record_waste(
        self,
        ingredient_id: UUID,
        tenant_id: UUID,
        quantity: float,
        reason: Optional[str] = None
    ) -> StockDeltaResult:
        async with self._ledger.unit_of_work() as conn:
            return await self._ledger.apply_delta(
                conn, ingredient_id, tenant_id, -abs(quantity), reason,
                movement_type=MovementType.WASTE, reference_type='waste'
            )

    # =========================================================================
    # SALES AND PURCHASES
    # =========================================================================

    async def deduct_stock_from_sale(self, tenant_id: UUID, sale_id: UUID, items: List[SaleItem]) -> StockOperationResult:
        """
        Deduct the ingredients consumed by a sale.

        Per sold item and recipe component:
        normalize(component.quantity / portions) * quantity * variant_factor.
        Unknown recipes and ingredients are skipped and reported.
        """
        result = StockOperationResult(reference_id=sale_id)

        async with self._ledger.unit_of_work() as conn:
            deltas: Dict[UUID, float] = defaultdict(float)
            recipes = {}
            for item in items:
                if item.recipe_id not in recipes:
                    recipes[item.recipe_id] = await self._recipes.get(conn, item.recipe_id, tenant_id)

            component_ids = {
                component.ingredient_id
                for recipe in recipes.values() if recipe
                for component in recipe.components
            }
            ingredients = await self._ingredients.get_many(conn, component_ids, tenant_id)

            for item in items:
                recipe = recipes[item.recipe_id]
                if not recipe:
                    result.skipped.append(f"recipe {item.recipe_id} not found")
                    continue

                for component in recipe.components:
                    ingredient = ingredients.get(component.ingredient_id)
                    if not ingredient:
                        result.skipped.append(
                            f"ingredient {component.ingredient_id} of recipe {recipe.id} not found"
                        )
                        continue

                    per_portion = normalize_quantity(
                        component.quantity / recipe.portions, component.unit, ingredient.unit
                    )
                    deltas[ingredient.id] -= per_portion * item.quantity * item.variant_factor

            result.movements = await self._apply_sorted(
                conn, deltas, tenant_id, MovementType.SALE, 'sale', sale_id,
                f"Sale {sale_id}"
            )

        logger.info(
            f"✅ Sale {sale_id}: {result.total_movements} ingredient(s) deducted, "
            f"{len(result.skipped)} skipped"
        )
        return result

    async def add_stock_from_purchase(
        self,
        tenant_id: UUID,
        purchase_id: UUID,
        items: List[PurchaseReceiptItem]
    ) -> StockOperationResult:
        """Receive purchased quantities, converted to each ingredient's unit when a unit is given"""
        result = StockOperationResult(reference_id=purchase_id)

        async with self._ledger.unit_of_work() as conn:
            ingredients = await self._ingredients.get_many(
                conn, {item.ingredient_id for item in items}, tenant_id
            )

            deltas: Dict[UUID, float] = defaultdict(float)
            for item in items:
                ingredient = ingredients.get(item.ingredient_id)
                if not ingredient:
                    result.skipped.append(f"ingredient {item.ingredient_id} not found")
                    continue

                quantity = item.quantity
                if item.unit:
                    quantity = normalize_quantity(quantity, item.unit, ingredient.unit)
                deltas[ingredient.id] += quantity

            result.movements = await self._apply_sorted(
                conn, deltas, tenant_id, MovementType.PURCHASE, 'purchase', purchase_id,
                f"Purchase {purchase_id}"
            )

        logger.info(
            f"✅ Purchase {purchase_id}: {result.total_movements} ingredient(s) received, "
            f"{len(result.skipped)} skipped"
        )
        return result

    async def _apply_sorted(
        self,
        conn,
        deltas: Dict[UUID, float],
        tenant_id: UUID,
        movement_type: MovementType,
        reference_type: str,
        reference_id: UUID,
        reason: str
    ) -> List[StockDeltaResult]:
        # Rows are locked in id order so concurrent operations cannot deadlock
        applied = []
        for ingredient_id in sorted(deltas, key=str):
            delta = deltas[ingredient_id]
            if delta == 0:
                continue
            applied.append(await self._ledger.apply_delta(
                conn, ingredient_id, tenant_id, delta, reason,
                movement_type=movement_type,
                reference_type=reference_type,
                reference_id=reference_id,
            ))
        return applied

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_low_stock_ingredients(self, tenant_id: UUID) -> List[LowStockIngredient]:
        async with self._connection_factory() as conn:
            ingredients: List[Ingredient] = await self._ingredients.find_low_stock(conn, tenant_id)

        return [
            LowStockIngredient(
                id=ingredient.id,
                name=ingredient.name,
                unit=ingredient.unit,
                current_stock=ingredient.current_stock,
                min_stock=ingredient.min_stock,
                deficit=ingredient.deficit,
            )
            for ingredient in ingredients
        ]

    async def get_movement_history(self, ingredient_id: UUID, tenant_id: UUID, limit: int = 100) -> List[StockMovement]:
        async with self._connection_factory() as conn:
            return await self._movements.list_by_ingredient(conn, ingredient_id, tenant_id, limit)
