from typing import List, Optional, Tuple
from uuid import UUID
import logging

from app.core.exceptions import NotFoundError
from app.models.ingredient import Ingredient, PriceChangeResult
from app.repositories.ingredient_repository import IngredientRepository
from app.services.alert_service import AlertService
from app.services.recalculation_service import RecalculationOrchestrator

logger = logging.getLogger(__name__)

class IngredientsService:

    def __init__(
        self,
        ingredients: IngredientRepository,
        alert_service: AlertService,
        orchestrator: RecalculationOrchestrator,
        connection_factory
    ):
        self._ingredients = ingredients
        self._alert_service = alert_service
        self._orchestrator = orchestrator
        self._connection_factory = connection_factory

    async def get_ingredients_list(
        self,
        tenant_id: UUID,
        page: int = 1,
        limit: int = 50,
        search: Optional[str] = None
    ) -> Tuple[List[Ingredient], int]:
        """Fetches a page of the tenant's ingredients, optionally filtered by name"""
        async with self._connection_factory() as conn:
            return await self._ingredients.list(conn, tenant_id, page=page, limit=limit, search=search)

    async def update_price(self, ingredient_id: UUID, tenant_id: UUID, new_price: float) -> PriceChangeResult:
        """
        Change an ingredient's price.

        The price update and the price-increase alert commit together; the
        recipe cascade runs afterwards, one transaction per recipe, so a
        failing recipe never undoes the price change.
        """
        async with self._connection_factory() as conn:
            current = await self._ingredients.lock_for_update(conn, ingredient_id, tenant_id)
            if not current:
                raise NotFoundError("Ingredient", ingredient_id)

            updated = await self._ingredients.set_price(conn, ingredient_id, tenant_id, new_price)
            if not updated:
                raise NotFoundError("Ingredient", ingredient_id)

            alert = await self._alert_service.check_price_increase_alert(
                conn, ingredient_id, tenant_id, updated.name,
                current.price_per_unit, updated.price_per_unit
            )

        old_price = current.price_per_unit
        change_percent = None
        if old_price > 0:
            change_percent = round((new_price - old_price) / old_price * 100, 2)

        logger.info(f"💲 Price of {updated.name} ({ingredient_id}) changed from {old_price} to {new_price}")

        recalculation = None
        if new_price != old_price:
            recalculation = await self._orchestrator.recalculate_by_ingredient(ingredient_id, tenant_id)

        return PriceChangeResult(
            ingredient_id=ingredient_id,
            ingredient_name=updated.name,
            old_price=old_price,
            new_price=updated.price_per_unit,
            change_percent=change_percent,
            alert=alert,
            recalculation=recalculation,
        )
