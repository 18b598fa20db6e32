from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.errors import AppError, DuplicateResource, InsufficientStock, NotFound
from app.events import notifier as events
from app.models.inventory import InventoryItem, InventoryMovement, MovementType
from app.models.menu import MenuItem
from app.schemas.inventory import InventoryItemCreate, MovementCreate, TransferRequest
from app.schemas.recipe import IngredientRequest, RecipeCreate, RecipeUpdate
from app.services import inventory_service, recipe_service, stock_service


class TestInventoryLedger:

    @pytest.mark.asyncio
    async def test_opening_stock_is_booked(self, restaurant):
        item = await inventory_service.create_item(
            restaurant.id,
            InventoryItemCreate(name="Huile", sku="OIL", unit="L", current_stock=Decimal("20"), unit_cost=Decimal("1500")),
            "manager-1",
        )

        movement = await InventoryMovement.get(item_id=item.id)
        assert movement.type == MovementType.IN
        assert movement.reference == "INITIAL_STOCK"
        assert movement.total_cost == Decimal("30000.00")

    @pytest.mark.asyncio
    async def test_duplicate_sku_rejected(self, restaurant, plantain):
        with pytest.raises(DuplicateResource):
            await inventory_service.create_item(restaurant.id, InventoryItemCreate(name="Other", sku="PLT", unit="pcs"), "m")

    @pytest.mark.asyncio
    async def test_loss_cannot_go_below_zero(self, restaurant, plantain, notifier):
        with pytest.raises(InsufficientStock):
            await inventory_service.record_movement(
                restaurant.id,
                MovementCreate(item_id=plantain.id, type=MovementType.LOSS, quantity=Decimal("6")),
                "manager-1",
                notifier,
            )
        await plantain.refresh_from_db()
        assert plantain.current_stock == Decimal("5")

    @pytest.mark.asyncio
    async def test_delivery_adds_stock_without_alert(self, restaurant, plantain, notifier):
        await inventory_service.record_movement(
            restaurant.id,
            MovementCreate(item_id=plantain.id, type=MovementType.IN, quantity=Decimal("10"), unit_cost=Decimal("120")),
            "manager-1",
            notifier,
        )

        await plantain.refresh_from_db()
        assert plantain.current_stock == Decimal("15")
        assert plantain.unit_cost == Decimal("120")
        assert notifier.of(events.INVENTORY_LOW_STOCK) == []

    @pytest.mark.asyncio
    async def test_transfer_creates_destination(self, restaurant, notifier):
        source = await InventoryItem.create(
            restaurant=restaurant, name="Riz", sku="RICE", unit="kg", current_stock=Decimal("50"), location="Magasin"
        )

        moved_from, moved_to, movement = await inventory_service.transfer_stock(
            restaurant.id,
            TransferRequest(item_id=source.id, quantity=Decimal("10"), from_location="Magasin", to_location="Cuisine"),
            "manager-1",
        )

        assert moved_from.current_stock == Decimal("40")
        assert moved_to.current_stock == Decimal("10")
        assert moved_to.location == "Cuisine"
        assert moved_to.sku == "RICE-cuisine"
        assert movement.type == MovementType.TRANSFER

    @pytest.mark.asyncio
    async def test_transfer_within_one_location_rejected(self, restaurant, plantain):
        with pytest.raises(AppError) as exc:
            await inventory_service.transfer_stock(
                restaurant.id,
                TransferRequest(item_id=plantain.id, quantity=Decimal("3"), from_location="Cuisine", to_location="Cuisine"),
                "manager-1",
            )

        assert exc.value.status_code == 400
        await plantain.refresh_from_db()
        assert plantain.current_stock == Decimal("5")
        assert await InventoryItem.filter(restaurant_id=restaurant.id).count() == 1
        assert await InventoryMovement.filter(item_id=plantain.id, type=MovementType.TRANSFER).count() == 0

    @pytest.mark.asyncio
    async def test_transfer_destination_sku_taken(self, restaurant, notifier):
        source = await InventoryItem.create(
            restaurant=restaurant, name="Riz", sku="RICE", unit="kg", current_stock=Decimal("50"), location="Magasin"
        )
        await InventoryItem.create(restaurant=restaurant, name="Riz parfume", sku="RICE-cuisine", unit="kg", location="Cuisine")

        with pytest.raises(DuplicateResource):
            await inventory_service.transfer_stock(
                restaurant.id,
                TransferRequest(item_id=source.id, quantity=Decimal("10"), from_location="Magasin", to_location="Cuisine"),
                "manager-1",
            )

        await source.refresh_from_db()
        assert source.current_stock == Decimal("50")
        assert await InventoryItem.filter(restaurant_id=restaurant.id, name="Riz").count() == 1

    @pytest.mark.asyncio
    async def test_low_stock_alert_reports_deficit(self, restaurant, plantain):
        plantain.current_stock = Decimal("2")
        await plantain.save()

        alerts = await inventory_service.low_stock_alerts(restaurant.id)

        assert alerts.count == 1
        assert alerts.items[0].deficit == Decimal("3")

    @pytest.mark.asyncio
    async def test_valuation(self, restaurant, plantain):
        valuation = await inventory_service.stock_valuation(restaurant.id)

        assert valuation.total_value == Decimal("500.00")
        assert valuation.item_count == 1

    @pytest.mark.asyncio
    async def test_stock_check_reports_shortage(self, restaurant, ndole, plantain, ndole_recipe):
        ok = await stock_service.check_stock_availability(restaurant.id, [(ndole.id, 5)])
        short = await stock_service.check_stock_availability(restaurant.id, [(ndole.id, 6)])

        assert ok == {"available": True, "shortages": []}
        assert short["available"] is False
        assert short["shortages"][0]["needed"] == "6.000"


class TestRecipes:

    @pytest.mark.asyncio
    async def test_recipe_sets_food_cost(self, restaurant, ndole, plantain):
        recipe = await recipe_service.create_recipe(
            restaurant.id,
            RecipeCreate(
                menu_item_id=ndole.id,
                ingredients=[IngredientRequest(inventory_item_id=plantain.id, quantity=Decimal("3"), unit="pcs")],
            ),
        )

        response = recipe_service.to_response(recipe)
        assert response.total_cost == Decimal("300.00")
        assert response.profit_margin == Decimal("91.43")
        assert (await MenuItem.get(id=ndole.id)).cost == Decimal("300.00")

    @pytest.mark.asyncio
    async def test_one_recipe_per_menu_item(self, restaurant, ndole, plantain, ndole_recipe):
        with pytest.raises(DuplicateResource):
            await recipe_service.create_recipe(
                restaurant.id,
                RecipeCreate(
                    menu_item_id=ndole.id,
                    ingredients=[IngredientRequest(inventory_item_id=plantain.id, quantity=Decimal("1"), unit="pcs")],
                ),
            )

    @pytest.mark.asyncio
    async def test_foreign_ingredient_rejected(self, restaurant, ndole):
        with pytest.raises(NotFound):
            await recipe_service.create_recipe(
                restaurant.id,
                RecipeCreate(
                    menu_item_id=ndole.id,
                    ingredients=[IngredientRequest(inventory_item_id=uuid4(), quantity=Decimal("1"), unit="pcs")],
                ),
            )

    @pytest.mark.asyncio
    async def test_update_replaces_ingredients(self, restaurant, ndole, plantain, ndole_recipe):
        recipe = await recipe_service.update_recipe(
            restaurant.id,
            ndole_recipe.id,
            RecipeUpdate(ingredients=[IngredientRequest(inventory_item_id=plantain.id, quantity=Decimal("2"), unit="pcs")]),
        )

        response = recipe_service.to_response(recipe)
        assert len(response.ingredients) == 1
        assert response.total_cost == Decimal("200.00")

    @pytest.mark.asyncio
    async def test_cost_analysis(self, restaurant, ndole, ndole_recipe):
        analysis = await recipe_service.cost_analysis(restaurant.id)

        line = analysis.items[0]
        assert line.food_cost == Decimal("100.00")
        assert line.margin == Decimal("3400.00")
        assert line.cost_ratio == Decimal("2.86")
        assert analysis.average_cost_ratio == Decimal("2.86")
