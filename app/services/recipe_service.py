import logging
from decimal import Decimal
from typing import List, Sequence
from uuid import UUID

from tortoise.transactions import in_transaction

from app.core.errors import DuplicateResource, NotFound
from app.core.money import ZERO, to_money
from app.models.inventory import InventoryItem
from app.models.menu import MenuItem
from app.models.recipe import Recipe, RecipeIngredient
from app.schemas.recipe import (
    CostAnalysisLine,
    CostAnalysisResponse,
    IngredientRequest,
    IngredientResponse,
    RecipeCreate,
    RecipeResponse,
    RecipeUpdate,
)

log = logging.getLogger("app.services.recipes")

HUNDRED = Decimal("100")


def food_cost(ingredients: Sequence[RecipeIngredient]) -> Decimal:
    """Cost of one portion: quantity x unit cost of each ingredient (missing costs count as zero)."""
    return to_money(sum((ing.quantity * (ing.inventory_item.unit_cost or ZERO) for ing in ingredients), ZERO))


def margin_percent(price: Decimal, cost: Decimal) -> Decimal:
    if price <= ZERO:
        return ZERO
    return to_money((price - cost) / price * HUNDRED)


async def _validate_ingredients(restaurant_id: UUID, ingredients: Sequence[IngredientRequest], conn=None) -> None:
    wanted = {ing.inventory_item_id for ing in ingredients}
    found = await InventoryItem.filter(id__in=list(wanted), restaurant_id=restaurant_id).using_db(conn).values_list("id", flat=True)
    missing = {str(w) for w in wanted} - {str(f) for f in found}
    if missing:
        raise NotFound(f"Inventory item {sorted(missing)[0]} not found")


async def _create_ingredients(recipe: Recipe, ingredients: Sequence[IngredientRequest], conn) -> None:
    for ing in ingredients:
        await RecipeIngredient.create(
            recipe=recipe,
            inventory_item_id=ing.inventory_item_id,
            quantity=ing.quantity,
            unit=ing.unit,
            using_db=conn,
        )


async def _load(recipe: Recipe, conn=None) -> Recipe:
    await recipe.fetch_related("menu_item", "ingredients__inventory_item", using_db=conn)
    return recipe


def to_response(recipe: Recipe) -> RecipeResponse:
    ingredients = list(recipe.ingredients)
    cost = food_cost(ingredients)
    return RecipeResponse(
        id=recipe.id,
        menu_item_id=recipe.menu_item_id,
        menu_item_name=recipe.menu_item.name,
        price=recipe.menu_item.price,
        portion_size=recipe.portion_size,
        notes=recipe.notes,
        ingredients=[
            IngredientResponse(
                id=ing.id,
                inventory_item_id=ing.inventory_item_id,
                name=ing.inventory_item.name,
                quantity=ing.quantity,
                unit=ing.unit,
                unit_cost=ing.inventory_item.unit_cost,
                current_stock=ing.inventory_item.current_stock,
            )
            for ing in ingredients
        ],
        total_cost=cost,
        profit_margin=margin_percent(recipe.menu_item.price, cost),
    )


async def _sync_menu_item_cost(recipe: Recipe, conn) -> None:
    await _load(recipe, conn)
    await MenuItem.filter(id=recipe.menu_item_id).using_db(conn).update(cost=food_cost(list(recipe.ingredients)))


async def list_recipes(restaurant_id: UUID) -> List[Recipe]:
    recipes = await Recipe.filter(restaurant_id=restaurant_id).prefetch_related(
        "menu_item", "ingredients__inventory_item"
    )
    return sorted(recipes, key=lambda r: r.menu_item.name)


async def get_recipe_by_menu_item(restaurant_id: UUID, menu_item_id: UUID) -> Recipe:
    recipe = await Recipe.get_or_none(restaurant_id=restaurant_id, menu_item_id=menu_item_id)
    if not recipe:
        raise NotFound("Recipe not found for this menu item")
    return await _load(recipe)


async def create_recipe(restaurant_id: UUID, data: RecipeCreate) -> Recipe:
    """Creates the bill of materials of a menu item and stores its food cost on the item."""
    if not await MenuItem.filter(id=data.menu_item_id, restaurant_id=restaurant_id).exists():
        raise NotFound("Menu item not found")
    if await Recipe.filter(restaurant_id=restaurant_id, menu_item_id=data.menu_item_id).exists():
        raise DuplicateResource("Recipe already exists for this menu item")
    await _validate_ingredients(restaurant_id, data.ingredients)

    async with in_transaction() as conn:
        recipe = await Recipe.create(
            restaurant_id=restaurant_id,
            menu_item_id=data.menu_item_id,
            portion_size=data.portion_size,
            notes=data.notes,
            using_db=conn,
        )
        await _create_ingredients(recipe, data.ingredients, conn)
        await _sync_menu_item_cost(recipe, conn)

    log.info(f"Recipe created for menu item {data.menu_item_id} with {len(data.ingredients)} ingredient(s)")
    return recipe


async def update_recipe(restaurant_id: UUID, recipe_id: UUID, data: RecipeUpdate) -> Recipe:
    recipe = await Recipe.get_or_none(id=recipe_id, restaurant_id=restaurant_id)
    if not recipe:
        raise NotFound("Recipe not found")
    if data.ingredients is not None:
        await _validate_ingredients(restaurant_id, data.ingredients)

    async with in_transaction() as conn:
        if data.portion_size is not None:
            recipe.portion_size = data.portion_size
        if data.notes is not None:
            recipe.notes = data.notes
        await recipe.save(using_db=conn)

        if data.ingredients is not None:
            await RecipeIngredient.filter(recipe_id=recipe.id).using_db(conn).delete()
            await _create_ingredients(recipe, data.ingredients, conn)
        await _sync_menu_item_cost(recipe, conn)

    return recipe


async def delete_recipe(restaurant_id: UUID, recipe_id: UUID) -> None:
    recipe = await Recipe.get_or_none(id=recipe_id, restaurant_id=restaurant_id)
    if not recipe:
        raise NotFound("Recipe not found")
    async with in_transaction() as conn:
        await RecipeIngredient.filter(recipe_id=recipe.id).using_db(conn).delete()
        await recipe.delete(using_db=conn)
    log.info(f"Recipe {recipe_id} deleted")


async def cost_analysis(restaurant_id: UUID) -> CostAnalysisResponse:
    """Food cost and margin of every costed menu item, best margin first."""
    lines = []
    for recipe in await list_recipes(restaurant_id):
        price = recipe.menu_item.price
        cost = food_cost(list(recipe.ingredients))
        lines.append(
            CostAnalysisLine(
                menu_item_id=recipe.menu_item_id,
                menu_item_name=recipe.menu_item.name,
                selling_price=price,
                food_cost=cost,
                margin=to_money(price - cost),
                margin_percent=margin_percent(price, cost),
                cost_ratio=to_money(cost / price * HUNDRED) if price > ZERO else ZERO,
            )
        )

    average = to_money(sum((line.cost_ratio for line in lines), ZERO) / len(lines)) if lines else ZERO
    lines.sort(key=lambda line: line.margin_percent, reverse=True)
    return CostAnalysisResponse(average_cost_ratio=average, item_count=len(lines), items=lines)
