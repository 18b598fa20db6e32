from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.core.permissions import Permission
from app.core.security import TenantContext, require_permission
from app.schemas.recipe import RecipeCreate, RecipeUpdate
from app.schemas.response import ERROR_RESPONSES, SuccessResponse, ok
from app.services import recipe_service

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("/", response_model=SuccessResponse)
async def list_recipes_endpoint(ctx: TenantContext = Depends(require_permission(Permission.VIEW))):
    recipes = await recipe_service.list_recipes(ctx.restaurant_id)
    return ok([recipe_service.to_response(r) for r in recipes])


@router.get("/cost-analysis", response_model=SuccessResponse)
async def cost_analysis_endpoint(ctx: TenantContext = Depends(require_permission(Permission.REPORT_VIEW))):
    """Food cost, margin and cost ratio of every menu item that has a recipe."""
    return ok(await recipe_service.cost_analysis(ctx.restaurant_id))


@router.get("/menu-item/{menu_item_id}", response_model=SuccessResponse)
async def recipe_for_menu_item_endpoint(
    menu_item_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.VIEW))
):
    recipe = await recipe_service.get_recipe_by_menu_item(ctx.restaurant_id, menu_item_id)
    return ok(recipe_service.to_response(recipe))


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_recipe_endpoint(
    payload: RecipeCreate, ctx: TenantContext = Depends(require_permission(Permission.RECIPE_MANAGE))
):
    recipe = await recipe_service.create_recipe(ctx.restaurant_id, payload)
    return ok(recipe_service.to_response(recipe))


@router.patch("/{recipe_id}", response_model=SuccessResponse)
async def update_recipe_endpoint(
    recipe_id: UUID,
    payload: RecipeUpdate,
    ctx: TenantContext = Depends(require_permission(Permission.RECIPE_MANAGE)),
):
    recipe = await recipe_service.update_recipe(ctx.restaurant_id, recipe_id, payload)
    return ok(recipe_service.to_response(recipe))


@router.delete("/{recipe_id}", response_model=SuccessResponse)
async def delete_recipe_endpoint(
    recipe_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.RECIPE_DELETE))
):
    await recipe_service.delete_recipe(ctx.restaurant_id, recipe_id)
    return ok({"message": "Recipe deleted"})
