from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.core.permissions import Permission
from app.core.security import TenantContext, require_permission
from app.schemas.menu import CategoryCreate, CategoryResponse, CategoryUpdate, MenuItemCreate, MenuItemResponse, MenuItemUpdate
from app.schemas.response import ERROR_RESPONSES, SuccessResponse, ok
from app.services import menu_service

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("/categories", response_model=SuccessResponse)
async def list_categories_endpoint(ctx: TenantContext = Depends(require_permission(Permission.VIEW))):
    """Active categories in display order, with their items."""
    return ok(await menu_service.list_categories(ctx.restaurant_id))


@router.post("/categories", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_category_endpoint(
    payload: CategoryCreate, ctx: TenantContext = Depends(require_permission(Permission.MENU_MANAGE))
):
    category = await menu_service.create_category(ctx.restaurant_id, payload)
    return ok(CategoryResponse.model_validate(category))


@router.patch("/categories/{category_id}", response_model=SuccessResponse)
async def update_category_endpoint(
    category_id: UUID,
    payload: CategoryUpdate,
    ctx: TenantContext = Depends(require_permission(Permission.MENU_MANAGE)),
):
    category = await menu_service.update_category(ctx.restaurant_id, category_id, payload)
    return ok(CategoryResponse.model_validate(category))


@router.get("/items", response_model=SuccessResponse)
async def list_items_endpoint(
    category_id: Optional[UUID] = None,
    is_available: Optional[bool] = None,
    ctx: TenantContext = Depends(require_permission(Permission.VIEW)),
):
    items = await menu_service.list_menu_items(ctx.restaurant_id, category_id, is_available)
    return ok([MenuItemResponse.model_validate(i) for i in items])


@router.get("/items/{item_id}", response_model=SuccessResponse)
async def get_item_endpoint(item_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.VIEW))):
    return ok(MenuItemResponse.model_validate(await menu_service.get_menu_item(ctx.restaurant_id, item_id)))


@router.post("/items", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_item_endpoint(
    payload: MenuItemCreate, ctx: TenantContext = Depends(require_permission(Permission.MENU_MANAGE))
):
    item = await menu_service.create_menu_item(ctx.restaurant_id, payload)
    return ok(MenuItemResponse.model_validate(item))


@router.patch("/items/{item_id}", response_model=SuccessResponse)
async def update_item_endpoint(
    item_id: UUID,
    payload: MenuItemUpdate,
    ctx: TenantContext = Depends(require_permission(Permission.MENU_MANAGE)),
):
    """Updates price or availability. Existing order lines keep their price snapshot."""
    item = await menu_service.update_menu_item(ctx.restaurant_id, item_id, payload)
    return ok(MenuItemResponse.model_validate(item))


@router.patch("/items/{item_id}/availability", response_model=SuccessResponse)
async def toggle_availability_endpoint(
    item_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.MENU_AVAILABILITY))
):
    item = await menu_service.toggle_availability(ctx.restaurant_id, item_id)
    return ok(MenuItemResponse.model_validate(item))


@router.delete("/items/{item_id}", response_model=SuccessResponse)
async def delete_item_endpoint(item_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.MENU_MANAGE))):
    await menu_service.delete_menu_item(ctx.restaurant_id, item_id)
    return ok({"message": "Menu item deleted"})
