import logging
from typing import List, Optional
from uuid import UUID

from app.core.errors import NotFound
from app.models.menu import MenuCategory, MenuItem
from app.schemas.menu import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    CategoryWithItemsResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
)

log = logging.getLogger("app.services.menu")


async def _get_category(restaurant_id: UUID, category_id: UUID) -> MenuCategory:
    category = await MenuCategory.get_or_none(id=category_id, restaurant_id=restaurant_id)
    if not category:
        raise NotFound("Category not found")
    return category


async def list_categories(restaurant_id: UUID) -> List[CategoryWithItemsResponse]:
    """Active categories in display order, each with its active items."""
    categories = await MenuCategory.filter(restaurant_id=restaurant_id, is_active=True).order_by("sort_order", "name")
    items = await MenuItem.filter(restaurant_id=restaurant_id, is_active=True).order_by("name")

    by_category = {}
    for item in items:
        by_category.setdefault(item.category_id, []).append(MenuItemResponse.model_validate(item))

    return [
        CategoryWithItemsResponse(
            **CategoryResponse.model_validate(category).model_dump(),
            items=by_category.get(category.id, []),
        )
        for category in categories
    ]


async def create_category(restaurant_id: UUID, data: CategoryCreate) -> MenuCategory:
    return await MenuCategory.create(restaurant_id=restaurant_id, **data.model_dump())


async def update_category(restaurant_id: UUID, category_id: UUID, data: CategoryUpdate) -> MenuCategory:
    category = await _get_category(restaurant_id, category_id)
    category.update_from_dict(data.model_dump(exclude_unset=True))
    await category.save()
    return category


async def get_menu_item(restaurant_id: UUID, item_id: UUID) -> MenuItem:
    item = await MenuItem.get_or_none(id=item_id, restaurant_id=restaurant_id, is_active=True)
    if not item:
        raise NotFound("Menu item not found")
    return item


async def list_menu_items(
    restaurant_id: UUID, category_id: Optional[UUID] = None, is_available: Optional[bool] = None
) -> List[MenuItem]:
    query = MenuItem.filter(restaurant_id=restaurant_id, is_active=True)
    if category_id:
        query = query.filter(category_id=category_id)
    if is_available is not None:
        query = query.filter(is_available=is_available)
    return await query.order_by("name")


async def create_menu_item(restaurant_id: UUID, data: MenuItemCreate) -> MenuItem:
    if data.category_id:
        await _get_category(restaurant_id, data.category_id)
    item = await MenuItem.create(restaurant_id=restaurant_id, **data.model_dump())
    log.info(f"Menu item {item.name} created at {item.price}")
    return item


async def update_menu_item(restaurant_id: UUID, item_id: UUID, data: MenuItemUpdate) -> MenuItem:
    item = await get_menu_item(restaurant_id, item_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("category_id"):
        await _get_category(restaurant_id, changes["category_id"])
    item.update_from_dict(changes)
    await item.save()
    return item


async def toggle_availability(restaurant_id: UUID, item_id: UUID) -> MenuItem:
    """Flips the 86 flag; unavailable items cannot be ordered."""
    item = await get_menu_item(restaurant_id, item_id)
    item.is_available = not item.is_available
    await item.save(update_fields=["is_available", "updated_at"])
    log.info(f"Menu item {item.name} is now {'available' if item.is_available else 'unavailable'}")
    return item


async def delete_menu_item(restaurant_id: UUID, item_id: UUID) -> None:
    item = await get_menu_item(restaurant_id, item_id)
    item.is_active = False
    await item.save(update_fields=["is_active", "updated_at"])
