"""Recipe-driven stock consumption.

Selling a menu item consumes its recipe's ingredients:
``ingredient quantity x ordered quantity x portion size``. Deduction clamps
stock at zero and records both the nominal quantity and the quantity actually
removed; restoration credits back exactly what was removed, so a
deduct/restore pair always conserves stock.
"""
import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from app.core.money import ZERO, to_money, to_quantity
from app.models.inventory import InventoryItem, InventoryMovement, MovementType
from app.models.recipe import Recipe

log = logging.getLogger("app.services.stock")

# (menu_item_id, ordered quantity)
OrderLine = Tuple[UUID, int]


def order_reference(order_number: str) -> str:
    return f"ORDER:{order_number}"


def cancel_reference(order_number: str) -> str:
    return f"CANCEL:{order_number}"


def movement_cost(unit_cost: Optional[Decimal], quantity: Decimal) -> Optional[Decimal]:
    return to_money(unit_cost * quantity) if unit_cost is not None else None


def low_stock_payload(item: InventoryItem) -> Dict[str, Any]:
    return {
        "item": {"id": str(item.id), "name": item.name, "sku": item.sku},
        "current_stock": str(to_quantity(item.current_stock)),
        "min_stock": str(to_quantity(item.min_stock)),
        "unit": item.unit,
    }


async def required_quantities(restaurant_id: UUID, lines: Iterable[OrderLine], conn=None) -> Dict[UUID, Decimal]:
    """
    Aggregates the ingredient needs of the given order lines per inventory
    item. Menu items without a recipe need nothing.
    """
    needs: Dict[UUID, Decimal] = OrderedDict()
    for menu_item_id, quantity in lines:
        recipe = await Recipe.filter(
            restaurant_id=restaurant_id, menu_item_id=menu_item_id
        ).prefetch_related("ingredients").using_db(conn).first()
        if not recipe:
            continue
        for ingredient in recipe.ingredients:
            needed = ingredient.quantity * quantity * recipe.portion_size
            needs[ingredient.inventory_item_id] = needs.get(ingredient.inventory_item_id, ZERO) + needed
    return needs


async def deduct_stock_for_order(
    restaurant_id: UUID, order_number: str, lines: Iterable[OrderLine], user_id: Optional[str], conn
) -> List[InventoryItem]:
    """
    Consumes the ingredients of ``lines`` inside the caller's transaction and
    returns the items that ended at or below their reorder threshold.
    """
    needs = await required_quantities(restaurant_id, lines, conn)
    if not needs:
        return []

    items = await InventoryItem.filter(
        id__in=list(needs), restaurant_id=restaurant_id, is_active=True
    ).select_for_update().using_db(conn)

    low = []
    reference = order_reference(order_number)
    for item in items:
        nominal = to_quantity(needs[item.id])
        current = to_quantity(item.current_stock)
        applied = min(nominal, max(current, ZERO))

        item.current_stock = current - applied
        await item.save(update_fields=["current_stock", "updated_at"], using_db=conn)
        await InventoryMovement.create(
            restaurant_id=restaurant_id,
            item=item,
            type=MovementType.OUT,
            quantity=nominal,
            applied_quantity=applied,
            unit_cost=item.unit_cost,
            total_cost=movement_cost(item.unit_cost, nominal),
            reference=reference,
            notes=f"Auto-deduction for order {order_number}",
            created_by=user_id,
            using_db=conn,
        )
        if applied < nominal:
            log.warning(f"Stock of {item.name} clamped at zero for order {order_number} (short by {nominal - applied})")
        if item.is_low:
            log.warning(f"Low stock alert: {item.name} ({item.current_stock} {item.unit}) - min: {item.min_stock}")
            low.append(item)
    return low


async def restore_stock_for_order(
    restaurant_id: UUID, order_number: str, user_id: Optional[str], conn
) -> Dict[UUID, Decimal]:
    """
    Credits back the quantities actually removed for the order and records a
    RETURN movement per item. Returns the credited quantity per item.
    """
    if await InventoryMovement.filter(
        restaurant_id=restaurant_id, type=MovementType.RETURN, reference=cancel_reference(order_number)
    ).using_db(conn).exists():
        log.info(f"Stock for order {order_number} was already restored")
        return {}

    outs = await InventoryMovement.filter(
        restaurant_id=restaurant_id, type=MovementType.OUT, reference=order_reference(order_number)
    ).using_db(conn)

    credits: Dict[UUID, Decimal] = OrderedDict()
    for movement in outs:
        credits[movement.item_id] = credits.get(movement.item_id, ZERO) + movement.applied_quantity
    if not credits:
        return {}

    items = await InventoryItem.filter(id__in=list(credits), restaurant_id=restaurant_id).select_for_update().using_db(conn)
    restored = OrderedDict()
    for item in items:
        credit = to_quantity(credits[item.id])
        if credit <= ZERO:
            continue
        item.current_stock = to_quantity(item.current_stock) + credit
        await item.save(update_fields=["current_stock", "updated_at"], using_db=conn)
        await InventoryMovement.create(
            restaurant_id=restaurant_id,
            item=item,
            type=MovementType.RETURN,
            quantity=credit,
            applied_quantity=credit,
            unit_cost=item.unit_cost,
            total_cost=movement_cost(item.unit_cost, credit),
            reference=cancel_reference(order_number),
            notes=f"Stock restored from cancelled order {order_number}",
            created_by=user_id,
            using_db=conn,
        )
        restored[item.id] = credit
    return restored


async def check_stock_availability(restaurant_id: UUID, lines: Iterable[OrderLine]) -> Dict[str, Any]:
    """Read-only check of whether current stock covers the given order lines."""
    needs = await required_quantities(restaurant_id, lines)
    items = await InventoryItem.filter(id__in=list(needs), restaurant_id=restaurant_id) if needs else []

    shortages = []
    for item in items:
        needed = to_quantity(needs[item.id])
        if item.current_stock < needed:
            shortages.append({
                "item_id": str(item.id),
                "item_name": item.name,
                "needed": str(needed),
                "available": str(to_quantity(item.current_stock)),
                "unit": item.unit,
            })
    return {"available": not shortages, "shortages": shortages}
