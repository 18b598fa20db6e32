"""Public digital menu and the table QR codes that link to it."""
import base64
import logging
from io import BytesIO
from typing import List, Optional
from uuid import UUID

import qrcode

from app.core.config import PUBLIC_MENU_BASE_URL
from app.core.errors import NotFound
from app.models.menu import MenuCategory, MenuItem
from app.models.restaurant import Restaurant
from app.models.table import Table
from app.schemas.menu import PublicCategory, PublicMenuItem, PublicMenuResponse, PublicRestaurant, TableQRCode

log = logging.getLogger("app.services.digital_menu")

QR_BOX_SIZE = 10
QR_BORDER = 2


async def _restaurant_by_slug(slug: str) -> Restaurant:
    restaurant = await Restaurant.get_or_none(slug=slug, is_active=True)
    if not restaurant:
        raise NotFound("Restaurant not found")
    return restaurant


async def get_public_menu(slug: str) -> PublicMenuResponse:
    """Active categories with the items guests can order right now."""
    restaurant = await _restaurant_by_slug(slug)
    categories = await MenuCategory.filter(restaurant_id=restaurant.id, is_active=True).order_by("sort_order", "name")
    items = await MenuItem.filter(restaurant_id=restaurant.id, is_active=True, is_available=True).order_by("name")

    by_category = {}
    for item in items:
        by_category.setdefault(item.category_id, []).append(PublicMenuItem.model_validate(item))

    return PublicMenuResponse(
        restaurant=PublicRestaurant.model_validate(restaurant),
        categories=[
            PublicCategory(
                id=category.id,
                name=category.name,
                description=category.description,
                image=category.image,
                items=by_category.get(category.id, []),
            )
            for category in categories
        ],
    )


async def check_item_availability(slug: str, item_id: UUID) -> PublicMenuItem:
    restaurant = await _restaurant_by_slug(slug)
    item = await MenuItem.get_or_none(id=item_id, restaurant_id=restaurant.id, is_active=True)
    if not item:
        raise NotFound("Item not found")
    return PublicMenuItem.model_validate(item)


def menu_url(slug: str, table_number: str, base_url: Optional[str] = None) -> str:
    return f"{(base_url or PUBLIC_MENU_BASE_URL).rstrip('/')}/menu/{slug}?table={table_number}"


def qr_data_url(data: str) -> str:
    """Renders ``data`` as a PNG QR code and returns it as a data URL."""
    qr = qrcode.QRCode(box_size=QR_BOX_SIZE, border=QR_BORDER)
    qr.add_data(data)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")

    output = BytesIO()
    image.save(output, format="PNG")
    return "data:image/png;base64," + base64.b64encode(output.getvalue()).decode("ascii")


def _table_qr(restaurant: Restaurant, table: Table, base_url: Optional[str]) -> TableQRCode:
    url = menu_url(restaurant.slug, table.number, base_url)
    return TableQRCode(
        table_id=table.id,
        table_number=table.number,
        zone=table.zone,
        menu_url=url,
        qr_code=qr_data_url(url),
    )


async def generate_table_qr(restaurant: Restaurant, table_id: UUID, base_url: Optional[str] = None) -> TableQRCode:
    table = await Table.get_or_none(id=table_id, restaurant_id=restaurant.id)
    if not table:
        raise NotFound("Table not found")
    return _table_qr(restaurant, table, base_url)


async def generate_all_table_qrs(restaurant: Restaurant, base_url: Optional[str] = None) -> List[TableQRCode]:
    tables = await Table.filter(restaurant_id=restaurant.id, is_active=True).order_by("number")
    log.info(f"Generating {len(tables)} table QR code(s) for {restaurant.slug}")
    return [_table_qr(restaurant, table, base_url) for table in tables]
