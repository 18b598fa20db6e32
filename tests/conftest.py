import os
from decimal import Decimal

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RUN_OUTBOX_POLLER", "false")

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.config import JWT_ALGORITHM, JWT_SECRET
from app.core.db import close_db, init_db
from app.models.inventory import InventoryItem
from app.models.menu import MenuCategory, MenuItem
from app.models.recipe import Recipe, RecipeIngredient
from app.models.restaurant import Restaurant
from app.models.table import Table


class RecordingNotifier:
    """Stands in for the WebSocket manager and keeps every emitted event."""

    def __init__(self):
        self.events = []

    async def emit(self, restaurant_id, event, payload):
        self.events.append((restaurant_id, event, payload))

    def names(self):
        return [event for _, event, _ in self.events]

    def of(self, event):
        return [payload for _, name, payload in self.events if name == event]


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory SQLite schema for every test."""
    await init_db("sqlite://:memory:")
    yield
    await close_db()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest_asyncio.fixture
async def restaurant(db):
    return await Restaurant.create(
        name="Chez Mama",
        slug="chez-mama",
        currency="FCFA",
        tax_rate=Decimal("19.25"),
        service_charge=Decimal("10"),
    )


@pytest_asyncio.fixture
async def category(restaurant):
    return await MenuCategory.create(restaurant=restaurant, name="Plats", sort_order=1)


@pytest_asyncio.fixture
async def ndole(restaurant, category):
    return await MenuItem.create(restaurant=restaurant, category=category, name="Ndole", price=Decimal("3500"))


@pytest_asyncio.fixture
async def poulet(restaurant, category):
    return await MenuItem.create(restaurant=restaurant, category=category, name="Poulet DG", price=Decimal("4500"))


@pytest_asyncio.fixture
async def table(restaurant):
    return await Table.create(restaurant=restaurant, number="T1", capacity=4, zone="Terrasse")


@pytest_asyncio.fixture
async def plantain(restaurant):
    return await InventoryItem.create(
        restaurant=restaurant,
        name="Plantain",
        sku="PLT",
        unit="pcs",
        current_stock=Decimal("5"),
        min_stock=Decimal("5"),
        unit_cost=Decimal("100"),
    )


@pytest_asyncio.fixture
async def ndole_recipe(restaurant, ndole, plantain):
    """One plantain per portion of Ndole."""
    recipe = await Recipe.create(restaurant=restaurant, menu_item=ndole, portion_size=Decimal("1"))
    await RecipeIngredient.create(recipe=recipe, inventory_item=plantain, quantity=Decimal("1"), unit="pcs")
    return recipe


def make_token(role="ADMIN", restaurant_id=None, user_id="user-1", email="staff@example.com"):
    claims = {"id": user_id, "role": role, "email": email}
    if restaurant_id is not None:
        claims["restaurantId"] = str(restaurant_id)
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)


def auth_headers(role="ADMIN", restaurant_id=None, **kwargs):
    return {"Authorization": f"Bearer {make_token(role, restaurant_id, **kwargs)}"}


@pytest_asyncio.fixture
async def client(db, notifier):
    """HTTP client bound to the app, with the recording notifier installed."""
    from app.main import app

    previous = app.state.notifier
    app.state.notifier = notifier
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.state.notifier = previous
