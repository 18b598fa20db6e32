from uuid import uuid4

import pytest

from app.events import notifier as events
from app.models.restaurant import Restaurant
from tests.conftest import auth_headers


class TestAuthAndTenancy:

    @pytest.mark.asyncio
    async def test_missing_token_is_401(self, client):
        response = await client.get("/api/v1/orders/")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "authentication_required"
        assert body["error"] == "Authentication required"

    @pytest.mark.asyncio
    async def test_bad_signature_is_401(self, client, restaurant):
        headers = {"Authorization": "Bearer not-a-jwt"}
        response = await client.get("/api/v1/orders/", headers=headers)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_role_without_permission_is_403(self, client, restaurant, ndole):
        payload = {"items": [{"menu_item_id": str(ndole.id), "quantity": 1}]}

        response = await client.post("/api/v1/orders/", json=payload, headers=auth_headers("CASHIER", restaurant.id))

        assert response.status_code == 403
        assert response.json()["code"] == "permission_denied"

    @pytest.mark.asyncio
    async def test_inactive_restaurant_is_403(self, client, restaurant):
        restaurant.is_active = False
        await restaurant.save()

        response = await client.get("/api/v1/tables/", headers=auth_headers("MANAGER", restaurant.id))

        assert response.status_code == 403
        assert response.json()["code"] == "tenant_inactive"

    @pytest.mark.asyncio
    async def test_super_admin_targets_tenant_by_header(self, client, restaurant, table):
        headers = auth_headers("SUPER_ADMIN")
        headers["X-Restaurant-Id"] = str(restaurant.id)

        response = await client.get("/api/v1/tables/", headers=headers)

        assert response.status_code == 200
        assert [t["number"] for t in response.json()["data"]] == ["T1"]

    @pytest.mark.asyncio
    async def test_tenants_are_isolated(self, client, restaurant, table):
        other = await Restaurant.create(name="Other", slug="other")

        response = await client.get("/api/v1/tables/", headers=auth_headers("ADMIN", other.id))

        assert response.json()["data"] == []


class TestOrderRoutes:

    @pytest.mark.asyncio
    async def test_create_order_returns_201_with_totals(self, client, restaurant, ndole, poulet, notifier):
        payload = {
            "items": [
                {"menu_item_id": str(ndole.id), "quantity": 2},
                {"menu_item_id": str(poulet.id), "quantity": 1},
            ]
        }

        response = await client.post("/api/v1/orders/", json=payload, headers=auth_headers("WAITER", restaurant.id))

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["order_number"] == "ORD-000001"
        assert data["subtotal"] == "11500.00"
        assert data["total"] == "14863.75"
        assert data["user_id"] == "user-1"
        assert len(data["items"]) == 2
        assert events.ORDER_CREATED in notifier.names()

    @pytest.mark.asyncio
    async def test_empty_order_is_rejected(self, client, restaurant):
        response = await client.post("/api/v1/orders/", json={"items": []}, headers=auth_headers("WAITER", restaurant.id))

        assert response.status_code == 400
        assert response.json()["code"] == "item_unavailable"

    @pytest.mark.asyncio
    async def test_validation_error_envelope(self, client, restaurant):
        payload = {"items": [{"menu_item_id": "nope", "quantity": 0}]}

        response = await client.post("/api/v1/orders/", json=payload, headers=auth_headers("WAITER", restaurant.id))

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"
        assert response.json()["details"]

    @pytest.mark.asyncio
    async def test_unknown_order_is_404(self, client, restaurant):
        response = await client.get(f"/api/v1/orders/{uuid4()}", headers=auth_headers("WAITER", restaurant.id))

        assert response.status_code == 404
        assert response.json()["error"] == "Order not found"

    @pytest.mark.asyncio
    async def test_illegal_transition_is_409(self, client, restaurant, ndole):
        headers = auth_headers("WAITER", restaurant.id)
        created = await client.post(
            "/api/v1/orders/", json={"items": [{"menu_item_id": str(ndole.id), "quantity": 1}]}, headers=headers
        )
        order_id = created.json()["data"]["id"]

        response = await client.patch(f"/api/v1/orders/{order_id}/status", json={"status": "PAID"}, headers=headers)

        assert response.status_code == 409
        assert response.json()["code"] == "illegal_transition"

    @pytest.mark.asyncio
    async def test_pay_in_full(self, client, restaurant, ndole):
        created = await client.post(
            "/api/v1/orders/",
            json={"items": [{"menu_item_id": str(ndole.id), "quantity": 1}]},
            headers=auth_headers("WAITER", restaurant.id),
        )
        order = created.json()["data"]

        response = await client.post(
            "/api/v1/payments/",
            json={"order_id": order["id"], "amount": order["total"], "method": "CASH"},
            headers=auth_headers("CASHIER", restaurant.id),
        )

        assert response.status_code == 201
        assert response.json()["data"]["payment_status"] == "PAID"
        assert response.json()["data"]["remaining"] == "0.00"


class TestPublicRoutes:

    @pytest.mark.asyncio
    async def test_public_menu_hides_unavailable_items(self, client, restaurant, ndole, poulet):
        poulet.is_available = False
        await poulet.save()

        response = await client.get("/api/v1/digital-menu/public/chez-mama")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["restaurant"]["name"] == "Chez Mama"
        assert [i["name"] for i in data["categories"][0]["items"]] == ["Ndole"]

    @pytest.mark.asyncio
    async def test_unknown_slug_is_404(self, client, db):
        response = await client.get("/api/v1/digital-menu/public/nowhere")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_table_qr_code(self, client, restaurant, table):
        response = await client.get(
            f"/api/v1/digital-menu/qr/{table.id}",
            params={"base_url": "https://menu.example.com/"},
            headers=auth_headers("MANAGER", restaurant.id),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["menu_url"] == "https://menu.example.com/menu/chez-mama?table=T1"
        assert data["qr_code"].startswith("data:image/png;base64,")
