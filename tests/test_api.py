"""HTTP surface: envelope, auth and routing"""

from decimal import Decimal
import uuid

import pytest

SHIPPING = {
    "full_name": "Dana Reyes",
    "phone": "+1 555 010 2030",
    "street": "12 Orchard Lane",
    "city": "Portland",
    "state": "OR",
    "zip_code": "97201",
}

@pytest.fixture
def headers(auth_headers, user_id):
    return auth_headers(user_id)

@pytest.fixture
def admin_headers(auth_headers):
    return auth_headers(uuid.uuid4(), role="admin")

async def checkout(client, headers, product_id, quantity=1):
    response = await client.post(
        "/api/v1/cart/add",
        json={"product_id": str(product_id), "quantity": quantity},
        headers=headers,
    )
    assert response.status_code == 200
    response = await client.post(
        "/api/v1/orders",
        json={"shipping_address": SHIPPING, "payment_method": "cod"},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["data"]

async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "healthy"

async def test_missing_token(client):
    response = await client.get("/api/v1/cart")
    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "message": "Not authorized, no token",
        "code": "UNAUTHORIZED",
    }

async def test_invalid_token(client):
    response = await client.get("/api/v1/cart", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_TOKEN"

async def test_unknown_route_uses_envelope(client):
    response = await client.get("/api/v1/nowhere")
    assert response.status_code == 404
    assert response.json()["success"] is False

async def test_cart_flow(client, headers, make_product):
    product = await make_product(price=Decimal("12.50"), stock=4)

    response = await client.get("/api/v1/cart", headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["items"] == []

    response = await client.post(
        "/api/v1/cart/add",
        json={"product_id": str(product.id), "quantity": 2},
        headers=headers,
    )
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Item added to cart"
    assert body["data"]["subtotal"] == 25.0
    assert body["data"]["delivery_fee"] == 4.99
    assert body["data"]["items"][0]["product"]["in_stock"] is True

    response = await client.put(
        "/api/v1/cart/update",
        json={"product_id": str(product.id), "quantity": 0},
        headers=headers,
    )
    assert response.json()["data"]["items"] == []

async def test_cart_count(client, headers, make_product):
    response = await client.get("/api/v1/cart/count", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"] == {"count": 0}

    apples = await make_product(name="Apples", stock=5)
    pears = await make_product(name="Pears", stock=5)
    for product, quantity in ((apples, 2), (pears, 3)):
        await client.post(
            "/api/v1/cart/add",
            json={"product_id": str(product.id), "quantity": quantity},
            headers=headers,
        )

    response = await client.get("/api/v1/cart/count", headers=headers)
    assert response.json()["data"] == {"count": 5}

async def test_cart_count_requires_token(client):
    response = await client.get("/api/v1/cart/count")
    assert response.status_code == 401

async def test_add_beyond_stock(client, headers, make_product):
    product = await make_product(name="Bread", stock=1)

    response = await client.post(
        "/api/v1/cart/add",
        json={"product_id": str(product.id), "quantity": 2},
        headers=headers,
    )

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "INSUFFICIENT_STOCK"
    assert body["data"]["available"] == 1
    assert "Bread" in body["message"]

async def test_add_rejects_zero_quantity(client, headers, make_product):
    product = await make_product()
    response = await client.post(
        "/api/v1/cart/add",
        json={"product_id": str(product.id), "quantity": 0},
        headers=headers,
    )
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"

async def test_coupon_endpoints(client, headers, make_product):
    product = await make_product(price=Decimal("20"), stock=5)
    await client.post("/api/v1/cart/add", json={"product_id": str(product.id), "quantity": 2}, headers=headers)

    response = await client.post("/api/v1/cart/apply-coupon", json={"code": "SAVE10"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "COUPON_MINIMUM_NOT_MET"

    response = await client.post("/api/v1/cart/apply-coupon", json={"code": "FRESH20"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"] == {"coupon_code": "FRESH20", "discount": 8.0}

    response = await client.delete("/api/v1/cart/remove-coupon", headers=headers)
    assert response.json()["data"]["coupon_code"] is None

async def test_place_order(client, headers, make_product, stock_of):
    product = await make_product(price=Decimal("30"), stock=5)

    data = await checkout(client, headers, product.id, quantity=2)

    assert data["status"] == "pending"
    assert data["total_amount"] == 64.8
    assert data["order_number"].startswith("FC-")
    assert await stock_of(product.id) == 3

    response = await client.get(f"/api/v1/orders/{data['id']}", headers=headers)
    order = response.json()["data"]
    assert order["payment_method"] == "cod"
    assert order["shipping_address"]["country"] == "USA"
    assert order["delivery_progress"] == 10
    assert [entry["status"] for entry in order["status_history"]] == ["pending"]

async def test_place_order_with_empty_cart(client, headers):
    response = await client.post(
        "/api/v1/orders",
        json={"shipping_address": SHIPPING, "payment_method": "cod"},
        headers=headers,
    )
    assert response.status_code == 400
    assert response.json()["code"] == "EMPTY_CART"

async def test_place_order_requires_address_fields(client, headers):
    address = {key: value for key, value in SHIPPING.items() if key != "city"}
    response = await client.post(
        "/api/v1/orders",
        json={"shipping_address": address, "payment_method": "cod"},
        headers=headers,
    )
    assert response.status_code == 422

async def test_my_orders_pagination(client, headers, make_product):
    product = await make_product(stock=10)
    await checkout(client, headers, product.id)
    await checkout(client, headers, product.id)

    response = await client.get("/api/v1/orders/my?page=2&limit=1", headers=headers)

    body = response.json()["data"]
    assert len(body["orders"]) == 1
    assert body["pagination"] == {"current_page": 2, "total_pages": 2, "total_orders": 2}

async def test_admin_routes_require_admin(client, headers, make_product):
    product = await make_product()
    data = await checkout(client, headers, product.id)

    response = await client.get("/api/v1/orders/all", headers=headers)
    assert response.status_code == 403

    response = await client.put(
        f"/api/v1/orders/{data['id']}/status",
        json={"status": "confirmed"},
        headers=headers,
    )
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"

async def test_admin_status_updates(client, headers, admin_headers, make_product):
    product = await make_product()
    data = await checkout(client, headers, product.id)
    url = f"/api/v1/orders/{data['id']}/status"

    response = await client.put(url, json={"status": "delivered"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_TRANSITION"

    response = await client.put(url, json={"status": "confirmed", "note": "Packed"}, headers=admin_headers)
    assert response.status_code == 200
    order = response.json()["data"]
    assert order["status"] == "confirmed"
    assert order["status_history"][-1]["note"] == "Packed"

    response = await client.get("/api/v1/orders/all?status=confirmed&sort_by=total_amount", headers=admin_headers)
    assert response.json()["data"]["pagination"]["total_orders"] == 1

async def test_admin_list_rejects_unknown_sort(client, admin_headers):
    response = await client.get("/api/v1/orders/all?sort_by=user_id", headers=admin_headers)
    assert response.status_code == 422

async def test_other_users_order_is_forbidden(client, headers, auth_headers, make_product):
    product = await make_product()
    data = await checkout(client, headers, product.id)
    stranger = auth_headers(uuid.uuid4())

    response = await client.get(f"/api/v1/orders/{data['id']}", headers=stranger)
    assert response.status_code == 403

    response = await client.post(f"/api/v1/orders/{data['id']}/cancel", json={}, headers=stranger)
    assert response.status_code == 403

async def test_cancel_and_reorder(client, headers, make_product, stock_of):
    product = await make_product(stock=5)
    data = await checkout(client, headers, product.id, quantity=2)

    response = await client.post(
        f"/api/v1/orders/{data['id']}/cancel",
        json={"reason": "Wrong address"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "cancelled"
    assert await stock_of(product.id) == 5

    response = await client.post(f"/api/v1/orders/{data['id']}/cancel", headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "UNCANCELLABLE_STATE"

    response = await client.post(f"/api/v1/orders/{data['id']}/reorder", headers=headers)
    body = response.json()
    assert body["message"] == "1 item(s) added to cart"
    assert body["data"] == {"added_count": 1, "unavailable_items": []}

async def test_unknown_order(client, headers):
    response = await client.get(f"/api/v1/orders/{uuid.uuid4()}", headers=headers)
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"
