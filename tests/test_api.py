from datetime import timedelta

import pytest

from conftest import auth_header, make_token

SHIPPING = {"fullName": "Alice", "address": "1 Main St", "city": "Springfield", "zipCode": "12345"}


@pytest.fixture
def product_id(client, admin_headers):
    resp = client.post("/products", json={"name": "Mug", "price": 10.0, "stock": 5}, headers=admin_headers)
    assert resp.status_code == 200
    return resp.json()["product"]["id"]


@pytest.fixture
def order_id(client, user_headers, product_id):
    client.post("/cart", json={"productId": product_id, "quantity": 2}, headers=user_headers)
    resp = client.post(
        "/orders",
        json={"shippingAddress": SHIPPING, "paymentMethod": "credit_card"},
        headers=user_headers,
    )
    assert resp.status_code == 200
    return resp.json()["order"]["id"]


def test_root(client):
    assert client.get("/").json()["status"] == "ok"


def test_health(client):
    body = client.get("/test").json()
    assert body["backend"] == "✅ Running"
    assert body["database"] == "✅ Connected & Working"


class TestAuth:
    def test_missing_token(self, client):
        resp = client.get("/cart")
        assert resp.status_code == 401

    def test_garbage_token(self, client):
        resp = client.get("/cart", headers=auth_header("not-a-jwt"))
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Could not validate credentials"

    def test_expired_token(self, client):
        token = make_token("alice", expires_in=timedelta(minutes=-5))
        resp = client.get("/cart", headers=auth_header(token))
        assert resp.status_code == 401

    def test_admin_route_forbidden_for_user(self, client, user_headers):
        resp = client.post("/products", json={"name": "X", "price": 1}, headers=user_headers)
        assert resp.status_code == 403

    def test_profile_created_on_first_request(self, client, user_headers, store):
        client.get("/cart", headers=user_headers)
        assert store.get("user:alice")["role"] == "user"


class TestCatalog:
    def test_public_listing(self, client, product_id):
        resp = client.get("/products")
        assert [p["id"] for p in resp.json()["products"]] == [product_id]

    def test_get_missing_product(self, client):
        resp = client.get("/products/nope")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Product not found"}

    def test_update_and_delete(self, client, admin_headers, product_id):
        resp = client.put(f"/products/{product_id}", json={"price": 12.5}, headers=admin_headers)
        assert resp.json()["product"]["price"] == 12.5
        assert resp.json()["product"]["name"] == "Mug"

        assert client.delete(f"/products/{product_id}", headers=admin_headers).json() == {"success": True}
        assert client.get(f"/products/{product_id}").status_code == 404

    def test_categories(self, client, admin_headers, user_headers):
        assert client.post("/categories", json={"name": "Kitchen"}, headers=user_headers).status_code == 403
        client.post("/categories", json={"name": "Kitchen"}, headers=admin_headers)
        names = [c["name"] for c in client.get("/categories").json()["categories"]]
        assert names == ["Kitchen"]

    def test_seed_once(self, client, admin_headers):
        assert client.post("/seed", headers=admin_headers).json()["success"] is True
        assert client.post("/seed", headers=admin_headers).json() == {"message": "Database already seeded"}
        assert len(client.get("/products").json()["products"]) == 8
        assert len(client.get("/categories").json()["categories"]) == 4


class TestCart:
    def test_add_update_remove(self, client, user_headers, product_id):
        client.post("/cart", json={"productId": product_id, "quantity": 1}, headers=user_headers)
        client.post("/cart", json={"productId": product_id, "quantity": 2}, headers=user_headers)

        cart = client.get("/cart", headers=user_headers).json()["cart"]
        assert len(cart["items"]) == 1
        assert cart["items"][0]["quantity"] == 3
        assert cart["total"] == 30.0

        client.put(f"/cart/{product_id}", json={"quantity": 0}, headers=user_headers)
        assert client.get("/cart", headers=user_headers).json()["cart"]["items"] == []

        resp = client.delete(f"/cart/{product_id}", headers=user_headers)
        assert resp.status_code == 200

    def test_update_missing_line_succeeds(self, client, user_headers):
        resp = client.put("/cart/nothing", json={"quantity": 3}, headers=user_headers)
        assert resp.status_code == 200
        assert resp.json()["success"] is True

    def test_add_unknown_product(self, client, user_headers):
        resp = client.post("/cart", json={"productId": "nope", "quantity": 1}, headers=user_headers)
        assert resp.status_code == 404

    def test_add_zero_quantity_rejected(self, client, user_headers, product_id):
        resp = client.post("/cart", json={"productId": product_id, "quantity": 0}, headers=user_headers)
        assert resp.status_code == 422

    def test_malformed_quantity_is_validation_error(self, client, user_headers, product_id):
        resp = client.put(f"/cart/{product_id}", json={"quantity": "lots"}, headers=user_headers)
        assert resp.status_code == 422
        assert resp.json()["detail"][0]["loc"] == ["body", "quantity"]


class TestOrders:
    def test_checkout_scenario(self, client, user_headers, order_id):
        order = client.get(f"/orders/{order_id}", headers=user_headers).json()["order"]
        assert order["total"] == 20.0
        assert order["status"] == "pending"
        assert order["payment_status"] == "pending"
        assert order["shipping_address"]["zip_code"] == "12345"
        assert client.get("/cart", headers=user_headers).json()["cart"]["items"] == []

    def test_empty_cart_checkout(self, client, user_headers):
        resp = client.post("/orders", json={"shippingAddress": SHIPPING}, headers=user_headers)
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Cart is empty"}

    def test_listing_scoped_by_role(self, client, user_headers, other_headers, admin_headers, order_id):
        assert [o["id"] for o in client.get("/orders", headers=user_headers).json()["orders"]] == [order_id]
        assert client.get("/orders", headers=other_headers).json()["orders"] == []
        assert [o["id"] for o in client.get("/orders", headers=admin_headers).json()["orders"]] == [order_id]

    def test_other_user_cannot_view(self, client, other_headers, order_id):
        assert client.get(f"/orders/{order_id}", headers=other_headers).status_code == 403

    def test_user_cannot_advance(self, client, user_headers, order_id):
        resp = client.put(f"/orders/{order_id}", json={"status": "shipped"}, headers=user_headers)
        assert resp.status_code == 403
        order = client.get(f"/orders/{order_id}", headers=user_headers).json()["order"]
        assert order["status"] == "pending"

    def test_cancel_then_admin_blocked(self, client, user_headers, admin_headers, order_id):
        resp = client.put(f"/orders/{order_id}", json={"status": "cancelled"}, headers=user_headers)
        assert resp.json()["order"]["status"] == "cancelled"

        resp = client.put(f"/orders/{order_id}", json={"status": "processing"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_admin_lifecycle(self, client, admin_headers, order_id):
        for status in ("processing", "shipped", "delivered"):
            resp = client.put(f"/orders/{order_id}", json={"status": status}, headers=admin_headers)
            assert resp.status_code == 200
        resp = client.put(f"/orders/{order_id}", json={"status": "cancelled"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_unknown_status_value(self, client, admin_headers, order_id):
        resp = client.put(f"/orders/{order_id}", json={"status": "lost"}, headers=admin_headers)
        assert resp.status_code == 422

    def test_missing_order(self, client, admin_headers):
        resp = client.put("/orders/nope", json={"status": "cancelled"}, headers=admin_headers)
        assert resp.status_code == 404


class TestPayments:
    def test_pay_and_verify(self, client, user_headers, other_headers, order_id):
        resp = client.post(
            "/payments",
            json={"orderId": order_id, "paymentDetails": {"method": "credit_card", "cardNumber": "4242424242424242"}},
            headers=user_headers,
        )
        body = resp.json()
        assert body["order"]["payment_status"] == "completed"
        assert body["order"]["status"] == "processing"
        assert body["payment"]["payment_details"]["cardNumber"] == "**** 4242"

        payment_id = body["payment"]["id"]
        resp = client.post("/payments/verify", json={"paymentId": payment_id}, headers=user_headers)
        assert resp.json()["payment"]["amount"] == 20.0
        resp = client.post("/payments/verify", json={"paymentId": payment_id}, headers=other_headers)
        assert resp.status_code == 403

    def test_non_owner_cannot_pay(self, client, other_headers, order_id):
        resp = client.post("/payments", json={"orderId": order_id}, headers=other_headers)
        assert resp.status_code == 403

    def test_missing_order(self, client, user_headers):
        resp = client.post("/payments", json={"orderId": "nope"}, headers=user_headers)
        assert resp.status_code == 404


class TestProfile:
    def test_role_cannot_be_changed(self, client, user_headers, store):
        resp = client.put("/profile", json={"name": "Alice A", "role": "admin", "id": "x"}, headers=user_headers)
        profile = resp.json()["profile"]
        assert profile["name"] == "Alice A"
        assert profile["role"] == "user"
        assert profile["id"] == "alice"
        assert client.get("/admin/stats", headers=user_headers).status_code == 403

    def test_get_profile(self, client, user_headers):
        profile = client.get("/profile", headers=user_headers).json()["profile"]
        assert profile["email"] == "alice@example.com"


class TestAdminStats:
    def test_revenue_counts_only_paid_orders(self, client, user_headers, admin_headers, product_id, order_id):
        client.post("/cart", json={"productId": product_id, "quantity": 1}, headers=user_headers)
        client.post("/orders", json={"shippingAddress": SHIPPING}, headers=user_headers)
        client.post("/payments", json={"orderId": order_id}, headers=user_headers)

        stats = client.get("/admin/stats", headers=admin_headers).json()["stats"]

        assert stats["total_orders"] == 2
        assert stats["total_products"] == 1
        assert stats["total_users"] == 2
        assert stats["total_revenue"] == 20.0
