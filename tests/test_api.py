"""Tests for the HTTP surface."""

from conftest import PASSWORD, add_cart_line, auth_headers, make_coupon


class TestHealthCheck:
    def test_health(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["success"] is True


class TestAuth:
    def test_register_and_login(self, client):
        response = client.post("/auth/register", json={
            "name": "New Person",
            "username": "newbie",
            "email": "Newbie@Example.com",
            "password": PASSWORD,
        })
        assert response.status_code == 201
        body = response.json()
        assert body["statusCode"] == 201
        assert body["data"]["email"] == "newbie@example.com"
        assert body["data"]["role"] == "user"

        response = client.post("/auth/login", json={"login": "newbie@example.com", "password": PASSWORD})
        assert response.status_code == 200
        token = response.json()["data"]["access_token"]

        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["data"]["username"] == "newbie"

    def test_register_cannot_pick_admin_role(self, client):
        response = client.post("/auth/register", json={
            "name": "Sneaky",
            "username": "sneaky",
            "email": "sneaky@example.com",
            "password": PASSWORD,
            "role": "admin",
        })
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "role" in response.json()["errors"]

    def test_duplicate_username(self, client, buyer):
        response = client.post("/auth/register", json={
            "name": "Again",
            "username": "buyer",
            "email": "again@example.com",
            "password": PASSWORD,
        })
        assert response.status_code == 409

    def test_wrong_password(self, client, buyer):
        response = client.post("/auth/login", json={"login": "buyer", "password": "wrong-password"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    def test_logout_invalidates_token(self, client, buyer):
        headers = auth_headers(buyer)
        assert client.post("/auth/logout", headers=headers).status_code == 200
        assert client.get("/auth/me", headers=headers).status_code == 401

    def test_missing_token(self, client):
        response = client.get("/cart")
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "statusCode": 401,
            "message": "Access denied. No token provided or invalid format.",
        }


class TestCatalog:
    def test_product_detail_counts_views(self, client, catalog):
        product_id = catalog["product"].id
        client.get(f"/products/{product_id}")
        response = client.get(f"/products/{product_id}")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["view"] == 2
        assert data["variants"][0]["sku"] == "VID-1M"
        assert data["variants"][0]["price"] == 100.0

    def test_list_products_paginates(self, client, catalog):
        response = client.get("/products", params={"page": 1, "limit": 5})
        body = response.json()
        assert body["pagination"] == {"page": 1, "limit": 5, "total": 1, "totalPages": 1}

    def test_invalid_sort_field(self, client, catalog):
        response = client.get("/products", params={"sort": "password"})
        assert response.status_code == 400

    def test_create_product_requires_admin(self, client, catalog, buyer):
        payload = {"category_id": catalog["category"].id, "name": "Music", "slug": "music"}
        response = client.post("/products", json=payload, headers=auth_headers(buyer))
        assert response.status_code == 403

    def test_admin_creates_variant_with_normalised_sku(self, client, catalog, admin):
        payload = {"product_id": catalog["product"].id, "sku": " vid-12m ", "name": "12 months", "price": 900}
        response = client.post("/variants", json=payload, headers=auth_headers(admin))
        assert response.status_code == 201
        assert response.json()["data"]["sku"] == "VID-12M"

        response = client.post("/variants", json=payload, headers=auth_headers(admin))
        assert response.status_code == 409

    def test_null_category_name_keeps_current_value(self, client, catalog, admin):
        category_id = catalog["category"].id
        response = client.put(
            f"/categories/{category_id}", json={"name": None, "sort": 3}, headers=auth_headers(admin)
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Streaming"
        assert data["sort"] == 3

    def test_null_product_name_keeps_current_value(self, client, catalog, admin):
        product_id = catalog["product"].id
        response = client.put(
            f"/products/{product_id}",
            json={"name": None, "category_id": None, "description": "HD streaming"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Video Premium"
        assert data["category_id"] == catalog["category"].id
        assert data["description"] == "HD streaming"

    def test_null_variant_price_keeps_current_value(self, client, catalog, admin):
        variant_id = catalog["variant"].id
        response = client.put(
            f"/variants/{variant_id}",
            json={"price": None, "sku": None, "label": "best seller"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["price"] == 100.0
        assert data["sku"] == "VID-1M"


class TestCheckoutFlow:
    def test_cart_to_completed_order(self, client, catalog, buyer, admin, db):
        headers = auth_headers(buyer)
        make_coupon(db, "SAVE20", value="20", max_value="20")

        response = client.post("/cart", headers=headers, json={
            "product_id": catalog["product"].id,
            "variant_id": catalog["variant"].id,
            "quantity": 2,
        })
        assert response.status_code == 201

        summary = client.get("/cart", headers=headers).json()["data"]["summary"]
        assert summary == {"total_items": 2, "total_price": 180.0}

        response = client.post("/coupons/validate", headers=headers, json={"code": "SAVE20", "total_price": 180})
        assert response.status_code == 200
        assert response.json()["data"]["final_price"] == 160.0

        response = client.post("/transactions/checkout", headers=headers, json={
            "buyer": "Jane Doe",
            "contact": "jane@example.com",
            "coupon_code": "SAVE20",
        })
        assert response.status_code == 201
        result = response.json()["data"]
        assert result["total_price"] == 180.0
        assert result["discount"] == 20.0
        assert result["final_amount"] == 160.0
        transaction_id = result["transaction_id"]

        assert client.get("/cart", headers=headers).json()["data"]["items"] == []

        response = client.get(f"/transactions/invoice/{result['invoice']}", headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["id"] == transaction_id

        response = client.put(
            f"/transactions/{transaction_id}/status", headers=headers, json={"status": "paid"}
        )
        assert response.status_code == 403

        response = client.put(
            f"/transactions/{transaction_id}/status", headers=auth_headers(admin), json={"status": "completed"}
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "completed"

        product = client.get(f"/products/{catalog['product'].id}").json()["data"]
        assert product["sold"] == 2

    def test_checkout_with_empty_cart(self, client, catalog, buyer):
        response = client.post("/transactions/checkout", headers=auth_headers(buyer), json={
            "buyer": "Jane Doe",
            "contact": "jane@example.com",
        })
        assert response.status_code == 400
        assert response.json()["message"] == "No items in cart selected for checkout"

    def test_checkout_requires_buyer_details(self, client, catalog, buyer):
        response = client.post("/transactions/checkout", headers=auth_headers(buyer), json={"buyer": "Jane"})
        assert response.status_code == 400
        assert "contact" in response.json()["errors"]

    def test_validate_unknown_coupon_is_strict(self, client, buyer):
        response = client.post(
            "/coupons/validate", headers=auth_headers(buyer), json={"code": "NOPE", "total_price": 50}
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Coupon not found or expired"

    def test_stranger_cannot_cancel(self, client, catalog, buyer, other_buyer, db):
        add_cart_line(db, buyer, catalog["variant"], 1)
        response = client.post("/transactions/checkout", headers=auth_headers(buyer), json={
            "buyer": "Jane Doe",
            "contact": "jane@example.com",
        })
        transaction_id = response.json()["data"]["transaction_id"]

        response = client.post(f"/transactions/{transaction_id}/cancel", headers=auth_headers(other_buyer))
        assert response.status_code == 403

        response = client.post(f"/transactions/{transaction_id}/cancel", headers=auth_headers(buyer))
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"

    def test_my_transactions(self, client, catalog, buyer):
        headers = auth_headers(buyer)
        client.post("/cart", headers=headers, json={
            "product_id": catalog["product"].id,
            "variant_id": catalog["variant"].id,
            "quantity": 1,
        })
        client.post("/transactions/checkout", headers=headers, json={"buyer": "Jane", "contact": "jane@x.io"})

        body = client.get("/transactions/my-transactions", headers=headers).json()
        assert body["pagination"]["total"] == 1
        assert body["data"][0]["amount"] == 90.0


class TestDataStocks:
    def test_bulk_create_and_count(self, client, catalog, admin):
        headers = auth_headers(admin)
        variant_id = catalog["variant"].id
        response = client.post("/data-stocks/bulk", headers=headers, json={
            "variant_id": variant_id,
            "stocks": [
                {"expired_license": "key-1"},
                {"expired_license": "key-2"},
                {"expired_license": "key-3", "status": "locked"},
            ],
        })
        assert response.status_code == 201
        assert response.json()["data"]["count"] == 3

        counts = client.get(f"/data-stocks/variant/{variant_id}/count", headers=headers).json()["data"]
        assert counts == {
            "total_stock": 3,
            "active_stock": 2,
            "sold_stock": 0,
            "invalid_stock": 0,
            "locked_stock": 1,
        }

    def test_variant_with_stock_cannot_be_deleted(self, client, catalog, admin):
        headers = auth_headers(admin)
        variant_id = catalog["variant"].id
        client.post("/data-stocks", headers=headers, json={"variant_id": variant_id})
        response = client.delete(f"/variants/{variant_id}", headers=headers)
        assert response.status_code == 400
