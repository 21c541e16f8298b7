"""API tests for the product catalog."""


class TestProductCatalog:

    async def test_public_listing(self, client, catalog):
        response = await client.get("/api/v1/products")

        assert response.status_code == 200
        body = response.json()
        assert body["pagination"] == {"current": 1, "pages": 1, "total": 2}
        assert {p["name"] for p in body["data"]} == {"Wireless Mouse", "USB-C Cable"}

    async def test_create_sets_id_and_price(self, client, catalog):
        mouse = catalog["mouse"]

        assert mouse["id"].startswith("P")
        assert mouse["price"] == 25.99
        assert mouse["stock"] == 100
        assert mouse["is_active"] is True
        assert mouse["is_low_stock"] is False

    async def test_create_requires_auth(self, client):
        response = await client.post(
            "/api/v1/products",
            json={"name": "Thing", "price": "1.00", "category": "Misc"},
        )
        assert response.status_code == 401

    async def test_duplicate_sku(self, client, staff_headers):
        payload = {"name": "Thing", "price": "1.00", "category": "Misc", "sku": "SKU-1"}
        first = await client.post("/api/v1/products", json=payload, headers=staff_headers)
        second = await client.post("/api/v1/products", json=payload, headers=staff_headers)

        assert first.status_code == 201
        assert second.status_code == 409

    async def test_negative_price_rejected(self, client, staff_headers):
        response = await client.post(
            "/api/v1/products",
            json={"name": "Thing", "price": "-1.00", "category": "Misc"},
            headers=staff_headers,
        )
        assert response.status_code == 422

    async def test_filters_and_sort(self, client, catalog):
        response = await client.get("/api/v1/products", params={"sort": "price_asc"})
        assert [p["name"] for p in response.json()["data"]] == ["USB-C Cable", "Wireless Mouse"]

        response = await client.get("/api/v1/products", params={"min_price": "20"})
        assert [p["name"] for p in response.json()["data"]] == ["Wireless Mouse"]

        response = await client.get("/api/v1/products", params={"search": "cable"})
        assert [p["name"] for p in response.json()["data"]] == ["USB-C Cable"]

        response = await client.get("/api/v1/products", params={"brand": "TechCorp"})
        assert [p["name"] for p in response.json()["data"]] == ["Wireless Mouse"]

    async def test_categories(self, client, catalog):
        response = await client.get("/api/v1/products/categories")

        assert response.status_code == 200
        assert response.json()["data"] == ["Electronics"]

    async def test_get_unknown_product(self, client):
        response = await client.get("/api/v1/products/PRD-MISSING")

        assert response.status_code == 404
        assert response.json()["message"] == "Product not found"

    async def test_update(self, client, catalog):
        response = await client.put(
            f"/api/v1/products/{catalog['mouse']['id']}",
            json={"price": "27.50", "description": "Now with more buttons"},
            headers=catalog["headers"],
        )

        assert response.status_code == 200
        assert response.json()["data"]["price"] == 27.5
        assert response.json()["data"]["name"] == "Wireless Mouse"

    async def test_soft_delete(self, client, catalog):
        product_id = catalog["mouse"]["id"]
        response = await client.delete(f"/api/v1/products/{product_id}", headers=catalog["headers"])

        assert response.status_code == 200
        assert response.json()["message"] == "Product deactivated successfully"

        listing = await client.get("/api/v1/products")
        assert product_id not in [p["id"] for p in listing.json()["data"]]

        # still readable directly
        direct = await client.get(f"/api/v1/products/{product_id}")
        assert direct.status_code == 200
        assert direct.json()["data"]["is_active"] is False


class TestStockUpdates:

    async def _stock(self, client, catalog, payload):
        return await client.put(
            f"/api/v1/products/{catalog['mouse']['id']}/stock",
            json=payload,
            headers=catalog["headers"],
        )

    async def test_set(self, client, catalog):
        response = await self._stock(client, catalog, {"stock": 7, "operation": "set"})

        assert response.status_code == 200
        assert response.json()["data"]["stock"] == 7
        assert response.json()["data"]["is_low_stock"] is True

    async def test_add(self, client, catalog):
        response = await self._stock(client, catalog, {"stock": 5, "operation": "add"})
        assert response.json()["data"]["stock"] == 105

    async def test_subtract_clamps_at_zero(self, client, catalog):
        response = await self._stock(client, catalog, {"stock": 500, "operation": "subtract"})
        assert response.json()["data"]["stock"] == 0

    async def test_low_stock_report(self, client, catalog):
        await self._stock(client, catalog, {"stock": 3, "operation": "set"})

        response = await client.get("/api/v1/products/admin/low-stock", headers=catalog["headers"])

        assert response.status_code == 200
        assert [p["id"] for p in response.json()["data"]] == [catalog["mouse"]["id"]]

    async def test_stats(self, client, catalog):
        response = await client.get("/api/v1/products/admin/stats", headers=catalog["headers"])

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["overview"]["total_products"] == 2
        assert data["overview"]["total_stock"] == 300
        assert data["category_breakdown"][0]["category"] == "Electronics"
        assert data["category_breakdown"][0]["count"] == 2
