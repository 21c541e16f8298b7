"""API tests for customers."""


NEW_CUSTOMER = {
    "name": "Jane Smith",
    "email": "Jane.Smith@example.com",
    "membership": "silver",
}


class TestCustomers:

    async def test_create(self, client, staff_headers):
        response = await client.post("/api/v1/customers", json=NEW_CUSTOMER, headers=staff_headers)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["id"].startswith("CUST")
        assert data["email"] == "jane.smith@example.com"
        assert data["total_orders"] == 0
        assert data["total_spent"] == 0

    async def test_duplicate_email_is_case_insensitive(self, client, staff_headers):
        await client.post("/api/v1/customers", json=NEW_CUSTOMER, headers=staff_headers)
        response = await client.post(
            "/api/v1/customers",
            json={**NEW_CUSTOMER, "email": "JANE.SMITH@EXAMPLE.COM"},
            headers=staff_headers,
        )

        assert response.status_code == 409
        assert response.json()["message"] == "Customer with this email already exists"

    async def test_list_requires_auth(self, client):
        response = await client.get("/api/v1/customers")
        assert response.status_code == 401

    async def test_list_and_search(self, client, catalog, user_headers):
        response = await client.get("/api/v1/customers", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 1

        response = await client.get(
            "/api/v1/customers", params={"search": "nobody"}, headers=user_headers
        )
        assert response.json()["data"] == []

    async def test_user_cannot_create(self, client, user_headers):
        response = await client.post("/api/v1/customers", json=NEW_CUSTOMER, headers=user_headers)
        assert response.status_code == 403

    async def test_get_unknown(self, client, user_headers):
        response = await client.get("/api/v1/customers/CUST000000000", headers=user_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Customer not found"

    async def test_update(self, client, catalog):
        customer_id = catalog["customer"]["id"]
        response = await client.put(
            f"/api/v1/customers/{customer_id}",
            json={"membership": "platinum", "phone": "+1-555-0199"},
            headers=catalog["headers"],
        )

        assert response.status_code == 200
        assert response.json()["data"]["membership"] == "platinum"
        assert response.json()["data"]["name"] == "John Doe"

    async def test_update_email_taken(self, client, catalog):
        await client.post("/api/v1/customers", json=NEW_CUSTOMER, headers=catalog["headers"])

        response = await client.put(
            f"/api/v1/customers/{catalog['customer']['id']}",
            json={"email": "jane.smith@example.com"},
            headers=catalog["headers"],
        )

        assert response.status_code == 409
        assert response.json()["message"] == "Email already taken by another customer"

    async def test_delete_without_orders(self, client, catalog):
        customer_id = catalog["customer"]["id"]
        response = await client.delete(f"/api/v1/customers/{customer_id}", headers=catalog["headers"])

        assert response.status_code == 200
        gone = await client.get(f"/api/v1/customers/{customer_id}", headers=catalog["headers"])
        assert gone.status_code == 404

    async def test_delete_with_orders_is_refused(self, client, catalog, order):
        response = await client.delete(
            f"/api/v1/customers/{catalog['customer']['id']}", headers=catalog["headers"]
        )

        assert response.status_code == 409
        assert response.json()["message"] == "Cannot delete customer with 1 existing orders"

    async def test_stats(self, client, catalog, order):
        response = await client.get("/api/v1/customers/stats", headers=catalog["headers"])

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["overview"]["total"] == 1
        assert data["overview"]["total_orders"] == 1
        assert data["overview"]["total_spent"] == 80.17
        assert data["membership_breakdown"] == [
            {"membership": "gold", "count": 1, "total_spent": 80.17},
        ]
