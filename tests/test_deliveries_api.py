"""API tests for delivery records and public tracking."""


async def _create_delivery(client, order_id, headers, **extra):
    return await client.post(
        "/api/v1/deliveries",
        json={"order_id": order_id, **extra},
        headers=headers,
    )


class TestCreateDelivery:

    async def test_create_defaults_from_order(self, client, catalog, order):
        response = await _create_delivery(
            client, order["id"], catalog["headers"], carrier="ups", shipping_method="express"
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["order_id"] == order["id"]
        assert data["tracking_number"].startswith("TRK")
        assert data["carrier"] == "ups"
        assert data["shipping_method"] == "express"
        assert data["delivery_status"] == "pending"
        assert data["delivered"] is False
        assert data["recipient_name"] == "John Doe"
        assert data["delivery_address"]["city"] == "New York"
        assert data["estimated_delivery"] is not None

    async def test_one_delivery_per_order(self, client, catalog, order):
        await _create_delivery(client, order["id"], catalog["headers"])
        response = await _create_delivery(client, order["id"], catalog["headers"])

        assert response.status_code == 409
        assert response.json()["message"] == "Delivery record already exists for this order"

    async def test_unknown_order(self, client, catalog):
        response = await _create_delivery(client, "ORD000000000", catalog["headers"])

        assert response.status_code == 404
        assert response.json()["message"] == "Order not found"

    async def test_user_cannot_create(self, client, order, user_headers):
        response = await _create_delivery(client, order["id"], user_headers)
        assert response.status_code == 403


class TestReadDelivery:

    async def test_get_by_order_id_or_tracking_number(self, client, catalog, order):
        created = (await _create_delivery(client, order["id"], catalog["headers"])).json()["data"]

        by_order = await client.get(f"/api/v1/deliveries/{order['id']}", headers=catalog["headers"])
        by_tracking = await client.get(
            f"/api/v1/deliveries/{created['tracking_number']}", headers=catalog["headers"]
        )

        assert by_order.status_code == 200
        assert by_tracking.status_code == 200
        assert by_order.json()["data"]["id"] == created["id"]
        assert by_tracking.json()["data"]["id"] == created["id"]
        assert by_order.json()["data"]["order"]["total"] == 80.17

    async def test_get_unknown(self, client, catalog):
        response = await client.get("/api/v1/deliveries/TRK000000000000", headers=catalog["headers"])

        assert response.status_code == 404
        assert response.json()["message"] == "Delivery record not found"

    async def test_list(self, client, catalog, order):
        await _create_delivery(client, order["id"], catalog["headers"], carrier="dhl")

        response = await client.get("/api/v1/deliveries", headers=catalog["headers"])
        assert response.json()["pagination"]["total"] == 1
        assert response.json()["data"][0]["order"]["id"] == order["id"]

        response = await client.get(
            "/api/v1/deliveries", params={"carrier": "ups"}, headers=catalog["headers"]
        )
        assert response.json()["data"] == []


class TestDeliveryUpdates:

    async def test_update_fields(self, client, catalog, order):
        await _create_delivery(client, order["id"], catalog["headers"])

        response = await client.put(
            f"/api/v1/deliveries/order/{order['id']}",
            json={"carrier": "fedex", "signature_required": True, "delivery_notes": "Leave at door"},
            headers=catalog["headers"],
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["carrier"] == "fedex"
        assert data["signature_required"] is True
        assert data["delivery_notes"] == "Leave at door"

    async def test_status_update(self, client, catalog, order):
        await _create_delivery(client, order["id"], catalog["headers"])

        response = await client.put(
            f"/api/v1/deliveries/order/{order['id']}/status",
            json={"delivery_status": "out_for_delivery", "driver_notes": "On the truck"},
            headers=catalog["headers"],
        )

        assert response.status_code == 200
        assert response.json()["data"]["delivery_status"] == "out_for_delivery"
        assert response.json()["data"]["driver_notes"] == "On the truck"
        assert response.json()["data"]["delivered"] is False

    async def test_delivered_status_completes_order(self, client, catalog, order, advance):
        await advance(order["id"], catalog["headers"], "confirmed", "processing", "shipped")

        response = await client.put(
            f"/api/v1/deliveries/order/{order['id']}/status",
            json={"delivery_status": "delivered"},
            headers=catalog["headers"],
        )

        assert response.status_code == 200
        assert response.json()["data"]["delivered"] is True
        assert response.json()["data"]["actual_delivery"] is not None

        current = await client.get(f"/api/v1/orders/{order['id']}", headers=catalog["headers"])
        assert current.json()["data"]["status"] == "delivered"
        assert current.json()["data"]["delivered_at"] is not None

    async def test_cancelling_order_removes_delivery(self, client, catalog, order, advance):
        await _create_delivery(client, order["id"], catalog["headers"])
        await advance(order["id"], catalog["headers"], "cancelled")

        response = await client.get(f"/api/v1/deliveries/{order['id']}", headers=catalog["headers"])
        assert response.status_code == 404

    async def test_update_unknown(self, client, catalog):
        response = await client.put(
            "/api/v1/deliveries/order/ORD000000000/status",
            json={"delivery_status": "delivered"},
            headers=catalog["headers"],
        )
        assert response.status_code == 404

    async def test_delete(self, client, catalog, order):
        await _create_delivery(client, order["id"], catalog["headers"])

        response = await client.delete(
            f"/api/v1/deliveries/order/{order['id']}", headers=catalog["headers"]
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Delivery record deleted successfully"

        current = await client.get(f"/api/v1/orders/{order['id']}", headers=catalog["headers"])
        assert current.json()["data"]["delivery"] is None


class TestTracking:

    async def test_public_tracking(self, client, catalog, order):
        created = (await _create_delivery(client, order["id"], catalog["headers"])).json()["data"]
        await client.put(
            f"/api/v1/deliveries/order/{order['id']}/status",
            json={"delivery_status": "in_transit"},
            headers=catalog["headers"],
        )

        response = await client.get(f"/api/v1/deliveries/track/{created['tracking_number']}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["current_status"] == "in_transit"
        assert data["delivered"] is False
        assert [entry["status"] for entry in data["timeline"]] == ["pending", "picked_up", "in_transit"]
        assert data["order_summary"]["id"] == order["id"]
        assert data["order_summary"]["item_count"] == 3

    async def test_unknown_tracking_number(self, client):
        response = await client.get("/api/v1/deliveries/track/TRK000000000000")

        assert response.status_code == 404
        assert response.json()["message"] == "Invalid tracking number"


class TestDeliveryStats:

    async def test_stats(self, client, catalog, order, advance):
        await advance(order["id"], catalog["headers"], "confirmed", "processing", "shipped")

        response = await client.get("/api/v1/deliveries/stats", headers=catalog["headers"])

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["overview"] == {"total_deliveries": 1, "delivered_count": 0, "pending_count": 1}
        assert data["status_breakdown"] == [{"status": "in_transit", "count": 1}]
        assert data["carrier_breakdown"] == [
            {"carrier": "local_delivery", "count": 1, "delivered_count": 0},
        ]
