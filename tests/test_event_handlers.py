"""Tests for lifecycle event handlers and the low-stock job, run against a session directly."""
import logging
from contextlib import asynccontextmanager
from decimal import Decimal

import pytest_asyncio

from app.jobs import inventory_jobs
from app.models import Customer, Order, OrderItem, Product
from app.services import DeliveryService, OrderService
from app.services.order_events import DeliveryCompleted, OrderCancelled, OrderShipped, dispatcher


@pytest_asyncio.fixture
async def placed_order(db):
    """An order for 2 units, with stock and customer aggregates already applied."""
    db.add_all([
        Customer(id="CUST1", name="Ann Lee", email="ann@example.com",
                 total_orders=1, total_spent=Decimal("64.00")),
        Product(id="P1", name="Lamp", category="Home", price=Decimal("25.00"),
                stock=8, low_stock_threshold=5, is_active=True),
    ])
    order = Order(
        id="ORD1",
        customer_id="CUST1",
        customer_name="Ann Lee",
        status="processing",
        subtotal=Decimal("50.00"),
        tax=Decimal("4.00"),
        shipping=Decimal("10.00"),
        total=Decimal("64.00"),
        items=[OrderItem(product_id="P1", product_name="Lamp", quantity=2,
                         unit_price=Decimal("25.00"), total=Decimal("50.00"))],
    )
    db.add(order)
    await db.commit()
    return order


class TestLifecycleHandlers:

    async def test_shipped_opens_in_transit_delivery_once(self, db, placed_order):
        await dispatcher.publish(db, OrderShipped(order_id="ORD1"))
        await dispatcher.publish(db, OrderShipped(order_id="ORD1"))
        await db.commit()

        delivery = await DeliveryService(db).get_by_order_id("ORD1")
        assert delivery.delivery_status == "in_transit"
        assert delivery.recipient_name == "Ann Lee"

        deliveries, total = await DeliveryService(db).get_deliveries()
        assert total == 1

    async def test_cancelled_restores_stock_and_aggregates(self, db, placed_order):
        await dispatcher.publish(db, OrderCancelled(order_id="ORD1", previous_status="processing"))
        await db.commit()

        product = await db.get(Product, "P1")
        customer = await db.get(Customer, "CUST1")
        order = await OrderService(db).get_order("ORD1")

        assert product.stock == 10
        assert customer.total_orders == 0
        assert customer.total_spent == Decimal("0.00")
        assert order.cancelled_at is not None

    async def test_aggregates_never_go_negative(self, db, placed_order):
        customer = await db.get(Customer, "CUST1")
        customer.total_orders = 0
        customer.total_spent = Decimal("10.00")
        await db.commit()

        await dispatcher.publish(db, OrderCancelled(order_id="ORD1", previous_status="processing"))
        await db.commit()

        assert customer.total_orders == 0
        assert customer.total_spent == Decimal("0.00")

    async def test_delivery_completed_marks_order_delivered(self, db, placed_order):
        await dispatcher.publish(db, DeliveryCompleted(order_id="ORD1"))
        await db.commit()

        order = await OrderService(db).get_order("ORD1")
        assert order.status == "delivered"
        assert order.delivered_at is not None

    async def test_delivery_completed_ignored_for_cancelled_order(self, db, placed_order, caplog):
        placed_order.status = "cancelled"
        await db.commit()

        with caplog.at_level(logging.WARNING):
            await dispatcher.publish(db, DeliveryCompleted(order_id="ORD1"))
        await db.commit()

        order = await OrderService(db).get_order("ORD1")
        assert order.status == "cancelled"
        assert order.delivered_at is None
        assert "cancelled order ORD1" in caplog.text


class TestLowStockJob:

    async def test_check_low_stock_logs_and_counts(self, db, session_factory, monkeypatch, caplog):
        db.add_all([
            Product(id="P-LOW", name="Candle", category="Home", price=Decimal("5.00"),
                    stock=1, low_stock_threshold=5, is_active=True),
            Product(id="P-OK", name="Vase", category="Home", price=Decimal("15.00"),
                    stock=40, low_stock_threshold=5, is_active=True),
        ])
        await db.commit()

        @asynccontextmanager
        async def test_session():
            async with session_factory() as session:
                yield session

        monkeypatch.setattr(inventory_jobs, "get_db_session", test_session)

        with caplog.at_level(logging.WARNING):
            flagged = await inventory_jobs.check_low_stock()

        assert flagged == 1
        assert "Low stock: Candle (P-LOW) has 1 left" in caplog.text
