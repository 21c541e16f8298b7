"""Seed sample users, customers, products and orders.

Orders go through OrderService so stock, customer aggregates and
deliveries are consistent with what the API would produce.

Usage:
    python scripts/seed_data.py
"""
import asyncio
import logging
import sys
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select, func  # noqa: E402

from app.database import async_session_factory, init_db  # noqa: E402
from app.models import Customer, User, UserRole, OrderStatus, PaymentStatus  # noqa: E402
from app.schemas.customer import CustomerCreate  # noqa: E402
from app.schemas.order import OrderCreate, OrderItemCreate  # noqa: E402
from app.schemas.product import ProductCreate  # noqa: E402
from app.services import AuthService, CustomerService, OrderService, ProductService  # noqa: E402

logger = logging.getLogger("seed_data")


USERS = [
    {"name": "Admin User", "email": "admin@orderms.com", "password": "admin123", "role": UserRole.ADMIN},
    {"name": "Staff Member", "email": "staff@orderms.com", "password": "staff123", "role": UserRole.STAFF},
    {"name": "John Doe", "email": "customer@example.com", "password": "customer123", "role": UserRole.USER},
]

CUSTOMERS = [
    {
        "name": "John Doe", "email": "john.doe@example.com", "phone": "+1-555-0101",
        "address": {"street": "123 Main St", "city": "New York", "state": "NY", "zip_code": "10001", "country": "USA"},
        "membership": "gold",
    },
    {
        "name": "Jane Smith", "email": "jane.smith@example.com", "phone": "+1-555-0102",
        "address": {"street": "456 Oak Ave", "city": "Los Angeles", "state": "CA", "zip_code": "90001", "country": "USA"},
        "membership": "silver",
    },
    {
        "name": "Bob Johnson", "email": "bob.johnson@example.com", "phone": "+1-555-0103",
        "address": {"street": "789 Pine Rd", "city": "Chicago", "state": "IL", "zip_code": "60601", "country": "USA"},
        "membership": "bronze",
    },
    {
        "name": "Alice Brown", "email": "alice.brown@example.com", "phone": "+1-555-0104",
        "address": {"street": "321 Elm St", "city": "Houston", "state": "TX", "zip_code": "77001", "country": "USA"},
        "membership": "platinum",
    },
]

PRODUCTS = [
    {"name": "Wireless Mouse", "description": "Ergonomic wireless mouse with USB receiver",
     "price": "25.99", "stock": 100, "category": "Electronics", "brand": "TechCorp"},
    {"name": "Bluetooth Headphones", "description": "Noise-cancelling over-ear headphones",
     "price": "89.99", "stock": 50, "category": "Electronics", "brand": "AudioMax"},
    {"name": "USB-C Cable", "description": "High-speed USB-C charging cable 6ft",
     "price": "12.99", "stock": 200, "category": "Electronics", "brand": "CableCo"},
    {"name": "Laptop Stand", "description": "Adjustable aluminum laptop stand",
     "price": "45.99", "stock": 75, "category": "Accessories", "brand": "ErgoDesk"},
    {"name": "Mechanical Keyboard", "description": "RGB backlit mechanical gaming keyboard",
     "price": "129.99", "stock": 30, "category": "Electronics", "brand": "GameTech"},
    {"name": "Webcam HD", "description": "1080p HD webcam with microphone",
     "price": "59.99", "stock": 40, "category": "Electronics", "brand": "VisionCam"},
    {"name": "Desk Organizer", "description": "Bamboo desk organizer with compartments",
     "price": "24.99", "stock": 60, "category": "Office", "brand": "OrganizePro"},
    {"name": "Power Bank", "description": "10000mAh portable power bank",
     "price": "34.99", "stock": 8, "category": "Electronics", "brand": "PowerMax"},
]

# (customer index, [(product index, quantity)], status path, payment status)
ORDERS = [
    (0, [(0, 2), (2, 1)], [], PaymentStatus.PENDING),
    (1, [(1, 1)], [OrderStatus.CONFIRMED, OrderStatus.PROCESSING], PaymentStatus.PAID),
    (2, [(4, 1), (3, 1)], [OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED], PaymentStatus.PAID),
    (3, [(5, 2), (6, 3)], [OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED,
                           OrderStatus.DELIVERED], PaymentStatus.PAID),
    (0, [(7, 1)], [OrderStatus.CANCELLED], PaymentStatus.REFUNDED),
]


async def seed():
    await init_db()

    async with async_session_factory() as db:
        existing = (await db.execute(select(func.count(Customer.id)))).scalar() or 0
        if existing:
            logger.info(f"{existing} customers already present; skipping seed")
            return

        logger.info("Creating users...")
        auth = AuthService(db)
        for data in USERS:
            if not (await db.execute(select(User).where(User.email == data["email"]))).scalar_one_or_none():
                await auth.create_user(**data)

        logger.info("Creating customers...")
        customer_service = CustomerService(db)
        customers = [await customer_service.create_customer(CustomerCreate(**c)) for c in CUSTOMERS]

        logger.info("Creating products...")
        product_service = ProductService(db)
        products = [
            await product_service.create_product(ProductCreate(**{**p, "price": Decimal(p["price"])}))
            for p in PRODUCTS
        ]

        logger.info("Creating orders...")
        order_service = OrderService(db)
        for customer_index, lines, statuses, payment_status in ORDERS:
            order = await order_service.create_order(OrderCreate(
                customer_id=customers[customer_index].id,
                items=[
                    OrderItemCreate(product_id=products[p].id, quantity=qty)
                    for p, qty in lines
                ],
            ))
            for status in statuses:
                order = await order_service.update_status(order.id, status)
            await order_service.update_payment(order.id, payment_status)
            logger.info(f"  {order.id}: {order.status}, total {order.total}")

        logger.info("Seed complete")
        for user in USERS:
            logger.info(f"  login: {user['email']} / {user['password']} ({user['role'].value})")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    asyncio.run(seed())
