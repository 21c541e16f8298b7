"""Pytest fixtures: in-memory database, ASGI client, users and sample catalog."""

import os

# Settings are read at import time; configure before importing the app
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("FIRST_ADMIN_EMAIL", None)
os.environ.pop("FIRST_ADMIN_PASSWORD", None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app import models  # noqa: E402,F401
from app.core.security import create_access_token  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    """A session for direct service calls. Each API request gets its own."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ============================================================================
# Users & tokens
# ============================================================================

async def _create_user(session_factory, role: UserRole, email: str) -> User:
    async with session_factory() as session:
        user = User(
            name=f"{role.value.title()} User",
            email=email,
            # Token-only fixture users; login is covered with real hashes
            password_hash="!",
            role=role.value,
            is_active=True,
        )
        session.add(user)
        await session.commit()
        return user


def _auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest_asyncio.fixture
async def admin_headers(session_factory):
    user = await _create_user(session_factory, UserRole.ADMIN, "admin@test.example.com")
    return _auth_headers(user)


@pytest_asyncio.fixture
async def staff_headers(session_factory):
    user = await _create_user(session_factory, UserRole.STAFF, "staff@test.example.com")
    return _auth_headers(user)


@pytest_asyncio.fixture
async def user_headers(session_factory):
    user = await _create_user(session_factory, UserRole.USER, "user@test.example.com")
    return _auth_headers(user)


# ============================================================================
# Sample data (created through the API)
# ============================================================================

@pytest_asyncio.fixture
async def catalog(client, staff_headers):
    """Two products and one customer."""
    mouse = await client.post(
        "/api/v1/products",
        json={
            "name": "Wireless Mouse",
            "price": "25.99",
            "stock": 100,
            "category": "Electronics",
            "brand": "TechCorp",
        },
        headers=staff_headers,
    )
    cable = await client.post(
        "/api/v1/products",
        json={
            "name": "USB-C Cable",
            "price": "12.99",
            "stock": 200,
            "category": "Electronics",
            "brand": "CableCo",
        },
        headers=staff_headers,
    )
    customer = await client.post(
        "/api/v1/customers",
        json={
            "name": "John Doe",
            "email": "john.doe@example.com",
            "phone": "+1-555-0101",
            "address": {
                "street": "123 Main St",
                "city": "New York",
                "state": "NY",
                "zip_code": "10001",
                "country": "USA",
            },
            "membership": "gold",
        },
        headers=staff_headers,
    )
    assert mouse.status_code == 201, mouse.text
    assert cable.status_code == 201, cable.text
    assert customer.status_code == 201, customer.text

    return {
        "mouse": mouse.json()["data"],
        "cable": cable.json()["data"],
        "customer": customer.json()["data"],
        "headers": staff_headers,
    }


@pytest_asyncio.fixture
async def order(client, catalog):
    """Pending order: 2 x mouse + 1 x cable (total 80.17)."""
    response = await client.post(
        "/api/v1/orders",
        json={
            "customer_id": catalog["customer"]["id"],
            "items": [
                {"product_id": catalog["mouse"]["id"], "quantity": 2},
                {"product_id": catalog["cable"]["id"], "quantity": 1},
            ],
            "payment_method": "credit_card",
        },
        headers=catalog["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def advance(client):
    """Walk an order through the given statuses, returning the last response body."""

    async def advance_order(order_id: str, headers: dict, *statuses: str) -> dict:
        body = {}
        for status in statuses:
            response = await client.put(
                f"/api/v1/orders/{order_id}/status",
                json={"status": status},
                headers=headers,
            )
            assert response.status_code == 200, response.text
            body = response.json()["data"]
        return body

    return advance_order
