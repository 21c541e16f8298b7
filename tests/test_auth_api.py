"""API tests for registration, login and role checks."""
from app.core.security import create_access_token, get_password_hash, verify_password


REGISTER = {"name": "Jane Buyer", "email": "Jane@Example.com", "password": "secret123"}


class TestPasswords:

    def test_hash_roundtrip(self):
        hashed = get_password_hash("secret123")
        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("wrong-password", hashed)

    def test_malformed_hash_is_rejected(self):
        assert not verify_password("secret123", "not-a-bcrypt-hash")


class TestRegisterAndLogin:

    async def test_register_returns_token_and_user(self, client):
        response = await client.post("/api/v1/auth/register", json=REGISTER)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["access_token"]
        assert body["data"]["token_type"] == "bearer"
        assert body["data"]["expires_in"] > 0
        assert body["data"]["user"]["email"] == "jane@example.com"
        assert body["data"]["user"]["role"] == "user"

    async def test_register_duplicate_email(self, client):
        await client.post("/api/v1/auth/register", json=REGISTER)
        response = await client.post("/api/v1/auth/register", json=REGISTER)

        assert response.status_code == 409
        assert response.json()["message"] == "User with this email already exists"

    async def test_login(self, client):
        await client.post("/api/v1/auth/register", json=REGISTER)

        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "jane@example.com", "password": "secret123"},
        )

        assert response.status_code == 200
        token = response.json()["data"]["access_token"]

        me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["data"]["email"] == "jane@example.com"
        assert me.json()["data"]["last_login_at"] is not None

    async def test_login_wrong_password(self, client):
        await client.post("/api/v1/auth/register", json=REGISTER)

        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "jane@example.com", "password": "not-the-password"},
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    async def test_login_unknown_email(self, client):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "nobody@example.com", "password": "secret123"},
        )
        assert response.status_code == 401

    async def test_register_validation_error(self, client):
        response = await client.post(
            "/api/v1/auth/register",
            json={"name": "X", "email": "not-an-email", "password": "secret123"},
        )

        assert response.status_code == 422
        assert "email" in response.json()["message"]


class TestAccessControl:

    async def test_missing_token(self, client):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.json()["message"] == "Not authenticated"

    async def test_garbage_token(self, client):
        response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 401
        assert response.json()["message"] == "Could not validate credentials"

    async def test_token_for_unknown_user(self, client):
        token = create_access_token("00000000-0000-0000-0000-000000000000")
        response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_user_role_cannot_manage_catalog(self, client, user_headers):
        response = await client.post(
            "/api/v1/products",
            json={"name": "Thing", "price": "1.00", "category": "Misc"},
            headers=user_headers,
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Not authorized to perform this action"

    async def test_admin_can_manage_catalog(self, client, admin_headers):
        response = await client.post(
            "/api/v1/products",
            json={"name": "Thing", "price": "1.00", "category": "Misc"},
            headers=admin_headers,
        )
        assert response.status_code == 201


class TestHealth:

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["checks"]["database"] == "connected"
