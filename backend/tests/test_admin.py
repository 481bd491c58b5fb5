"""
Tests for account bootstrap and operational admin endpoints.
"""
import pytest
import smtplib
from httpx import AsyncClient
from sqlalchemy import select

from api.v1 import admin as admin_api
from core.security import verify_password, check_admin_secret
from db.base import User as UserModel


class TestCreateAdmin:
    """Test /api/admin/create-admin."""

    @pytest.mark.asyncio
    async def test_create_admin_success(self, async_client: AsyncClient, database, sample_admin_data):
        response = await async_client.post("/api/admin/create-admin", json=sample_admin_data)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["user"]["email"] == sample_admin_data["email"].lower()
        assert data["user"]["role"] == "admin"

        async with database.session_factory() as session:
            stored = (await session.execute(select(UserModel))).scalars().one()
        assert stored.password_hash != sample_admin_data["password"]
        assert verify_password(sample_admin_data["password"], stored.password_hash)

    @pytest.mark.asyncio
    async def test_create_admin_twice_is_rejected(self, async_client: AsyncClient, sample_admin_data):
        first = await async_client.post("/api/admin/create-admin", json=sample_admin_data)
        assert first.status_code == 200

        second = await async_client.post("/api/admin/create-admin", json=sample_admin_data)

        assert second.status_code == 400
        assert second.json()["error"] == "User already exists"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"email": "admin@example.com"}, {"password": "pw"}])
    async def test_create_admin_requires_email_and_password(self, async_client: AsyncClient, body):
        response = await async_client.post("/api/admin/create-admin", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Email and password are required", "code": "VALIDATION_ERROR"}

    @pytest.mark.asyncio
    async def test_create_admin_rejects_bad_email(self, async_client: AsyncClient):
        response = await async_client.post("/api/admin/create-admin", json={"email": "not-an-email", "password": "pw"})

        assert response.status_code == 400
        assert response.json()["error"].startswith("email:")

    @pytest.mark.asyncio
    async def test_secret_is_enforced_when_configured(self, async_client: AsyncClient, admin_secret, sample_admin_data):
        missing = await async_client.post("/api/admin/create-admin", json=sample_admin_data)
        wrong = await async_client.post(
            "/api/admin/create-admin", json=sample_admin_data, headers={"Authorization": "Bearer nope"}
        )
        ok = await async_client.post(
            "/api/admin/create-admin", json=sample_admin_data, headers={"Authorization": f"Bearer {admin_secret}"}
        )

        assert missing.status_code == 401
        assert missing.json()["code"] == "UNAUTHORIZED"
        assert wrong.status_code == 401
        assert ok.status_code == 200

    @pytest.mark.asyncio
    async def test_list_admins(self, async_client: AsyncClient, sample_admin_data):
        await async_client.post("/api/admin/create-admin", json=sample_admin_data)

        response = await async_client.get("/api/admin/create-admin")

        assert response.status_code == 200
        data = response.json()
        assert data["totalUsers"] == 1
        assert data["adminCount"] == 1
        assert data["admins"][0]["email"] == sample_admin_data["email"].lower()
        assert data["allUsers"][0]["role"] == "admin"


class TestAdminSecret:
    """Test bearer secret parsing."""

    def test_open_when_no_secret(self, monkeypatch):
        monkeypatch.setattr(admin_api.settings, "ADMIN_CREATE_SECRET", None)
        assert check_admin_secret(None) is True

    @pytest.mark.parametrize("header, expected", [
        ("Bearer bootstrap-secret", True),
        ("bearer bootstrap-secret", True),
        ("Bearer other", False),
        ("Basic bootstrap-secret", False),
        ("Bearer ", False),
        (None, False),
    ])
    def test_bearer_header(self, admin_secret, header, expected):
        assert check_admin_secret(header) is expected


class TestSetupDatabase:
    """Test /api/admin/setup-database."""

    @pytest.mark.asyncio
    async def test_status_ready(self, async_client: AsyncClient):
        response = await async_client.get("/api/admin/setup-database")

        assert response.json()["status"] == "ready"

    @pytest.mark.asyncio
    async def test_setup_creates_missing_tables(self, async_client: AsyncClient, database):
        async with database.engine.begin() as conn:
            await conn.exec_driver_sql("DROP TABLE client_users")
        before = await async_client.get("/api/admin/setup-database")
        assert before.json()["status"] == "needs_setup"

        response = await async_client.post("/api/admin/setup-database")

        assert response.status_code == 200
        assert response.json()["success"] is True
        after = await async_client.get("/api/admin/setup-database")
        assert after.json()["status"] == "ready"


class TestSmtpDiagnostics:
    """Test /api/admin/test-smtp."""

    @pytest.mark.asyncio
    async def test_smtp_all_good(self, async_client: AsyncClient, monkeypatch):
        sent = []
        monkeypatch.setattr(admin_api, "verify_smtp_connection", lambda: None)
        monkeypatch.setattr(admin_api, "send_otp_email", lambda *args: sent.append(args) or True)
        monkeypatch.setattr(admin_api.settings, "SMTP_USER", "campus.bot@gmail.com")
        monkeypatch.setattr(admin_api.settings, "SMTP_PASS", "app-password")

        response = await async_client.post("/api/admin/test-smtp", json={"email": "Tester@Example.com"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["tests"]["email"]["otp"] == "123456"
        assert data["config"]["SMTP_USER"] == "cam..."
        assert data["config"]["SMTP_PASS"] == "***"
        assert sent[0][0] == "tester@example.com"

    @pytest.mark.asyncio
    async def test_smtp_failures_are_reported(self, async_client: AsyncClient, monkeypatch):
        monkeypatch.setattr(admin_api.settings, "ENVIRONMENT", "development")

        def refuse():
            raise smtplib.SMTPAuthenticationError(535, b"BadCredentials")

        def fail_send(*args):
            raise ConnectionRefusedError("connection refused")

        monkeypatch.setattr(admin_api, "verify_smtp_connection", refuse)
        monkeypatch.setattr(admin_api, "send_otp_email", fail_send)

        response = await async_client.post("/api/admin/test-smtp", json={"email": "tester@example.com"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["tests"]["connection"]["success"] is False
        assert "BadCredentials" in data["tests"]["connection"]["message"]
        assert data["tests"]["email"] == {
            "success": False,
            "message": "Failed to send test email: connection refused",
            "otp": "",
        }

    @pytest.mark.asyncio
    async def test_smtp_failure_text_hidden_outside_development(self, async_client: AsyncClient, monkeypatch):
        def refuse():
            raise smtplib.SMTPAuthenticationError(535, b"BadCredentials")

        def fail_send(*args):
            raise ConnectionRefusedError("connection refused to 10.1.2.3")

        monkeypatch.setattr(admin_api.settings, "ENVIRONMENT", "production")
        monkeypatch.setattr(admin_api, "verify_smtp_connection", refuse)
        monkeypatch.setattr(admin_api, "send_otp_email", fail_send)

        response = await async_client.post("/api/admin/test-smtp", json={"email": "tester@example.com"})

        tests = response.json()["tests"]
        assert tests["connection"] == {"success": False, "message": "SMTP connection failed"}
        assert tests["email"]["message"] == "Failed to send test email"
        assert "10.1.2.3" not in response.text
        assert "BadCredentials" not in response.text

    @pytest.mark.asyncio
    async def test_smtp_requires_email(self, async_client: AsyncClient):
        response = await async_client.post("/api/admin/test-smtp", json={})

        assert response.status_code == 400
        assert response.json()["error"] == "Email is required for testing"
