"""
Tests for user CRUD routes and app-level plumbing.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from config.settings import config
from database.helpers import _is_email_conflict, create_user
from database.models import User
from main import app


async def _create(client, name="Ada", email="ada@x.com"):
    resp = await client.post(
        "/users", json={"name": name, "email": email, "password": "secret1"}
    )
    assert resp.status_code == 200
    return resp.json()


class TestReadUsers:
    @pytest.mark.asyncio
    async def test_list_empty(self, client):
        resp = await client.get("/users")
        assert resp.status_code == 200
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_list_never_exposes_hash(self, client):
        await _create(client)
        await _create(client, name="Bob", email="bob@x.com")
        resp = await client.get("/users")
        users = resp.json()
        assert [u["name"] for u in users] == ["Ada", "Bob"]
        for user in users:
            assert "password" not in user
            assert "passwordHash" not in user

    @pytest.mark.asyncio
    async def test_get_by_id(self, client):
        created = await _create(client)
        resp = await client.get(f"/users/{created['id']}")
        assert resp.status_code == 200
        assert resp.json()["email"] == "ada@x.com"

    @pytest.mark.asyncio
    async def test_get_missing(self, client):
        resp = await client.get("/users/999")
        assert resp.status_code == 404
        assert resp.json() == {"message": "User not found"}


class TestUpdateUser:
    @pytest.mark.asyncio
    async def test_update(self, client):
        created = await _create(client)
        resp = await client.put(
            f"/users/{created['id']}",
            json={"name": "Ada Lovelace", "email": "Lovelace@X.com"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["name"] == "Ada Lovelace"
        assert body["email"] == "lovelace@x.com"
        assert body["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_update_missing_creates_nothing(self, client, session_factory):
        resp = await client.put("/users/42", json={"name": "Ghost", "email": "g@x.com"})
        assert resp.status_code == 404

        async with session_factory() as session:
            count = await session.scalar(select(func.count()).select_from(User))
        assert count == 0

    @pytest.mark.asyncio
    async def test_update_to_taken_email(self, client):
        await _create(client)
        bob = await _create(client, name="Bob", email="bob@x.com")
        resp = await client.put(
            f"/users/{bob['id']}", json={"name": "Bob", "email": "ada@x.com"}
        )
        assert resp.status_code == 400
        assert resp.json() == {"message": "Email already exists"}

    @pytest.mark.asyncio
    async def test_update_keeping_own_email(self, client):
        created = await _create(client)
        resp = await client.put(
            f"/users/{created['id']}", json={"name": "Ada L", "email": "ada@x.com"}
        )
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_update_validation(self, client):
        created = await _create(client)
        resp = await client.put(f"/users/{created['id']}", json={"name": ""})
        assert resp.status_code == 400


class TestDeleteUser:
    @pytest.mark.asyncio
    async def test_delete(self, client):
        created = await _create(client)
        resp = await client.delete(f"/users/{created['id']}")
        assert resp.status_code == 200
        assert resp.json() == {"message": "User deleted successfully"}
        assert (await client.get(f"/users/{created['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_missing(self, client):
        resp = await client.delete("/users/999")
        assert resp.status_code == 404


class TestPlumbing:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_process_time_header(self, client):
        resp = await client.get("/users")
        assert "x-process-time" in resp.headers

    @pytest.mark.asyncio
    async def test_non_integer_id_is_validation_error(self, client):
        resp = await client.get("/users/abc")
        assert resp.status_code == 400


class TestFailureModes:
    @pytest.mark.asyncio
    async def test_storage_failure_is_generic_500(self, client):
        # Starlette re-raises after answering; keep the response instead
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            with patch(
                "api.routes.list_users",
                new_callable=AsyncMock,
                side_effect=OperationalError("SELECT", {}, Exception("database is down")),
            ):
                resp = await ac.get("/users")
        assert resp.status_code == 500
        assert resp.json() == {"message": "Internal server error"}

    @pytest.mark.asyncio
    async def test_slow_request_times_out(self, client, monkeypatch):
        async def _slow(*args, **kwargs):
            await asyncio.sleep(1)
            return []

        monkeypatch.setattr(config, "request_timeout_seconds", 0.05)
        with patch("api.routes.list_users", new_callable=AsyncMock, side_effect=_slow):
            resp = await client.get("/users")
        assert resp.status_code == 504
        assert resp.json() == {"message": "Request timed out"}

    @pytest.mark.asyncio
    async def test_update_race_on_email_is_duplicate(self, client):
        await _create(client)
        bob = await _create(client, name="Bob", email="bob@x.com")
        with patch(
            "api.routes.get_user_by_email", new_callable=AsyncMock, return_value=None
        ):
            resp = await client.put(
                f"/users/{bob['id']}", json={"name": "Bob", "email": "ada@x.com"}
            )
        assert resp.status_code == 400
        assert resp.json() == {"message": "Email already exists"}
        assert (await client.get(f"/users/{bob['id']}")).json()["email"] == "bob@x.com"


class TestIntegrityMapping:
    @pytest.mark.asyncio
    async def test_other_constraint_failures_are_not_duplicates(self, session_factory):
        async with session_factory() as session:
            with pytest.raises(IntegrityError):
                await create_user(
                    session, name=None, email="nameless@x.com", password_hash="h"
                )

    def test_postgres_unique_violation_is_email_conflict(self):
        exc = IntegrityError(
            "INSERT", {},
            Exception('duplicate key value violates unique constraint "ix_users_email"'),
        )
        assert _is_email_conflict(exc)

    def test_not_null_violation_is_not_email_conflict(self):
        exc = IntegrityError(
            "INSERT", {}, Exception("NOT NULL constraint failed: users.name")
        )
        assert not _is_email_conflict(exc)
