"""Tests for storage failures, unhandled errors and concurrent-username conflicts."""

import logging

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from database.db import get_db
from main import app
from tests.conftest import ALICE

BOB = {
    "username": "bob123",
    "password": "Hunter22",
    "email": "bob@mail.com",
    "birthdate": "1985-06-15",
}


async def _failing_commit(self):
    raise OperationalError("COMMIT", {}, Exception("disk I/O error"))


async def _never_taken(db, username):
    return False


@pytest.fixture
async def lenient_client() -> AsyncClient:
    """Client that returns the app's 500 response instead of re-raising."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def test_register_storage_failure_returns_generic_500(client: AsyncClient, monkeypatch, caplog) -> None:
    monkeypatch.setattr(AsyncSession, "commit", _failing_commit)

    with caplog.at_level(logging.ERROR):
        response = await client.post("/users", json=ALICE)

    assert response.status_code == 500
    assert response.json() == {"detail": "Registration failed"}
    assert "disk I/O error" not in response.text
    assert any("Registration error" in record.getMessage() for record in caplog.records)


async def test_register_storage_failure_leaves_no_user(client: AsyncClient, monkeypatch) -> None:
    with monkeypatch.context() as patch:
        patch.setattr(AsyncSession, "commit", _failing_commit)
        await client.post("/users", json=ALICE)

    response = await client.post("/users", json=ALICE)
    assert response.status_code == 201


async def test_add_favorite_storage_failure_returns_500(client: AsyncClient, auth_headers, movies, monkeypatch) -> None:
    monkeypatch.setattr(AsyncSession, "commit", _failing_commit)

    response = await client.post(f"/users/alice1/movies/{movies['heat'].id}", headers=auth_headers)

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to add favorite movie"}


async def test_unhandled_error_is_hidden_and_logged(lenient_client: AsyncClient, caplog) -> None:
    async def broken_db():
        raise RuntimeError("connection pool exhausted")
        yield

    app.dependency_overrides[get_db] = broken_db
    try:
        with caplog.at_level(logging.INFO):
            response = await lenient_client.post("/login", json={"username": "alice1", "password": "Secr3t!"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
    assert "connection pool exhausted" not in response.text
    messages = [record.getMessage() for record in caplog.records]
    assert any("POST /login -> 500" in message for message in messages)


async def test_concurrent_registration_reports_conflict(client: AsyncClient, monkeypatch) -> None:
    """The unique constraint catches a duplicate the pre-insert check missed."""
    first = await client.post("/users", json=ALICE)
    assert first.status_code == 201

    monkeypatch.setattr("routes.users._username_taken", _never_taken)
    second = await client.post("/users", json={**ALICE, "email": "other@mail.com"})

    assert second.status_code == 400
    assert second.json()["detail"] == "alice1 already exists."

    monkeypatch.undo()
    login = await client.post("/login", json={"username": "alice1", "password": "Secr3t!"})
    assert login.json()["user"]["email"] == "a@x.com"


async def test_concurrent_rename_reports_conflict(client: AsyncClient, auth_headers, monkeypatch) -> None:
    await client.post("/users", json=BOB)
    monkeypatch.setattr("routes.users._username_taken", _never_taken)

    response = await client.put("/users/alice1", json={"username": "bob123"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "bob123 already exists."
