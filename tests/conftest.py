"""Pytest configuration and fixtures for the MoviesDB API.

Runs the app against an in-memory SQLite database (sqlite+aiosqlite) that is
created before and dropped after every test. Environment is set before the
app modules are imported because settings are read at import time.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from database.db import SessionLocal, close_db, drop_all_tables, init_db
from main import app
from models.movie import Movie

ALICE = {
    "username": "alice1",
    "password": "Secr3t!",
    "email": "a@x.com",
    "birthdate": "1990-01-01",
}


@pytest.fixture(autouse=True)
async def database():
    """Fresh schema for each test."""
    await init_db()
    yield
    await drop_all_tables()
    await close_db()


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session() -> AsyncSession:
    """Direct database session for seeding and assertions."""
    async with SessionLocal() as session:
        yield session


@pytest.fixture
async def auth_headers(client: AsyncClient) -> dict[str, str]:
    """Register alice1 and return headers carrying her token."""
    response = await client.post("/users", json=ALICE)
    assert response.status_code == 201, response.text
    token = response.json()["token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def movies(db_session: AsyncSession) -> dict[str, Movie]:
    """Seed the catalog with a few movies keyed by short name."""
    catalog = {
        "inception": Movie(
            title="Inception",
            synopsis="A thief enters dreams to plant an idea.",
            genre={"name": "Science Fiction", "description": "Speculative technology and worlds."},
            director={"name": "Christopher Nolan", "bio": "British-American filmmaker."},
            actors=["Leonardo DiCaprio", "Elliot Page"],
            image_path="https://img.example.com/inception.jpg",
            featured=True,
        ),
        "heat": Movie(
            title="Heat",
            synopsis="A detective hunts a crew of professional thieves.",
            genre={"name": "Crime", "description": "Stories about criminals and the law."},
            director={"name": "Michael Mann", "bio": "American director and producer."},
            actors=["Al Pacino", "Robert De Niro"],
            featured=False,
        ),
        "interstellar": Movie(
            title="Interstellar",
            synopsis="Explorers travel through a wormhole to save humanity.",
            genre={"name": "Science Fiction", "description": "Speculative technology and worlds."},
            director={"name": "Christopher Nolan", "bio": "British-American filmmaker."},
            actors=["Matthew McConaughey", "Anne Hathaway"],
        ),
    }
    db_session.add_all(catalog.values())
    await db_session.commit()
    return catalog
