"""
RecipeShare Backend — Test Configuration (conftest.py)
========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment overrides are applied before the package is imported, so
       the module-level settings, engine and service singletons pick them up.

Fixture Hierarchy:
    Function-scoped:
    ├── mock_db_session:     AsyncMock session for service unit tests
    ├── temp_storage:        Temporary directory for file operations
    ├── sample_image_bytes:  Tiny JPEG for upload tests
    ├── session_factory:     Fresh SQLite database with all tables created
    ├── mealdb_handler:      Swappable httpx.MockTransport handler for TheMealDB
    ├── mealdb_client:       MealDBClient wired to the mock transport, no waits
    ├── test_client:         httpx.AsyncClient over a fresh app with overrides
    └── auth_headers:        Signs up + logs in a user, returns Authorization headers
"""

import os
import tempfile

# Override settings BEFORE any recipeshare import
_TEST_DIR = tempfile.mkdtemp(prefix="recipeshare_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/app.db"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["STORAGE_ROOT"] = os.path.join(_TEST_DIR, "uploads")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"
os.environ["MEALDB_BASE_URL"] = "https://mealdb.test/api/json/v1/1"

from datetime import datetime, timezone  # noqa: E402
from typing import Callable, Dict  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402
from uuid import uuid4  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from recipeshare.cache import response_cache  # noqa: E402
from recipeshare.database import Base, get_db_session  # noqa: E402
from recipeshare.models.recipe import Rating, Recipe  # noqa: E402,F401
from recipeshare.models.user import User  # noqa: E402,F401
from recipeshare.services.mealdb_service import (  # noqa: E402
    CircuitBreaker,
    MealDBClient,
    get_mealdb_client,
)

MEALDB_TEST_URL = "https://mealdb.test/api/json/v1/1"


@pytest.fixture(autouse=True)
def clear_response_cache():
    """The response cache is a process-wide singleton; start every test empty."""
    response_cache.clear()
    yield
    response_cache.clear()


# ══════════════════════════════════════════════════════════════════════════
# Unit Test Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_get_recipe(mock_db_session):
            mock_db_session.execute.return_value.scalar_one_or_none.return_value = recipe
            result = await recipe_service.get_recipe(mock_db_session, recipe_id)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """Minimal JPEG: SOI + JFIF header + EOI. Not a real picture."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def make_recipe():
    """Builds detached Recipe rows with every column populated."""

    def _make(**overrides) -> Recipe:
        now = datetime.now(timezone.utc)
        values = {
            "id": uuid4(),
            "title": "Shakshuka",
            "description": "Eggs poached in spiced tomato sauce",
            "ingredients": "4 eggs\n1 can tomatoes\n1 onion",
            "instructions": "Simmer the sauce, crack in the eggs, cover.",
            "prep_time": 25,
            "category": "breakfast",
            "image_path": None,
            "popularity": 0.0,
            "rating_count": 0,
            "user_id": uuid4(),
            "created_at": now,
            "updated_at": now,
        }
        values.update(overrides)
        return Recipe(**values)

    return _make


# ══════════════════════════════════════════════════════════════════════════
# Integration Fixtures (SQLite + ASGI app)
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """A fresh SQLite database per test, schema created from the ORM metadata."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'recipes.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def mealdb_handler():
    """
    Mutable holder for the TheMealDB fake. Tests assign `handler["fn"]`;
    every call is appended to `handler["calls"]`.
    """
    state: Dict = {"calls": []}

    def default(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"meals": None})

    state["fn"] = default
    return state


@pytest_asyncio.fixture
async def mealdb_client(mealdb_handler):
    def dispatch(request: httpx.Request) -> httpx.Response:
        mealdb_handler["calls"].append(request)
        return mealdb_handler["fn"](request)

    client = MealDBClient(
        base_url=MEALDB_TEST_URL,
        transport=httpx.MockTransport(dispatch),
        circuit_breaker=CircuitBreaker(failure_threshold=3, recovery_timeout=60),
        max_attempts=2,
        min_wait=0,
        max_wait=0,
    )
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def test_client(session_factory, mealdb_client):
    """
    HTTPX AsyncClient talking to a freshly built app.

    The DB session and TheMealDB client dependencies are overridden; the
    session override commits and rolls back exactly like get_db_session.
    """
    from recipeshare.main import create_app

    app = create_app()

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_mealdb_client] = lambda: mealdb_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def auth_headers(test_client) -> Callable:
    """
    Returns an async helper: `headers = await auth_headers("alice")`.
    Signs the user up (password "pw-<name>") and logs in.
    """

    async def _login(username: str = "alice") -> Dict[str, str]:
        password = f"pw-{username}"
        await test_client.post("/api/signup", json={"username": username, "password": password})
        response = await test_client.post(
            "/api/login", json={"username": username, "password": password}
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login
