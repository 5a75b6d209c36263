# ruff: noqa: E402
# IMPORTANT:
# 1) Set environment variables (DATABASE_URL etc.) first, then import application modules.
# 2) Settings are read once at import time; tests adjust them with monkeypatch.

from collections.abc import AsyncGenerator
import os
from pathlib import Path
import tempfile

from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool


# --- Function for early test environment setup ---
# Must be called before any application imports
def _setup_test_environment() -> str:
    """Sets up environment variables for tests and returns the DATABASE_URL."""
    workdir = Path(tempfile.mkdtemp(prefix="penpost-tests-"))
    database_url = f"sqlite+aiosqlite:///{workdir / 'app.db'}"

    os.environ["DATABASE_URL"] = database_url
    os.environ["DB_CHECK_ON_START"] = "false"
    os.environ["ADMIN_ALLOWED_EMAIL"] = "admin@example.com"
    os.environ["SUPABASE_URL"] = "https://backend.test"
    os.environ["SUPABASE_ANON_KEY"] = "anon-key"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "service-key"
    os.environ["ALLOW_TELEMETRY"] = "false"
    os.environ["SESSION_COOKIE_SECURE"] = "true"
    # Outbound hooks stay off unless a test opts in
    for name in ("REBUILD_HOOK_URL", "REBUILD_ON_UPDATE", "TELEMETRY_SERVER_URL", "STORAGE_PUBLIC_URL"):
        os.environ.pop(name, None)
    return database_url


# --- EARLY ENVIRONMENT INITIALIZATION ---
TEST_DATABASE_URL = _setup_test_environment()


# isort: off
from app import create_app
from core import deps as deps_module
from db.database import Base, get_db
from db.models import post as _post_model  # noqa: F401
from tests.factories.identity import FakeIdentityClient

# isort: on


@pytest.fixture(scope="session")
def app():
    """FastAPI application instance for tests, created by factory."""
    return create_app()


@pytest.fixture(scope="function")
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine]:
    """Fresh SQLite database per test with the schema created from the models."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def session_maker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
async def db_session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    async with session_maker() as session:
        yield session


@pytest.fixture(scope="function")
def override_get_db(app, session_maker: async_sessionmaker[AsyncSession]):
    """Route the application's session dependency to the per-test database."""

    async def _get_db_test() -> AsyncGenerator[AsyncSession]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db_test
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture(scope="function")
def identity(monkeypatch) -> FakeIdentityClient:
    """Replace the auth provider for both the dependencies and the admin gate."""
    fake = FakeIdentityClient()
    monkeypatch.setattr(deps_module, "get_identity_client", lambda: fake)
    return fake


@pytest.fixture(scope="function")
def telemetry_events(monkeypatch) -> list[tuple[str, dict]]:
    """Capture telemetry events instead of sending them."""
    events: list[tuple[str, dict]] = []

    async def _record(event_type: str, payload: dict) -> None:
        events.append((event_type, payload))

    monkeypatch.setattr("services.telemetry.send_telemetry_event", _record)
    return events


@pytest.fixture(scope="function")
async def client(app, override_get_db: None, identity: FakeIdentityClient) -> AsyncGenerator[AsyncClient]:
    """
    Async HTTP client with app lifespan management.
    Redirects are not followed so tests can assert on them.
    """
    async with LifespanManager(app):
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="https://testserver.local",
            follow_redirects=False,
        ) as ac:
            yield ac
