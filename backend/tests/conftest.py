"""Test configuration for the intake backend.

Tests run against a throwaway SQLite file per test (aiosqlite) and the stub
providers, so no network or Postgres is needed.
"""

import os
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./intake-test.db")

import intake.infrastructure.database as database_module  # noqa: E402
import intake.models  # noqa: E402,F401
from intake.ai.providers.factory import clear_provider_caches  # noqa: E402
from intake.api.ws.manager import reset_connection_manager  # noqa: E402
from intake.config import get_settings  # noqa: E402
from intake.infrastructure.database import Base  # noqa: E402


def _sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return _sqlite_url(tmp_path / "intake.db")


@pytest.fixture(autouse=True)
def reset_environment_state(database_url: str) -> Generator[None, None, None]:
    """Reset environment variables between tests to prevent interference."""

    original_env: dict[str, str | None] = {}
    test_specific_vars = [
        "ENVIRONMENT",
        "DATABASE_URL",
        "DATABASE_DISABLE_POOLING",
        "GROQ_API_KEY",
        "ELEVENLABS_API_KEY",
        "LLM_PROVIDER",
        "STT_PROVIDER",
        "TTS_PROVIDER",
        "LOG_DEBUG_NAMESPACES",
        "CORS_ALLOW_ORIGINS",
        "NOTIFICATION_TTL_SECONDS",
        "WS_DRAIN_TIMEOUT_SECONDS",
        "STUB_LLM_DELAY_MS",
        "STUB_LLM_MODE",
        "STUB_LLM_ERROR_MESSAGE",
        "STUB_LLM_FORCE_TEXT",
        "STUB_STT_DELAY_MS",
        "STUB_STT_MODE",
        "STUB_STT_ERROR_MESSAGE",
        "STUB_STT_FORCE_TRANSCRIPT",
        "STUB_STT_EMPTY_TRANSCRIPT",
        "STUB_TTS_DELAY_MS",
        "STUB_TTS_MODE",
        "STUB_TTS_AUDIO_BYTES",
    ]

    for var in test_specific_vars:
        original_env[var] = os.environ.get(var)

    baseline = {
        "DATABASE_URL": database_url,
        "ENVIRONMENT": "development",
        "DATABASE_DISABLE_POOLING": "true",
        "LLM_PROVIDER": "stub",
        "STT_PROVIDER": "stub",
        "TTS_PROVIDER": "stub",
        "ELEVENLABS_API_KEY": "",
        "STUB_LLM_DELAY_MS": "0",
        "STUB_STT_DELAY_MS": "0",
        "STUB_TTS_DELAY_MS": "0",
    }

    for var in test_specific_vars:
        if var not in baseline:
            os.environ.pop(var, None)

    for key, value in baseline.items():
        os.environ[key] = value

    yield

    for var, value in original_env.items():
        if value is None:
            os.environ.pop(var, None)
        else:
            os.environ[var] = value


@pytest.fixture(autouse=True)
def reset_settings_cache(reset_environment_state) -> Generator[None, None, None]:
    """Clear cached settings before each test so env vars are re-read."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_provider_singletons(reset_settings_cache) -> Generator[None, None, None]:
    """Reset cached provider instances between tests."""
    clear_provider_caches()
    yield
    clear_provider_caches()


@pytest.fixture(autouse=True)
def reset_websocket_manager() -> Generator[None, None, None]:
    """Reset global WebSocket manager between tests to prevent interference."""
    reset_connection_manager()
    yield
    reset_connection_manager()


@pytest.fixture(autouse=True)
def reset_database_globals() -> Generator[None, None, None]:
    """Drop the cached engine and session factory between tests.

    Engines use NullPool under test, so there are no pooled connections to dispose.
    """
    database_module._engine = None
    database_module.reset_async_session_factory()
    yield
    database_module._engine = None
    database_module.reset_async_session_factory()


def _create_schema(url: str) -> None:
    engine = create_engine(url.replace("+aiosqlite", ""))
    Base.metadata.create_all(engine)
    engine.dispose()


@pytest_asyncio.fixture
async def test_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Engine on the per-test SQLite file, with every table created."""
    engine = create_async_engine(database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def client(database_url: str) -> Generator[TestClient, None, None]:
    """Test client for a freshly built app over an initialized database."""
    from intake.main import create_app

    _create_schema(database_url)

    with TestClient(create_app()) as c:
        yield c
