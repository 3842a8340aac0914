"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.jwt import TokenUserInfo
from app.db.base import Base
from app.models import ConfigEntry  # noqa: F401
from app.schemas.ollama import ModelConfig
from app.services.ollama_config import clear_config_cache

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_EMAIL = "admin@example.com"


@pytest.fixture(autouse=True)
def _clear_config_cache():
    """Keep cached configuration from leaking between tests."""
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
async def async_engine():
    """Create async engine for testing."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for testing."""
    session_maker = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def sample_model_configs() -> list[ModelConfig]:
    """A valid model list: one default, one reasoning, one disabled."""
    return [
        ModelConfig(id="qwen3:14b", display_name="Qwen3", enabled=True, is_default=True),
        ModelConfig(
            id="deepseek-r1:8b",
            display_name="DeepSeek R1",
            enabled=True,
            is_default=False,
            reasoning=True,
        ),
        ModelConfig(id="llama3:8b", display_name="Llama 3", enabled=False),
    ]


def make_completion(text: str) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


class FakeStream:
    """Async iterator shaped like an OpenAI chat completion stream."""

    def __init__(self, deltas: list[str]):
        self.deltas = deltas

    async def _events(self):
        for delta in self.deltas:
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=delta))])

    def __aiter__(self):
        return self._events()


class FakeOpenAI:
    """Stand-in for AsyncOpenAI recording chat completion requests."""

    def __init__(self, text: str = "Hello!", deltas: list[str] | None = None):
        self.text = text
        self.deltas = deltas or ["Hel", "lo!"]
        self.calls: list[dict[str, Any]] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.calls.append(kwargs)
        if kwargs.get("stream"):
            return FakeStream(self.deltas)
        return make_completion(self.text)


@pytest.fixture
def fake_openai() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def admin_user() -> TokenUserInfo:
    return TokenUserInfo(sub="user-admin", email=ADMIN_EMAIL, name="Admin")


@pytest.fixture
def regular_user() -> TokenUserInfo:
    return TokenUserInfo(sub="user-regular", email="someone@example.com", name="Someone")


@pytest.fixture
def mock_ollama_client():
    """Mock Ollama discovery client for testing."""
    client = MagicMock()
    client.test_connection = AsyncMock(return_value=True)
    client.fetch_models = AsyncMock(
        return_value=[
            {"id": "qwen3:14b", "size": 9000000000},
            {"id": "deepseek-r1:8b", "size": 5000000000},
        ]
    )
    return client


@pytest.fixture
def api_app(db_session, mock_ollama_client, monkeypatch):
    """Application with database, Ollama client and admin list wired for tests."""
    from app.api.deps import get_db, get_ollama_client
    from app.config import settings
    from app.main import create_app

    monkeypatch.setattr(settings, "ADMIN_EMAILS", ADMIN_EMAIL)
    monkeypatch.delenv("ADMIN_EMAILS", raising=False)

    application = create_app()

    async def _get_db():
        yield db_session

    application.dependency_overrides[get_db] = _get_db
    application.dependency_overrides[get_ollama_client] = lambda: mock_ollama_client
    return application


def login_as(application, user: TokenUserInfo | None) -> None:
    """Make requests to the application authenticate as the given user."""
    from app.api.deps import get_current_user

    application.dependency_overrides[get_current_user] = lambda: user


@pytest.fixture
async def client(api_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=api_app), base_url="http://test") as ac:
        yield ac
