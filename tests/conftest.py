"""Pytest configuration and fixtures."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_FILE", "")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.schemas.hook import HookCreate
from app.services.execution_store import ExecutionStore
from app.services.hook_dispatcher import HookDispatcher
from app.services.hook_registry import HookRegistry
from app.services.retry_scheduler import RetryScheduler


@pytest.fixture
def test_db():
    """Create a test database for testing."""
    # Use in-memory SQLite for tests
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        try:
            db = TestingSessionLocal()
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    yield TestingSessionLocal

    Base.metadata.drop_all(bind=engine)
    app.dependency_overrides.clear()


@pytest.fixture
def db(test_db):
    """Database session bound to the test database."""
    session = test_db()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(test_db):
    """API client using the test database."""
    return TestClient(app)


@pytest.fixture
def make_hook(db):
    """Create hooks through the registry with sensible defaults."""

    def _make_hook(**overrides):
        data = {
            "name": "Publish notifier",
            "event_type": "content.published",
            "endpoint_url": "https://hooks.example.com/publish",
            "retry_count": 0,
            "timeout_seconds": 5,
        }
        data.update(overrides)
        return HookRegistry(db).create(HookCreate(**data))

    return _make_hook


class Endpoint:
    """Records outbound requests and answers them with a fixed response."""

    def __init__(self, status_code=200, text="ok", handler=None):
        self.status_code = status_code
        self.text = text
        self.handler = handler
        self.requests = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.handler is not None:
            return await self.handler(request)
        return httpx.Response(self.status_code, text=self.text)


@pytest.fixture
def make_endpoint():
    return Endpoint


@pytest.fixture
def endpoint():
    return Endpoint()


@pytest.fixture
def enqueued():
    """Retry tasks handed to the (fake) broker as (execution_id, delay)."""
    return []


@pytest.fixture
def make_dispatcher(db, enqueued):
    """Dispatcher wired to a mock transport and a broker that only records."""

    def _make_dispatcher(endpoint, rng=lambda: 0.0):
        scheduler = RetryScheduler(
            ExecutionStore(db),
            enqueue=lambda execution_id, delay: enqueued.append((execution_id, delay)),
            rng=rng,
        )
        return HookDispatcher(
            db, transport=httpx.MockTransport(endpoint), scheduler=scheduler
        )

    return _make_dispatcher
