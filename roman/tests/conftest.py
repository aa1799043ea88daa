"""
Pytest fixtures for Roman API tests.
Uses in-memory SQLite, an in-memory Redis stand-in, local blob storage in tmp_path,
and mocked AI/download collaborators.
"""
import os
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Use in-memory SQLite for tests - set before config/session load
# Must override any .env DATABASE_URL
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["REDIS_URL"] = ""
os.environ["AWS_ACCESS_KEY_ID"] = ""
os.environ["AWS_SECRET_ACCESS_KEY"] = ""

from roman.app.core.config import settings
from roman.app.core.dependencies import get_db, get_services
from roman.app.db.base import Base
from roman.app.services.blob_storage import LocalBlobStore
from roman.app.services.container import build_services
from roman.app.services.resume_parser.ai_client import AIStructuringClient, AIStructuringOutput
from roman.app.services.resume_parser.fetcher import RemoteFileFetcher
from roman.app.utils.cache import RedisCache
from roman.main import app

# In-memory SQLite for tests - StaticPool ensures all sessions share same DB
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Patch the session module so app uses our test engine
import roman.app.db.session as session_module
session_module.engine = engine
session_module.SessionLocal = TestingSessionLocal


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db

PDF_BYTES = b"%PDF-1.4 mock pdf content"
AI_OUTPUT = AIStructuringOutput(
    text="John Doe Software Engineer",
    structured_data={"name": "John Doe"},
)


class FakeRedis:
    """Async stand-in for redis.asyncio.Redis (get/set/delete/ping)."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise ConnectionError("redis down")

    async def ping(self):
        self._check()
        return True

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, key):
        self._check()
        self.ttls.pop(key, None)
        return 1 if self.store.pop(key, None) is not None else 0

    async def aclose(self):
        return None


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture
def ai_client():
    client = MagicMock(spec=AIStructuringClient)
    client.structure = AsyncMock(return_value=AI_OUTPUT)
    return client


@pytest.fixture
def fetcher():
    f = MagicMock(spec=RemoteFileFetcher)
    f.fetch = AsyncMock(return_value=PDF_BYTES)
    return f


@pytest.fixture
def services(fake_redis, blob_store, ai_client, fetcher):
    return build_services(
        settings,
        redis=RedisCache(client=fake_redis),
        blob_store=blob_store,
        ai_client=ai_client,
        fetcher=fetcher,
    )


@pytest.fixture(autouse=True)
def mock_extract_text():
    """Text extraction is mocked by default; extractor tests call the real functions."""
    from unittest.mock import patch

    with patch(
        "roman.app.services.resume_parser.pipeline.extract_text",
        return_value="John Doe\nSoftware Engineer",
    ) as m:
        yield m


@pytest.fixture(scope="function")
def db_session():
    """Create tables and a fresh DB session per test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def user_id():
    return "user123"


@pytest.fixture
def auth_headers(user_id):
    """Bearer token for test user."""
    token = jwt.encode({"sub": user_id}, settings.secret_key, algorithm=settings.algorithm)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(db_session, services):
    """TestClient with DB and test services."""
    app.dependency_overrides[get_services] = lambda: services
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_services, None)
