import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REMINDERS_ENABLED", "false")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from main import app
from notes_api.core.database import Base, get_db
from notes_api.core.exceptions import AuthenticationError
from notes_api.core.security import get_blob_store, get_identity_verifier
from notes_api.schemas.auth import AuthenticatedUser
from notes_api.services.blob_store import BlobStoreError
import notes_api.models  # noqa: F401

TOKENS = {
    "token-alice": "alice",
    "token-bob": "bob",
}

ALICE = {"Authorization": "Bearer token-alice"}
BOB = {"Authorization": "Bearer token-bob"}


class FakeIdentityVerifier:
    def __init__(self, tokens):
        self.tokens = tokens
        self.calls = []

    async def verify(self, token):
        self.calls.append(token)
        if token not in self.tokens:
            raise AuthenticationError()
        return AuthenticatedUser(id=self.tokens[token])


class FakeBlobStore:
    def __init__(self):
        self.blobs = {}
        self.fail = False

    async def put(self, key, data, content_type=None):
        if self.fail:
            raise BlobStoreError("bucket unavailable")
        self.blobs[key] = (data, content_type)
        return f"https://storage.test/adjuntos/{key}"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def identity_verifier():
    return FakeIdentityVerifier(TOKENS)


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
async def client(session_factory, identity_verifier, blob_store):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_verifier] = lambda: identity_verifier
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def create_note(client):
    async def _create(headers=ALICE, **fields):
        response = await client.post("/api/notes", json=fields, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()
    return _create
