"""
Pytest fixtures for AgriTrack tests.
"""

import os
import uuid
from typing import AsyncGenerator

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from agritrack.config import get_settings

get_settings.cache_clear()

from agritrack.database import create_engine, create_session_maker, get_db
from agritrack.engines.forecast.prediction_client import PredictionClient, get_prediction_client
from agritrack.kernel.identity.jwt import TokenService, get_token_service
from agritrack.kernel.identity.password import hash_password
from agritrack.kernel.models import Base, User
from agritrack.kernel.storage.artifact_store import ArtifactStore, get_artifact_store
from tests.doubles import PREDICTION_BASE_URL, PUBLIC_BASE_URL, InMemoryS3Client, PredictionSpy


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-based SQLite so every connection sees the same database."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return create_session_maker(db_engine)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(
        secret_key="test-secret-key-for-testing-only",
        algorithm="HS256",
        expire_minutes=30,
    )


@pytest.fixture
def s3_client() -> InMemoryS3Client:
    return InMemoryS3Client()


@pytest.fixture
def artifact_store(s3_client) -> ArtifactStore:
    return ArtifactStore(
        bucket="test-bucket",
        region="ap-southeast-1",
        prefix="products",
        public_base_url=PUBLIC_BASE_URL,
        client=s3_client,
    )


@pytest.fixture
def prediction_spy() -> PredictionSpy:
    return PredictionSpy()


@pytest_asyncio.fixture
async def prediction_client(prediction_spy) -> AsyncGenerator[PredictionClient, None]:
    http = httpx.AsyncClient(transport=httpx.MockTransport(prediction_spy))
    client = PredictionClient(PREDICTION_BASE_URL, timeout_seconds=1.0, client=http)
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user."""
    user = User(
        id=uuid.uuid4(),
        email="farmer@example.com",
        name="Test Farmer",
        role="Business Owner",
        password_hash=hash_password("TestPassword123"),
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def auth_headers(test_user: User, token_service: TokenService) -> dict:
    """Authentication headers for the test user."""
    token = token_service.issue(test_user.id, test_user.email, test_user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(
    session_maker,
    token_service,
    artifact_store,
    prediction_client,
) -> AsyncGenerator[AsyncClient, None]:
    """In-process client with the collaborators replaced by test doubles."""
    from agritrack.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_service] = lambda: token_service
    app.dependency_overrides[get_artifact_store] = lambda: artifact_store
    app.dependency_overrides[get_prediction_client] = lambda: prediction_client
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
