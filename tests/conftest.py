"""Shared test fixtures."""
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from library_api.core.exceptions import UpstreamError
from library_api.database import Base, get_db
from library_api.main import app
from library_api.schemas.ai import GeneratedBookDraft
from library_api.services.ai_service import get_book_generator

# Test database URL (in-memory SQLite shared by every session of one test)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeBookGenerator:
    """Stands in for the language model during tests."""

    def __init__(self):
        self.prompts: list[str] = []
        self.error: Optional[UpstreamError] = None
        self.draft = GeneratedBookDraft(
            title="The Clockwork Orchard",
            author="Mira Ellison",
            genre="Fantasy",
            publication_year=2015,
            description="A gardener discovers trees that keep time.",
            isbn="978-0-306-40615-7",
            pages=320,
            publisher="Lantern House",
            tags=["clockwork", "gardens", "time"],
        )

    async def generate(self, user_prompt: str) -> GeneratedBookDraft:
        self.prompts.append(user_prompt)
        if self.error is not None:
            raise self.error
        return self.draft


@pytest.fixture
async def session_factory():
    """Fresh schema per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def fake_generator() -> FakeBookGenerator:
    return FakeBookGenerator()


@pytest.fixture
async def client(session_factory, fake_generator):
    """Create test client."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_book_generator] = lambda: fake_generator

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def book_payload():
    """Factory for valid create bodies."""

    def make(**overrides) -> dict:
        payload = {
            "title": "Dune",
            "author": "Frank Herbert",
            "genre": "Sci-Fi",
            "publicationYear": 1965,
            "publisher": "Chilton Books",
            "pages": 412,
            "tags": ["desert", "politics"],
        }
        payload.update(overrides)
        return payload

    return make


@pytest.fixture
def create_book(client, book_payload):
    """Create a book through the API and return its JSON."""

    async def create(**overrides) -> dict:
        response = await client.post("/api/books", json=book_payload(**overrides))
        assert response.status_code == 201, response.text
        return response.json()["data"]["book"]

    return create
