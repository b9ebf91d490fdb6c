"""Generation and discovery API tests."""
from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import update

from library_api.core.exceptions import UpstreamError
from library_api.core.utils import utcnow
from library_api.models.book import Book
from library_api.models.review import BookReview


@pytest.mark.asyncio
async def test_generate_book(client: AsyncClient, fake_generator):
    response = await client.post("/api/ai/generate-book", json={"userPrompt": "  clockwork gardens  "})
    assert response.status_code == 200

    data = response.json()["data"]
    assert data["prompt"] == "clockwork gardens"
    assert data["book"]["title"] == "The Clockwork Orchard"
    assert data["book"]["publicationYear"] == 2015
    assert data["book"]["tags"] == ["clockwork", "gardens", "time"]
    assert fake_generator.prompts == ["clockwork gardens"]


@pytest.mark.asyncio
async def test_generate_book_short_prompt(client: AsyncClient, fake_generator):
    response = await client.post("/api/ai/generate-book", json={"userPrompt": " ab "})
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "userPrompt"
    assert fake_generator.prompts == []


@pytest.mark.asyncio
async def test_generate_book_upstream_failure(client: AsyncClient, fake_generator):
    fake_generator.error = UpstreamError("Book generator", "Model reply is not JSON")

    response = await client.post("/api/ai/generate-book", json={"userPrompt": "haunted lighthouse"})
    assert response.status_code == 502
    assert response.json() == {
        "success": False,
        "message": "Book generator error: Model reply is not JSON",
    }


@pytest.mark.asyncio
async def test_recommendations(client: AsyncClient, create_book):
    low = await create_book(title="Low", genre="Fantasy")
    high = await create_book(title="High", genre="Fantasy")
    await create_book(title="Other Genre", genre="Romance")
    await client.post(f"/api/books/{low['id']}/reviews", json={"rating": 2, "reviewerName": "Ann"})
    await client.post(f"/api/books/{high['id']}/reviews", json={"rating": 5, "reviewerName": "Ann"})

    response = await client.get("/api/ai/recommendations", params={"genre": "Fantasy"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert [book["title"] for book in data["recommendations"]] == ["High", "Low"]
    assert data["count"] == 2

    response = await client.get("/api/ai/recommendations", params={"genre": "All", "minRating": 3})
    assert [book["title"] for book in response.json()["data"]["recommendations"]] == ["High"]


@pytest.mark.asyncio
async def test_recommendations_limit_bounds(client: AsyncClient):
    response = await client.get("/api/ai/recommendations", params={"limit": 51})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_similar_excludes_reference(client: AsyncClient, create_book):
    reference = await create_book(title="Dune", author="Frank Herbert", genre="Sci-Fi", tags=["desert"])
    await create_book(title="Children of Dune", author="Frank Herbert", genre="Sci-Fi", tags=[])
    await create_book(title="Sands", author="Someone Else", genre="Drama", tags=["Desert"])
    await create_book(title="Whitewater", author="Someone Else", genre="Drama", tags=["deserted"])

    response = await client.get(f"/api/ai/similar/{reference['id']}")
    assert response.status_code == 200

    data = response.json()["data"]
    assert data["referenceBook"]["id"] == reference["id"]
    titles = {book["title"] for book in data["similarBooks"]}
    assert titles == {"Children of Dune", "Sands"}


@pytest.mark.asyncio
async def test_similar_unknown_book(client: AsyncClient):
    response = await client.get("/api/ai/similar/missing")
    assert response.status_code == 404
    assert response.json()["message"] == "Reference book not found"


@pytest.mark.asyncio
async def test_trending(client: AsyncClient, create_book):
    quiet = await create_book(title="Quiet")
    loved = await create_book(title="Loved")
    await client.post(f"/api/books/{loved['id']}/reviews", json={"rating": 5, "reviewerName": "Ann"})
    await client.post(f"/api/books/{quiet['id']}/reviews", json={"rating": 3, "reviewerName": "Ben"})

    response = await client.get("/api/ai/trending", params={"days": 7})
    assert response.status_code == 200

    data = response.json()["data"]
    assert data["days"] == 7
    assert [book["title"] for book in data["trendingBooks"]] == ["Loved", "Quiet"]


@pytest.mark.asyncio
async def test_search_substring(client: AsyncClient, create_book):
    await create_book(title="Dune", tags=["desert"])
    await create_book(title="Emma", author="Jane Austen", genre="Romance", tags=["society"])

    response = await client.get("/api/ai/search", params={"query": "DESERT"})
    assert response.status_code == 200

    data = response.json()["data"]
    assert data["searchType"] == "substring"
    assert data["count"] == 1
    assert data["books"][0]["title"] == "Dune"


@pytest.mark.asyncio
async def test_search_requires_query(client: AsyncClient):
    response = await client.get("/api/ai/search")
    assert response.status_code == 400

    response = await client.get("/api/ai/search", params={"query": "   "})
    assert response.status_code == 400


async def add_review(client: AsyncClient, book: dict, rating: int, name: str = "Reader"):
    response = await client.post(f"/api/books/{book['id']}/reviews", json={"rating": rating, "reviewerName": name})
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_recommendations_break_rating_ties_by_review_count(client: AsyncClient, create_book):
    once = await create_book(title="Reviewed Once")
    twice = await create_book(title="Reviewed Twice")
    await add_review(client, once, 4)
    await add_review(client, twice, 4, "Ann")
    await add_review(client, twice, 4, "Ben")

    response = await client.get("/api/ai/recommendations")
    titles = [book["title"] for book in response.json()["data"]["recommendations"]]
    assert titles == ["Reviewed Twice", "Reviewed Once"]


@pytest.mark.asyncio
async def test_trending_excludes_books_outside_window(client: AsyncClient, create_book, session_factory):
    stale = await create_book(title="Stale")
    revived = await create_book(title="Revived")
    fresh = await create_book(title="Fresh")
    long_ago = utcnow() - timedelta(days=60)
    await add_review(client, stale, 5)
    await add_review(client, revived, 4)

    async with session_factory() as session:
        await session.execute(
            update(Book).where(Book.id.in_([stale["id"], revived["id"]])).values(updated_at=long_ago)
        )
        await session.execute(
            update(BookReview).where(BookReview.book_id == stale["id"]).values(review_date=long_ago)
        )
        await session.commit()

    response = await client.get("/api/ai/trending", params={"days": 30})
    titles = [book["title"] for book in response.json()["data"]["trendingBooks"]]
    assert titles == [revived["title"], fresh["title"]]


@pytest.mark.asyncio
async def test_search_orders_by_rating_then_id(client: AsyncClient, create_book):
    good = await create_book(title="Desert Song", tags=[])
    great = await create_book(title="Sandstorm", tags=["desert"])
    unrated = [await create_book(title=f"Desert Road {i}", tags=[]) for i in range(2)]
    await add_review(client, good, 3)
    await add_review(client, great, 5)

    response = await client.get("/api/ai/search", params={"query": "desert"})
    ids = [book["id"] for book in response.json()["data"]["books"]]
    assert ids == [great["id"], good["id"], *sorted(book["id"] for book in unrated)]


@pytest.mark.asyncio
async def test_search_matches_tag_values_not_their_encoding(client: AsyncClient, create_book):
    await create_book(title="Dune", tags=["desert", "politics"])
    await create_book(title="Emma", author="Jane Austen", genre="Romance", tags=[])

    for query in ("]", '", "', '"'):
        response = await client.get("/api/ai/search", params={"query": query})
        assert response.json()["data"]["books"] == []


@pytest.mark.asyncio
async def test_search_matches_non_ascii_tag(client: AsyncClient, create_book):
    await create_book(title="Dune", tags=["café"])

    response = await client.get("/api/ai/search", params={"query": "café"})
    assert [book["title"] for book in response.json()["data"]["books"]] == ["Dune"]


@pytest.mark.asyncio
async def test_similar_by_shared_tag_only(client: AsyncClient, create_book):
    reference = await create_book(title="Bean Counter", author="Author A", genre="Sci-Fi", tags=["café"])
    await create_book(title="Espresso Nights", author="Author B", genre="Drama", tags=["Café"])
    await create_book(title="Unrelated", author="Author C", genre="Poetry", tags=["tea"])

    response = await client.get(f"/api/ai/similar/{reference['id']}")
    titles = [book["title"] for book in response.json()["data"]["similarBooks"]]
    assert titles == ["Espresso Nights"]


@pytest.mark.asyncio
async def test_similar_orders_and_limits(client: AsyncClient, create_book):
    reference = await create_book(title="Reference", genre="Mystery")
    matches = [await create_book(title=f"Match {i}", genre="Mystery") for i in range(3)]
    await add_review(client, matches[2], 5)
    await add_review(client, matches[0], 4)

    response = await client.get(f"/api/ai/similar/{reference['id']}", params={"limit": 2})
    titles = [book["title"] for book in response.json()["data"]["similarBooks"]]
    assert titles == ["Match 2", "Match 0"]
