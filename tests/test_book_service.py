"""BookService tests against the session directly."""
import pytest

from library_api.core.exceptions import NotFoundError, ValidationError
from library_api.services.book_service import BookService
from library_api.services.query_builder import BookQuery


@pytest.fixture
async def service(session_factory):
    async with session_factory() as session:
        yield BookService(session)
        await session.rollback()


@pytest.mark.asyncio
async def test_create_from_raw_payload(service: BookService):
    book = await service.create_book({"title": "Dune", "author": "Frank Herbert", "genre": "Sci-Fi"})
    assert book.id
    assert (await service.get_book(book.id)) is book


@pytest.mark.asyncio
async def test_raw_payload_errors_use_wire_names(service: BookService):
    with pytest.raises(ValidationError) as exc_info:
        await service.create_book({"title": "Dune", "author": "Frank Herbert", "genre": "Sci-Fi", "publicationYear": 900})
    assert exc_info.value.errors[0]["field"] == "publicationYear"


@pytest.mark.asyncio
async def test_update_requires_fields(service: BookService):
    book = await service.create_book({"title": "Dune", "author": "Frank Herbert", "genre": "Sci-Fi"})
    with pytest.raises(ValidationError):
        await service.update_book(book.id, {})


@pytest.mark.asyncio
async def test_delete_unknown(service: BookService):
    with pytest.raises(NotFoundError):
        await service.delete_book("missing")


@pytest.mark.asyncio
async def test_year_breakdown_keeps_ten_busiest_years(service: BookService):
    # 2001 and 2002 get two books each, 1990..1999 one each
    years = [2001, 2001, 2002, 2002] + list(range(1990, 2000))
    for i, year in enumerate(years):
        await service.create_book(
            {"title": f"Book {i}", "author": "Author", "genre": "History", "publicationYear": year}
        )

    stats = await service.get_stats()
    breakdown = stats["recent_publications"]
    assert len(breakdown) == 10
    assert breakdown[:2] == [{"year": 2002, "count": 2}, {"year": 2001, "count": 2}]
    assert [entry["year"] for entry in breakdown[2:]] == list(range(1999, 1991, -1))


@pytest.mark.asyncio
async def test_list_default_order_is_newest_first(service: BookService):
    first = await service.create_book({"title": "First", "author": "A", "genre": "Drama"})
    second = await service.create_book({"title": "Second", "author": "A", "genre": "Drama"})

    books, pagination = await service.list_books(BookQuery())
    assert [book.id for book in books] == [second.id, first.id]
    assert pagination.total_books == 2
