"""Translate book filters, sorting and paging into SQLAlchemy statements."""
from dataclasses import dataclass, field
from typing import Literal, Optional

from sqlalchemy import ColumnElement, Select, String, column, exists, func, or_, select

from library_api.config import settings
from library_api.models.book import Book
from library_api.models.constraints import ALL_GENRES

SortOrder = Literal["asc", "desc"]

SORT_FIELDS = {
    "title": Book.title,
    "author": Book.author,
    "genre": Book.genre,
    "publicationYear": Book.publication_year,
    "pages": Book.pages,
    "averageRating": Book.average_rating,
    "totalReviews": Book.total_reviews,
    "createdAt": Book.created_at,
    "updatedAt": Book.updated_at,
}

DEFAULT_SORT_FIELD = "createdAt"


@dataclass(frozen=True)
class SortKey:
    field: str
    order: SortOrder = "asc"


@dataclass(frozen=True)
class BookQuery:
    """Every recognised listing option.

    Absent filters are skipped. Results are always finally ordered by id so
    pages are stable.
    """

    search: Optional[str] = None
    genre: Optional[str] = None
    author: Optional[str] = None
    year_from: Optional[int] = None
    year_to: Optional[int] = None
    min_rating: Optional[float] = None
    availability: Optional[str] = None
    sort: tuple[SortKey, ...] = field(default=(SortKey(DEFAULT_SORT_FIELD, "desc"),))
    page: int = 1
    limit: int = settings.default_page_size

    @classmethod
    def from_params(
        cls,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        **filters,
    ) -> "BookQuery":
        """Build a query from request-style ``sortBy``/``sortOrder`` values."""
        if sort_by in SORT_FIELDS:
            sort = (SortKey(sort_by, "desc" if sort_order == "desc" else "asc"),)
        else:
            sort = (SortKey(DEFAULT_SORT_FIELD, "desc"),)
        return cls(sort=sort, **filters)

    @property
    def sort_by(self) -> str:
        return self.sort[0].field

    @property
    def sort_order(self) -> str:
        return self.sort[0].order


def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    return text or None


class QueryBuilder:
    """Compile a :class:`BookQuery` into select and count statements."""

    def __init__(self, query: BookQuery):
        self.query = query
        self.page = max(1, query.page)
        self.limit = min(max(1, query.limit), settings.max_page_size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def conditions(self) -> list[ColumnElement[bool]]:
        q = self.query
        conditions: list[ColumnElement[bool]] = []

        search = _clean(q.search)
        if search:
            conditions.append(
                or_(
                    Book.title.icontains(search, autoescape=True),
                    Book.author.icontains(search, autoescape=True),
                    Book.description.icontains(search, autoescape=True),
                )
            )

        genre = _clean(q.genre)
        if genre and genre != ALL_GENRES:
            conditions.append(Book.genre == genre)

        author = _clean(q.author)
        if author:
            conditions.append(Book.author.icontains(author, autoescape=True))

        if q.year_from is not None:
            conditions.append(Book.publication_year >= q.year_from)
        if q.year_to is not None:
            conditions.append(Book.publication_year <= q.year_to)

        if q.min_rating is not None:
            conditions.append(Book.average_rating >= q.min_rating)

        availability = _clean(q.availability)
        if availability:
            conditions.append(Book.availability_status == availability)

        return conditions

    def order_by(self) -> list:
        clauses = []
        for key in self.query.sort:
            column = SORT_FIELDS.get(key.field)
            if column is None:
                continue
            clauses.append(column.desc() if key.order == "desc" else column.asc())
        if not clauses:
            clauses.append(SORT_FIELDS[DEFAULT_SORT_FIELD].desc())
        clauses.append(Book.id.asc())
        return clauses

    def statement(self) -> Select:
        return (
            select(Book)
            .where(*self.conditions())
            .order_by(*self.order_by())
            .offset(self.offset)
            .limit(self.limit)
        )

    def count_statement(self) -> Select:
        return select(func.count()).select_from(Book).where(*self.conditions())


def _tag_values(dialect_name: str):
    """The elements of ``books.tags`` as a one-column ``value`` table."""
    value = column("value", String)
    if dialect_name == "postgresql":
        return func.jsonb_array_elements_text(Book.tags).table_valued(value)
    return func.json_each(Book.tags).table_valued(value)


def tag_contains(text: str, dialect_name: str) -> ColumnElement[bool]:
    """True when any single tag contains ``text``, case-insensitively."""
    tags = _tag_values(dialect_name)
    return exists().where(tags.c.value.icontains(text, autoescape=True))


def tag_in(values: list[str], dialect_name: str) -> ColumnElement[bool]:
    """True when any tag equals one of ``values``, case-insensitively."""
    tags = _tag_values(dialect_name)
    return exists().where(func.lower(tags.c.value).in_([value.lower() for value in values]))


def substring_search_statement(text: str, limit: int, dialect_name: str) -> Select:
    """Case-insensitive substring match over title, author, description and tags.

    Ordered by rating then id so equal matches always come back the same way.
    """
    text = text.strip()
    return (
        select(Book)
        .where(
            or_(
                Book.title.icontains(text, autoescape=True),
                Book.author.icontains(text, autoescape=True),
                Book.description.icontains(text, autoescape=True),
                tag_contains(text, dialect_name),
            )
        )
        .order_by(Book.average_rating.desc(), Book.id.asc())
        .limit(limit)
    )


def ranked_search_statement(text: str, limit: int) -> Select:
    """PostgreSQL full-text match ranked by relevance."""
    document = func.to_tsvector(
        "english",
        func.concat_ws(" ", Book.title, Book.author, func.coalesce(Book.description, "")),
    )
    terms = func.plainto_tsquery("english", text.strip())
    rank = func.ts_rank(document, terms)
    return (
        select(Book)
        .where(document.op("@@")(terms))
        .order_by(rank.desc(), Book.average_rating.desc(), Book.id.asc())
        .limit(limit)
    )
