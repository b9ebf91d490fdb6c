"""Read-only discovery over the catalogue: recommendations, similar books,
trending books and free-text search."""
from datetime import timedelta
from typing import Optional

from sqlalchemy import exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from library_api.core.exceptions import NotFoundError, ValidationError
from library_api.core.logging import format_fields, get_logger
from library_api.core.utils import utcnow
from library_api.models.book import Book
from library_api.models.constraints import ALL_GENRES
from library_api.models.review import BookReview
from library_api.services.query_builder import (
    ranked_search_statement,
    substring_search_statement,
    tag_in,
)

logger = get_logger("services.recommendations")

SEARCH_RANKED = "ranked"
SEARCH_SUBSTRING = "substring"


class RecommendationService:
    """Service for ranking existing books."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @property
    def _dialect_name(self) -> str:
        return self.db.get_bind().dialect.name

    async def recommend(
        self,
        genre: Optional[str] = None,
        min_rating: Optional[float] = None,
        limit: int = 10,
    ) -> list[Book]:
        stmt = select(Book)
        if genre and genre != ALL_GENRES:
            stmt = stmt.where(Book.genre == genre)
        if min_rating is not None:
            stmt = stmt.where(Book.average_rating >= min_rating)
        stmt = stmt.order_by(
            Book.average_rating.desc(),
            Book.total_reviews.desc(),
            Book.id.asc(),
        ).limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def similar(self, book_id: str, limit: int = 5) -> tuple[Book, list[Book]]:
        """Books sharing the reference's genre, author or any tag.

        The reference itself is never part of the result.
        """
        reference = await self.db.get(Book, book_id)
        if reference is None:
            raise NotFoundError("Reference book", book_id, message="Reference book not found")

        shared = [
            Book.genre == reference.genre,
            func.lower(Book.author) == reference.author.lower(),
        ]
        if reference.tags:
            shared.append(tag_in(reference.tags, self._dialect_name))

        result = await self.db.execute(
            select(Book)
            .where(Book.id != reference.id, or_(*shared))
            .order_by(
                Book.average_rating.desc(),
                Book.total_reviews.desc(),
                Book.id.asc(),
            )
            .limit(limit)
        )
        return reference, list(result.scalars().all())

    async def trending(self, days: int = 30, limit: int = 10) -> list[Book]:
        """Books reviewed or updated within the last ``days`` days."""
        cutoff = utcnow() - timedelta(days=days)
        recent_review = exists().where(
            BookReview.book_id == Book.id,
            BookReview.review_date >= cutoff,
        )
        result = await self.db.execute(
            select(Book)
            .where(or_(Book.updated_at >= cutoff, recent_review))
            .order_by(
                Book.average_rating.desc(),
                Book.total_reviews.desc(),
                Book.updated_at.desc(),
                Book.id.asc(),
            )
            .limit(limit)
        )
        return list(result.scalars().all())

    async def search(self, text: str, limit: int = 10) -> tuple[list[Book], str]:
        """Ranked full-text search where the database offers it, else substring match."""
        text = text.strip()
        if not text:
            raise ValidationError("Search query is required", field="query")

        if self._dialect_name == "postgresql":
            result = await self.db.execute(ranked_search_statement(text, limit))
            books = list(result.scalars().all())
            if books:
                logger.info(f"Search: {format_fields(query=text, type=SEARCH_RANKED, count=len(books))}")
                return books, SEARCH_RANKED

        result = await self.db.execute(substring_search_statement(text, limit, self._dialect_name))
        books = list(result.scalars().all())
        logger.info(f"Search: {format_fields(query=text, type=SEARCH_SUBSTRING, count=len(books))}")
        return books, SEARCH_SUBSTRING
