"""Book service for CRUD, borrowing, reviews and statistics."""
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from library_api.core.exceptions import ConflictError, NotFoundError, ValidationError
from library_api.core.logging import format_fields, get_logger
from library_api.models.book import Book
from library_api.models.constraints import AvailabilityStatus
from library_api.schemas.book import (
    BookCreate,
    BookUpdate,
    BorrowRequest,
    ReturnRequest,
    ReviewCreate,
)
from library_api.schemas.common import Pagination, validate_payload
from library_api.services.query_builder import BookQuery, QueryBuilder, SortKey

logger = get_logger("services.books")

YEAR_STATS_LIMIT = 10


class BookService:
    """Service for book operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_books(self, query: BookQuery) -> tuple[list[Book], Pagination]:
        """Filtered, sorted and paginated book list."""
        builder = QueryBuilder(query)
        total = (await self.db.execute(builder.count_statement())).scalar_one()
        result = await self.db.execute(builder.statement())
        books = list(result.scalars().all())

        logger.info(
            f"Books retrieved: {format_fields(count=len(books), total=total, page=builder.page)}"
        )
        return books, Pagination.build(builder.page, builder.limit, total)

    async def get_book(self, book_id: str) -> Book:
        book = await self.db.get(Book, book_id)
        if book is None:
            raise NotFoundError("Book", book_id)
        return book

    async def create_book(self, data: Any) -> Book:
        payload = validate_payload(BookCreate, data)
        book = Book.create(payload.to_fields())
        self.db.add(book)
        await self.db.flush()

        logger.info(
            f"Book created: {format_fields(book_id=book.id, title=book.title, added_by=book.added_by)}"
        )
        return book

    async def update_book(self, book_id: str, data: Any) -> Book:
        payload = validate_payload(BookUpdate, data)
        changes = payload.to_fields()
        if not changes:
            raise ValidationError("No fields to update")

        book = await self._get_for_update(book_id)
        changed = book.apply_update(changes)
        await self.db.flush()

        logger.info(f"Book updated: {format_fields(book_id=book.id, fields=changed)}")
        return book

    async def delete_book(self, book_id: str) -> Book:
        book = await self._get_for_update(book_id)
        await self.db.delete(book)
        await self.db.flush()

        logger.info(f"Book deleted: {format_fields(book_id=book_id, title=book.title)}")
        return book

    async def add_review(self, book_id: str, data: Any) -> Book:
        payload = validate_payload(ReviewCreate, data)
        book = await self._get_for_update(book_id)
        try:
            book.add_review(
                payload.rating,
                payload.reviewer_name,
                comment=payload.comment,
                reviewer_email=payload.reviewer_email,
                review_date=payload.review_date,
            )
        except ConflictError as exc:
            logger.warning(f"Review rejected: {format_fields(book_id=book_id, reason=exc.message)}")
            raise
        await self.db.flush()

        logger.info(
            f"Review added: {format_fields(book_id=book_id, rating=payload.rating, reviewer=payload.reviewer_name)}"
        )
        return book

    async def borrow_book(self, book_id: str, data: Any) -> Book:
        payload = validate_payload(BorrowRequest, data)
        book = await self._get_for_update(book_id)
        try:
            book.borrow(payload.name, payload.email, due_date=payload.due_date)
        except ConflictError as exc:
            logger.warning(f"Borrow rejected: {format_fields(book_id=book_id, reason=exc.message)}")
            raise
        await self.db.flush()

        logger.info(f"Book borrowed: {format_fields(book_id=book_id, email=payload.email)}")
        return book

    async def return_book(self, book_id: str, data: Any) -> Book:
        payload = validate_payload(ReturnRequest, data)
        book = await self._get_for_update(book_id)
        try:
            book.return_book(payload.email)
        except NotFoundError as exc:
            logger.warning(f"Return rejected: {format_fields(book_id=book_id, reason=exc.message)}")
            raise
        await self.db.flush()

        logger.info(f"Book returned: {format_fields(book_id=book_id, email=payload.email)}")
        return book

    async def books_by_genre(self, genre: str, page: int = 1, limit: int = 10) -> tuple[list[Book], Pagination]:
        """Books of exactly ``genre``; the "All" listing sentinel is not special here."""
        builder = QueryBuilder(
            BookQuery(
                sort=(SortKey("averageRating", "desc"), SortKey("createdAt", "desc")),
                page=page,
                limit=limit,
            )
        )
        in_genre = Book.genre == genre
        total = (await self.db.execute(builder.count_statement().where(in_genre))).scalar_one()
        result = await self.db.execute(builder.statement().where(in_genre))
        books = list(result.scalars().all())
        if not books:
            raise NotFoundError("Book", message=f"No books found in {genre} genre")

        logger.info(f"Genre books retrieved: {format_fields(genre=genre, count=len(books), total=total)}")
        return books, Pagination.build(builder.page, builder.limit, total)

    async def available_books(self) -> list[Book]:
        result = await self.db.execute(
            select(Book)
            .where(
                Book.availability_status == AvailabilityStatus.AVAILABLE.value,
                Book.available_copies > 0,
            )
            .order_by(Book.average_rating.desc(), Book.id.asc())
        )
        return list(result.scalars().all())

    async def get_stats(self) -> dict[str, Any]:
        """Library-wide totals plus genre and publication year breakdowns."""
        overview_row = (
            await self.db.execute(
                select(
                    func.count(Book.id),
                    func.sum(case((Book.availability_status == AvailabilityStatus.AVAILABLE.value, 1), else_=0)),
                    func.sum(case((Book.availability_status == AvailabilityStatus.BORROWED.value, 1), else_=0)),
                    func.avg(Book.average_rating),
                    func.sum(Book.total_reviews),
                )
            )
        ).one()
        total_books, available, borrowed, mean_rating, total_reviews = overview_row

        genre_rows = (
            await self.db.execute(
                select(Book.genre, func.count(Book.id).label("count"), func.avg(Book.average_rating))
                .group_by(Book.genre)
                .order_by(func.count(Book.id).desc(), Book.genre.asc())
            )
        ).all()

        # Ten busiest publication years, newest first
        year_rows = (
            await self.db.execute(
                select(Book.publication_year, func.count(Book.id).label("count"))
                .where(Book.publication_year.is_not(None))
                .group_by(Book.publication_year)
                .order_by(func.count(Book.id).desc(), Book.publication_year.desc())
                .limit(YEAR_STATS_LIMIT)
            )
        ).all()
        year_rows = sorted(year_rows, key=lambda row: row[0], reverse=True)

        return {
            "overview": {
                "total_books": total_books or 0,
                "available_books": int(available or 0),
                "borrowed_books": int(borrowed or 0),
                "average_rating": float(mean_rating or 0),
                "total_reviews": int(total_reviews or 0),
            },
            "genre_distribution": [
                {"genre": genre, "count": count, "average_rating": float(avg or 0)}
                for genre, count, avg in genre_rows
            ],
            "recent_publications": [
                {"year": year, "count": count} for year, count in year_rows
            ],
        }

    async def _get_for_update(self, book_id: str) -> Book:
        """Load a book with its row locked for the rest of the transaction."""
        result = await self.db.execute(
            select(Book)
            .where(Book.id == book_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        book = result.scalar_one_or_none()
        if book is None:
            raise NotFoundError("Book", book_id)
        return book
