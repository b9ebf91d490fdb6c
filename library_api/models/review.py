"""Review model and rating aggregation."""
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from library_api.core.exceptions import ConflictError, ValidationError
from library_api.core.utils import as_utc, normalize_email, utcnow
from library_api.database import Base, UTCDateTime
from library_api.models.constraints import (
    MAX_RATING,
    MIN_RATING,
    REVIEW_COMMENT_MAX_LENGTH,
    REVIEWER_NAME_MAX_LENGTH,
)

if TYPE_CHECKING:
    from library_api.models.book import Book


class BookReview(Base):
    """A reader's review of a book."""

    __tablename__ = "book_reviews"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    book_id: Mapped[str] = mapped_column(
        ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewer_name: Mapped[str] = mapped_column(String(REVIEWER_NAME_MAX_LENGTH), nullable=False)
    reviewer_email: Mapped[Optional[str]] = mapped_column(String(254), nullable=True)
    review_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)

    book: Mapped["Book"] = relationship("Book", back_populates="reviews")

    def __repr__(self) -> str:
        return f"<BookReview(book_id={self.book_id}, rating={self.rating})>"


def average_of(ratings: list[int]) -> float:
    """Mean rating rounded to one decimal, 0 when there are no ratings."""
    if not ratings:
        return 0.0
    return round(sum(ratings) / len(ratings), 1)


class ReviewLedger:
    """Append-only review list of a book and its derived rating fields."""

    def __init__(self, book: "Book"):
        self._book = book

    @property
    def reviews(self) -> list[BookReview]:
        return self._book.reviews

    def add(
        self,
        rating: int,
        reviewer_name: str,
        comment: Optional[str] = None,
        reviewer_email: Optional[str] = None,
        review_date: Optional[datetime] = None,
    ) -> BookReview:
        """Append a review and recompute ``average_rating``/``total_reviews``."""
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError("Rating must be between 1 and 5", field="rating")

        reviewer_name = (reviewer_name or "").strip()
        if not reviewer_name:
            raise ValidationError("Reviewer name is required", field="reviewerName")
        if len(reviewer_name) > REVIEWER_NAME_MAX_LENGTH:
            raise ValidationError("Reviewer name cannot exceed 100 characters", field="reviewerName")
        if comment and len(comment) > REVIEW_COMMENT_MAX_LENGTH:
            raise ValidationError("Comment cannot exceed 1000 characters", field="comment")

        if reviewer_email:
            reviewer_email = normalize_email(reviewer_email)
            if any(r.reviewer_email == reviewer_email for r in self.reviews):
                raise ConflictError("You have already reviewed this book", reason="duplicate_review")

        review = BookReview(
            rating=rating,
            comment=comment or None,
            reviewer_name=reviewer_name,
            reviewer_email=reviewer_email or None,
            review_date=as_utc(review_date) if review_date else utcnow(),
        )
        self.reviews.append(review)
        self.recompute()
        return review

    def recompute(self) -> None:
        ratings = [review.rating for review in self.reviews]
        self._book.total_reviews = len(ratings)
        self._book.average_rating = average_of(ratings)
