"""Book model, the library's aggregate root."""
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, CheckConstraint, Float, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from library_api.core.exceptions import ValidationError
from library_api.core.logging import get_logger
from library_api.core.utils import new_id, utcnow
from library_api.database import Base, UTCDateTime
from library_api.models.borrow import AvailabilityTracker, BorrowRecord
from library_api.models.constraints import AvailabilityStatus, check_book_fields
from library_api.models.review import BookReview, ReviewLedger

logger = get_logger("models.book")

TagList = JSON().with_variant(JSONB(), "postgresql")

# Fields a caller may set through create/update
EDITABLE_FIELDS = (
    "title",
    "author",
    "genre",
    "isbn",
    "publication_year",
    "publisher",
    "pages",
    "language",
    "description",
    "cover_image",
    "tags",
    "added_by",
)


class Book(Base):
    """A book record with its availability, borrow ledger and reviews."""

    __tablename__ = "books"
    __table_args__ = (
        CheckConstraint("total_copies >= 0", name="ck_books_total_copies"),
        CheckConstraint("available_copies >= 0", name="ck_books_available_copies"),
        CheckConstraint("available_copies <= total_copies", name="ck_books_copies_le_total"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    genre: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    isbn: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    publication_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    publisher: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    pages: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    language: Mapped[str] = mapped_column(String(30), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cover_image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    tags: Mapped[list] = mapped_column(TagList, nullable=False)
    added_by: Mapped[str] = mapped_column(String(100), nullable=False)

    # Availability
    availability_status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    total_copies: Mapped[int] = mapped_column(Integer, nullable=False)
    available_copies: Mapped[int] = mapped_column(Integer, nullable=False)

    # Derived from reviews
    average_rating: Mapped[float] = mapped_column(Float, nullable=False, index=True)
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)

    # Relationships
    reviews: Mapped[list[BookReview]] = relationship(
        BookReview,
        back_populates="book",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by=BookReview.id,
    )
    borrow_records: Mapped[list[BorrowRecord]] = relationship(
        BorrowRecord,
        back_populates="book",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by=BorrowRecord.id,
    )

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title={self.title}, status={self.availability_status})>"

    @classmethod
    def create(cls, fields: Mapping[str, Any], now: Optional[datetime] = None) -> "Book":
        """Build a new record from sanitized snake_case fields.

        ``fields`` may carry an ``availability`` mapping with ``status``,
        ``total_copies`` and ``available_copies``; available copies default to
        the total.
        """
        errors = check_book_fields(fields)
        if errors:
            raise ValidationError("Validation failed", errors=errors)

        now = now or utcnow()
        book = cls(
            id=new_id(),
            title=fields["title"].strip(),
            author=fields["author"].strip(),
            genre=fields["genre"],
            isbn=fields.get("isbn") or None,
            publication_year=fields.get("publication_year"),
            publisher=fields.get("publisher") or None,
            pages=fields.get("pages"),
            language=fields.get("language") or "English",
            description=fields.get("description") or None,
            cover_image=fields.get("cover_image") or None,
            tags=list(fields.get("tags") or []),
            added_by=fields.get("added_by") or "System",
            availability_status=AvailabilityStatus.AVAILABLE.value,
            total_copies=1,
            available_copies=1,
            average_rating=0.0,
            total_reviews=0,
            created_at=now,
            updated_at=now,
        )
        book.reviews = []
        book.borrow_records = []

        availability = fields.get("availability") or {}
        total = availability.get("total_copies")
        available = availability.get("available_copies")
        if total is not None and available is None:
            available = total
        book.availability.set_copies(total, available)
        if availability.get("status"):
            book.availability.set_status(availability["status"])
        return book

    @property
    def availability(self) -> AvailabilityTracker:
        return AvailabilityTracker(self)

    @property
    def review_ledger(self) -> ReviewLedger:
        return ReviewLedger(self)

    @property
    def publication_info(self) -> str:
        if self.publisher and self.publication_year:
            return f"{self.publisher} ({self.publication_year})"
        if self.publication_year:
            return str(self.publication_year)
        if self.publisher:
            return self.publisher
        return "Publication info not available"

    def touch(self, now: Optional[datetime] = None) -> None:
        self.updated_at = now or utcnow()

    def apply_update(self, changes: Mapping[str, Any]) -> list[str]:
        """Apply a sparse update and return the names of the fields changed.

        Only editable fields are applied; identity, timestamps and the rating
        fields derived from reviews are never set from outside.
        """
        updates = {name: changes[name] for name in EDITABLE_FIELDS if name in changes}
        ignored = set(changes) - set(updates) - {"availability"}
        if ignored:
            logger.debug(f"Ignoring read-only fields on book {self.id}: {sorted(ignored)}")

        errors = check_book_fields(updates, partial=True)
        if errors:
            raise ValidationError("Validation failed", errors=errors)

        for name, value in updates.items():
            if name in ("title", "author") and isinstance(value, str):
                value = value.strip()
            elif name == "tags":
                value = list(value or [])
            elif name == "language":
                value = value or "English"
            elif name == "added_by":
                value = value or "System"
            elif isinstance(value, str) and not value:
                value = None
            setattr(self, name, value)

        changed = list(updates)
        availability = changes.get("availability")
        if availability:
            self.availability.set_copies(
                availability.get("total_copies"),
                availability.get("available_copies"),
            )
            if availability.get("status"):
                self.availability.set_status(availability["status"])
            changed.append("availability")

        self.touch()
        return changed

    def add_review(
        self,
        rating: int,
        reviewer_name: str,
        comment: Optional[str] = None,
        reviewer_email: Optional[str] = None,
        review_date: Optional[datetime] = None,
    ) -> BookReview:
        review = self.review_ledger.add(
            rating,
            reviewer_name,
            comment=comment,
            reviewer_email=reviewer_email,
            review_date=review_date,
        )
        self.touch()
        return review

    def borrow(
        self,
        name: str,
        email: str,
        due_date: Optional[datetime] = None,
    ) -> BorrowRecord:
        record = self.availability.checkout(name, email, due_date=due_date)
        self.touch()
        return record

    def return_book(self, email: str) -> BorrowRecord:
        record = self.availability.checkin(email)
        self.touch()
        return record
