"""Borrow ledger model and copy tracking."""
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from library_api.config import settings
from library_api.core.exceptions import ConflictError, NotFoundError, ValidationError
from library_api.core.utils import as_utc, normalize_email, utcnow
from library_api.database import Base, UTCDateTime
from library_api.models.constraints import AVAILABILITY_STATUSES, AvailabilityStatus

if TYPE_CHECKING:
    from library_api.models.book import Book


class BorrowRecord(Base):
    """One active borrower of a book."""

    __tablename__ = "borrow_records"
    __table_args__ = (
        UniqueConstraint("book_id", "email", name="uq_borrow_records_book_email"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    book_id: Mapped[str] = mapped_column(
        ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    borrow_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    due_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    book: Mapped["Book"] = relationship("Book", back_populates="borrow_records")

    def __repr__(self) -> str:
        return f"<BorrowRecord(book_id={self.book_id}, email={self.email})>"


class AvailabilityTracker:
    """Copy counts, status and borrow ledger of a single book.

    Every mutation leaves ``0 <= available_copies <= total_copies`` and keeps
    the Available/Borrowed status in step with the copy count. Reserved and
    Maintenance are manual states that copy transitions never override.
    """

    def __init__(self, book: "Book"):
        self._book = book

    @property
    def status(self) -> str:
        return self._book.availability_status

    @property
    def total_copies(self) -> int:
        return self._book.total_copies

    @property
    def available_copies(self) -> int:
        return self._book.available_copies

    @property
    def borrowed_by(self) -> list[BorrowRecord]:
        return self._book.borrow_records

    def find(self, email: str) -> Optional[BorrowRecord]:
        """First ledger entry for ``email`` in ledger order."""
        email = normalize_email(email)
        return next((r for r in self.borrowed_by if r.email == email), None)

    def checkout(
        self,
        name: str,
        email: str,
        due_date: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> BorrowRecord:
        """Record a borrow and take one copy off the shelf."""
        name = (name or "").strip()
        email = normalize_email(email or "")
        if not name:
            raise ValidationError("Borrower name is required", field="name")
        if not email:
            raise ValidationError("Email is required", field="email")

        if self.available_copies <= 0:
            raise ConflictError("No copies available for borrowing", reason="no_copies_available")
        if self.find(email) is not None:
            raise ConflictError(
                f"Duplicate borrower: {email} has already borrowed this book",
                reason="duplicate_borrower",
            )

        now = now or utcnow()
        record = BorrowRecord(
            name=name,
            email=email,
            borrow_date=now,
            due_date=as_utc(due_date) if due_date else now + timedelta(days=settings.borrow_period_days),
        )
        self._book.borrow_records.append(record)
        self._book.available_copies -= 1
        self.reconcile()
        return record

    def checkin(self, email: str) -> BorrowRecord:
        """Remove the borrower's ledger entry and put the copy back."""
        record = self.find(email or "")
        if record is None:
            raise NotFoundError(
                "Borrow record",
                message=f"No borrow record found for {normalize_email(email or '')}",
            )

        self._book.borrow_records.remove(record)
        self._book.available_copies += 1
        self.reconcile()
        return record

    def set_copies(
        self,
        total_copies: Optional[int] = None,
        available_copies: Optional[int] = None,
    ) -> None:
        if total_copies is not None:
            if total_copies < 0:
                raise ValidationError("Total copies cannot be negative", field="availability.totalCopies")
            self._book.total_copies = total_copies
        if available_copies is not None:
            if available_copies < 0:
                raise ValidationError(
                    "Available copies cannot be negative", field="availability.availableCopies"
                )
            self._book.available_copies = available_copies
        self.reconcile()

    def set_status(self, status: str) -> None:
        if status not in AVAILABILITY_STATUSES:
            raise ValidationError("Please select a valid availability status", field="availability.status")
        self._book.availability_status = status
        self.reconcile()

    def reconcile(self) -> None:
        """Clamp the copy count and toggle Available/Borrowed."""
        book = self._book
        book.available_copies = max(0, min(book.available_copies, book.total_copies))

        if book.availability_status in (AvailabilityStatus.AVAILABLE.value, AvailabilityStatus.BORROWED.value):
            if book.available_copies == 0 and book.total_copies > 0:
                book.availability_status = AvailabilityStatus.BORROWED.value
            else:
                book.availability_status = AvailabilityStatus.AVAILABLE.value
