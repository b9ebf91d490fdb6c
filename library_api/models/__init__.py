"""SQLAlchemy models."""
from library_api.models.book import Book
from library_api.models.borrow import AvailabilityTracker, BorrowRecord
from library_api.models.constraints import AvailabilityStatus, Genre
from library_api.models.review import BookReview, ReviewLedger

__all__ = [
    # Book
    "Book",
    "Genre",
    # Availability
    "AvailabilityStatus",
    "AvailabilityTracker",
    "BorrowRecord",
    # Reviews
    "BookReview",
    "ReviewLedger",
]
