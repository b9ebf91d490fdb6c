"""Book Pydantic schemas."""
from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import EmailStr, Field, StringConstraints, field_validator

from library_api.core.utils import as_utc, utcnow
from library_api.models.constraints import (
    MAX_PAGES,
    MIN_PAGES,
    MIN_PUBLICATION_YEAR,
    TAG_MAX_LENGTH,
    AvailabilityStatus,
    Genre,
    is_valid_cover_image,
    is_valid_isbn,
    max_publication_year,
)
from library_api.schemas.common import BaseSchema, Pagination

Tag = Annotated[str, StringConstraints(strip_whitespace=True, max_length=TAG_MAX_LENGTH)]


class AvailabilityInput(BaseSchema):
    """Availability settings accepted on create/update."""

    status: Optional[AvailabilityStatus] = None
    total_copies: Optional[int] = Field(None, ge=0)
    available_copies: Optional[int] = Field(None, ge=0)


class BookFields(BaseSchema):
    """Optional book fields shared by create and update."""

    isbn: Optional[str] = None
    publication_year: Optional[int] = Field(None, ge=MIN_PUBLICATION_YEAR)
    publisher: Optional[str] = Field(None, max_length=100)
    pages: Optional[int] = Field(None, ge=MIN_PAGES, le=MAX_PAGES)
    description: Optional[str] = Field(None, max_length=2000)
    cover_image: Optional[str] = None
    availability: Optional[AvailabilityInput] = None

    @field_validator("isbn", "publisher", "description", "cover_image", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("isbn")
    @classmethod
    def check_isbn(cls, v: Optional[str]) -> Optional[str]:
        if v and not is_valid_isbn(v):
            raise ValueError("Please provide a valid ISBN number")
        return v or None

    @field_validator("publication_year")
    @classmethod
    def not_in_future(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v > max_publication_year():
            raise ValueError("Publication year cannot be in the future")
        return v

    @field_validator("cover_image")
    @classmethod
    def check_cover_image(cls, v: Optional[str]) -> Optional[str]:
        if v and not is_valid_cover_image(v):
            raise ValueError("Cover image must be a valid URL ending in jpg, jpeg, png, gif, or webp")
        return v or None


class BookCreate(BookFields):
    """Schema for creating a book."""

    title: str = Field(..., min_length=1, max_length=200)
    author: str = Field(..., min_length=1, max_length=100)
    genre: Genre
    language: str = Field("English", max_length=30)
    tags: list[Tag] = []
    added_by: str = Field("System", max_length=100)

    @field_validator("title", "author", "language", "added_by", mode="before")
    @classmethod
    def strip_required(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    def to_fields(self) -> dict[str, Any]:
        return self.model_dump()


class BookUpdate(BookFields):
    """Schema for a sparse update; absent fields are left untouched."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    author: Optional[str] = Field(None, min_length=1, max_length=100)
    genre: Optional[Genre] = None
    language: Optional[str] = Field(None, max_length=30)
    tags: Optional[list[Tag]] = None
    added_by: Optional[str] = Field(None, max_length=100)

    @field_validator("title", "author", "language", "added_by", mode="before")
    @classmethod
    def strip_optional(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    def to_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ReviewCreate(BaseSchema):
    """Schema for adding a review."""

    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)
    reviewer_name: str = Field(..., min_length=1, max_length=100)
    reviewer_email: Optional[EmailStr] = None
    review_date: Optional[datetime] = None

    @field_validator("reviewer_name", "comment", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


class BorrowRequest(BaseSchema):
    """Schema for borrowing a copy."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    due_date: Optional[datetime] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("due_date")
    @classmethod
    def not_in_past(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and as_utc(v) < utcnow():
            raise ValueError("Due date cannot be in the past")
        return v


class ReturnRequest(BaseSchema):
    """Schema for returning a copy."""

    email: EmailStr


class BorrowerResponse(BaseSchema):
    """Borrow ledger entry."""

    name: str
    email: str
    borrow_date: datetime
    due_date: datetime


class AvailabilityResponse(BaseSchema):
    """Availability block of a book."""

    status: AvailabilityStatus
    total_copies: int
    available_copies: int
    borrowed_by: list[BorrowerResponse] = []


class ReviewResponse(BaseSchema):
    """Review as shown to readers."""

    id: Optional[int] = None
    rating: int
    comment: Optional[str] = None
    reviewer_name: str
    review_date: datetime


class BookResponse(BaseSchema):
    """Full book record."""

    id: str
    title: str
    author: str
    genre: str
    isbn: Optional[str] = None
    publication_year: Optional[int] = None
    publisher: Optional[str] = None
    pages: Optional[int] = None
    language: str
    description: Optional[str] = None
    cover_image: Optional[str] = None
    tags: list[str] = []
    added_by: str
    availability: AvailabilityResponse
    reviews: list[ReviewResponse] = []
    average_rating: float
    total_reviews: int
    publication_info: str
    created_at: datetime
    updated_at: datetime


class BookSummary(BaseSchema):
    """Short listing used by discovery endpoints."""

    id: str
    title: str
    author: str
    genre: str
    average_rating: float
    total_reviews: int
    tags: list[str] = []


class BookData(BaseSchema):
    book: BookResponse


class AppliedFilters(BaseSchema):
    search: Optional[str] = None
    genre: Optional[str] = None
    availability: Optional[str] = None
    sort_by: str
    sort_order: str


class BookListData(BaseSchema):
    books: list[BookResponse]
    pagination: Pagination
    filters: AppliedFilters


class GenreBooksData(BaseSchema):
    books: list[BookResponse]
    genre: str
    pagination: Pagination


class AvailableBooksData(BaseSchema):
    books: list[BookResponse]
    count: int


class StatsOverview(BaseSchema):
    total_books: int
    available_books: int
    borrowed_books: int
    average_rating: float
    total_reviews: int


class GenreStat(BaseSchema):
    genre: str
    count: int
    average_rating: float


class YearStat(BaseSchema):
    year: int
    count: int


class StatsData(BaseSchema):
    overview: StatsOverview
    genre_distribution: list[GenreStat]
    recent_publications: list[YearStat]
