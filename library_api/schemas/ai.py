"""Schemas for the generation and discovery endpoints."""
from typing import Any, Optional

from pydantic import Field, field_validator

from library_api.models.constraints import GENRES, Genre
from library_api.schemas.book import BookSummary
from library_api.schemas.common import BaseSchema


class GenerateBookRequest(BaseSchema):
    """Prompt for a generated book draft."""

    user_prompt: str = Field(..., min_length=3, max_length=500)

    @field_validator("user_prompt", mode="before")
    @classmethod
    def strip_prompt(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


class GeneratedBookDraft(BaseSchema):
    """Book fields proposed by the language model.

    Drafts are suggestions for a create form, so they are normalised rather
    than rejected where a sensible reading exists.
    """

    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    genre: str = Genre.OTHER.value
    publication_year: Optional[int] = None
    description: Optional[str] = None
    isbn: Optional[str] = None
    pages: Optional[int] = None
    publisher: Optional[str] = None
    tags: list[str] = []

    @field_validator("genre", mode="before")
    @classmethod
    def known_genre(cls, v: Any) -> str:
        if isinstance(v, str) and v.strip() in GENRES:
            return v.strip()
        return Genre.OTHER.value

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [tag.strip() for tag in v.split(",") if tag.strip()]
        return v

    @field_validator("isbn", "publisher", "description", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> Any:
        if v is None:
            return None
        return str(v).strip() or None


class GeneratedBookData(BaseSchema):
    book: GeneratedBookDraft
    prompt: str


class RecommendationData(BaseSchema):
    recommendations: list[BookSummary]
    count: int


class SimilarBooksData(BaseSchema):
    reference_book: BookSummary
    similar_books: list[BookSummary]


class TrendingData(BaseSchema):
    trending_books: list[BookSummary]
    days: int
    count: int


class SearchData(BaseSchema):
    books: list[BookSummary]
    query: str
    count: int
    search_type: str
