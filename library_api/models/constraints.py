"""Field constraints for book records.

These rules are plain data and functions so the aggregate and the request
schemas check a book the same way.
"""
import re
from collections.abc import Mapping
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any

from pydantic.alias_generators import to_camel


class Genre(str, PyEnum):
    """Genre enum."""
    FICTION = "Fiction"
    NON_FICTION = "Non-Fiction"
    MYSTERY = "Mystery"
    ROMANCE = "Romance"
    SCI_FI = "Sci-Fi"
    FANTASY = "Fantasy"
    BIOGRAPHY = "Biography"
    HISTORY = "History"
    SCIENCE = "Science"
    TECHNOLOGY = "Technology"
    BUSINESS = "Business"
    SELF_HELP = "Self-Help"
    CHILDREN = "Children"
    YOUNG_ADULT = "Young Adult"
    POETRY = "Poetry"
    DRAMA = "Drama"
    HORROR = "Horror"
    THRILLER = "Thriller"
    ADVENTURE = "Adventure"
    COMEDY = "Comedy"
    OTHER = "Other"


class AvailabilityStatus(str, PyEnum):
    """Availability status enum."""
    AVAILABLE = "Available"
    BORROWED = "Borrowed"
    RESERVED = "Reserved"
    MAINTENANCE = "Maintenance"


GENRES = frozenset(genre.value for genre in Genre)
AVAILABILITY_STATUSES = frozenset(status.value for status in AvailabilityStatus)

# Sentinel accepted by genre filters meaning "no genre filter"
ALL_GENRES = "All"

REQUIRED_FIELDS = ("title", "author", "genre")

MAX_LENGTHS = {
    "title": 200,
    "author": 100,
    "publisher": 100,
    "language": 30,
    "description": 2000,
    "added_by": 100,
}

TAG_MAX_LENGTH = 30
MIN_PUBLICATION_YEAR = 1000
MIN_PAGES = 1
MAX_PAGES = 50000

REVIEW_COMMENT_MAX_LENGTH = 1000
REVIEWER_NAME_MAX_LENGTH = 100
MIN_RATING = 1
MAX_RATING = 5

ISBN_PATTERN = re.compile(
    r"^(?:ISBN(?:-10|-13)?:? )?"
    r"(?=[0-9X]{10}$|(?=(?:[0-9]+[- ]){3})[- 0-9X]{13}$|97[89][0-9]{10}$"
    r"|(?=(?:[0-9]+[- ]){4})[- 0-9]{17}$)"
    r"(?:97[89][- ]?)?[0-9]{1,5}[- ]?[0-9]+[- ]?[0-9]+[- ]?[0-9X]$"
)

COVER_IMAGE_PATTERN = re.compile(r"^https?://.+\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)


def is_valid_isbn(value: str) -> bool:
    """ISBN-10 or ISBN-13, with or without hyphen/space separators."""
    compact = re.sub(r"[- ]", "", value)
    return bool(ISBN_PATTERN.match(value) or ISBN_PATTERN.match(compact))


def is_valid_cover_image(value: str) -> bool:
    return bool(COVER_IMAGE_PATTERN.match(value))


def max_publication_year() -> int:
    return datetime.now().year


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def check_book_fields(fields: Mapping[str, Any], partial: bool = False) -> list[dict[str, str]]:
    """Return field-level errors for snake_case book fields.

    With ``partial`` set only the fields present are checked, otherwise the
    required fields must be present and non-empty.
    """
    errors: list[dict[str, str]] = []

    def fail(name: str, message: str) -> None:
        errors.append({"field": to_camel(name), "message": message})

    for name in REQUIRED_FIELDS:
        if name not in fields and partial:
            continue
        value = fields.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            fail(name, f"{to_camel(name)} is required")

    for name in (*MAX_LENGTHS, "isbn", "cover_image"):
        value = fields.get(name)
        if value is not None and not isinstance(value, str):
            fail(name, f"{to_camel(name)} must be a string")
        elif value and len(value) > MAX_LENGTHS.get(name, len(value)):
            fail(name, f"{to_camel(name)} cannot exceed {MAX_LENGTHS[name]} characters")

    genre = fields.get("genre")
    if genre is not None and (not isinstance(genre, str) or genre not in GENRES):
        fail("genre", "Please select a valid genre")

    isbn = fields.get("isbn")
    if isinstance(isbn, str) and isbn and not is_valid_isbn(isbn):
        fail("isbn", "Please provide a valid ISBN number")

    year = fields.get("publication_year")
    if year is not None:
        if not _is_int(year):
            fail("publication_year", "Publication year must be a valid integer")
        elif year < MIN_PUBLICATION_YEAR:
            fail("publication_year", "Publication year must be after 1000")
        elif year > max_publication_year():
            fail("publication_year", "Publication year cannot be in the future")

    pages = fields.get("pages")
    if pages is not None:
        if not _is_int(pages):
            fail("pages", "Pages must be a valid integer")
        elif not MIN_PAGES <= pages <= MAX_PAGES:
            fail("pages", f"Pages must be between {MIN_PAGES} and {MAX_PAGES:,}")

    cover = fields.get("cover_image")
    if isinstance(cover, str) and cover and not is_valid_cover_image(cover):
        fail("cover_image", "Cover image must be a valid URL ending in jpg, jpeg, png, gif, or webp")

    tags = fields.get("tags")
    if tags is not None:
        if not isinstance(tags, (list, tuple)):
            fail("tags", "Tags must be a list of strings")
        elif any(not isinstance(tag, str) or len(tag) > TAG_MAX_LENGTH for tag in tags):
            fail("tags", f"Tag cannot exceed {TAG_MAX_LENGTH} characters")

    return errors
