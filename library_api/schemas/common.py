"""Common Pydantic schemas."""
import math
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from library_api.core.exceptions import ValidationError

DataT = TypeVar("DataT")
SchemaT = TypeVar("SchemaT", bound=BaseModel)


class BaseSchema(BaseModel):
    """Base schema with camelCase wire names."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


class FieldError(BaseModel):
    """A single field-level validation message."""

    field: str
    message: str


class ApiResponse(BaseModel, Generic[DataT]):
    """Uniform response envelope."""

    success: bool
    message: Optional[str] = None
    data: Optional[DataT] = None
    errors: Optional[list[FieldError]] = None


class Pagination(BaseSchema):
    """Pagination metadata for list responses."""

    current_page: int
    total_pages: int
    total_books: int
    has_next_page: bool
    has_prev_page: bool
    limit: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_books=total,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
            limit=limit,
        )


def format_errors(errors: list[dict[str, Any]], skip_locations: tuple[str, ...] = ()) -> list[dict[str, str]]:
    """Turn pydantic error dicts into ``{field, message}`` pairs."""
    formatted = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in skip_locations]
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        formatted.append({"field": ".".join(loc), "message": message})
    return formatted


def validate_payload(schema: type[SchemaT], data: Any) -> SchemaT:
    """Validate raw input against ``schema`` or raise a field-level ValidationError."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError("Validation failed", errors=format_errors(exc.errors())) from exc
