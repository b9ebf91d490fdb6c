"""Core utilities."""
from library_api.core.exceptions import (
    AppException,
    ConflictError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from library_api.core.langfuse_client import get_langfuse, observe, shutdown_langfuse
from library_api.core.logging import get_logger, setup_logging

__all__ = [
    # Exceptions
    "AppException",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "UpstreamError",
    # Langfuse
    "get_langfuse",
    "observe",
    "shutdown_langfuse",
    # Logging
    "get_logger",
    "setup_logging",
]
