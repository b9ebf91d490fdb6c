"""Langfuse observability client for tracing LLM calls."""
import functools
from typing import Any, Callable, Optional

from langfuse import Langfuse

from library_api.config import settings
from library_api.core.logging import get_logger

logger = get_logger("langfuse")

# Langfuse client instance (lazy initialization)
_langfuse_client: Optional[Langfuse] = None


def get_langfuse() -> Optional[Langfuse]:
    """Get or create the Langfuse client instance.

    Returns None when tracing keys are not configured.
    """
    global _langfuse_client

    if _langfuse_client is None and settings.langfuse_secret_key:
        _langfuse_client = Langfuse(
            secret_key=settings.langfuse_secret_key,
            public_key=settings.langfuse_public_key,
            host=settings.langfuse_host,
        )
        logger.info("Langfuse tracing enabled")

    return _langfuse_client


def observe(
    name: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> Callable:
    """Decorator to trace an async call with Langfuse."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            langfuse = get_langfuse()

            if langfuse is None:
                return await func(*args, **kwargs)

            trace = langfuse.start_span(
                name=name or func.__name__,
                metadata=metadata or {},
            )

            try:
                result = await func(*args, **kwargs)
                trace.update(output=str(result)[:1000])  # Truncate for safety
                return result
            except Exception as e:
                trace.update(
                    level="ERROR",
                    status_message=str(e),
                )
                raise
            finally:
                trace.end()
                langfuse.flush()

        return wrapper

    return decorator


def shutdown_langfuse() -> None:
    """Shutdown the Langfuse client."""
    global _langfuse_client
    if _langfuse_client:
        _langfuse_client.flush()
        _langfuse_client.shutdown()
        _langfuse_client = None
