"""API routes."""
from fastapi import APIRouter

from library_api.api import ai, books

api_router = APIRouter(prefix="/api")
api_router.include_router(books.router)
api_router.include_router(ai.router)

__all__ = ["api_router"]
