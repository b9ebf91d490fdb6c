"""Service layer."""
from library_api.services.ai_service import BookDraftGenerator, get_book_generator
from library_api.services.book_service import BookService
from library_api.services.query_builder import BookQuery, QueryBuilder, SortKey
from library_api.services.recommendation_service import RecommendationService

__all__ = [
    "BookService",
    "BookQuery",
    "QueryBuilder",
    "SortKey",
    "RecommendationService",
    "BookDraftGenerator",
    "get_book_generator",
]
