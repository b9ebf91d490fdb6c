"""AI generation and discovery routes."""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from library_api.database import get_db
from library_api.schemas.ai import (
    GenerateBookRequest,
    GeneratedBookData,
    RecommendationData,
    SearchData,
    SimilarBooksData,
    TrendingData,
)
from library_api.schemas.common import ApiResponse
from library_api.services.ai_service import BookDraftGenerator, get_book_generator
from library_api.services.recommendation_service import RecommendationService

router = APIRouter(prefix="/ai", tags=["AI"])


def get_recommendation_service(db: AsyncSession = Depends(get_db)) -> RecommendationService:
    return RecommendationService(db)


@router.post("/generate-book", response_model=ApiResponse[GeneratedBookData], response_model_exclude_unset=True)
async def generate_book(
    request: GenerateBookRequest,
    generator: BookDraftGenerator = Depends(get_book_generator),
) -> dict:
    """Generate a book draft from a short theme. Nothing is saved."""
    draft = await generator.generate(request.user_prompt)
    return {"success": True, "data": {"book": draft, "prompt": request.user_prompt}}


@router.get("/recommendations", response_model=ApiResponse[RecommendationData], response_model_exclude_unset=True)
async def recommendations(
    genre: Optional[str] = None,
    min_rating: Optional[float] = Query(None, alias="minRating", ge=0, le=5),
    limit: int = Query(10, ge=1, le=50),
    service: RecommendationService = Depends(get_recommendation_service),
) -> dict:
    books = await service.recommend(genre=genre, min_rating=min_rating, limit=limit)
    return {"success": True, "data": {"recommendations": books, "count": len(books)}}


@router.get("/similar/{book_id}", response_model=ApiResponse[SimilarBooksData], response_model_exclude_unset=True)
async def similar_books(
    book_id: str,
    limit: int = Query(5, ge=1, le=50),
    service: RecommendationService = Depends(get_recommendation_service),
) -> dict:
    reference, similar = await service.similar(book_id, limit=limit)
    return {"success": True, "data": {"reference_book": reference, "similar_books": similar}}


@router.get("/trending", response_model=ApiResponse[TrendingData], response_model_exclude_unset=True)
async def trending_books(
    days: int = Query(30, ge=1, le=365),
    limit: int = Query(10, ge=1, le=50),
    service: RecommendationService = Depends(get_recommendation_service),
) -> dict:
    books = await service.trending(days=days, limit=limit)
    return {"success": True, "data": {"trending_books": books, "days": days, "count": len(books)}}


@router.get("/search", response_model=ApiResponse[SearchData], response_model_exclude_unset=True)
async def search_books(
    query: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=50),
    service: RecommendationService = Depends(get_recommendation_service),
) -> dict:
    """Free-text search across title, author, description and tags."""
    books, search_type = await service.search(query, limit=limit)
    return {
        "success": True,
        "data": {
            "books": books,
            "query": query.strip(),
            "count": len(books),
            "search_type": search_type,
        },
    }
