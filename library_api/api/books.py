"""Book API routes."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from library_api.config import settings
from library_api.database import get_db
from library_api.models.constraints import AvailabilityStatus
from library_api.schemas.book import (
    AvailableBooksData,
    BookCreate,
    BookData,
    BookListData,
    BookUpdate,
    BorrowRequest,
    GenreBooksData,
    ReturnRequest,
    ReviewCreate,
    StatsData,
)
from library_api.schemas.common import ApiResponse
from library_api.services.book_service import BookService
from library_api.services.query_builder import BookQuery

router = APIRouter(prefix="/books", tags=["Books"])


def get_book_service(db: AsyncSession = Depends(get_db)) -> BookService:
    return BookService(db)


@router.get("", response_model=ApiResponse[BookListData], response_model_exclude_unset=True)
async def list_books(
    search: Optional[str] = None,
    genre: Optional[str] = None,
    availability: Optional[AvailabilityStatus] = None,
    author: Optional[str] = None,
    year_from: Optional[int] = Query(None, alias="yearFrom", ge=0),
    year_to: Optional[int] = Query(None, alias="yearTo", ge=0),
    min_rating: Optional[float] = Query(None, alias="minRating", ge=0, le=5),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    service: BookService = Depends(get_book_service),
) -> dict:
    """List books with filtering, sorting and pagination."""
    query = BookQuery.from_params(
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        genre=genre,
        author=author,
        year_from=year_from,
        year_to=year_to,
        min_rating=min_rating,
        availability=availability.value if availability else None,
        page=page,
        limit=limit,
    )
    books, pagination = await service.list_books(query)
    return {
        "success": True,
        "data": {
            "books": books,
            "pagination": pagination,
            "filters": {
                "search": search,
                "genre": genre,
                "availability": query.availability,
                "sort_by": query.sort_by,
                "sort_order": query.sort_order,
            },
        },
    }


@router.post(
    "",
    response_model=ApiResponse[BookData],
    status_code=status.HTTP_201_CREATED,
    response_model_exclude_unset=True,
)
async def create_book(
    book_data: BookCreate,
    service: BookService = Depends(get_book_service),
) -> dict:
    book = await service.create_book(book_data)
    return {"success": True, "message": "Book created successfully", "data": {"book": book}}


@router.get("/stats", response_model=ApiResponse[StatsData], response_model_exclude_unset=True)
async def get_stats(service: BookService = Depends(get_book_service)) -> dict:
    """Library-wide statistics."""
    return {"success": True, "data": await service.get_stats()}


@router.get("/available", response_model=ApiResponse[AvailableBooksData], response_model_exclude_unset=True)
async def available_books(service: BookService = Depends(get_book_service)) -> dict:
    books = await service.available_books()
    return {"success": True, "data": {"books": books, "count": len(books)}}


@router.get("/genre/{genre}", response_model=ApiResponse[GenreBooksData], response_model_exclude_unset=True)
async def books_by_genre(
    genre: str,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    service: BookService = Depends(get_book_service),
) -> dict:
    books, pagination = await service.books_by_genre(genre, page=page, limit=limit)
    return {
        "success": True,
        "data": {"books": books, "genre": genre, "pagination": pagination},
    }


@router.get("/{book_id}", response_model=ApiResponse[BookData], response_model_exclude_unset=True)
async def get_book(book_id: str, service: BookService = Depends(get_book_service)) -> dict:
    book = await service.get_book(book_id)
    return {"success": True, "data": {"book": book}}


@router.put("/{book_id}", response_model=ApiResponse[BookData], response_model_exclude_unset=True)
async def update_book(
    book_id: str,
    book_data: BookUpdate,
    service: BookService = Depends(get_book_service),
) -> dict:
    """Partially update a book; fields not sent are left untouched."""
    book = await service.update_book(book_id, book_data)
    return {"success": True, "message": "Book updated successfully", "data": {"book": book}}


@router.delete("/{book_id}", response_model=ApiResponse[dict], response_model_exclude_unset=True)
async def delete_book(book_id: str, service: BookService = Depends(get_book_service)) -> dict:
    await service.delete_book(book_id)
    return {"success": True, "message": "Book deleted successfully"}


@router.post(
    "/{book_id}/reviews",
    response_model=ApiResponse[BookData],
    status_code=status.HTTP_201_CREATED,
    response_model_exclude_unset=True,
)
async def add_review(
    book_id: str,
    review_data: ReviewCreate,
    service: BookService = Depends(get_book_service),
) -> dict:
    book = await service.add_review(book_id, review_data)
    return {"success": True, "message": "Review added successfully", "data": {"book": book}}


@router.post("/{book_id}/borrow", response_model=ApiResponse[BookData], response_model_exclude_unset=True)
async def borrow_book(
    book_id: str,
    borrow_data: BorrowRequest,
    service: BookService = Depends(get_book_service),
) -> dict:
    book = await service.borrow_book(book_id, borrow_data)
    return {"success": True, "message": "Book borrowed successfully", "data": {"book": book}}


@router.post("/{book_id}/return", response_model=ApiResponse[BookData], response_model_exclude_unset=True)
async def return_book(
    book_id: str,
    return_data: ReturnRequest,
    service: BookService = Depends(get_book_service),
) -> dict:
    book = await service.return_book(book_id, return_data)
    return {"success": True, "message": "Book returned successfully", "data": {"book": book}}
