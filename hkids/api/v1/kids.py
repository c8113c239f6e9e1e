"""
Child-facing reader endpoints.

Every call re-checks the child's policy; errors raised by the services
(NotAllowed, ScheduleBlocked, DailyLimitReached, ...) are rendered by the
application-wide handler with their own status and code.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from hkids.core.database import get_db
from hkids.core.security import Principal, get_current_child
from hkids.schemas.reading import (
    BookPagesResponse, BookSummary, EndReadingRequest, EndReadingResponse,
    LibraryResponse, ProgressRequest, ProgressResponse, ResumeState,
    StartReadingRequest, StartReadingResponse
)
from hkids.services.content_service import ContentService
from hkids.services.library_service import LibraryService
from hkids.services.reading_session_service import ReadingSessionService

router = APIRouter(prefix="/kids")


# ========== Library ==========

@router.get("/books", response_model=LibraryResponse)
async def list_books(
    current_child: Principal = Depends(get_current_child),
    db: AsyncSession = Depends(get_db)
):
    """Books the child may read right now, with minutes left today."""
    return await LibraryService.list_allowed_books(db, current_child.user_id)


@router.get("/books/{book_id}", response_model=BookSummary)
async def get_book(
    book_id: UUID,
    current_child: Principal = Depends(get_current_child),
    db: AsyncSession = Depends(get_db)
):
    return await ContentService.get_book_if_allowed(db, current_child.user_id, book_id)


@router.get("/books/{book_id}/pages", response_model=BookPagesResponse)
async def get_book_pages(
    book_id: UUID,
    current_child: Principal = Depends(get_current_child),
    db: AsyncSession = Depends(get_db)
):
    return await ContentService.get_pages_if_allowed(db, current_child.user_id, book_id)


@router.get("/books/{book_id}/resume", response_model=ResumeState)
async def get_book_resume(
    book_id: UUID,
    current_child: Principal = Depends(get_current_child),
    db: AsyncSession = Depends(get_db)
):
    """Where the child left off in this book, if anywhere."""
    return await ReadingSessionService.get_resume_state(db, current_child.user_id, book_id)


# ========== Reading sessions ==========

@router.post("/reading/start", response_model=StartReadingResponse, status_code=status.HTTP_201_CREATED)
async def start_reading(
    request: StartReadingRequest,
    response: Response,
    current_child: Principal = Depends(get_current_child),
    db: AsyncSession = Depends(get_db)
):
    """Start a session (201) or resume the open one for this book (200)."""
    result = await ReadingSessionService.start_reading(db, current_child.user_id, request.book_id)
    if result.resumed:
        response.status_code = status.HTTP_200_OK
    return result


@router.post("/reading/progress", response_model=ProgressResponse)
async def track_reading_progress(
    request: ProgressRequest,
    current_child: Principal = Depends(get_current_child),
    db: AsyncSession = Depends(get_db)
):
    return await ReadingSessionService.track_progress(
        db, current_child.user_id, request.session_id, request.page_index
    )


@router.post("/reading/end", response_model=EndReadingResponse)
async def end_reading(
    request: EndReadingRequest,
    current_child: Principal = Depends(get_current_child),
    db: AsyncSession = Depends(get_db)
):
    """End a session. Safe to call more than once."""
    return await ReadingSessionService.end_reading(db, current_child.user_id, request.session_id)
