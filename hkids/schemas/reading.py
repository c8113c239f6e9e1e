"""
Pydantic schemas for the child-facing library and reading sessions.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime


# Library
class CategoryChip(BaseModel):
    id: UUID
    name: str
    slug: str

    model_config = ConfigDict(from_attributes=True)


class BookSummary(BaseModel):
    id: UUID
    title: str
    summary: str = ""
    cover_image_url: str = ""
    page_count: int
    age_group_id: UUID
    category_ids: List[UUID]
    published_at: Optional[datetime] = None


class LibraryResponse(BaseModel):
    total: int
    remaining_minutes: int
    categories: List[CategoryChip]
    books: List[BookSummary]


class BookPageResponse(BaseModel):
    page_number: int
    title: str = ""
    text: str
    image_url: str = ""
    narration_url: str = ""

    model_config = ConfigDict(from_attributes=True)


class BookPagesResponse(BaseModel):
    book: BookSummary
    pages: List[BookPageResponse]


class ResumeState(BaseModel):
    has_progress: bool
    page_index: int
    session_id: Optional[UUID] = None
    has_active_session: bool
    last_activity_at: Optional[datetime] = None


# Reading sessions
class StartReadingRequest(BaseModel):
    book_id: UUID


class StartReadingResponse(BaseModel):
    session_id: UUID
    child_id: UUID
    book_id: UUID
    started_at: datetime
    resume_page_index: int
    resumed: bool


class ProgressRequest(BaseModel):
    session_id: UUID
    page_index: int = Field(..., ge=0)


class ProgressResponse(BaseModel):
    session_id: UUID
    pages_read_count: int


class EndReadingRequest(BaseModel):
    session_id: UUID


class EndReadingResponse(BaseModel):
    session_id: UUID
    minutes: int
    pages_read: int
    ended_at: datetime
    daily_limit_minutes: int
    consumed_today_minutes: int
    remaining_minutes: int
    already_ended: bool = False
