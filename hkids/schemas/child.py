from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class ChildBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=80)
    age: int = Field(..., ge=2, le=17)
    avatar: Optional[str] = Field(None, max_length=2000)
    age_group_id: Optional[UUID] = None


class ChildCreate(ChildBase):
    pass


class ChildUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=80)
    age: Optional[int] = Field(None, ge=2, le=17)
    avatar: Optional[str] = Field(None, max_length=2000)
    age_group_id: Optional[UUID] = None
    is_active: Optional[bool] = None


class ChildResponse(BaseModel):
    id: UUID
    parent_id: UUID
    name: str
    age: int
    avatar: str = ""
    age_group_id: Optional[UUID] = None
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ChildListResponse(BaseModel):
    children: List[ChildResponse]
    total: int


# Analytics
class TopBook(BaseModel):
    book_id: UUID
    title: str
    sessions: int
    minutes: int


class ChildAnalytics(BaseModel):
    total_sessions: int
    total_minutes: int
    last_read_at: Optional[datetime] = None
    top_books: List[TopBook]


class ChildAnalyticsResponse(BaseModel):
    child: ChildResponse
    analytics: ChildAnalytics
