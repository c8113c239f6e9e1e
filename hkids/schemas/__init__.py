# Schemas package
from .policy import ScheduleWindow, PolicyUpdate, PolicyResponse
from .child import (
    ChildBase, ChildCreate, ChildUpdate, ChildResponse, ChildListResponse,
    TopBook, ChildAnalytics, ChildAnalyticsResponse
)
from .reading import (
    CategoryChip, BookSummary, LibraryResponse, BookPageResponse, BookPagesResponse,
    ResumeState, StartReadingRequest, StartReadingResponse,
    ProgressRequest, ProgressResponse, EndReadingRequest, EndReadingResponse
)
