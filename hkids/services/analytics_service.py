"""
Per-child reading report for parents, built from reading session rows.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from hkids.core.exceptions import ValidationError
from hkids.models import Book, ReadingSession
from hkids.schemas.child import ChildAnalytics, ChildAnalyticsResponse, ChildResponse, TopBook
from hkids.services.child_service import ChildService
from hkids.services.quota_service import ensure_aware

logger = logging.getLogger(__name__)

TOP_BOOKS_LIMIT = 5


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return ensure_aware(value).astimezone(timezone.utc)


class AnalyticsService:
    """Reading totals and favourite books for one child."""

    @staticmethod
    async def get_child_analytics(
        db: AsyncSession,
        parent_id: UUID,
        child_id: UUID,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None
    ) -> ChildAnalyticsResponse:
        """
        Summarize the child's sessions, optionally limited to those started
        within [date_from, date_to].

        Open sessions count as sessions but add no minutes until they end.
        last_read_at is the end of the most recently started session, or its
        start while it is still open.
        """
        date_from, date_to = _as_utc(date_from), _as_utc(date_to)
        if date_from and date_to and date_from > date_to:
            raise ValidationError(
                "from must not be later than to",
                details={"from": date_from.isoformat(), "to": date_to.isoformat()}
            )

        child = await ChildService.ensure_child_belongs_to_parent(db, child_id, parent_id)

        conditions = [ReadingSession.child_id == child_id]
        if date_from:
            conditions.append(ReadingSession.started_at >= date_from)
        if date_to:
            conditions.append(ReadingSession.started_at <= date_to)

        totals = await db.execute(
            select(
                func.count(ReadingSession.id),
                func.coalesce(func.sum(ReadingSession.minutes), 0)
            ).where(*conditions)
        )
        total_sessions, total_minutes = totals.one()

        latest = await db.execute(
            select(ReadingSession.started_at, ReadingSession.ended_at)
            .where(*conditions)
            .order_by(ReadingSession.started_at.desc())
            .limit(1)
        )
        latest_row = latest.first()
        last_read_at = None
        if latest_row:
            last_read_at = ensure_aware(latest_row.ended_at or latest_row.started_at)

        book_minutes = func.coalesce(func.sum(ReadingSession.minutes), 0).label("minutes")
        top_books_result = await db.execute(
            select(
                ReadingSession.book_id,
                Book.title,
                func.count(ReadingSession.id).label("sessions"),
                book_minutes
            )
            .join(Book, Book.id == ReadingSession.book_id)
            .where(*conditions)
            .group_by(ReadingSession.book_id, Book.title)
            .order_by(book_minutes.desc(), Book.title)
            .limit(TOP_BOOKS_LIMIT)
        )
        top_books = [
            TopBook(book_id=book_id, title=title, sessions=sessions, minutes=int(minutes))
            for book_id, title, sessions, minutes in top_books_result.all()
        ]

        logger.info(f"Built reading analytics for child {child_id}: {total_sessions} sessions")
        return ChildAnalyticsResponse(
            child=ChildResponse.model_validate(child),
            analytics=ChildAnalytics(
                total_sessions=total_sessions,
                total_minutes=int(total_minutes),
                last_read_at=last_read_at,
                top_books=top_books
            )
        )
