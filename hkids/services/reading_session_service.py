"""
Reading session lifecycle for a (child, book) pair.

States are NoSession -> Open -> Ended. Starting while a session is open
resumes it; ending is idempotent and finalizes the minutes exactly once.

Concurrency:
- Two starts for the same pair race on the partial unique index
  ``uq_reading_sessions_open_child_book``; the loser rolls back and resumes
  the winner's session.
- Two ends race on a conditional ``UPDATE ... WHERE ended_at IS NULL``; the
  caller that updates zero rows returns the already finalized summary.
- Progress appends lock the session row so the page set is not overwritten.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hkids.core.exceptions import (
    ChildInactiveError, NotAllowedError, SessionAlreadyEndedError, SessionNotFound,
    ValidationError
)
from hkids.models import ReadingProgressEvent, ReadingSession
from hkids.schemas.reading import (
    EndReadingResponse, ProgressResponse, ResumeState, StartReadingResponse
)
from hkids.services.child_service import ChildService
from hkids.services.content_service import ContentService
from hkids.services.policy_service import PolicyService
from hkids.services.quota_service import QuotaService, ensure_aware

logger = logging.getLogger(__name__)


def get_resume_page_index(session: ReadingSession) -> int:
    """
    Page a child lands on when reopening a book.

    The last logged event wins (children page backwards too); sessions
    without events fall back to the highest page in the page set.
    """
    if session.progress_events:
        return session.progress_events[-1].page_index
    if session.pages_read:
        return max(session.pages_read)
    return 0


def compute_session_minutes(started_at: datetime, ended_at: datetime) -> int:
    """Whole minutes between start and end, rounded half up, never below 1."""
    seconds = (ensure_aware(ended_at) - ensure_aware(started_at)).total_seconds()
    return max(int(math.floor(seconds / 60 + 0.5)), 1)


def _last_activity_at(session: ReadingSession) -> Optional[datetime]:
    if session.progress_events:
        return ensure_aware(session.progress_events[-1].at)
    fallback = session.started_at if session.is_open else session.ended_at
    return ensure_aware(fallback) if fallback else None


class ReadingSessionService:

    @staticmethod
    async def _find_open_session(
        db: AsyncSession,
        child_id: UUID,
        book_id: UUID
    ) -> Optional[ReadingSession]:
        result = await db.execute(
            select(ReadingSession)
            .where(
                ReadingSession.child_id == child_id,
                ReadingSession.book_id == book_id,
                ReadingSession.ended_at.is_(None)
            )
            .order_by(ReadingSession.started_at.desc())
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def _find_latest_session(
        db: AsyncSession,
        child_id: UUID,
        book_id: UUID
    ) -> Optional[ReadingSession]:
        result = await db.execute(
            select(ReadingSession)
            .where(
                ReadingSession.child_id == child_id,
                ReadingSession.book_id == book_id
            )
            .order_by(ReadingSession.started_at.desc())
        )
        return result.scalars().first()

    @staticmethod
    async def _get_owned_session(
        db: AsyncSession,
        child_id: UUID,
        session_id: UUID,
        for_update: bool = False
    ) -> ReadingSession:
        query = select(ReadingSession).where(
            ReadingSession.id == session_id,
            ReadingSession.child_id == child_id
        )
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query.execution_options(populate_existing=True))
        session = result.scalar_one_or_none()
        if not session:
            raise SessionNotFound()
        return session

    @staticmethod
    def _resumed_response(session: ReadingSession) -> StartReadingResponse:
        return StartReadingResponse(
            session_id=session.id,
            child_id=session.child_id,
            book_id=session.book_id,
            started_at=ensure_aware(session.started_at),
            resume_page_index=get_resume_page_index(session),
            resumed=True
        )

    @staticmethod
    async def get_resume_state(db: AsyncSession, child_id: UUID, book_id: UUID) -> ResumeState:
        if not await ContentService.is_book_allowed_for_child(db, child_id, book_id):
            raise NotAllowedError()

        session = await ReadingSessionService._find_open_session(db, child_id, book_id)
        has_active_session = session is not None
        if not session:
            session = await ReadingSessionService._find_latest_session(db, child_id, book_id)

        if not session:
            return ResumeState(
                has_progress=False,
                page_index=0,
                session_id=None,
                has_active_session=False,
                last_activity_at=None
            )

        return ResumeState(
            has_progress=True,
            page_index=get_resume_page_index(session),
            session_id=session.id,
            has_active_session=has_active_session,
            last_activity_at=_last_activity_at(session)
        )

    @staticmethod
    async def start_reading(
        db: AsyncSession,
        child_id: UUID,
        book_id: UUID,
        now: Optional[datetime] = None
    ) -> StartReadingResponse:
        """
        Open a reading session, or resume the one already open for this book.

        The daily gate and the content check run first; nothing is written
        when either rejects.
        """
        await QuotaService.assert_can_read_now(db, child_id, now)
        if not await ContentService.is_book_allowed_for_child(db, child_id, book_id):
            logger.info(f"Child {child_id} tried to start disallowed book {book_id}")
            raise NotAllowedError()

        open_session = await ReadingSessionService._find_open_session(db, child_id, book_id)
        if open_session:
            logger.info(f"Resumed reading session {open_session.id} for child {child_id}")
            return ReadingSessionService._resumed_response(open_session)

        last_session = await ReadingSessionService._find_latest_session(db, child_id, book_id)
        resume_page_index = get_resume_page_index(last_session) if last_session else 0

        child = await ChildService.get_child(db, child_id)
        started_at = now or datetime.now(timezone.utc)
        session = ReadingSession(
            child_id=child_id,
            parent_id=child.parent_id,
            book_id=book_id,
            started_at=started_at,
            minutes=0,
            pages_read=[]
        )
        db.add(session)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            open_session = await ReadingSessionService._find_open_session(db, child_id, book_id)
            if not open_session:
                raise
            logger.info(f"Concurrent start for child {child_id} book {book_id}, resuming {open_session.id}")
            return ReadingSessionService._resumed_response(open_session)

        logger.info(f"Started reading session {session.id} for child {child_id} book {book_id}")
        return StartReadingResponse(
            session_id=session.id,
            child_id=child_id,
            book_id=book_id,
            started_at=ensure_aware(started_at),
            resume_page_index=resume_page_index,
            resumed=False
        )

    @staticmethod
    async def track_progress(
        db: AsyncSession,
        child_id: UUID,
        session_id: UUID,
        page_index: int,
        now: Optional[datetime] = None
    ) -> ProgressResponse:
        if page_index < 0:
            raise ValidationError("page_index must be zero or greater", details={"page_index": page_index})

        session = await ReadingSessionService._get_owned_session(db, child_id, session_id, for_update=True)
        child = await ChildService.get_child(db, child_id)
        if not child or not child.is_active:
            logger.info(f"Rejected progress on session {session_id} for inactive child {child_id}")
            raise ChildInactiveError()
        if not session.is_open:
            raise SessionAlreadyEndedError()

        if page_index not in session.pages_read:
            session.pages_read = [*session.pages_read, page_index]
        session.progress_events.append(
            ReadingProgressEvent(page_index=page_index, at=now or datetime.now(timezone.utc))
        )
        pages_read_count = len(session.pages_read)
        await db.commit()

        return ProgressResponse(session_id=session.id, pages_read_count=pages_read_count)

    @staticmethod
    async def end_reading(
        db: AsyncSession,
        child_id: UUID,
        session_id: UUID,
        now: Optional[datetime] = None
    ) -> EndReadingResponse:
        """
        Finalize the session's minutes; calling it again returns the same summary.

        Deactivated children can still end an open session so its clock stops;
        they cannot add progress or start new sessions.
        """
        session = await ReadingSessionService._get_owned_session(db, child_id, session_id)
        already_ended = not session.is_open

        if not already_ended:
            ended_at = now or datetime.now(timezone.utc)
            minutes = compute_session_minutes(session.started_at, ended_at)
            result = await db.execute(
                update(ReadingSession)
                .where(ReadingSession.id == session.id, ReadingSession.ended_at.is_(None))
                .values(ended_at=ended_at, minutes=minutes)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            if result.rowcount == 0:
                already_ended = True
                logger.info(f"Reading session {session.id} was ended by a concurrent request")
            else:
                logger.info(f"Ended reading session {session.id}: {minutes} min")
            await db.refresh(session)

        ended_at = ensure_aware(session.ended_at)
        policy = await PolicyService.get_or_create_policy(db, child_id)
        consumed = await QuotaService.minutes_consumed_today(db, child_id, ended_at)

        return EndReadingResponse(
            session_id=session.id,
            minutes=session.minutes,
            pages_read=len(session.pages_read or []),
            ended_at=ended_at,
            daily_limit_minutes=policy.daily_limit_minutes,
            consumed_today_minutes=consumed,
            remaining_minutes=QuotaService.remaining_minutes(policy, consumed),
            already_ended=already_ended
        )
