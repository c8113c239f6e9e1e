"""
Content authorization for children.

A book is readable by a child when the child is active, the book is
published, public and approved, and the book matches the child's policy
allowlists (an empty allowlist allows everything). The decision is made
against the database on every call; policies can change between requests.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hkids.core.exceptions import BookNotFound, NotAllowedError
from hkids.models import Book, BookPage, BookStatus, BookVisibility, Category, ChildPolicy
from hkids.schemas.reading import BookPageResponse, BookPagesResponse, BookSummary
from hkids.services.child_service import ChildService
from hkids.services.policy_service import PolicyService
from hkids.services.quota_service import QuotaService

logger = logging.getLogger(__name__)


def page_count_column():
    return (
        select(func.count(BookPage.id))
        .where(BookPage.book_id == Book.id)
        .correlate(Book)
        .scalar_subquery()
        .label("page_count")
    )


def to_book_summary(book: Book, page_count: int) -> BookSummary:
    return BookSummary(
        id=book.id,
        title=book.title,
        summary=book.summary or "",
        cover_image_url=book.cover_image_url or "",
        page_count=page_count,
        age_group_id=book.age_group_id,
        category_ids=book.category_ids,
        published_at=book.published_at
    )


class ContentService:
    """Per-book access checks and the shared eligibility predicate."""

    @staticmethod
    def eligibility_conditions(policy: ChildPolicy) -> list:
        """WHERE clauses every child-visible book must satisfy under ``policy``."""
        conditions = [
            Book.status == BookStatus.PUBLISHED,
            Book.visibility == BookVisibility.PUBLIC,
            Book.is_approved.is_(True),
        ]
        if policy.allowed_category_ids:
            category_ids = [UUID(str(value)) for value in policy.allowed_category_ids]
            conditions.append(Book.categories.any(Category.id.in_(category_ids)))
        if policy.allowed_age_group_ids:
            age_group_ids = [UUID(str(value)) for value in policy.allowed_age_group_ids]
            conditions.append(Book.age_group_id.in_(age_group_ids))
        return conditions

    @staticmethod
    async def is_book_allowed_for_child(db: AsyncSession, child_id: UUID, book_id: UUID) -> bool:
        child = await ChildService.get_child(db, child_id)
        if not child or not child.is_active:
            return False

        policy = await PolicyService.get_or_create_policy(db, child_id)
        result = await db.execute(
            select(Book.id)
            .where(Book.id == book_id, *ContentService.eligibility_conditions(policy))
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def _ensure_allowed(db: AsyncSession, child_id: UUID, book_id: UUID) -> None:
        if not await ContentService.is_book_allowed_for_child(db, child_id, book_id):
            logger.info(f"Book {book_id} is not allowed for child {child_id}")
            raise NotAllowedError()

    @staticmethod
    async def _get_book_with_page_count(db: AsyncSession, book_id: UUID) -> Optional[Tuple[Book, int]]:
        result = await db.execute(
            select(Book, page_count_column()).where(Book.id == book_id)
        )
        row = result.first()
        if not row:
            return None
        return row[0], int(row[1] or 0)

    @staticmethod
    async def get_book_if_allowed(db: AsyncSession, child_id: UUID, book_id: UUID) -> BookSummary:
        await ContentService._ensure_allowed(db, child_id, book_id)

        found = await ContentService._get_book_with_page_count(db, book_id)
        if not found:
            raise BookNotFound()
        book, page_count = found
        return to_book_summary(book, page_count)

    @staticmethod
    async def get_pages_if_allowed(
        db: AsyncSession,
        child_id: UUID,
        book_id: UUID,
        now: Optional[datetime] = None
    ) -> BookPagesResponse:
        """Return the book's pages in reading order once access and the daily gate pass."""
        await ContentService._ensure_allowed(db, child_id, book_id)
        await QuotaService.assert_can_read_now(db, child_id, now)

        result = await db.execute(
            select(Book)
            .options(selectinload(Book.pages))
            .where(Book.id == book_id)
        )
        book = result.scalar_one_or_none()
        if not book:
            raise BookNotFound()

        pages: List[BookPage] = sorted(book.pages, key=lambda page: page.page_number)
        return BookPagesResponse(
            book=to_book_summary(book, len(pages)),
            pages=[BookPageResponse.model_validate(page) for page in pages]
        )
