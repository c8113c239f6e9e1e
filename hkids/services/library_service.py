"""
Child library listing: the filtered shelf a child sees plus the minutes left today.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hkids.core.exceptions import ChildInactiveError, ChildNotFound
from hkids.models import Book, Category
from hkids.schemas.reading import CategoryChip, LibraryResponse
from hkids.services.child_service import ChildService
from hkids.services.content_service import ContentService, page_count_column, to_book_summary
from hkids.services.quota_service import QuotaService

logger = logging.getLogger(__name__)


class LibraryService:

    @staticmethod
    async def list_allowed_books(
        db: AsyncSession,
        child_id: UUID,
        now: Optional[datetime] = None
    ) -> LibraryResponse:
        """
        List every book the child may open, newest published first.

        The category chips only include categories that actually appear in the
        returned books (intersected with the allowlist when the policy has
        one), so the UI never renders an empty tab.
        """
        child = await ChildService.get_child(db, child_id)
        if not child:
            raise ChildNotFound()
        if not child.is_active:
            raise ChildInactiveError()

        allowance = await QuotaService.assert_can_read_now(db, child_id, now)
        policy = allowance.policy

        result = await db.execute(
            select(Book, page_count_column())
            .where(*ContentService.eligibility_conditions(policy))
            .order_by(Book.published_at.desc().nulls_last(), Book.title)
        )
        rows = result.all()

        allowed_category_ids = {str(value) for value in policy.allowed_category_ids or []}
        categories: Dict[UUID, Category] = {}
        for book, _ in rows:
            for category in book.categories:
                if allowed_category_ids and str(category.id) not in allowed_category_ids:
                    continue
                categories[category.id] = category

        chips: List[CategoryChip] = [
            CategoryChip.model_validate(category)
            for category in sorted(categories.values(), key=lambda c: (c.sort_order, c.name))
        ]

        books = [to_book_summary(book, int(page_count or 0)) for book, page_count in rows]
        logger.info(f"Listed {len(books)} books for child {child_id}")
        return LibraryResponse(
            total=len(books),
            remaining_minutes=allowance.remaining_minutes,
            categories=chips,
            books=books
        )
