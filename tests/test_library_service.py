"""
Tests for the child library listing.
"""

import uuid
from datetime import timedelta

import pytest

from hkids.core.exceptions import (
    ChildInactiveError, ChildNotFound, DailyLimitReachedError, ScheduleBlockedError
)
from hkids.schemas.child import ChildUpdate
from hkids.schemas.policy import PolicyUpdate, ScheduleWindow
from hkids.services.child_service import ChildService
from hkids.services.library_service import LibraryService
from hkids.services.policy_service import PolicyService

from helpers import NOON, add_finished_session


class TestListAllowedBooks:

    async def test_lists_visible_books_newest_first(self, db, seeded) -> None:
        library = await LibraryService.list_allowed_books(db, seeded.child.id, NOON)

        assert [book.title for book in library.books] == [
            "A Friendly Whale", "Rocket Ride", "Owl On The Moon"
        ]
        assert library.total == 3
        assert [book.page_count for book in library.books] == [3, 3, 2]

    async def test_chips_only_cover_categories_in_results(self, db, seeded) -> None:
        library = await LibraryService.list_allowed_books(db, seeded.child.id, NOON)

        # Music only appears on an unapproved book
        assert [chip.slug for chip in library.categories] == ["animals", "space"]

    async def test_category_allowlist_filters_books_and_chips(self, db, seeded) -> None:
        await PolicyService.update_policy(
            db, seeded.parent.id, seeded.child.id,
            PolicyUpdate(allowed_category_ids=[seeded.categories.space.id])
        )

        library = await LibraryService.list_allowed_books(db, seeded.child.id, NOON)

        assert [book.title for book in library.books] == ["Rocket Ride", "Owl On The Moon"]
        assert [chip.slug for chip in library.categories] == ["space"]

    async def test_age_group_allowlist(self, db, seeded) -> None:
        await PolicyService.update_policy(
            db, seeded.parent.id, seeded.child.id,
            PolicyUpdate(allowed_age_group_ids=[seeded.age_groups.young.id])
        )

        library = await LibraryService.list_allowed_books(db, seeded.child.id, NOON)

        assert [book.title for book in library.books] == ["A Friendly Whale", "Rocket Ride"]

    async def test_reports_remaining_minutes(self, db, seeded) -> None:
        await add_finished_session(db, seeded.child, seeded.books.whale, NOON - timedelta(hours=2), 7)

        library = await LibraryService.list_allowed_books(db, seeded.child.id, NOON)

        assert library.remaining_minutes == 13

    async def test_limit_reached_blocks_listing_until_next_day(self, db, seeded) -> None:
        await add_finished_session(db, seeded.child, seeded.books.whale, NOON - timedelta(hours=2), 20)

        with pytest.raises(DailyLimitReachedError):
            await LibraryService.list_allowed_books(db, seeded.child.id, NOON)

        library = await LibraryService.list_allowed_books(db, seeded.child.id, NOON + timedelta(days=1))
        assert library.remaining_minutes == 20

    async def test_outside_schedule(self, db, seeded) -> None:
        await PolicyService.update_policy(
            db, seeded.parent.id, seeded.child.id,
            PolicyUpdate(schedule=ScheduleWindow(start="16:00", end="18:00"))
        )

        with pytest.raises(ScheduleBlockedError):
            await LibraryService.list_allowed_books(db, seeded.child.id, NOON)

    async def test_inactive_child(self, db, seeded) -> None:
        await ChildService.update_child(db, seeded.parent.id, seeded.child.id, ChildUpdate(is_active=False))

        with pytest.raises(ChildInactiveError):
            await LibraryService.list_allowed_books(db, seeded.child.id, NOON)

    async def test_unknown_child(self, db, seeded) -> None:
        with pytest.raises(ChildNotFound):
            await LibraryService.list_allowed_books(db, uuid.uuid4(), NOON)
