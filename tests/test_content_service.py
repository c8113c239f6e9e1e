"""
Tests for per-book content authorization.
"""

import uuid
from datetime import timedelta

import pytest

from hkids.core.exceptions import BookNotFound, DailyLimitReachedError, NotAllowedError
from hkids.schemas.child import ChildUpdate
from hkids.schemas.policy import PolicyUpdate
from hkids.services.child_service import ChildService
from hkids.services.content_service import ContentService
from hkids.services.policy_service import PolicyService

from helpers import NOON, add_finished_session


class TestIsBookAllowedForChild:

    async def test_default_policy_allows_every_visible_book(self, db, seeded) -> None:
        books = seeded.books
        for book in (books.whale, books.rocket, books.owl_moon):
            assert await ContentService.is_book_allowed_for_child(db, seeded.child.id, book.id)

    @pytest.mark.parametrize("name", ["draft", "private", "unapproved"])
    async def test_unpublished_private_or_unapproved_books_are_hidden(self, db, seeded, name) -> None:
        book = getattr(seeded.books, name)
        assert not await ContentService.is_book_allowed_for_child(db, seeded.child.id, book.id)

    async def test_unknown_book_or_child(self, db, seeded) -> None:
        assert not await ContentService.is_book_allowed_for_child(db, seeded.child.id, uuid.uuid4())
        assert not await ContentService.is_book_allowed_for_child(db, uuid.uuid4(), seeded.books.whale.id)

    async def test_category_allowlist_matches_any_category(self, db, seeded) -> None:
        await PolicyService.update_policy(
            db, seeded.parent.id, seeded.child.id,
            PolicyUpdate(allowed_category_ids=[seeded.categories.space.id])
        )
        books = seeded.books

        assert await ContentService.is_book_allowed_for_child(db, seeded.child.id, books.rocket.id)
        assert await ContentService.is_book_allowed_for_child(db, seeded.child.id, books.owl_moon.id)
        assert not await ContentService.is_book_allowed_for_child(db, seeded.child.id, books.whale.id)

    async def test_age_group_allowlist(self, db, seeded) -> None:
        await PolicyService.update_policy(
            db, seeded.parent.id, seeded.child.id,
            PolicyUpdate(allowed_age_group_ids=[seeded.age_groups.older.id])
        )

        assert await ContentService.is_book_allowed_for_child(db, seeded.child.id, seeded.books.owl_moon.id)
        assert not await ContentService.is_book_allowed_for_child(db, seeded.child.id, seeded.books.whale.id)

    async def test_both_allowlists_must_match(self, db, seeded) -> None:
        await PolicyService.update_policy(
            db, seeded.parent.id, seeded.child.id,
            PolicyUpdate(
                allowed_category_ids=[seeded.categories.animals.id],
                allowed_age_group_ids=[seeded.age_groups.young.id]
            )
        )
        books = seeded.books

        assert await ContentService.is_book_allowed_for_child(db, seeded.child.id, books.whale.id)
        assert not await ContentService.is_book_allowed_for_child(db, seeded.child.id, books.rocket.id)
        assert not await ContentService.is_book_allowed_for_child(db, seeded.child.id, books.owl_moon.id)

    async def test_policy_change_applies_on_next_check(self, db, seeded) -> None:
        book_id = seeded.books.whale.id
        assert await ContentService.is_book_allowed_for_child(db, seeded.child.id, book_id)

        await PolicyService.update_policy(
            db, seeded.parent.id, seeded.child.id,
            PolicyUpdate(allowed_category_ids=[seeded.categories.music.id])
        )
        assert not await ContentService.is_book_allowed_for_child(db, seeded.child.id, book_id)

        await PolicyService.update_policy(
            db, seeded.parent.id, seeded.child.id,
            PolicyUpdate(allowed_category_ids=[])
        )
        assert await ContentService.is_book_allowed_for_child(db, seeded.child.id, book_id)

    async def test_inactive_child_is_denied(self, db, seeded) -> None:
        await ChildService.update_child(db, seeded.parent.id, seeded.child.id, ChildUpdate(is_active=False))

        assert not await ContentService.is_book_allowed_for_child(db, seeded.child.id, seeded.books.whale.id)


class TestGetBookIfAllowed:

    async def test_returns_summary_with_page_count(self, db, seeded) -> None:
        summary = await ContentService.get_book_if_allowed(db, seeded.child.id, seeded.books.owl_moon.id)

        assert summary.title == "Owl On The Moon"
        assert summary.page_count == 2
        assert set(summary.category_ids) == {seeded.categories.animals.id, seeded.categories.space.id}

    async def test_missing_book_reports_not_allowed(self, db, seeded) -> None:
        with pytest.raises(NotAllowedError) as exc_info:
            await ContentService.get_book_if_allowed(db, seeded.child.id, uuid.uuid4())

        assert exc_info.value.code == "BOOK_NOT_ALLOWED"
        assert not isinstance(exc_info.value, BookNotFound)

    async def test_hidden_book_reports_not_allowed(self, db, seeded) -> None:
        with pytest.raises(NotAllowedError):
            await ContentService.get_book_if_allowed(db, seeded.child.id, seeded.books.draft.id)


class TestGetPagesIfAllowed:

    async def test_pages_come_back_in_reading_order(self, db, seeded) -> None:
        response = await ContentService.get_pages_if_allowed(db, seeded.child.id, seeded.books.whale.id, NOON)

        assert [page.page_number for page in response.pages] == [1, 2, 3]
        assert response.book.page_count == 3

    async def test_disallowed_book_is_rejected_before_the_gate(self, db, seeded) -> None:
        await add_finished_session(db, seeded.child, seeded.books.whale, NOON - timedelta(hours=1), 20)

        with pytest.raises(NotAllowedError):
            await ContentService.get_pages_if_allowed(db, seeded.child.id, seeded.books.private.id, NOON)

    async def test_daily_limit_blocks_page_loads(self, db, seeded) -> None:
        await add_finished_session(db, seeded.child, seeded.books.whale, NOON - timedelta(hours=1), 20)

        with pytest.raises(DailyLimitReachedError):
            await ContentService.get_pages_if_allowed(db, seeded.child.id, seeded.books.rocket.id, NOON)
