"""
Pytest configuration and fixtures for the HKids reading core.

Each test gets a fresh in-memory SQLite database (aiosqlite on a StaticPool)
seeded with a parent, a child and a small catalog.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite+aiosqlite:///:memory:")

from datetime import timedelta
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hkids.core.database import Base, get_db
from hkids.main import app
from hkids.models import (
    AgeGroup, Book, BookPage, BookStatus, BookVisibility, Category, Child,
    User, UserRole
)

from helpers import NOON, create_access_token


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


def _book(title, age_group, categories, published_at, pages=3,
          status=BookStatus.PUBLISHED, visibility=BookVisibility.PUBLIC, is_approved=True):
    book = Book(
        title=title,
        slug=title.lower().replace(" ", "-"),
        summary=f"{title} summary",
        age_group_id=age_group.id,
        status=status,
        visibility=visibility,
        is_approved=is_approved,
        published_at=published_at,
    )
    book.categories = list(categories)
    book.pages = [
        BookPage(page_number=number, title=f"Page {number}", text=f"{title} page {number}")
        for number in range(pages, 0, -1)
    ]
    return book


@pytest.fixture
async def seeded(db):
    """Parent, child and catalog. The child starts without a policy row."""
    parent = User(email="parent@example.com", full_name="Pat Parent", role=UserRole.PARENT)
    other_parent = User(email="other@example.com", full_name="Other Parent", role=UserRole.PARENT)
    young = AgeGroup(name="Ages 3-5", min_age=3, max_age=5, sort_order=1)
    older = AgeGroup(name="Ages 6-8", min_age=6, max_age=8, sort_order=2)
    animals = Category(name="Animals", slug="animals", sort_order=1)
    space = Category(name="Space", slug="space", sort_order=2)
    music = Category(name="Music", slug="music", sort_order=3)
    db.add_all([parent, other_parent, young, older, animals, space, music])
    await db.flush()

    child = Child(parent_id=parent.id, name="Robin", age=5, age_group_id=young.id)
    db.add(child)

    base = NOON - timedelta(days=30)
    books = SimpleNamespace(
        whale=_book("A Friendly Whale", young, [animals], base + timedelta(days=3)),
        rocket=_book("Rocket Ride", young, [space], base + timedelta(days=2)),
        owl_moon=_book("Owl On The Moon", older, [animals, space], base + timedelta(days=1), pages=2),
        draft=_book("Draft Story", young, [animals], None, status=BookStatus.DRAFT),
        private=_book("Private Story", young, [animals], base, visibility=BookVisibility.PRIVATE),
        unapproved=_book("Unapproved Story", young, [music], base, is_approved=False),
    )
    db.add_all(list(vars(books).values()))
    await db.commit()

    return SimpleNamespace(
        parent=parent,
        other_parent=other_parent,
        child=child,
        age_groups=SimpleNamespace(young=young, older=older),
        categories=SimpleNamespace(animals=animals, space=space, music=music),
        books=books,
    )


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def child_headers(seeded):
    token = create_access_token(seeded.child.id, UserRole.CHILD, parent_id=seeded.parent.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def parent_headers(seeded):
    token = create_access_token(seeded.parent.id, UserRole.PARENT)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_parent_headers(seeded):
    token = create_access_token(seeded.other_parent.id, UserRole.PARENT)
    return {"Authorization": f"Bearer {token}"}
