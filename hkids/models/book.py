"""
Book model as published by the admin CMS.

Only books that are published, public and approved are ever shown to
children. Pages are stored in their own table ordered by page_number.
"""

from sqlalchemy import Column, String, Integer, DateTime, Boolean, Text, ForeignKey, Table, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum

from hkids.core.database import Base


class BookStatus(enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class BookVisibility(enum.Enum):
    PRIVATE = "private"
    PUBLIC = "public"


book_categories = Table(
    "book_categories",
    Base.metadata,
    Column("book_id", UUID(as_uuid=True), ForeignKey("books.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", UUID(as_uuid=True), ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class Book(Base):
    __tablename__ = "books"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    summary = Column(Text, default="")
    cover_image_url = Column(String(2000), default="")
    age_group_id = Column(UUID(as_uuid=True), ForeignKey("age_groups.id"), nullable=False, index=True)
    status = Column(SQLEnum(BookStatus), default=BookStatus.DRAFT, nullable=False)
    visibility = Column(SQLEnum(BookVisibility), default=BookVisibility.PRIVATE, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    published_at = Column(DateTime(timezone=True), nullable=True)

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    age_group = relationship("AgeGroup")
    categories = relationship("Category", secondary=book_categories, lazy="selectin")
    pages = relationship(
        "BookPage",
        back_populates="book",
        order_by="BookPage.page_number",
        cascade="all, delete-orphan"
    )

    @property
    def category_ids(self):
        return [category.id for category in self.categories]

    def __repr__(self):
        return f"<Book(title='{self.title}', status='{self.status.value}')>"


class BookPage(Base):
    __tablename__ = "book_pages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    book_id = Column(UUID(as_uuid=True), ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    page_number = Column(Integer, nullable=False)
    title = Column(String(255), default="")
    text = Column(Text, nullable=False)
    image_url = Column(String(2000), default="")
    narration_url = Column(String(2000), default="")

    book = relationship("Book", back_populates="pages")
