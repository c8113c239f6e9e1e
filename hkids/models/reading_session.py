"""
Reading session models.

A ReadingSession is one attempt by one child to read one book. It is open
while ended_at is NULL; the partial unique index keeps at most one open
session per (child, book). pages_read is a deduplicated list of page indices;
ReadingProgressEvent is the append-only log of every page view, ordered by
its autoincrement id.
"""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Index, JSON, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from hkids.core.database import Base


class ReadingSession(Base):
    __tablename__ = "reading_sessions"
    __table_args__ = (
        Index("ix_reading_sessions_child_started", "child_id", "started_at"),
        Index("ix_reading_sessions_book_started", "book_id", "started_at"),
        Index(
            "uq_reading_sessions_open_child_book",
            "child_id",
            "book_id",
            unique=True,
            postgresql_where=text("ended_at IS NULL"),
            sqlite_where=text("ended_at IS NULL"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    child_id = Column(UUID(as_uuid=True), ForeignKey("children.id", ondelete="CASCADE"), nullable=False)
    parent_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    book_id = Column(UUID(as_uuid=True), ForeignKey("books.id", ondelete="CASCADE"), nullable=False)

    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    minutes = Column(Integer, nullable=False, default=0)
    pages_read = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    progress_events = relationship(
        "ReadingProgressEvent",
        back_populates="session",
        order_by="ReadingProgressEvent.id",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    def __repr__(self):
        return f"<ReadingSession(child_id='{self.child_id}', book_id='{self.book_id}', open={self.is_open})>"


class ReadingProgressEvent(Base):
    __tablename__ = "reading_progress_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(UUID(as_uuid=True), ForeignKey("reading_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    page_index = Column(Integer, nullable=False)
    at = Column(DateTime(timezone=True), nullable=False)

    session = relationship("ReadingSession", back_populates="progress_events")
