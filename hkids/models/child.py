"""
Child profile and per-child access policy.

A child belongs to exactly one parent account. Each child has at most one
ChildPolicy row (unique child_id); it is created lazily with defaults the
first time anything reads it.
"""

from sqlalchemy import Column, String, Integer, DateTime, Boolean, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from hkids.core.config import settings
from hkids.core.database import Base


class Child(Base):
    __tablename__ = "children"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    parent_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(80), nullable=False)
    age = Column(Integer, nullable=False)
    avatar = Column(String(2000), default="")
    age_group_id = Column(UUID(as_uuid=True), ForeignKey("age_groups.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    parent = relationship("User", back_populates="children")
    policy = relationship("ChildPolicy", back_populates="child", uselist=False)

    def __repr__(self):
        return f"<Child(name='{self.name}', parent_id='{self.parent_id}')>"


class ChildPolicy(Base):
    """
    Access rules for one child.

    Empty allowlists mean "no restriction". Both schedule fields null means
    reading is allowed at any time of day.
    """
    __tablename__ = "child_policies"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    child_id = Column(UUID(as_uuid=True), ForeignKey("children.id", ondelete="CASCADE"), nullable=False, unique=True)
    allowed_category_ids = Column(JSON, nullable=False, default=list)  # list of id strings
    allowed_age_group_ids = Column(JSON, nullable=False, default=list)  # list of id strings
    daily_limit_minutes = Column(Integer, nullable=False, default=20)
    schedule_start = Column(String(5), nullable=True)  # HH:mm
    schedule_end = Column(String(5), nullable=True)  # HH:mm
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    child = relationship("Child", back_populates="policy")

    @classmethod
    def with_defaults(cls, child_id, age_group_id=None):
        return cls(
            child_id=child_id,
            allowed_category_ids=[],
            allowed_age_group_ids=[str(age_group_id)] if age_group_id else [],
            daily_limit_minutes=settings.DEFAULT_DAILY_LIMIT_MINUTES,
            schedule_start=None,
            schedule_end=None
        )

    @property
    def schedule(self):
        if self.schedule_start and self.schedule_end:
            return {"start": self.schedule_start, "end": self.schedule_end}
        return None

    def __repr__(self):
        return f"<ChildPolicy(child_id='{self.child_id}', daily_limit={self.daily_limit_minutes})>"
