from sqlalchemy import Column, String, Boolean, DateTime, Enum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
import enum

from hkids.core.database import Base

class UserRole(enum.Enum):
    ADMIN = "ADMIN"
    PARENT = "PARENT"
    CHILD = "CHILD"

class User(Base):
    """Account owned by the auth service. Parents own child profiles."""
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(Enum(UserRole), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    children = relationship("Child", back_populates="parent")

    def __repr__(self):
        return f"<User(email='{self.email}', role='{self.role.value}')>"
