"""
Service for parent-owned child profiles.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from hkids.core.exceptions import ChildNotFound, ValidationError
from hkids.models import AgeGroup, Child, ChildPolicy, ReadingProgressEvent, ReadingSession
from hkids.schemas.child import ChildCreate, ChildUpdate

logger = logging.getLogger(__name__)


class ChildService:
    """Manage child profiles on behalf of their parent."""

    @staticmethod
    async def get_child(db: AsyncSession, child_id: UUID) -> Optional[Child]:
        result = await db.execute(select(Child).where(Child.id == child_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def ensure_child_belongs_to_parent(
        db: AsyncSession,
        child_id: UUID,
        parent_id: UUID
    ) -> Child:
        """Children of other parents are reported as missing, never as forbidden."""
        result = await db.execute(
            select(Child).where(Child.id == child_id, Child.parent_id == parent_id)
        )
        child = result.scalar_one_or_none()
        if not child:
            raise ChildNotFound()
        return child

    @staticmethod
    async def _ensure_age_group_exists(db: AsyncSession, age_group_id: UUID) -> None:
        result = await db.execute(select(AgeGroup.id).where(AgeGroup.id == age_group_id))
        if result.scalar_one_or_none() is None:
            raise ValidationError(
                "Invalid age_group_id",
                details={"invalid_age_group_ids": [str(age_group_id)]}
            )

    @staticmethod
    async def list_children(db: AsyncSession, parent_id: UUID) -> List[Child]:
        result = await db.execute(
            select(Child)
            .where(Child.parent_id == parent_id)
            .order_by(Child.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_child(db: AsyncSession, parent_id: UUID, child_data: ChildCreate) -> Child:
        """Create a child profile together with its default policy."""
        if child_data.age_group_id:
            await ChildService._ensure_age_group_exists(db, child_data.age_group_id)

        child = Child(
            parent_id=parent_id,
            name=child_data.name,
            age=child_data.age,
            avatar=child_data.avatar or "",
            age_group_id=child_data.age_group_id,
            is_active=True
        )
        db.add(child)
        await db.flush()

        # The child's own age group seeds the allowlist
        db.add(ChildPolicy.with_defaults(child.id, age_group_id=child_data.age_group_id))

        await db.commit()
        await db.refresh(child)
        logger.info(f"Created child profile {child.id} for parent {parent_id}")
        return child

    @staticmethod
    async def update_child(
        db: AsyncSession,
        parent_id: UUID,
        child_id: UUID,
        child_data: ChildUpdate
    ) -> Child:
        child = await ChildService.ensure_child_belongs_to_parent(db, child_id, parent_id)

        update_data = child_data.model_dump(exclude_unset=True)
        if update_data.get("age_group_id"):
            await ChildService._ensure_age_group_exists(db, update_data["age_group_id"])

        for field, value in update_data.items():
            if value is None:
                continue
            setattr(child, field, value)

        await db.commit()
        await db.refresh(child)
        if update_data.get("is_active") is False:
            logger.info(f"Deactivated child profile {child.id}")
        else:
            logger.info(f"Updated child profile {child.id}")
        return child

    @staticmethod
    async def delete_child(db: AsyncSession, parent_id: UUID, child_id: UUID) -> None:
        """Delete a child along with its policy and reading history."""
        child = await ChildService.ensure_child_belongs_to_parent(db, child_id, parent_id)

        session_ids = select(ReadingSession.id).where(ReadingSession.child_id == child.id)
        await db.execute(
            delete(ReadingProgressEvent).where(ReadingProgressEvent.session_id.in_(session_ids))
        )
        await db.execute(delete(ReadingSession).where(ReadingSession.child_id == child.id))
        await db.execute(delete(ChildPolicy).where(ChildPolicy.child_id == child.id))
        await db.execute(delete(Child).where(Child.id == child.id))
        await db.commit()
        logger.info(f"Deleted child profile {child_id} for parent {parent_id}")
