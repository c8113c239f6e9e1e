"""
Service for per-child access policies.

Exactly one ChildPolicy row exists per child once anything has read it. The
lazy create path relies on the unique constraint on child_id: when two first
requests race, the loser's insert fails and it re-reads the winner's row.
"""

import logging
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hkids.core.exceptions import ChildNotFound, ValidationError
from hkids.models import AgeGroup, Category, ChildPolicy
from hkids.schemas.policy import PolicyResponse, PolicyUpdate, ScheduleWindow
from hkids.services.child_service import ChildService

logger = logging.getLogger(__name__)


def _unique(ids: Iterable[UUID]) -> List[UUID]:
    return list(dict.fromkeys(ids))


class PolicyService:
    """Create, read and update child access policies."""

    @staticmethod
    async def _find_policy(db: AsyncSession, child_id: UUID) -> Optional[ChildPolicy]:
        result = await db.execute(
            select(ChildPolicy).where(ChildPolicy.child_id == child_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_or_create_policy(db: AsyncSession, child_id: UUID) -> ChildPolicy:
        """Return the child's policy, creating it with defaults on first access."""
        policy = await PolicyService._find_policy(db, child_id)
        if policy:
            return policy

        policy = ChildPolicy.with_defaults(child_id)
        db.add(policy)
        try:
            await db.commit()
        except IntegrityError:
            # Another request created the row first (or the child is gone)
            await db.rollback()
            policy = await PolicyService._find_policy(db, child_id)
            if not policy:
                raise ChildNotFound()
            logger.info(f"Policy for child {child_id} created concurrently, using existing row")
            return policy

        await db.refresh(policy)
        logger.info(f"Created default policy for child {child_id}")
        return policy

    @staticmethod
    async def ensure_policy_references_exist(
        db: AsyncSession,
        category_ids: Optional[List[UUID]] = None,
        age_group_ids: Optional[List[UUID]] = None
    ) -> None:
        """Raise ValidationError listing every allowlist id that does not exist."""
        details: Dict[str, List[str]] = {}

        if category_ids:
            unique_ids = _unique(category_ids)
            result = await db.execute(select(Category.id).where(Category.id.in_(unique_ids)))
            found = set(result.scalars().all())
            invalid = [str(value) for value in unique_ids if value not in found]
            if invalid:
                details["invalid_category_ids"] = invalid

        if age_group_ids:
            unique_ids = _unique(age_group_ids)
            result = await db.execute(select(AgeGroup.id).where(AgeGroup.id.in_(unique_ids)))
            found = set(result.scalars().all())
            invalid = [str(value) for value in unique_ids if value not in found]
            if invalid:
                details["invalid_age_group_ids"] = invalid

        if details:
            raise ValidationError("One or more policy references are invalid", details=details)

    @staticmethod
    async def get_policy(db: AsyncSession, parent_id: UUID, child_id: UUID) -> ChildPolicy:
        await ChildService.ensure_child_belongs_to_parent(db, child_id, parent_id)
        return await PolicyService.get_or_create_policy(db, child_id)

    @staticmethod
    async def update_policy(
        db: AsyncSession,
        parent_id: UUID,
        child_id: UUID,
        policy_data: PolicyUpdate
    ) -> ChildPolicy:
        """Merge the provided fields into the child's policy after validating references."""
        await ChildService.ensure_child_belongs_to_parent(db, child_id, parent_id)
        await PolicyService.ensure_policy_references_exist(
            db,
            category_ids=policy_data.allowed_category_ids,
            age_group_ids=policy_data.allowed_age_group_ids
        )

        # The lazy create may roll back, which expires loaded instances
        policy = await PolicyService.get_or_create_policy(db, child_id)
        update_data = policy_data.model_dump(exclude_unset=True)

        if "allowed_category_ids" in update_data:
            policy.allowed_category_ids = [str(value) for value in _unique(policy_data.allowed_category_ids)]
        if "allowed_age_group_ids" in update_data:
            policy.allowed_age_group_ids = [str(value) for value in _unique(policy_data.allowed_age_group_ids)]
        if "daily_limit_minutes" in update_data:
            policy.daily_limit_minutes = policy_data.daily_limit_minutes
        if "schedule" in update_data:
            schedule = policy_data.schedule
            policy.schedule_start = schedule.start if schedule else None
            policy.schedule_end = schedule.end if schedule else None

        await db.commit()
        await db.refresh(policy)
        logger.info(f"Updated policy for child {child_id}: {sorted(update_data)}")
        return policy

    @staticmethod
    def sanitize_policy(policy: ChildPolicy) -> PolicyResponse:
        schedule = policy.schedule
        return PolicyResponse(
            child_id=str(policy.child_id),
            allowed_category_ids=[str(value) for value in policy.allowed_category_ids or []],
            allowed_age_group_ids=[str(value) for value in policy.allowed_age_group_ids or []],
            daily_limit_minutes=policy.daily_limit_minutes,
            schedule=ScheduleWindow(**schedule) if schedule else None
        )
