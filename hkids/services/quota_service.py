"""
Daily reading quota and the single "can this child read now" gate.

Consumption is the sum of finalized session minutes for sessions started
since UTC midnight. Open sessions do not count until they are ended. The
schedule window is compared against the wall clock from
``hkids.services.schedule``; the two clocks are intentionally independent.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from hkids.core.config import settings
from hkids.core.exceptions import DailyLimitReachedError, ScheduleBlockedError
from hkids.models import ChildPolicy, ReadingSession
from hkids.services.policy_service import PolicyService
from hkids.services.schedule import is_within_schedule, schedule_now

logger = logging.getLogger(__name__)


@dataclass
class ReadingAllowance:
    policy: ChildPolicy
    consumed_minutes: int

    @property
    def remaining_minutes(self) -> int:
        return QuotaService.remaining_minutes(self.policy, self.consumed_minutes)


def ensure_aware(value: datetime) -> datetime:
    """SQLite hands timestamps back naive; they are stored in UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def start_of_utc_day(reference: datetime) -> datetime:
    reference = ensure_aware(reference).astimezone(timezone.utc)
    return reference.replace(hour=0, minute=0, second=0, microsecond=0)


class QuotaService:
    """Minutes consumed per UTC day and the reading gate built on them."""

    @staticmethod
    def remaining_minutes(policy: ChildPolicy, consumed_minutes: int) -> int:
        return max(policy.daily_limit_minutes - consumed_minutes, 0)

    @staticmethod
    async def minutes_consumed_today(
        db: AsyncSession,
        child_id: UUID,
        reference_time: Optional[datetime] = None
    ) -> int:
        reference_time = reference_time or datetime.now(timezone.utc)
        result = await db.execute(
            select(func.coalesce(func.sum(ReadingSession.minutes), 0))
            .where(
                ReadingSession.child_id == child_id,
                ReadingSession.started_at >= start_of_utc_day(reference_time),
                ReadingSession.ended_at.is_not(None)
            )
        )
        return int(result.scalar() or 0)

    @staticmethod
    async def assert_can_read_now(
        db: AsyncSession,
        child_id: UUID,
        now: Optional[datetime] = None
    ) -> ReadingAllowance:
        """
        Gate every listing, page load and session start.

        Raises ScheduleBlockedError outside the policy window, then
        DailyLimitReachedError once consumption reaches the daily limit.
        """
        policy = await PolicyService.get_or_create_policy(db, child_id)

        if now is None:
            wall_clock = schedule_now()
            now = datetime.now(timezone.utc)
        elif settings.SCHEDULE_TIMEZONE:
            wall_clock = ensure_aware(now).astimezone(ZoneInfo(settings.SCHEDULE_TIMEZONE))
        else:
            wall_clock = now

        if not is_within_schedule(wall_clock, policy.schedule):
            logger.info(f"Child {child_id} blocked by schedule {policy.schedule}")
            raise ScheduleBlockedError(details={"schedule": policy.schedule})

        consumed = await QuotaService.minutes_consumed_today(db, child_id, now)
        if consumed >= policy.daily_limit_minutes:
            logger.info(f"Child {child_id} reached daily limit ({consumed}/{policy.daily_limit_minutes} min)")
            raise DailyLimitReachedError(details={
                "daily_limit_minutes": policy.daily_limit_minutes,
                "consumed_today_minutes": consumed
            })

        return ReadingAllowance(policy=policy, consumed_minutes=consumed)
