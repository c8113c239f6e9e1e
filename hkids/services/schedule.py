"""
Daily reading window check.

The window is a pair of HH:mm wall-clock strings. When start is later than
end the window wraps midnight (20:00-07:00 allows 23:00 and 05:00). Both
bounds are inclusive.
"""

from datetime import datetime
from typing import Mapping, Optional
from zoneinfo import ZoneInfo

from hkids.core.config import settings


def minutes_from_schedule_time(value: str) -> int:
    hours, minutes = (int(part) for part in value.split(":"))
    return hours * 60 + minutes


def is_within_schedule(now: datetime, schedule: Optional[Mapping[str, str]]) -> bool:
    if not schedule:
        return True

    current_minutes = now.hour * 60 + now.minute
    start_minutes = minutes_from_schedule_time(schedule["start"])
    end_minutes = minutes_from_schedule_time(schedule["end"])

    if start_minutes <= end_minutes:
        return start_minutes <= current_minutes <= end_minutes
    return current_minutes >= start_minutes or current_minutes <= end_minutes


def schedule_now() -> datetime:
    """Wall clock the schedule window is compared against."""
    if settings.SCHEDULE_TIMEZONE:
        return datetime.now(ZoneInfo(settings.SCHEDULE_TIMEZONE))
    # Server local time
    return datetime.now()
