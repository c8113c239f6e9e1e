"""
Pydantic schemas for child access policies.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Optional
from uuid import UUID

from hkids.core.config import settings

HHMM_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"


class ScheduleWindow(BaseModel):
    """Daily reading window; start after end means the window wraps midnight."""
    start: str = Field(..., pattern=HHMM_PATTERN, description="Start time, HH:mm")
    end: str = Field(..., pattern=HHMM_PATTERN, description="End time, HH:mm")


class PolicyUpdate(BaseModel):
    """Partial policy update. Omitted fields are left untouched; schedule=null clears the window."""
    allowed_category_ids: Optional[List[UUID]] = None
    allowed_age_group_ids: Optional[List[UUID]] = None
    daily_limit_minutes: Optional[int] = Field(
        None,
        ge=settings.MIN_DAILY_LIMIT_MINUTES,
        le=settings.MAX_DAILY_LIMIT_MINUTES
    )
    schedule: Optional[ScheduleWindow] = None

    @model_validator(mode="after")
    def reject_null_lists(self):
        for field in ("allowed_category_ids", "allowed_age_group_ids", "daily_limit_minutes"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class PolicyResponse(BaseModel):
    child_id: str
    allowed_category_ids: List[str]
    allowed_age_group_ids: List[str]
    daily_limit_minutes: int
    schedule: Optional[ScheduleWindow] = None

    model_config = ConfigDict(from_attributes=True)
