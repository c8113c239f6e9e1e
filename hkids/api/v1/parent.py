from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from hkids.core.database import get_db
from hkids.core.security import Principal, get_current_parent
from hkids.schemas.child import (
    ChildAnalyticsResponse, ChildCreate, ChildListResponse, ChildResponse, ChildUpdate
)
from hkids.schemas.policy import PolicyResponse, PolicyUpdate
from hkids.services.analytics_service import AnalyticsService
from hkids.services.child_service import ChildService
from hkids.services.policy_service import PolicyService

router = APIRouter(prefix="/parent")


# ========== Children ==========

@router.get("/children", response_model=ChildListResponse)
async def list_children(
    current_parent: Principal = Depends(get_current_parent),
    db: AsyncSession = Depends(get_db)
):
    children = await ChildService.list_children(db, current_parent.user_id)
    return ChildListResponse(
        children=[ChildResponse.model_validate(child) for child in children],
        total=len(children)
    )


@router.post("/children", response_model=ChildResponse, status_code=status.HTTP_201_CREATED)
async def create_child(
    child_data: ChildCreate,
    current_parent: Principal = Depends(get_current_parent),
    db: AsyncSession = Depends(get_db)
):
    """Create a child profile with a default reading policy."""
    return await ChildService.create_child(db, current_parent.user_id, child_data)


@router.get("/children/{child_id}", response_model=ChildResponse)
async def get_child(
    child_id: UUID,
    current_parent: Principal = Depends(get_current_parent),
    db: AsyncSession = Depends(get_db)
):
    return await ChildService.ensure_child_belongs_to_parent(db, child_id, current_parent.user_id)


@router.patch("/children/{child_id}", response_model=ChildResponse)
async def update_child(
    child_id: UUID,
    child_data: ChildUpdate,
    current_parent: Principal = Depends(get_current_parent),
    db: AsyncSession = Depends(get_db)
):
    """Update a child profile. Setting is_active=false locks the child out of the reader."""
    return await ChildService.update_child(db, current_parent.user_id, child_id, child_data)


@router.delete("/children/{child_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_child(
    child_id: UUID,
    current_parent: Principal = Depends(get_current_parent),
    db: AsyncSession = Depends(get_db)
):
    await ChildService.delete_child(db, current_parent.user_id, child_id)
    return None


# ========== Policy ==========

@router.get("/children/{child_id}/policy", response_model=PolicyResponse)
async def get_child_policy(
    child_id: UUID,
    current_parent: Principal = Depends(get_current_parent),
    db: AsyncSession = Depends(get_db)
):
    policy = await PolicyService.get_policy(db, current_parent.user_id, child_id)
    return PolicyService.sanitize_policy(policy)


@router.patch("/children/{child_id}/policy", response_model=PolicyResponse)
async def update_child_policy(
    child_id: UUID,
    policy_data: PolicyUpdate,
    current_parent: Principal = Depends(get_current_parent),
    db: AsyncSession = Depends(get_db)
):
    """Update allowlists, daily limit or schedule. Omitted fields stay as they are."""
    policy = await PolicyService.update_policy(db, current_parent.user_id, child_id, policy_data)
    return PolicyService.sanitize_policy(policy)


# ========== Analytics ==========

@router.get("/children/{child_id}/analytics", response_model=ChildAnalyticsResponse)
async def get_child_analytics(
    child_id: UUID,
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    current_parent: Principal = Depends(get_current_parent),
    db: AsyncSession = Depends(get_db)
):
    """Sessions, minutes and top books for one child, optionally within a date range."""
    return await AnalyticsService.get_child_analytics(
        db, current_parent.user_id, child_id, date_from, date_to
    )
