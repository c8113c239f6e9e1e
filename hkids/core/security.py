"""
Bearer token verification for the reading API.

Tokens are minted by the external auth service; this module only decodes
them and exposes the caller as a ``Principal``.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hkids.core.config import settings
from hkids.models.user import UserRole

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    user_id: UUID
    role: UserRole
    parent_id: Optional[UUID] = None


def decode_access_token(token: str) -> Principal:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        parent_id = payload.get("parent_id")
        return Principal(
            user_id=UUID(payload["sub"]),
            role=UserRole(payload["role"]),
            parent_id=UUID(parent_id) if parent_id else None,
        )
    except jwt.PyJWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise credentials_exception
    except (KeyError, ValueError):
        raise credentials_exception


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Principal:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_access_token(credentials.credentials)


async def get_current_child(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role != UserRole.CHILD or principal.parent_id is None:
        raise HTTPException(status_code=403, detail="Child authentication is required")
    return principal


async def get_current_parent(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role != UserRole.PARENT:
        raise HTTPException(status_code=403, detail="Only parent access is allowed")
    return principal
