"""
MotoresRD - Admin user management routes.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query

from api.models.user import (
    AccessLogResponse,
    AdminUserUpdate,
    UserListResponse,
    UserResponse,
    UserRole,
)
from api.routes.auth import require_role
from api.services.user_service import get_user_service
from database.models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/users")


@router.get("", response_model=UserListResponse)
async def list_users(
    role: UserRole | None = Query(None, description="Filter by role"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_role("admin")),
) -> UserListResponse:
    """List users, newest first."""
    users, total = await get_user_service().list_users(role=role, limit=limit, offset=offset)
    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in users],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(users) < total,
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    admin: User = Depends(require_role("admin")),
) -> UserResponse:
    user = await get_user_service().get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")
    return UserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: uuid.UUID,
    data: AdminUserUpdate,
    admin: User = Depends(require_role("admin")),
) -> UserResponse:
    """Change a user's role, active flag or verified flag."""
    user = await get_user_service().admin_update_user(admin, user_id, data)
    return UserResponse.model_validate(user)


@router.get("/{user_id}/access-log", response_model=list[AccessLogResponse])
async def get_access_log(
    user_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_role("admin")),
) -> list[AccessLogResponse]:
    """Login/logout history of a user."""
    entries = await get_user_service().list_access_logs(user_id, limit=limit, offset=offset)
    return [AccessLogResponse.model_validate(e) for e in entries]
