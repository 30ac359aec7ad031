"""Admin API endpoints for user moderation."""

import logging
from uuid import UUID

from fastapi import APIRouter, Query

from auction_app.api.deps import AdminUser, UserServiceDep
from auction_app.core.exceptions import ValidationError
from auction_app.schemas.user import UserBanUpdate, UserListResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/users", response_model=UserListResponse)
async def list_users(
    admin: AdminUser,
    user_service: UserServiceDep,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """List users (admin only)."""
    users, total = await user_service.list_users(skip=skip, limit=limit)
    return UserListResponse(users=users, total=total)


@router.patch("/users/{user_id}/ban", response_model=UserResponse)
async def set_user_ban(
    user_id: UUID,
    ban_data: UserBanUpdate,
    admin: AdminUser,
    user_service: UserServiceDep,
):
    """Ban or unban a user (admin only).

    Raises:
        400: Admin tried to ban themselves
        404: User not found
    """
    if user_id == admin.user_id and ban_data.is_banned:
        raise ValidationError("Admins cannot ban themselves")

    user = await user_service.set_banned(user_id, ban_data.is_banned)
    logger.info(f"User {user_id} is_banned={ban_data.is_banned} set by admin {admin.user_id}")
    return user
