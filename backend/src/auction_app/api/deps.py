"""API dependencies for authentication and database access."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from auction_app.core.database import get_db
from auction_app.core.security import decode_access_token
from auction_app.models.user import User
from auction_app.services.auction_service import AuctionService
from auction_app.services.bid_service import BidService
from auction_app.services.redis_service import RedisService, get_redis_service
from auction_app.services.user_service import UserService

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get current authenticated user from JWT token.

    The user row is loaded on every request so a ban takes effect at once.

    Args:
        credentials: HTTP Bearer token
        db: Database session

    Returns:
        Current user

    Raises:
        HTTPException: 401 if token is invalid or user not found,
            403 if the user is banned
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid authentication token")

    user_id = payload.get("sub")
    if user_id is None:
        raise _unauthorized("Invalid token payload")

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        raise _unauthorized("Invalid user ID in token")

    user = await UserService(db).get_by_id(user_uuid)
    if user is None:
        raise _unauthorized("User not found")

    if user.is_banned:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is banned",
        )

    return user


async def get_current_admin_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user and verify they are an admin.

    Raises:
        HTTPException: If user is not an admin
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(get_current_admin_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_user_service(db: DbSession) -> UserService:
    return UserService(db)


async def get_auction_service(db: DbSession) -> AuctionService:
    return AuctionService(db)


async def get_bid_service(
    db: DbSession,
    redis_service: Annotated[RedisService, Depends(get_redis_service)],
) -> BidService:
    """Get BidService instance with injected dependencies."""
    return BidService(db, redis_service)


UserServiceDep = Annotated[UserService, Depends(get_user_service)]
AuctionServiceDep = Annotated[AuctionService, Depends(get_auction_service)]
BidServiceDep = Annotated[BidService, Depends(get_bid_service)]
