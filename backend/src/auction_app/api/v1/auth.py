"""Authentication API endpoints."""

from fastapi import APIRouter, HTTPException, status

from auction_app.api.deps import CurrentUser, UserServiceDep
from auction_app.core.config import settings
from auction_app.core.security import create_access_token
from auction_app.models.user import User
from auction_app.schemas.user import TokenResponse, UserLogin, UserRegister, UserResponse

router = APIRouter()


def _token_response(user: User) -> TokenResponse:
    token_data = {
        "sub": str(user.user_id),
        "email": user.email,
        "is_admin": user.is_admin,
    }
    return TokenResponse(
        access_token=create_access_token(data=token_data),
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserRegister, user_service: UserServiceDep):
    """Register a new user.

    Creates a new user with:
    - Hashed password (bcrypt)
    - Random placeholder avatar

    Returns:
        Created user and an access token

    Raises:
        400: Email already registered
    """
    user = await user_service.create_user(user_data)
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(user_data: UserLogin, user_service: UserServiceDep):
    """Login and get access token.

    Raises:
        401: Invalid credentials
        403: Account banned
    """
    user = await user_service.authenticate(user_data.email, user_data.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if user.is_banned:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is banned",
        )

    user = await user_service.record_login(user)
    return _token_response(user)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser):
    """Get current user information. Requires authentication."""
    return current_user


@router.patch("/profile-picture", response_model=UserResponse)
async def regenerate_profile_picture(current_user: CurrentUser, user_service: UserServiceDep):
    """Replace the caller's avatar with a new random one."""
    return await user_service.regenerate_profile_picture(current_user)
