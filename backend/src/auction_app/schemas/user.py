"""User schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class UserRegister(BaseModel):
    """Schema for user registration request."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value


class UserLogin(BaseModel):
    """Schema for user login request."""

    email: EmailStr
    password: str


class UserSummary(BaseModel):
    """Public fields of a user embedded in auction and bid responses."""

    user_id: UUID
    name: str
    profile_picture_url: str | None = None

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    """Schema for user response."""

    user_id: UUID
    name: str
    email: str
    is_admin: bool = False
    is_banned: bool = False
    profile_picture_url: str | None = None
    last_login: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    """Schema for register/login response: token plus the user it belongs to."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class UserListResponse(BaseModel):
    users: list[UserResponse]
    total: int


class UserBanUpdate(BaseModel):
    is_banned: bool
