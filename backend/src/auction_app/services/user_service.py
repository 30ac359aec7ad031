"""User service for registration, authentication and moderation."""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auction_app.core.exceptions import NotFoundError, ValidationError
from auction_app.core.security import get_password_hash, random_avatar_url, verify_password
from auction_app.models.user import User
from auction_app.schemas.user import UserRegister


class UserService:
    """Service class for user operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email (case-insensitive)."""
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        result = await self.db.execute(select(User).where(User.user_id == user_id))
        return result.scalar_one_or_none()

    async def create_user(self, user_data: UserRegister) -> User:
        """Create a new user with a random avatar.

        Args:
            user_data: User registration data

        Returns:
            Created user

        Raises:
            ValidationError: If email already exists
        """
        email = user_data.email.lower()
        existing = await self.get_by_email(email)
        if existing:
            raise ValidationError("Email already registered")

        user = User(
            name=user_data.name,
            email=email,
            password_hash=get_password_hash(user_data.password),
            is_admin=False,
            is_banned=False,
            profile_picture_url=random_avatar_url(),
        )

        try:
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
            return user
        except IntegrityError:
            await self.db.rollback()
            raise ValidationError("Email already registered")

    async def authenticate(self, email: str, password: str) -> User | None:
        """Authenticate user by email and password.

        Banned users are still returned; the caller decides how to refuse them.

        Args:
            email: User email
            password: Plain text password

        Returns:
            User if credentials match, None otherwise
        """
        user = await self.get_by_email(email)
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    async def record_login(self, user: User) -> User:
        user.last_login = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def regenerate_profile_picture(self, user: User) -> User:
        """Assign a new random avatar URL."""
        user.profile_picture_url = random_avatar_url()
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def list_users(self, skip: int = 0, limit: int = 100) -> tuple[list[User], int]:
        """Get users, newest first, with the total count."""
        count_result = await self.db.execute(select(func.count(User.user_id)))
        total = count_result.scalar_one()

        result = await self.db.execute(
            select(User).order_by(User.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def set_banned(self, user_id: UUID, is_banned: bool) -> User:
        """Ban or unban a user.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", user_id=str(user_id))
        user.is_banned = is_banned
        await self.db.commit()
        await self.db.refresh(user)
        return user
