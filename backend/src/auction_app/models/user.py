"""User model for marketplace members."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, DateTime, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from auction_app.core.database import Base
from auction_app.models.base import TimestampMixin

if TYPE_CHECKING:
    from auction_app.models.auction import Auction
    from auction_app.models.bid import Bid


class User(Base, TimestampMixin):
    """User model representing a buyer, seller or administrator."""

    __tablename__ = "users"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    is_banned: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    profile_picture_url: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )
    last_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    auctions: Mapped[List["Auction"]] = relationship(
        "Auction",
        back_populates="seller",
        foreign_keys="Auction.seller_id",
    )
    bids: Mapped[List["Bid"]] = relationship("Bid", back_populates="bidder")

    __table_args__ = (Index("idx_users_email", "email"),)
