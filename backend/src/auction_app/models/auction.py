"""Auction model for timed listings."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from auction_app.core.database import Base
from auction_app.models.base import TimestampMixin

if TYPE_CHECKING:
    from auction_app.models.bid import Bid
    from auction_app.models.user import User


auction_likes = Table(
    "auction_likes",
    Base.metadata,
    Column(
        "auction_id",
        UUID(as_uuid=True),
        ForeignKey("auctions.auction_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "user_id",
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Index("idx_auction_likes_user", "user_id"),
)


class Auction(Base, TimestampMixin):
    """Auction model. Lifecycle status is derived from the time window, never stored."""

    __tablename__ = "auctions"

    auction_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    image_url: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )
    images: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )
    starting_bid: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )
    current_bid: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )
    highest_bidder_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="SET NULL"),
        nullable=True,
    )
    bid_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    views: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    seller_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    end_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    documents: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )
    category: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    location: Mapped[str | None] = mapped_column(
        String(200),
        nullable=True,
    )
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Relationships
    seller: Mapped["User"] = relationship(
        "User",
        back_populates="auctions",
        foreign_keys=[seller_id],
        lazy="selectin",
    )
    highest_bidder: Mapped[Optional["User"]] = relationship(
        "User",
        foreign_keys=[highest_bidder_id],
        lazy="selectin",
    )
    liked_by: Mapped[List["User"]] = relationship(
        "User",
        secondary=auction_likes,
        lazy="selectin",
    )
    bids: Mapped[List["Bid"]] = relationship(
        "Bid",
        back_populates="auction",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="chk_auction_time"),
        CheckConstraint("starting_bid > 0", name="chk_auction_starting_bid_positive"),
        CheckConstraint("current_bid >= starting_bid", name="chk_auction_current_bid"),
        CheckConstraint("bid_count >= 0", name="chk_auction_bid_count"),
        CheckConstraint("views >= 0", name="chk_auction_views"),
        Index("idx_auctions_seller", "seller_id"),
        Index("idx_auctions_category", "category"),
        Index("idx_auctions_time", "start_time", "end_time"),
        Index("idx_auctions_end_time", "end_time"),
    )

    @property
    def likes(self) -> int:
        return len(self.liked_by)

    @property
    def liked_by_ids(self) -> list[uuid.UUID]:
        return [user.user_id for user in self.liked_by]
