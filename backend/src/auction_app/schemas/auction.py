"""Auction schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from auction_app.schemas.user import UserSummary
from auction_app.services.auction_status import auction_status

StatusFilter = Literal["upcoming", "active", "ending-soon", "ended"]


class AuctionDocument(BaseModel):
    """Attached document such as a datasheet or certificate."""

    name: str = Field(..., min_length=1, max_length=200)
    url: str = Field(..., min_length=1, max_length=500)
    mime_type: str = Field(..., min_length=1, max_length=100)


class AuctionCreate(BaseModel):
    """Schema for auction creation request. start_time defaults to now."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    starting_bid: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    start_time: datetime | None = None
    end_time: datetime
    image_url: str | None = Field(None, max_length=500)
    images: list[str] = Field(default_factory=list, max_length=5)
    category: str | None = Field(None, max_length=100)
    location: str | None = Field(None, max_length=200)
    documents: list[AuctionDocument] = Field(default_factory=list, max_length=3)

    @model_validator(mode="after")
    def check_images(self) -> "AuctionCreate":
        if not self.images and not self.image_url:
            raise ValueError(
                "At least one image URL in images or a primary image_url is required"
            )
        return self


class AuctionUpdate(BaseModel):
    """Schema for auction update request. Only sent fields are considered."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1)
    starting_bid: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    start_time: datetime | None = None
    end_time: datetime | None = None
    image_url: str | None = Field(None, max_length=500)
    images: list[str] | None = Field(None, max_length=5)
    category: str | None = Field(None, max_length=100)
    location: str | None = Field(None, max_length=200)
    documents: list[AuctionDocument] | None = Field(None, max_length=3)


class AuctionResponse(BaseModel):
    """Schema for auction response including derived likes and status."""

    auction_id: UUID
    title: str
    description: str
    image_url: str | None
    images: list[str]
    starting_bid: Decimal
    current_bid: Decimal
    highest_bidder_id: UUID | None
    highest_bidder: UserSummary | None
    bid_count: int
    views: int
    likes: int
    liked_by: list[UUID]
    seller_id: UUID
    seller: UserSummary | None
    start_time: datetime
    end_time: datetime
    documents: list[AuctionDocument]
    category: str | None
    location: str | None
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_auction(cls, auction: Any, now: datetime | None = None) -> "AuctionResponse":
        """Build a response, deriving status at ``now``."""
        return cls(
            auction_id=auction.auction_id,
            title=auction.title,
            description=auction.description,
            image_url=auction.image_url,
            images=list(auction.images or []),
            starting_bid=auction.starting_bid,
            current_bid=auction.current_bid,
            highest_bidder_id=auction.highest_bidder_id,
            highest_bidder=(
                UserSummary.model_validate(auction.highest_bidder)
                if auction.highest_bidder is not None
                else None
            ),
            bid_count=auction.bid_count,
            views=auction.views,
            likes=auction.likes,
            liked_by=auction.liked_by_ids,
            seller_id=auction.seller_id,
            seller=UserSummary.model_validate(auction.seller) if auction.seller is not None else None,
            start_time=auction.start_time,
            end_time=auction.end_time,
            documents=list(auction.documents or []),
            category=auction.category,
            location=auction.location,
            status=auction_status(auction, now).value,
            created_at=auction.created_at,
            updated_at=auction.updated_at,
        )


class Pagination(BaseModel):
    total: int
    total_pages: int
    page: int
    limit: int


class AuctionListResponse(BaseModel):
    """Schema for paginated auction list response."""

    auctions: list[AuctionResponse]
    count: int
    pagination: Pagination


class LikeToggleResponse(BaseModel):
    liked: bool
    message: str
    auction: AuctionResponse


class MessageResponse(BaseModel):
    message: str
