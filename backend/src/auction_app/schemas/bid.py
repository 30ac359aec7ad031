"""Bid schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from auction_app.schemas.user import UserSummary
from auction_app.services.auction_status import auction_status


class BidCreate(BaseModel):
    """Schema for bid placement request."""

    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


class BidResponse(BaseModel):
    """Schema for bid response."""

    bid_id: UUID
    auction_id: UUID
    bidder_id: UUID
    amount: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}


class AuctionBidSummary(BaseModel):
    """Auction bid state after a successful placement."""

    auction_id: UUID
    current_bid: Decimal
    highest_bidder_id: UUID | None
    bid_count: int

    model_config = {"from_attributes": True}


class PlaceBidResponse(BaseModel):
    message: str = "Bid placed successfully!"
    bid: BidResponse
    auction: AuctionBidSummary


class AuctionBidEntry(BidResponse):
    """Bid on an auction's history, with public bidder details."""

    bidder: UserSummary | None = None


class BidHistoryResponse(BaseModel):
    """Schema for an auction's bid history, newest first."""

    bids: list[AuctionBidEntry]
    total: int


class MyBidAuction(BaseModel):
    """Auction details shown next to one of the caller's bids."""

    auction_id: UUID
    title: str
    image_url: str | None
    images: list[str]
    end_time: datetime
    current_bid: Decimal
    highest_bidder_id: UUID | None
    status: str


class MyBidEntry(BidResponse):
    auction: MyBidAuction | None = None
    is_highest_bidder: bool = False

    @classmethod
    def from_bid(cls, bid: Any, user_id: UUID, now: datetime | None = None) -> "MyBidEntry":
        auction = bid.auction
        summary = None
        if auction is not None:
            summary = MyBidAuction(
                auction_id=auction.auction_id,
                title=auction.title,
                image_url=auction.image_url,
                images=list(auction.images or []),
                end_time=auction.end_time,
                current_bid=auction.current_bid,
                highest_bidder_id=auction.highest_bidder_id,
                status=auction_status(auction, now).value,
            )
        return cls(
            bid_id=bid.bid_id,
            auction_id=bid.auction_id,
            bidder_id=bid.bidder_id,
            amount=bid.amount,
            created_at=bid.created_at,
            auction=summary,
            is_highest_bidder=summary is not None and summary.highest_bidder_id == user_id,
        )


class MyBidsResponse(BaseModel):
    bids: list[MyBidEntry]
    total: int
