"""Bidding API endpoints."""

import time
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, status

from auction_app.api.deps import BidServiceDep, CurrentUser
from auction_app.core.exceptions import AuctionAppError
from auction_app.middleware.metrics import record_bid
from auction_app.schemas.bid import (
    AuctionBidEntry,
    AuctionBidSummary,
    BidCreate,
    BidHistoryResponse,
    BidResponse,
    MyBidEntry,
    MyBidsResponse,
    PlaceBidResponse,
)

router = APIRouter()


@router.post(
    "/auctions/{auction_id}/bids",
    response_model=PlaceBidResponse,
    status_code=status.HTTP_201_CREATED,
)
async def place_bid(
    auction_id: UUID,
    bid_data: BidCreate,
    current_user: CurrentUser,
    bid_service: BidServiceDep,
):
    """Place a bid on an auction.

    Raises:
        404: Auction not found
        403: Caller is the seller
        400: Auction not running, or amount too low
        503: Too many concurrent bids, retry later
    """
    start = time.perf_counter()
    try:
        placed = await bid_service.place_bid(auction_id, current_user.user_id, bid_data.amount)
    except AuctionAppError as e:
        record_bid(e.code.lower(), time.perf_counter() - start)
        raise
    record_bid("success", time.perf_counter() - start)

    return PlaceBidResponse(
        bid=BidResponse.model_validate(placed.bid),
        auction=AuctionBidSummary.model_validate(placed.auction),
    )


@router.get("/auctions/{auction_id}/bids", response_model=BidHistoryResponse)
async def get_auction_bids(auction_id: UUID, bid_service: BidServiceDep):
    """Get all bids on an auction, newest first."""
    bids = await bid_service.list_for_auction(auction_id)
    return BidHistoryResponse(
        bids=[AuctionBidEntry.model_validate(bid) for bid in bids],
        total=len(bids),
    )


@router.get("/bids/me", response_model=MyBidsResponse)
async def get_my_bids(current_user: CurrentUser, bid_service: BidServiceDep):
    """Get the caller's bids across auctions, flagging where they lead."""
    now = datetime.now(timezone.utc)
    bids = await bid_service.list_for_bidder(current_user.user_id)
    return MyBidsResponse(
        bids=[MyBidEntry.from_bid(bid, current_user.user_id, now) for bid in bids],
        total=len(bids),
    )
