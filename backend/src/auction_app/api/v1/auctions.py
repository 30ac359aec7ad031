"""Auction API endpoints."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Query, status

from auction_app.api.deps import AuctionServiceDep, CurrentUser
from auction_app.core.config import settings
from auction_app.schemas.auction import (
    AuctionCreate,
    AuctionListResponse,
    AuctionResponse,
    AuctionUpdate,
    LikeToggleResponse,
    MessageResponse,
    Pagination,
    StatusFilter,
)
from auction_app.services.auction_policy import Actor
from auction_app.services.auction_service import (
    AuctionFilters,
    AuctionService,
    schedule_view_increment,
    total_pages,
)

router = APIRouter()

SortField = Literal[
    "end_time", "start_time", "current_bid", "created_at", "bid_count", "views", "title"
]


async def _list_response(
    auction_service: AuctionService,
    filters: AuctionFilters,
    page: int,
    limit: int,
    running_by_default: bool,
) -> AuctionListResponse:
    now = datetime.now(timezone.utc)
    auctions, total = await auction_service.list_auctions(
        filters,
        page=page,
        limit=limit,
        now=now,
        running_by_default=running_by_default,
    )
    return AuctionListResponse(
        auctions=[AuctionResponse.from_auction(auction, now) for auction in auctions],
        count=len(auctions),
        pagination=Pagination(
            total=total,
            total_pages=total_pages(total, limit),
            page=page,
            limit=limit,
        ),
    )


@router.get("", response_model=AuctionListResponse)
async def list_auctions(
    auction_service: AuctionServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=100),
    sort_by: SortField | None = None,
    sort_order: Literal["asc", "desc"] | None = None,
    category: str | None = None,
    seller_id: UUID | None = None,
    min_price: Decimal | None = Query(None, ge=0),
    max_price: Decimal | None = Query(None, ge=0),
    status: StatusFilter | None = None,
    search: str | None = Query(None, max_length=200),
):
    """Get a filtered, sorted, paginated list of auctions.

    Without ``status`` only running auctions are returned.
    """
    filters = AuctionFilters(
        status=status,
        category=category,
        seller_id=seller_id,
        min_price=min_price,
        max_price=max_price,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return await _list_response(auction_service, filters, page, limit, running_by_default=True)


@router.post("", response_model=AuctionResponse, status_code=status.HTTP_201_CREATED)
async def create_auction(
    auction_data: AuctionCreate,
    current_user: CurrentUser,
    auction_service: AuctionServiceDep,
):
    """Create a new auction owned by the caller."""
    auction = await auction_service.create(auction_data, current_user.user_id)
    return AuctionResponse.from_auction(auction)


@router.get("/my-auctions", response_model=AuctionListResponse)
async def list_my_auctions(
    current_user: CurrentUser,
    auction_service: AuctionServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=100),
    sort_by: SortField | None = None,
    sort_order: Literal["asc", "desc"] | None = None,
    category: str | None = None,
    status: StatusFilter | None = None,
):
    """Get auctions created by the caller, in every status unless filtered."""
    filters = AuctionFilters(
        status=status,
        category=category,
        seller_id=current_user.user_id,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return await _list_response(auction_service, filters, page, limit, running_by_default=False)


@router.get("/liked-auctions", response_model=AuctionListResponse)
async def list_liked_auctions(
    current_user: CurrentUser,
    auction_service: AuctionServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=100),
    sort_by: SortField | None = None,
    sort_order: Literal["asc", "desc"] | None = None,
    category: str | None = None,
    status: StatusFilter | None = None,
):
    """Get auctions the caller liked, in every status unless filtered."""
    filters = AuctionFilters(
        status=status,
        category=category,
        liked_by=current_user.user_id,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return await _list_response(auction_service, filters, page, limit, running_by_default=False)


@router.get("/{auction_id}", response_model=AuctionResponse)
async def get_auction(auction_id: UUID, auction_service: AuctionServiceDep):
    """Get auction details. Counts a view without delaying the response."""
    auction = await auction_service.get_or_404(auction_id)
    response = AuctionResponse.from_auction(auction)
    response.views += 1
    schedule_view_increment(auction_id)
    return response


@router.put("/{auction_id}", response_model=AuctionResponse)
async def update_auction(
    auction_id: UUID,
    auction_data: AuctionUpdate,
    current_user: CurrentUser,
    auction_service: AuctionServiceDep,
):
    """Update an auction. Seller or admin only; restricted fields are phase-gated."""
    changes = auction_data.model_dump(exclude_unset=True)
    auction = await auction_service.update(auction_id, changes, Actor.from_user(current_user))
    return AuctionResponse.from_auction(auction)


@router.delete("/{auction_id}", response_model=MessageResponse)
async def delete_auction(
    auction_id: UUID,
    current_user: CurrentUser,
    auction_service: AuctionServiceDep,
):
    """Delete an auction along with its bids and likes."""
    await auction_service.delete(auction_id, Actor.from_user(current_user))
    return MessageResponse(message="Auction deleted successfully")


@router.patch("/{auction_id}/like", response_model=LikeToggleResponse)
async def toggle_like(
    auction_id: UUID,
    current_user: CurrentUser,
    auction_service: AuctionServiceDep,
):
    """Like or unlike an auction."""
    liked, auction = await auction_service.toggle_like(auction_id, current_user.user_id)
    return LikeToggleResponse(
        liked=liked,
        message="Auction liked successfully" if liked else "Auction unliked successfully",
        auction=AuctionResponse.from_auction(auction),
    )
