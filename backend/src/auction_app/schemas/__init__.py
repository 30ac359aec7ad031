"""Pydantic schemas for request/response validation."""

from auction_app.schemas.auction import (
    AuctionCreate,
    AuctionDocument,
    AuctionListResponse,
    AuctionResponse,
    AuctionUpdate,
    LikeToggleResponse,
    MessageResponse,
    Pagination,
)
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
from auction_app.schemas.user import (
    TokenResponse,
    UserBanUpdate,
    UserListResponse,
    UserLogin,
    UserRegister,
    UserResponse,
    UserSummary,
)

__all__ = [
    "UserRegister",
    "UserLogin",
    "UserResponse",
    "UserSummary",
    "UserListResponse",
    "UserBanUpdate",
    "TokenResponse",
    "AuctionCreate",
    "AuctionUpdate",
    "AuctionDocument",
    "AuctionResponse",
    "AuctionListResponse",
    "LikeToggleResponse",
    "MessageResponse",
    "Pagination",
    "BidCreate",
    "BidResponse",
    "AuctionBidEntry",
    "AuctionBidSummary",
    "BidHistoryResponse",
    "PlaceBidResponse",
    "MyBidEntry",
    "MyBidsResponse",
]
