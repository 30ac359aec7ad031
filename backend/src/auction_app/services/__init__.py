"""Business logic services."""

from auction_app.services.auction_service import AuctionService
from auction_app.services.bid_service import BidService
from auction_app.services.redis_service import RedisService, get_redis_service
from auction_app.services.user_service import UserService

__all__ = [
    "AuctionService",
    "BidService",
    "RedisService",
    "UserService",
    "get_redis_service",
]
