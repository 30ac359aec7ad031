"""SQLAlchemy ORM models."""

from auction_app.models.auction import Auction, auction_likes
from auction_app.models.base import TimestampMixin
from auction_app.models.bid import Bid
from auction_app.models.user import User

__all__ = [
    "TimestampMixin",
    "User",
    "Auction",
    "Bid",
    "auction_likes",
]
