"""API v1 routers."""

from auction_app.api.v1 import admin, auctions, auth, bids

__all__ = ["admin", "auctions", "auth", "bids"]
