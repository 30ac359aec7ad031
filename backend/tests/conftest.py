"""Pytest configuration and fixtures for testing."""

import os

# Settings require a signing key before auction_app is imported
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-the-auction-test-suite")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import Callable
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from auction_app.services.unit_of_work import AuctionBidState, InMemoryAuctionStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """Fixed reference instant used for status derivation."""
    return NOW


# Mock Redis client fixture
@pytest.fixture
def mock_redis() -> AsyncMock:
    """Create a mock Redis client."""
    redis = AsyncMock()

    # Mock common Redis operations
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.eval = AsyncMock(return_value=1)

    return redis


# Mock user fixture
@pytest.fixture
def mock_user() -> MagicMock:
    """Create a mock user object."""
    user = MagicMock()
    user.user_id = uuid4()
    user.name = "Test User"
    user.email = "test@example.com"
    user.is_admin = False
    user.is_banned = False
    user.profile_picture_url = "https://avatar.iran.liara.run/public/7"
    user.last_login = None
    user.created_at = NOW
    return user


# Mock admin user fixture
@pytest.fixture
def mock_admin_user(mock_user: MagicMock) -> MagicMock:
    """Create a mock admin user object."""
    mock_user.is_admin = True
    return mock_user


@pytest.fixture
def make_auction() -> Callable[..., SimpleNamespace]:
    """Build an auction-like object with the Auction model's attributes.

    Defaults to an active auction (started a day ago, ends in a day) without bids.
    """

    def _make(**overrides) -> SimpleNamespace:
        values = {
            "auction_id": uuid4(),
            "title": "Vintage Camera",
            "description": "Working 35mm rangefinder",
            "image_url": "https://example.com/camera.jpg",
            "images": ["https://example.com/camera.jpg"],
            "starting_bid": Decimal("50.00"),
            "current_bid": Decimal("50.00"),
            "highest_bidder_id": None,
            "highest_bidder": None,
            "bid_count": 0,
            "views": 0,
            "likes": 0,
            "liked_by_ids": [],
            "seller_id": uuid4(),
            "seller": None,
            "start_time": NOW - timedelta(days=1),
            "end_time": NOW + timedelta(days=1),
            "documents": [],
            "category": "Cameras",
            "location": "Taipei",
            "version": 0,
            "created_at": NOW - timedelta(days=2),
            "updated_at": NOW - timedelta(days=2),
        }
        values.update(overrides)
        return SimpleNamespace(**values)

    return _make


@pytest.fixture
def make_state() -> Callable[..., AuctionBidState]:
    """Build the bid-relevant auction state; active, no bids, starting bid 50."""

    def _make(**overrides) -> AuctionBidState:
        values = {
            "auction_id": uuid4(),
            "seller_id": uuid4(),
            "start_time": NOW - timedelta(days=1),
            "end_time": NOW + timedelta(days=1),
            "starting_bid": Decimal("50.00"),
            "current_bid": Decimal("50.00"),
            "highest_bidder_id": None,
            "bid_count": 0,
            "version": 0,
        }
        values.update(overrides)
        return AuctionBidState(**values)

    return _make


@pytest.fixture
def store() -> InMemoryAuctionStore:
    """In-memory store with per-auction row locks."""
    return InMemoryAuctionStore()


@pytest.fixture
def cas_store() -> InMemoryAuctionStore:
    """In-memory store without row locks; writers only meet at the version check."""
    return InMemoryAuctionStore(row_locks=False)
