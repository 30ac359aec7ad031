"""Derived auction lifecycle status.

Status is never stored: it is recomputed from the auction's time window and
the caller's clock on every read, so two reads of the same row can disagree
without any write having happened.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

ENDING_SOON_WINDOW = timedelta(hours=1)


class AuctionStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    ENDING_SOON = "ending-soon"
    ENDED = "ended"
    INVALID_DATES = "invalid-dates"


BIDDABLE_STATUSES = frozenset({AuctionStatus.ACTIVE, AuctionStatus.ENDING_SOON})


def to_utc(value: Any) -> datetime | None:
    """Coerce a datetime or ISO-8601 string to an aware UTC datetime."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def derive_status(
    start_time: datetime | str | None,
    end_time: datetime | str | None,
    now: datetime | None = None,
) -> AuctionStatus:
    """Map an auction's ``[start_time, end_time)`` window to a lifecycle phase.

    Args:
        start_time: Auction start, datetime or ISO string
        end_time: Auction end, datetime or ISO string
        now: Reference instant, defaults to the current UTC time

    Returns:
        The derived status. Unparseable timestamps yield INVALID_DATES
        instead of raising, so one bad row cannot break a listing.
    """
    start = to_utc(start_time)
    end = to_utc(end_time)
    if start is None or end is None:
        return AuctionStatus.INVALID_DATES

    current = to_utc(now) if now is not None else datetime.now(timezone.utc)

    if current < start:
        return AuctionStatus.UPCOMING
    if current >= end:
        return AuctionStatus.ENDED
    if end - current < ENDING_SOON_WINDOW:
        return AuctionStatus.ENDING_SOON
    return AuctionStatus.ACTIVE


def auction_status(auction: Any, now: datetime | None = None) -> AuctionStatus:
    """Derive the status of anything exposing ``start_time`` and ``end_time``."""
    return derive_status(
        getattr(auction, "start_time", None),
        getattr(auction, "end_time", None),
        now,
    )
