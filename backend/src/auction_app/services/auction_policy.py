"""Authorization and lifecycle gating for auction edits and deletion.

Pure functions over an auction-like object (anything with the Auction
model's attributes) so the rules can be checked without a database.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from auction_app.core.exceptions import ForbiddenError, InvalidStateError, ValidationError
from auction_app.services.auction_status import AuctionStatus, auction_status, to_utc

FREE_FIELDS = (
    "title",
    "description",
    "image_url",
    "images",
    "category",
    "location",
    "documents",
)
NULLABLE_FIELDS = frozenset({"image_url", "category", "location"})
SCHEDULE_FIELDS = ("start_time", "end_time")

LOCKED_AFTER_BIDS_STATUSES = frozenset(
    {AuctionStatus.ACTIVE, AuctionStatus.ENDING_SOON, AuctionStatus.ENDED}
)


@dataclass(frozen=True)
class Actor:
    """Identity of the caller as supplied by authentication."""

    user_id: UUID
    is_admin: bool = False

    @classmethod
    def from_user(cls, user: Any) -> "Actor":
        return cls(user_id=user.user_id, is_admin=bool(user.is_admin))


def ensure_can_manage(auction: Any, actor: Actor, action: str = "update") -> None:
    """Only the seller or an admin may change or remove an auction."""
    if auction.seller_id != actor.user_id and not actor.is_admin:
        raise ForbiddenError(f"Not authorized to {action} this auction")


def _schedule_changes(auction: Any, changes: dict[str, Any]) -> dict[str, datetime]:
    result = {}
    for field in SCHEDULE_FIELDS:
        value = changes.get(field)
        if value is None:
            continue
        if to_utc(value) != to_utc(getattr(auction, field)):
            result[field] = value
    return result


def plan_auction_update(
    auction: Any,
    changes: dict[str, Any],
    actor: Actor,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Decide which requested changes may be applied to an auction.

    Args:
        auction: Current auction
        changes: Requested field values (only fields the client sent)
        actor: Caller identity
        now: Reference instant for status derivation

    Returns:
        Field values to assign, including a reset ``current_bid`` when the
        starting bid changes on an auction without bids

    Raises:
        ForbiddenError: Caller is neither seller nor admin
        InvalidStateError: Auction ended, or a restricted field changed
            outside the phase that allows it
        ValidationError: Resulting auction would break an invariant
    """
    ensure_can_manage(auction, actor, "update")

    status = auction_status(auction, now)
    if status == AuctionStatus.ENDED and not actor.is_admin:
        raise InvalidStateError("Cannot update an ended auction", status=status.value)

    updates: dict[str, Any] = {
        field: changes[field] for field in FREE_FIELDS if field in changes
    }
    cleared = sorted(
        field for field, value in updates.items()
        if value is None and field not in NULLABLE_FIELDS
    )
    if cleared:
        raise ValidationError(f"Fields cannot be null: {', '.join(cleared)}", fields=cleared)

    new_starting_bid = changes.get("starting_bid")
    if new_starting_bid is not None and new_starting_bid != auction.starting_bid:
        if not actor.is_admin and (status != AuctionStatus.UPCOMING or auction.bid_count > 0):
            raise InvalidStateError(
                "Cannot change starting bid after auction starts or receives bids",
                status=status.value,
            )
        if auction.bid_count == 0:
            updates["current_bid"] = new_starting_bid
        elif new_starting_bid > auction.current_bid:
            raise ValidationError(
                "Starting bid cannot exceed the current bid once bids exist",
                current_bid=auction.current_bid,
            )
        updates["starting_bid"] = new_starting_bid

    schedule = _schedule_changes(auction, changes)
    if schedule:
        if not actor.is_admin and status != AuctionStatus.UPCOMING:
            raise InvalidStateError(
                "Start and end time can only be changed before the auction starts",
                status=status.value,
            )
        new_start = to_utc(schedule.get("start_time", auction.start_time))
        new_end = to_utc(schedule.get("end_time", auction.end_time))
        if new_start is None or new_end is None or new_end <= new_start:
            raise ValidationError("End time must be after start time")
        updates.update(schedule)

    images = updates.get("images", auction.images)
    image_url = updates.get("image_url", auction.image_url)
    if not images and not image_url:
        raise ValidationError(
            "At least one image URL in images or a primary image_url is required"
        )

    return updates


def ensure_can_delete(auction: Any, actor: Actor, now: datetime | None = None) -> None:
    """Refuse to erase a live or finished auction's bid history unless admin.

    Raises:
        ForbiddenError: Caller is neither seller nor admin
        InvalidStateError: Auction is running or ended and has bids
    """
    ensure_can_manage(auction, actor, "delete")

    status = auction_status(auction, now)
    if status in LOCKED_AFTER_BIDS_STATUSES and auction.bid_count > 0 and not actor.is_admin:
        raise InvalidStateError(
            "Cannot delete an auction that is active or ended with bids",
            status=status.value,
        )
