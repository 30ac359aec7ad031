"""Bid service: transactional bid placement and bid history reads."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from functools import partial
from typing import Callable
from uuid import UUID

from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from auction_app.core.config import settings
from auction_app.core.exceptions import (
    BidContentionError,
    BidTooLowError,
    ConcurrencyError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from auction_app.models.auction import Auction
from auction_app.models.bid import Bid
from auction_app.services.auction_status import BIDDABLE_STATUSES, derive_status
from auction_app.services.redis_service import RedisService
from auction_app.services.unit_of_work import (
    AuctionBidState,
    BidUnitOfWork,
    SqlAlchemyBidUnitOfWork,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PlacedBid:
    """A committed bid together with the auction state it produced."""

    bid: Bid
    auction: AuctionBidState


def normalize_amount(amount: Decimal | float | int | str) -> Decimal:
    """Convert a client supplied amount to a positive two-decimal Decimal.

    Raises:
        ValidationError: If the amount is not a positive number with at most
            two decimal places
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid bid amount. Must be a positive number.")
    if not value.is_finite() or value <= 0:
        raise ValidationError("Invalid bid amount. Must be a positive number.")
    if value != value.quantize(CENT):
        raise ValidationError("Bid amount cannot have more than two decimal places.")
    return value.quantize(CENT)


def validate_bid(
    auction: AuctionBidState | None,
    auction_id: UUID,
    bidder_id: UUID,
    amount: Decimal,
    now: datetime | None = None,
) -> None:
    """Check a proposed bid against the auction state it would replace.

    Checks run in a fixed order and the first failure wins.

    Raises:
        NotFoundError: Auction does not exist
        ForbiddenError: Bidder is the seller
        InvalidStateError: Auction is not active or ending soon
        BidTooLowError: Amount does not beat the current bid, or a first bid
            is below the starting bid
    """
    if auction is None:
        raise NotFoundError("Auction not found.", auction_id=str(auction_id))

    if auction.seller_id == bidder_id:
        raise ForbiddenError("Sellers cannot bid on their own auctions.")

    status = derive_status(auction.start_time, auction.end_time, now)
    if status not in BIDDABLE_STATUSES:
        raise InvalidStateError(
            f"Auction is not active. Status: {status.value}",
            status=status.value,
        )

    if amount <= auction.current_bid:
        raise BidTooLowError(
            f"Your bid must be higher than the current bid of {auction.current_bid}.",
            current_bid=auction.current_bid,
        )

    if auction.bid_count == 0 and amount < auction.starting_bid:
        raise BidTooLowError(
            f"The first bid must be at least the starting bid of {auction.starting_bid}.",
            starting_bid=auction.starting_bid,
        )


class BidService:
    """Service class for bid operations.

    Args:
        db: Session used for reads and, by default, for the bid unit of work
        redis_service: Optional Redis service providing the per-auction lock
        uow_factory: Builds a fresh unit of work per placement attempt
        max_retries: Attempts before giving up on a contended auction
        clock: Returns the current UTC time; status checks and bid timestamps use it
    """

    def __init__(
        self,
        db: AsyncSession | None = None,
        redis_service: RedisService | None = None,
        uow_factory: Callable[[], BidUnitOfWork] | None = None,
        max_retries: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.db = db
        self.redis_service = redis_service
        if uow_factory is None:
            uow_factory = partial(SqlAlchemyBidUnitOfWork, db)
        self.uow_factory = uow_factory
        self.max_retries = max_retries if max_retries is not None else settings.BID_MAX_RETRIES
        self.clock = clock or _utcnow

    async def place_bid(
        self,
        auction_id: UUID,
        bidder_id: UUID,
        amount: Decimal | float | int | str,
    ) -> PlacedBid:
        """Place a bid: insert the Bid and advance the auction, atomically.

        Validation and both writes happen inside one unit of work holding the
        auction. If the version compare-and-swap loses to a concurrent bid the
        unit is rolled back and the bid is re-validated against the fresh
        state, so a lower bid can never overwrite a higher one.

        Args:
            auction_id: Auction UUID
            bidder_id: Bidding user's UUID
            amount: Offered amount

        Returns:
            PlacedBid with the new Bid and the updated auction state

        Raises:
            ValidationError, NotFoundError, ForbiddenError, InvalidStateError,
            BidTooLowError: Rejections, no state changed
            BidContentionError: Retries exhausted, no state changed
        """
        value = normalize_amount(amount)

        lock_owner = await self._acquire_auction_lock(auction_id)
        try:
            placed = await self._place_with_retries(auction_id, bidder_id, value)
        finally:
            if lock_owner is not None:
                await self._release_auction_lock(auction_id, lock_owner)

        self._notify_bid_placed(placed)
        return placed

    async def _place_with_retries(
        self, auction_id: UUID, bidder_id: UUID, amount: Decimal
    ) -> PlacedBid:
        for attempt in range(1, self.max_retries + 1):
            try:
                return await self._attempt(auction_id, bidder_id, amount)
            except ConcurrencyError as e:
                logger.warning(
                    f"Bid conflict on auction {auction_id} "
                    f"(attempt {attempt}/{self.max_retries}): {e}"
                )

        raise BidContentionError(
            "The auction is receiving too many bids right now. Please try again."
        )

    async def _attempt(
        self, auction_id: UUID, bidder_id: UUID, amount: Decimal
    ) -> PlacedBid:
        async with self.uow_factory() as uow:
            now = self.clock()
            state = await uow.get_auction(auction_id)
            validate_bid(state, auction_id, bidder_id, amount, now)

            updated = await uow.swap_current_bid(
                auction_id,
                expected_version=state.version,
                amount=amount,
                bidder_id=bidder_id,
            )
            if updated is None:
                raise ConcurrencyError(f"Auction {auction_id} version {state.version} is stale")

            bid = await uow.add_bid(auction_id, bidder_id, amount, now)
            await uow.commit()

        return PlacedBid(bid=bid, auction=updated)

    async def _acquire_auction_lock(self, auction_id: UUID) -> str | None:
        """Take the cross-replica Redis lock; the database still serialises without it."""
        if self.redis_service is None or not settings.BID_LOCK_ENABLED:
            return None
        try:
            acquired, owner_id = await self.redis_service.wait_for_lock(
                str(auction_id),
                ttl=settings.BID_LOCK_TTL_SECONDS,
                timeout=settings.BID_LOCK_WAIT_SECONDS,
            )
        except RedisError as e:
            logger.warning(f"Redis bid lock unavailable for auction {auction_id}: {e}")
            return None
        if not acquired:
            logger.debug(f"Bid lock wait timed out for auction {auction_id}")
            return None
        return owner_id

    async def _release_auction_lock(self, auction_id: UUID, owner_id: str) -> None:
        try:
            await self.redis_service.release_lock(str(auction_id), owner_id)
        except RedisError as e:
            # Lock expires on its own after BID_LOCK_TTL_SECONDS
            logger.warning(f"Failed to release bid lock for auction {auction_id}: {e}")

    def _notify_bid_placed(self, placed: PlacedBid) -> None:
        # Real-time broadcast to other viewers is not implemented
        logger.info(
            f"Bid placed: auction={placed.bid.auction_id} bidder={placed.bid.bidder_id} "
            f"amount={placed.bid.amount} bid_count={placed.auction.bid_count}"
        )

    async def list_for_auction(self, auction_id: UUID) -> list[Bid]:
        """Get all bids on an auction, newest first.

        Raises:
            NotFoundError: If the auction does not exist
        """
        exists = await self.db.execute(
            select(Auction.auction_id).where(Auction.auction_id == auction_id)
        )
        if exists.scalar_one_or_none() is None:
            raise NotFoundError("Auction not found.", auction_id=str(auction_id))

        result = await self.db.execute(
            select(Bid)
            .options(selectinload(Bid.bidder))
            .where(Bid.auction_id == auction_id)
            .order_by(Bid.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_for_bidder(self, bidder_id: UUID) -> list[Bid]:
        """Get a user's bids across all auctions, newest first, with auctions loaded."""
        result = await self.db.execute(
            select(Bid)
            .options(selectinload(Bid.auction))
            .where(Bid.bidder_id == bidder_id)
            .order_by(Bid.created_at.desc())
        )
        return list(result.scalars().all())
