"""Unit of work scoped to one auction and its bid log.

The bid write path needs three things from storage: a read of the auction
that no other bidder can interleave with, a compare-and-swap of the auction's
bid state keyed on ``version``, and an insert into the bid log, all committed
or rolled back together.

Two implementations:
- SqlAlchemyBidUnitOfWork: PostgreSQL row lock (SELECT ... FOR UPDATE) plus
  a version-checked UPDATE ... RETURNING.
- InMemoryBidUnitOfWork: per-auction asyncio.Lock plus the same version check,
  backed by InMemoryAuctionStore (embedded backend used by the test suite).
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from auction_app.core.exceptions import ConcurrencyError
from auction_app.models.auction import Auction
from auction_app.models.bid import Bid


@dataclass(frozen=True)
class AuctionBidState:
    """The slice of an auction the bid transaction reads and writes."""

    auction_id: UUID
    seller_id: UUID
    start_time: datetime
    end_time: datetime
    starting_bid: Decimal
    current_bid: Decimal
    highest_bidder_id: UUID | None
    bid_count: int
    version: int

    @classmethod
    def from_model(cls, auction: Auction) -> "AuctionBidState":
        return cls(
            auction_id=auction.auction_id,
            seller_id=auction.seller_id,
            start_time=auction.start_time,
            end_time=auction.end_time,
            starting_bid=auction.starting_bid,
            current_bid=auction.current_bid,
            highest_bidder_id=auction.highest_bidder_id,
            bid_count=auction.bid_count,
            version=auction.version,
        )


class BidUnitOfWork(ABC):
    """All-or-nothing write scope for one bid placement attempt.

    Use as an async context manager; leaving the block without commit()
    (including by exception) rolls back.
    """

    def __init__(self):
        self._finished = False

    async def __aenter__(self) -> "BidUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self._finished:
            await self.rollback()

    @abstractmethod
    async def get_auction(self, auction_id: UUID) -> AuctionBidState | None:
        """Read the auction, excluding concurrent writers until commit/rollback."""

    @abstractmethod
    async def swap_current_bid(
        self,
        auction_id: UUID,
        expected_version: int,
        amount: Decimal,
        bidder_id: UUID,
    ) -> AuctionBidState | None:
        """Apply the new high bid if ``version`` still equals expected_version.

        Returns the updated state, or None when a concurrent write won.
        """

    @abstractmethod
    async def add_bid(
        self,
        auction_id: UUID,
        bidder_id: UUID,
        amount: Decimal,
        created_at: datetime,
    ) -> Bid:
        """Stage a new immutable bid record."""

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...


class SqlAlchemyBidUnitOfWork(BidUnitOfWork):
    """Unit of work over an AsyncSession."""

    def __init__(self, db: AsyncSession):
        super().__init__()
        self.db = db

    async def get_auction(self, auction_id: UUID) -> AuctionBidState | None:
        # Row lock held until the session's transaction ends
        result = await self.db.execute(
            select(Auction).where(Auction.auction_id == auction_id).with_for_update()
        )
        auction = result.scalar_one_or_none()
        if auction is None:
            return None
        return AuctionBidState.from_model(auction)

    async def swap_current_bid(
        self,
        auction_id: UUID,
        expected_version: int,
        amount: Decimal,
        bidder_id: UUID,
    ) -> AuctionBidState | None:
        result = await self.db.execute(
            update(Auction)
            .where(Auction.auction_id == auction_id)
            .where(Auction.version == expected_version)
            .values(
                current_bid=amount,
                highest_bidder_id=bidder_id,
                bid_count=Auction.bid_count + 1,
                version=Auction.version + 1,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
            .returning(
                Auction.auction_id,
                Auction.seller_id,
                Auction.start_time,
                Auction.end_time,
                Auction.starting_bid,
                Auction.current_bid,
                Auction.highest_bidder_id,
                Auction.bid_count,
                Auction.version,
            )
        )
        row = result.first()
        if row is None:
            return None
        return AuctionBidState(**row._asdict())

    async def add_bid(
        self,
        auction_id: UUID,
        bidder_id: UUID,
        amount: Decimal,
        created_at: datetime,
    ) -> Bid:
        bid = Bid(
            bid_id=uuid.uuid4(),
            auction_id=auction_id,
            bidder_id=bidder_id,
            amount=amount,
            created_at=created_at,
        )
        self.db.add(bid)
        await self.db.flush()
        return bid

    async def commit(self) -> None:
        await self.db.commit()
        self._finished = True

    async def rollback(self) -> None:
        await self.db.rollback()
        self._finished = True


class InMemoryAuctionStore:
    """Process-local auction bid state and bid log.

    Args:
        row_locks: When False, get_auction does not lock and concurrent units
            only meet at the version compare-and-swap, the way a backend
            without row-level locking behaves.
    """

    def __init__(self, row_locks: bool = True):
        self.row_locks = row_locks
        self.auctions: dict[UUID, AuctionBidState] = {}
        self.bids: list[Bid] = []
        self._locks: dict[UUID, asyncio.Lock] = {}

    def add_auction(self, state: AuctionBidState) -> None:
        self.auctions[state.auction_id] = state

    def lock_for(self, auction_id: UUID) -> asyncio.Lock:
        if auction_id not in self._locks:
            self._locks[auction_id] = asyncio.Lock()
        return self._locks[auction_id]

    def bids_for(self, auction_id: UUID) -> list[Bid]:
        return [bid for bid in self.bids if bid.auction_id == auction_id]


class InMemoryBidUnitOfWork(BidUnitOfWork):
    """Unit of work that stages writes and applies them to the store on commit."""

    def __init__(self, store: InMemoryAuctionStore):
        super().__init__()
        self.store = store
        self._held_lock: asyncio.Lock | None = None
        self._staged_state: AuctionBidState | None = None
        self._expected_version: int | None = None
        self._staged_bids: list[Bid] = []

    async def get_auction(self, auction_id: UUID) -> AuctionBidState | None:
        if self.store.row_locks and self._held_lock is None:
            lock = self.store.lock_for(auction_id)
            await lock.acquire()
            self._held_lock = lock
        # Yield like a driver round-trip so concurrent units interleave
        await asyncio.sleep(0)
        return self.store.auctions.get(auction_id)

    async def swap_current_bid(
        self,
        auction_id: UUID,
        expected_version: int,
        amount: Decimal,
        bidder_id: UUID,
    ) -> AuctionBidState | None:
        current = self.store.auctions.get(auction_id)
        if current is None or current.version != expected_version:
            return None
        self._expected_version = expected_version
        self._staged_state = replace(
            current,
            current_bid=amount,
            highest_bidder_id=bidder_id,
            bid_count=current.bid_count + 1,
            version=current.version + 1,
        )
        return self._staged_state

    async def add_bid(
        self,
        auction_id: UUID,
        bidder_id: UUID,
        amount: Decimal,
        created_at: datetime,
    ) -> Bid:
        bid = Bid(
            bid_id=uuid.uuid4(),
            auction_id=auction_id,
            bidder_id=bidder_id,
            amount=amount,
            created_at=created_at,
        )
        self._staged_bids.append(bid)
        return bid

    async def commit(self) -> None:
        try:
            if self._staged_state is not None:
                current = self.store.auctions.get(self._staged_state.auction_id)
                if current is None or current.version != self._expected_version:
                    raise ConcurrencyError(
                        f"Auction {self._staged_state.auction_id} changed before commit"
                    )
                self.store.auctions[self._staged_state.auction_id] = self._staged_state
            self.store.bids.extend(self._staged_bids)
        finally:
            self._reset()

    async def rollback(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self._staged_state = None
        self._expected_version = None
        self._staged_bids = []
        self._finished = True
        if self._held_lock is not None:
            self._held_lock.release()
            self._held_lock = None
