"""Auction service for listing, CRUD, likes and view counting."""

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auction_app.core.database import async_session_maker
from auction_app.core.exceptions import NotFoundError, ValidationError
from auction_app.models.auction import Auction, auction_likes
from auction_app.schemas.auction import AuctionCreate
from auction_app.services.auction_policy import Actor, ensure_can_delete, plan_auction_update
from auction_app.services.auction_status import ENDING_SOON_WINDOW, AuctionStatus, to_utc

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "end_time": Auction.end_time,
    "start_time": Auction.start_time,
    "current_bid": Auction.current_bid,
    "created_at": Auction.created_at,
    "bid_count": Auction.bid_count,
    "views": Auction.views,
    "title": Auction.title,
}

# Strong references to in-flight view increments until they finish
_background_tasks: set[asyncio.Task] = set()


@dataclass
class AuctionFilters:
    """Query options shared by the public list, my-auctions and liked-auctions."""

    status: str | None = None
    category: str | None = None
    seller_id: UUID | None = None
    liked_by: UUID | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    search: str | None = None
    sort_by: str | None = None
    sort_order: str | None = None


def status_conditions(status: str | None, now: datetime, running_by_default: bool) -> list:
    """Translate a status filter into SQL conditions on the time window."""
    if status == AuctionStatus.UPCOMING.value:
        return [Auction.start_time > now]
    if status == AuctionStatus.ENDED.value:
        return [Auction.end_time <= now]
    if status == AuctionStatus.ENDING_SOON.value:
        return [
            Auction.start_time <= now,
            Auction.end_time > now,
            Auction.end_time < now + ENDING_SOON_WINDOW,
        ]
    if status == AuctionStatus.ACTIVE.value or (status is None and running_by_default):
        return [Auction.start_time <= now, Auction.end_time > now]
    return []


def resolve_sort(sort_by: str | None, sort_order: str | None, status: str | None) -> tuple[str, str]:
    """Pick the sort column and direction.

    An explicit ``sort_by`` wins (ascending unless ``sort_order`` is desc).
    Otherwise ended listings show the most recently ended first and upcoming
    listings the soonest to start; everything else ends soonest first.
    """
    if sort_by:
        if sort_by not in SORT_COLUMNS:
            raise ValidationError(
                f"Invalid sort field: {sort_by}", allowed=sorted(SORT_COLUMNS)
            )
        return sort_by, "desc" if sort_order == "desc" else "asc"
    if status == AuctionStatus.ENDED.value:
        return "end_time", "desc"
    if status == AuctionStatus.UPCOMING.value:
        return "start_time", "asc"
    return "end_time", "asc"


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


class AuctionService:
    """Service class for auction operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, auction_id: UUID, for_update: bool = False) -> Auction | None:
        """Get auction by ID with seller, highest bidder and likers loaded.

        Args:
            auction_id: Auction UUID
            for_update: Lock the row until the transaction ends

        Returns:
            Auction or None if not found
        """
        query = (
            select(Auction)
            .where(Auction.auction_id == auction_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update(of=Auction)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_or_404(self, auction_id: UUID, for_update: bool = False) -> Auction:
        auction = await self.get_by_id(auction_id, for_update=for_update)
        if auction is None:
            raise NotFoundError("Auction not found.", auction_id=str(auction_id))
        return auction

    async def create(
        self,
        auction_data: AuctionCreate,
        seller_id: UUID,
        now: datetime | None = None,
    ) -> Auction:
        """Create a new auction owned by ``seller_id``.

        Args:
            auction_data: Auction creation data
            seller_id: Seller's user UUID
            now: Reference instant, defaults to the current time

        Returns:
            Created auction with relationships loaded

        Raises:
            ValidationError: End time not after start time, or already passed
        """
        now = now or datetime.now(timezone.utc)
        start_time = to_utc(auction_data.start_time) or now
        end_time = to_utc(auction_data.end_time)

        if end_time <= start_time:
            raise ValidationError("End time must be after start time")
        if end_time <= now:
            raise ValidationError("End time must be in the future")

        images = list(auction_data.images)
        auction = Auction(
            title=auction_data.title,
            description=auction_data.description,
            starting_bid=auction_data.starting_bid,
            current_bid=auction_data.starting_bid,
            start_time=start_time,
            end_time=end_time,
            image_url=auction_data.image_url or images[0],
            images=images,
            category=auction_data.category,
            location=auction_data.location,
            documents=[document.model_dump() for document in auction_data.documents],
            seller_id=seller_id,
            bid_count=0,
            views=0,
            version=0,
        )

        self.db.add(auction)
        await self.db.commit()
        logger.info(f"Auction created: {auction.auction_id} by seller {seller_id}")
        return await self.get_or_404(auction.auction_id)

    async def list_auctions(
        self,
        filters: AuctionFilters,
        page: int = 1,
        limit: int = 10,
        now: datetime | None = None,
        running_by_default: bool = True,
    ) -> tuple[list[Auction], int]:
        """Get a filtered, sorted page of auctions.

        Args:
            filters: Query options
            page: 1-based page number
            limit: Page size
            now: Reference instant for status filters
            running_by_default: Without a status filter, only return running
                auctions (the public list) instead of all of them

        Returns:
            Tuple of (auctions on the page, total matching count)
        """
        now = now or datetime.now(timezone.utc)
        conditions = status_conditions(filters.status, now, running_by_default)

        if filters.category:
            conditions.append(Auction.category == filters.category)
        if filters.seller_id:
            conditions.append(Auction.seller_id == filters.seller_id)
        if filters.min_price is not None:
            conditions.append(Auction.current_bid >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(Auction.current_bid <= filters.max_price)
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(Auction.title.ilike(pattern), Auction.description.ilike(pattern))
            )
        if filters.liked_by:
            conditions.append(
                Auction.auction_id.in_(
                    select(auction_likes.c.auction_id).where(
                        auction_likes.c.user_id == filters.liked_by
                    )
                )
            )

        where = and_(*conditions) if conditions else None

        count_query = select(func.count(Auction.auction_id))
        if where is not None:
            count_query = count_query.where(where)
        count_result = await self.db.execute(count_query)
        total = count_result.scalar_one()

        sort_field, direction = resolve_sort(filters.sort_by, filters.sort_order, filters.status)
        column = SORT_COLUMNS[sort_field]
        order = column.desc() if direction == "desc" else column.asc()

        query = select(Auction)
        if where is not None:
            query = query.where(where)
        result = await self.db.execute(
            query.order_by(order, Auction.auction_id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def update(
        self,
        auction_id: UUID,
        changes: dict[str, Any],
        actor: Actor,
        now: datetime | None = None,
    ) -> Auction:
        """Apply a policy-checked update under a row lock.

        Raises:
            NotFoundError: Auction does not exist
            ForbiddenError, InvalidStateError, ValidationError: Refused by policy
        """
        auction = await self.get_or_404(auction_id, for_update=True)
        updates = plan_auction_update(auction, changes, actor, now)

        if "documents" in updates:
            updates["documents"] = [
                document if isinstance(document, dict) else document.model_dump()
                for document in updates["documents"]
            ]

        for field, value in updates.items():
            setattr(auction, field, value)
        if updates:
            auction.version += 1
        await self.db.commit()
        logger.info(f"Auction updated: {auction_id} fields={sorted(updates)}")
        return await self.get_or_404(auction_id)

    async def delete(self, auction_id: UUID, actor: Actor, now: datetime | None = None) -> None:
        """Delete an auction together with its bids and likes.

        Raises:
            NotFoundError: Auction does not exist
            ForbiddenError, InvalidStateError: Refused by policy
        """
        auction = await self.get_or_404(auction_id, for_update=True)
        ensure_can_delete(auction, actor, now)

        await self.db.delete(auction)
        await self.db.commit()
        logger.info(f"Auction deleted: {auction_id} by {actor.user_id}")

    async def toggle_like(self, auction_id: UUID, user_id: UUID) -> tuple[bool, Auction]:
        """Like the auction if the user has not, otherwise unlike it.

        Returns:
            Tuple of (liked after the toggle, refreshed auction)

        Raises:
            NotFoundError: Auction does not exist
        """
        await self.get_or_404(auction_id)

        existing = await self.db.execute(
            select(auction_likes.c.auction_id).where(
                auction_likes.c.auction_id == auction_id,
                auction_likes.c.user_id == user_id,
            )
        )
        liked = existing.scalar_one_or_none() is None

        if liked:
            await self.db.execute(
                pg_insert(auction_likes)
                .values(auction_id=auction_id, user_id=user_id)
                .on_conflict_do_nothing(index_elements=["auction_id", "user_id"])
            )
        else:
            await self.db.execute(
                delete(auction_likes).where(
                    auction_likes.c.auction_id == auction_id,
                    auction_likes.c.user_id == user_id,
                )
            )
        await self.db.commit()
        return liked, await self.get_or_404(auction_id)


async def record_view(
    auction_id: UUID,
    session_factory: Callable[[], AsyncSession] = async_session_maker,
) -> None:
    """Atomically increment an auction's view counter in its own session.

    Failures are logged and never raised; a lost view is acceptable.
    """
    try:
        async with session_factory() as session:
            await session.execute(
                update(Auction)
                .where(Auction.auction_id == auction_id)
                .values(views=Auction.views + 1)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Failed to increment views for auction {auction_id}: {e}")


def schedule_view_increment(
    auction_id: UUID,
    session_factory: Callable[[], AsyncSession] = async_session_maker,
) -> asyncio.Task:
    """Fire-and-forget ``record_view`` on the running loop."""
    task = asyncio.create_task(record_view(auction_id, session_factory))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
