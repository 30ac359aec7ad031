"""Tests for auction listing, CRUD, likes and view counting."""

import asyncio
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import Insert as PgInsert
from sqlalchemy.exc import OperationalError

from auction_app.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from auction_app.models.auction import Auction
from auction_app.schemas.auction import AuctionCreate
from auction_app.services import auction_service as auction_service_module
from auction_app.services.auction_policy import Actor
from auction_app.services.auction_service import (
    AuctionFilters,
    AuctionService,
    record_view,
    resolve_sort,
    schedule_view_increment,
    status_conditions,
    total_pages,
)

from conftest import NOW


def scalar_result(value) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar_one.return_value = value
    return result


def scalars_result(values) -> MagicMock:
    result = MagicMock()
    result.scalars.return_value.all.return_value = values
    return result


@pytest.fixture
def mock_db() -> AsyncMock:
    db = AsyncMock()
    db.add = MagicMock()
    return db


def session_factory_for(session) -> MagicMock:
    context = MagicMock()
    context.__aenter__.return_value = session
    context.__aexit__.return_value = False
    return MagicMock(return_value=context)


class TestListingHelpers:
    def test_default_sort_ends_soonest_first(self):
        assert resolve_sort(None, None, None) == ("end_time", "asc")
        assert resolve_sort(None, None, "active") == ("end_time", "asc")

    def test_default_sort_for_ended_and_upcoming(self):
        assert resolve_sort(None, None, "ended") == ("end_time", "desc")
        assert resolve_sort(None, None, "upcoming") == ("start_time", "asc")

    def test_explicit_sort_wins(self):
        assert resolve_sort("views", "desc", "ended") == ("views", "desc")
        assert resolve_sort("title", None, None) == ("title", "asc")

    def test_unknown_sort_field(self):
        with pytest.raises(ValidationError):
            resolve_sort("password_hash", "asc", None)

    def test_status_conditions(self):
        assert len(status_conditions("upcoming", NOW, True)) == 1
        assert len(status_conditions("active", NOW, True)) == 2
        assert len(status_conditions("ending-soon", NOW, True)) == 3
        assert len(status_conditions("ended", NOW, True)) == 1

    def test_no_status_means_running_only_on_public_list(self):
        assert len(status_conditions(None, NOW, running_by_default=True)) == 2
        assert status_conditions(None, NOW, running_by_default=False) == []

    @pytest.mark.parametrize("total, limit, expected", [(0, 10, 0), (10, 10, 1), (11, 10, 2)])
    def test_total_pages(self, total, limit, expected):
        assert total_pages(total, limit) == expected


class TestListAuctions:
    @pytest.mark.asyncio
    async def test_returns_page_and_total(self, mock_db, make_auction):
        auctions = [make_auction(), make_auction()]
        mock_db.execute = AsyncMock(side_effect=[scalar_result(7), scalars_result(auctions)])

        page, total = await AuctionService(mock_db).list_auctions(
            AuctionFilters(status="ended", search="camera", min_price=Decimal("10")),
            page=2,
            limit=5,
            now=NOW,
        )

        assert page == auctions
        assert total == 7
        query = str(mock_db.execute.call_args_list[1].args[0])
        assert "ORDER BY auctions.end_time DESC" in query
        assert "LIKE" in query
        assert "LIMIT" in query and "OFFSET" in query

    @pytest.mark.asyncio
    async def test_liked_filter_uses_association_table(self, mock_db):
        mock_db.execute = AsyncMock(side_effect=[scalar_result(0), scalars_result([])])

        await AuctionService(mock_db).list_auctions(
            AuctionFilters(liked_by=uuid4()), now=NOW, running_by_default=False
        )

        count_query = str(mock_db.execute.call_args_list[0].args[0])
        assert "auction_likes" in count_query


class TestCreateAuction:
    @staticmethod
    def payload(**overrides) -> AuctionCreate:
        values = {
            "title": "Oak Desk",
            "description": "Solid oak",
            "starting_bid": Decimal("120.00"),
            "end_time": NOW + timedelta(days=3),
            "images": ["https://example.com/desk.jpg"],
        }
        values.update(overrides)
        return AuctionCreate(**values)

    @pytest.mark.asyncio
    async def test_create_initialises_bid_state(self, mock_db, make_auction):
        stored = make_auction()
        mock_db.execute = AsyncMock(return_value=scalar_result(stored))
        seller_id = uuid4()

        result = await AuctionService(mock_db).create(self.payload(), seller_id, now=NOW)

        assert result is stored
        auction = mock_db.add.call_args.args[0]
        assert isinstance(auction, Auction)
        assert auction.current_bid == auction.starting_bid == Decimal("120.00")
        assert auction.start_time == NOW
        assert auction.image_url == "https://example.com/desk.jpg"
        assert auction.seller_id == seller_id
        assert auction.bid_count == 0
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_end_must_follow_start(self, mock_db):
        data = self.payload(start_time=NOW + timedelta(days=4))
        with pytest.raises(ValidationError):
            await AuctionService(mock_db).create(data, uuid4(), now=NOW)
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_end_must_be_in_future(self, mock_db):
        data = self.payload(
            start_time=NOW - timedelta(days=2), end_time=NOW - timedelta(days=1)
        )
        with pytest.raises(ValidationError):
            await AuctionService(mock_db).create(data, uuid4(), now=NOW)


class TestUpdateAndDelete:
    @pytest.mark.asyncio
    async def test_update_applies_plan_and_bumps_version(self, mock_db, make_auction):
        auction = make_auction(
            start_time=NOW + timedelta(days=1), end_time=NOW + timedelta(days=2)
        )
        mock_db.execute = AsyncMock(return_value=scalar_result(auction))

        await AuctionService(mock_db).update(
            auction.auction_id,
            {"title": "Renamed", "starting_bid": Decimal("70.00")},
            Actor(user_id=auction.seller_id),
            now=NOW,
        )

        lock_query = mock_db.execute.call_args_list[0].args[0]
        assert lock_query._for_update_arg is not None
        assert auction.title == "Renamed"
        assert auction.current_bid == Decimal("70.00")
        assert auction.version == 1
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_missing_auction(self, mock_db):
        mock_db.execute = AsyncMock(return_value=scalar_result(None))
        with pytest.raises(NotFoundError):
            await AuctionService(mock_db).update(uuid4(), {"title": "x"}, Actor(user_id=uuid4()))

    @pytest.mark.asyncio
    async def test_refused_update_writes_nothing(self, mock_db, make_auction):
        auction = make_auction()
        mock_db.execute = AsyncMock(return_value=scalar_result(auction))

        with pytest.raises(ForbiddenError):
            await AuctionService(mock_db).update(
                auction.auction_id, {"title": "x"}, Actor(user_id=uuid4()), now=NOW
            )

        assert auction.title == "Vintage Camera"
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_null_required_field_is_rejected_before_write(self, mock_db, make_auction):
        auction = make_auction()
        mock_db.execute = AsyncMock(return_value=scalar_result(auction))

        with pytest.raises(ValidationError):
            await AuctionService(mock_db).update(
                auction.auction_id, {"title": None}, Actor(user_id=auction.seller_id), now=NOW
            )

        assert auction.title == "Vintage Camera"
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_allowed(self, mock_db, make_auction):
        auction = make_auction()
        mock_db.execute = AsyncMock(return_value=scalar_result(auction))

        await AuctionService(mock_db).delete(
            auction.auction_id, Actor(user_id=auction.seller_id), now=NOW
        )

        mock_db.delete.assert_awaited_once_with(auction)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_blocked_with_bids(self, mock_db, make_auction):
        auction = make_auction(bid_count=1, current_bid=Decimal("60.00"))
        mock_db.execute = AsyncMock(return_value=scalar_result(auction))

        with pytest.raises(InvalidStateError):
            await AuctionService(mock_db).delete(
                auction.auction_id, Actor(user_id=auction.seller_id), now=NOW
            )

        mock_db.delete.assert_not_awaited()


class TestToggleLike:
    @pytest.mark.asyncio
    async def test_like_inserts_idempotently(self, mock_db, make_auction):
        auction = make_auction()
        mock_db.execute = AsyncMock(
            side_effect=[
                scalar_result(auction),
                scalar_result(None),
                MagicMock(),
                scalar_result(auction),
            ]
        )

        liked, result = await AuctionService(mock_db).toggle_like(auction.auction_id, uuid4())

        assert liked is True
        assert result is auction
        statement = mock_db.execute.call_args_list[2].args[0]
        assert isinstance(statement, PgInsert)
        assert statement.table.name == "auction_likes"
        sql = str(statement.compile(dialect=postgresql.dialect()))
        assert "ON CONFLICT (auction_id, user_id) DO NOTHING" in sql
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unlike_deletes(self, mock_db, make_auction):
        auction = make_auction()
        mock_db.execute = AsyncMock(
            side_effect=[
                scalar_result(auction),
                scalar_result(auction.auction_id),
                MagicMock(),
                scalar_result(auction),
            ]
        )

        liked, _ = await AuctionService(mock_db).toggle_like(auction.auction_id, uuid4())

        assert liked is False
        statement = mock_db.execute.call_args_list[2].args[0]
        assert str(statement).startswith("DELETE FROM auction_likes")

    @pytest.mark.asyncio
    async def test_like_missing_auction(self, mock_db):
        mock_db.execute = AsyncMock(return_value=scalar_result(None))
        with pytest.raises(NotFoundError):
            await AuctionService(mock_db).toggle_like(uuid4(), uuid4())


class TestViewCounting:
    @pytest.mark.asyncio
    async def test_record_view_increments_in_own_session(self):
        session = AsyncMock()

        await record_view(uuid4(), session_factory_for(session))

        statement = session.execute.call_args.args[0]
        sql = str(statement)
        assert sql.startswith("UPDATE auctions SET")
        assert "views=(auctions.views +" in sql
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_record_view_failure_is_logged_not_raised(self, caplog):
        session = AsyncMock()
        session.execute = AsyncMock(
            side_effect=OperationalError("UPDATE auctions", {}, Exception("db down"))
        )
        auction_id = uuid4()

        await record_view(auction_id, session_factory_for(session))

        assert f"Failed to increment views for auction {auction_id}" in caplog.text
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_scheduled_task_is_retained_until_done(self):
        session = AsyncMock()

        task = schedule_view_increment(uuid4(), session_factory_for(session))
        assert task in auction_service_module._background_tasks

        await task
        await asyncio.sleep(0)
        assert task not in auction_service_module._background_tasks
        session.commit.assert_awaited_once()
