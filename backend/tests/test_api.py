"""HTTP-level tests: routing, auth dependencies and error rendering."""

from datetime import timedelta
from decimal import Decimal
from functools import partial
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.testclient import TestClient

from auction_app.api.deps import (
    get_auction_service,
    get_bid_service,
    get_current_admin_user,
    get_current_user,
    get_user_service,
)
from auction_app.core.exceptions import ValidationError
from auction_app.core.security import create_access_token
from auction_app.main import app
from auction_app.services.bid_service import BidService
from auction_app.services.unit_of_work import InMemoryBidUnitOfWork

from conftest import NOW
from test_bid_placement import StaleBidUnitOfWork


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def as_user(mock_user):
    app.dependency_overrides[get_current_user] = lambda: mock_user
    return mock_user


@pytest.fixture
def bid_store(store):
    app.dependency_overrides[get_bid_service] = lambda: BidService(
        uow_factory=partial(InMemoryBidUnitOfWork, store), clock=lambda: NOW
    )
    return store


@pytest.fixture
def auction_service():
    service = MagicMock()
    app.dependency_overrides[get_auction_service] = lambda: service
    return service


@pytest.fixture
def user_service():
    service = MagicMock()
    app.dependency_overrides[get_user_service] = lambda: service
    return service


def bids_url(auction_id) -> str:
    return f"/api/v1/auctions/{auction_id}/bids"


class TestPlaceBidEndpoint:
    def test_success(self, client, as_user, bid_store, make_state):
        state = make_state()
        bid_store.add_auction(state)

        response = client.post(bids_url(state.auction_id), json={"amount": "60.00"})

        assert response.status_code == 201
        body = response.json()
        assert body["bid"]["bidder_id"] == str(as_user.user_id)
        assert Decimal(body["bid"]["amount"]) == Decimal("60.00")
        assert Decimal(body["auction"]["current_bid"]) == Decimal("60.00")
        assert body["auction"]["highest_bidder_id"] == str(as_user.user_id)
        assert body["auction"]["bid_count"] == 1

    def test_bid_too_low(self, client, as_user, bid_store, make_state):
        state = make_state()
        bid_store.add_auction(state)

        response = client.post(bids_url(state.auction_id), json={"amount": "40"})

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "BID_TOO_LOW"
        assert detail["current_bid"] == "50.00"
        assert bid_store.bids == []

    def test_seller_forbidden(self, client, as_user, bid_store, make_state):
        state = make_state(seller_id=as_user.user_id)
        bid_store.add_auction(state)

        response = client.post(bids_url(state.auction_id), json={"amount": "100"})

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "FORBIDDEN"

    def test_ended_auction(self, client, as_user, bid_store, make_state):
        state = make_state(end_time=NOW - timedelta(seconds=1))
        bid_store.add_auction(state)

        response = client.post(bids_url(state.auction_id), json={"amount": "100"})

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail == {
            "code": "INVALID_STATE",
            "message": "Auction is not active. Status: ended",
            "status": "ended",
        }

    def test_unknown_auction(self, client, as_user, bid_store):
        response = client.post(bids_url(uuid4()), json={"amount": "100"})
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NOT_FOUND"

    def test_contention_is_503(self, client, as_user, store, make_state):
        state = make_state()
        store.add_auction(state)
        app.dependency_overrides[get_bid_service] = lambda: BidService(
            uow_factory=partial(StaleBidUnitOfWork, store), max_retries=2, clock=lambda: NOW
        )

        response = client.post(bids_url(state.auction_id), json={"amount": "100"})

        assert response.status_code == 503
        assert response.json()["detail"]["code"] == "BID_CONTENTION"

    @pytest.mark.parametrize("amount", ["0", "-5", "1.234"])
    def test_invalid_amount_is_422(self, client, as_user, bid_store, amount):
        response = client.post(bids_url(uuid4()), json={"amount": amount})
        assert response.status_code == 422


class TestBidReads:
    def test_auction_bid_history(self, client, mock_user):
        bidder = SimpleNamespace(user_id=uuid4(), name="Ann", profile_picture_url=None)
        auction_id = uuid4()
        bid = SimpleNamespace(
            bid_id=uuid4(),
            auction_id=auction_id,
            bidder_id=bidder.user_id,
            amount=Decimal("70.00"),
            created_at=NOW,
            bidder=bidder,
        )
        service = MagicMock()
        service.list_for_auction = AsyncMock(return_value=[bid])
        app.dependency_overrides[get_bid_service] = lambda: service

        response = client.get(bids_url(auction_id))

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["bids"][0]["bidder"]["name"] == "Ann"
        service.list_for_auction.assert_awaited_once_with(auction_id)

    def test_my_bids_flags_highest(self, client, as_user, make_auction):
        leading = make_auction(highest_bidder_id=as_user.user_id, current_bid=Decimal("90"))
        outbid = make_auction(highest_bidder_id=uuid4(), current_bid=Decimal("300"))
        bids = [
            SimpleNamespace(
                bid_id=uuid4(),
                auction_id=auction.auction_id,
                bidder_id=as_user.user_id,
                amount=amount,
                created_at=NOW,
                auction=auction,
            )
            for auction, amount in ((leading, Decimal("90")), (outbid, Decimal("200")))
        ]
        service = MagicMock()
        service.list_for_bidder = AsyncMock(return_value=bids)
        app.dependency_overrides[get_bid_service] = lambda: service

        response = client.get("/api/v1/bids/me")

        assert response.status_code == 200
        flags = [entry["is_highest_bidder"] for entry in response.json()["bids"]]
        assert flags == [True, False]


class TestAuctionEndpoints:
    def test_list_defaults_and_pagination(self, client, auction_service, make_auction):
        auction_service.list_auctions = AsyncMock(return_value=([make_auction()], 11))

        response = client.get("/api/v1/auctions", params={"limit": 5, "page": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["pagination"] == {"total": 11, "total_pages": 3, "page": 2, "limit": 5}
        kwargs = auction_service.list_auctions.call_args.kwargs
        assert kwargs["running_by_default"] is True
        assert kwargs["page"] == 2 and kwargs["limit"] == 5

    def test_list_rejects_unknown_sort_and_status(self, client, auction_service):
        assert client.get("/api/v1/auctions", params={"sort_by": "password"}).status_code == 422
        assert client.get("/api/v1/auctions", params={"status": "sold"}).status_code == 422
        assert client.get("/api/v1/auctions", params={"limit": 101}).status_code == 422

    def test_my_auctions_scoped_to_caller(self, client, as_user, auction_service):
        auction_service.list_auctions = AsyncMock(return_value=([], 0))

        response = client.get("/api/v1/auctions/my-auctions")

        assert response.status_code == 200
        filters = auction_service.list_auctions.call_args.args[0]
        assert filters.seller_id == as_user.user_id
        assert auction_service.list_auctions.call_args.kwargs["running_by_default"] is False

    def test_detail_counts_view_in_background(self, client, auction_service, make_auction):
        auction = make_auction(views=4)
        auction_service.get_or_404 = AsyncMock(return_value=auction)

        with patch("auction_app.api.v1.auctions.schedule_view_increment") as schedule:
            response = client.get(f"/api/v1/auctions/{auction.auction_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["views"] == 5
        assert body["status"] in {"active", "ended", "upcoming", "ending-soon"}
        schedule.assert_called_once_with(auction.auction_id)

    def test_create_requires_an_image(self, client, as_user, auction_service):
        payload = {
            "title": "Desk",
            "description": "Oak",
            "starting_bid": "10.00",
            "end_time": (NOW + timedelta(days=400)).isoformat(),
        }
        response = client.post("/api/v1/auctions", json=payload)
        assert response.status_code == 422

    def test_update_passes_only_sent_fields(self, client, as_user, auction_service, make_auction):
        auction = make_auction()
        auction_service.update = AsyncMock(return_value=auction)

        response = client.put(f"/api/v1/auctions/{auction.auction_id}", json={"title": "New"})

        assert response.status_code == 200
        args = auction_service.update.call_args.args
        assert args[1] == {"title": "New"}
        assert args[2].user_id == as_user.user_id

    def test_delete(self, client, as_user, auction_service):
        auction_service.delete = AsyncMock(return_value=None)
        response = client.delete(f"/api/v1/auctions/{uuid4()}")
        assert response.status_code == 200
        assert response.json() == {"message": "Auction deleted successfully"}

    def test_toggle_like(self, client, as_user, auction_service, make_auction):
        auction = make_auction(likes=1, liked_by_ids=[as_user.user_id])
        auction_service.toggle_like = AsyncMock(return_value=(True, auction))

        response = client.patch(f"/api/v1/auctions/{auction.auction_id}/like")

        assert response.status_code == 200
        body = response.json()
        assert body["liked"] is True
        assert body["auction"]["likes"] == 1
        assert body["auction"]["liked_by"] == [str(as_user.user_id)]


class TestAuthEndpoints:
    def test_register_returns_user_and_token(self, client, user_service, mock_user):
        user_service.create_user = AsyncMock(return_value=mock_user)

        response = client.post(
            "/api/v1/auth/register",
            json={"name": "Test User", "email": "test@example.com", "password": "password123"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["user"]["email"] == "test@example.com"
        assert body["access_token"]

    def test_register_duplicate_email(self, client, user_service):
        user_service.create_user = AsyncMock(side_effect=ValidationError("Email already registered"))

        response = client.post(
            "/api/v1/auth/register",
            json={"name": "Dup", "email": "dup@example.com", "password": "password123"},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    def test_register_short_password(self, client, user_service):
        response = client.post(
            "/api/v1/auth/register",
            json={"name": "Dup", "email": "dup@example.com", "password": "short"},
        )
        assert response.status_code == 422

    def test_login_wrong_credentials(self, client, user_service):
        user_service.authenticate = AsyncMock(return_value=None)
        response = client.post(
            "/api/v1/auth/login", json={"email": "a@example.com", "password": "nope"}
        )
        assert response.status_code == 401

    def test_login_banned(self, client, user_service, mock_user):
        mock_user.is_banned = True
        user_service.authenticate = AsyncMock(return_value=mock_user)
        user_service.record_login = AsyncMock()

        response = client.post(
            "/api/v1/auth/login", json={"email": "test@example.com", "password": "password123"}
        )

        assert response.status_code == 403
        user_service.record_login.assert_not_awaited()

    def test_login_records_last_login(self, client, user_service, mock_user):
        user_service.authenticate = AsyncMock(return_value=mock_user)
        user_service.record_login = AsyncMock(return_value=mock_user)

        response = client.post(
            "/api/v1/auth/login", json={"email": "test@example.com", "password": "password123"}
        )

        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"
        user_service.record_login.assert_awaited_once_with(mock_user)


class TestAdminEndpoints:
    def test_non_admin_forbidden(self, client, as_user, user_service):
        response = client.get("/api/v1/admin/users")
        assert response.status_code == 403

    def test_ban_user(self, client, mock_admin_user, user_service, mock_user):
        app.dependency_overrides[get_current_admin_user] = lambda: mock_admin_user
        target = uuid4()
        user_service.set_banned = AsyncMock(return_value=mock_user)

        response = client.patch(f"/api/v1/admin/users/{target}/ban", json={"is_banned": True})

        assert response.status_code == 200
        user_service.set_banned.assert_awaited_once_with(target, True)

    def test_admin_cannot_ban_self(self, client, mock_admin_user, user_service):
        app.dependency_overrides[get_current_admin_user] = lambda: mock_admin_user
        response = client.patch(
            f"/api/v1/admin/users/{mock_admin_user.user_id}/ban", json={"is_banned": True}
        )
        assert response.status_code == 400


class TestCurrentUserDependency:
    @staticmethod
    def credentials(token: str) -> HTTPAuthorizationCredentials:
        return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

    @pytest.mark.asyncio
    async def test_invalid_token(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(self.credentials("garbage"), AsyncMock())
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_user(self):
        token = create_access_token({"sub": str(uuid4())})
        with patch("auction_app.api.deps.UserService") as service_cls:
            service_cls.return_value.get_by_id = AsyncMock(return_value=None)
            with pytest.raises(HTTPException) as exc_info:
                await get_current_user(self.credentials(token), AsyncMock())
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_banned_user(self, mock_user):
        mock_user.is_banned = True
        token = create_access_token({"sub": str(mock_user.user_id)})
        with patch("auction_app.api.deps.UserService") as service_cls:
            service_cls.return_value.get_by_id = AsyncMock(return_value=mock_user)
            with pytest.raises(HTTPException) as exc_info:
                await get_current_user(self.credentials(token), AsyncMock())
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_valid_user(self, mock_user):
        token = create_access_token({"sub": str(mock_user.user_id)})
        with patch("auction_app.api.deps.UserService") as service_cls:
            service_cls.return_value.get_by_id = AsyncMock(return_value=mock_user)
            user = await get_current_user(self.credentials(token), AsyncMock())
        assert user is mock_user


class TestPlumbing:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_metrics_exposes_bid_counters(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "bids_total" in response.text
        assert "bid_latency_seconds" in response.text

    def test_unexpected_error_is_500_without_internals(self, auction_service):
        auction_service.get_or_404 = AsyncMock(side_effect=RuntimeError("secret internals"))
        client = TestClient(app, raise_server_exceptions=False)
        try:
            response = client.get(f"/api/v1/auctions/{uuid4()}")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json() == {
            "detail": {"code": "SERVER_ERROR", "message": "Internal server error"}
        }
