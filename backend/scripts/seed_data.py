"""Seed data script for development and testing.

Creates:
- 1 admin + SEED_USER_COUNT sample users with random avatars
- Sample auctions in every lifecycle status (upcoming, active,
  ending-soon, ended), some with bid histories and likes

Environment Variables:
    SEED_USER_COUNT: Number of sample users (default: 20)
    RESET_DATA: Set to "true" to clear auctions, bids and likes before seeding (default: false)

Usage:
    # First time setup
    cd backend && uv run python -m scripts.seed_data

    # Re-create the sample auctions
    RESET_DATA=true uv run python -m scripts.seed_data

Accounts:
    - Admin: admin@test.com / admin12345
    - Users: user0001@test.com ~ userNNNN@test.com (password: password123)
"""

import asyncio
import os
import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# Configuration from environment variables
SEED_USER_COUNT = int(os.getenv("SEED_USER_COUNT", "20"))
RESET_DATA = os.getenv("RESET_DATA", "false").lower() == "true"

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from auction_app.core.database import async_session_maker, engine
from auction_app.core.security import get_password_hash, random_avatar_url
from auction_app.models import Auction, Bid, User, auction_likes
from auction_app.services.auction_status import auction_status

SAMPLE_ITEMS = [
    ("Vintage Film Camera", "Fully working 35mm rangefinder with leather case.", "Cameras"),
    ("Mechanical Keyboard", "Hot-swappable 75% board with tactile switches.", "Electronics"),
    ("Oak Writing Desk", "Solid oak desk, hand finished, minor wear.", "Furniture"),
    ("Signed Vinyl Record", "First pressing, signed sleeve, excellent condition.", "Music"),
    ("Road Bike Frame", "Carbon frame, size 56, no crashes.", "Sports"),
    ("Antique Pocket Watch", "Silver case, serviced last year, keeps time.", "Collectibles"),
    ("Espresso Machine", "Dual boiler machine with grinder bundle.", "Home"),
    ("Landscape Oil Painting", "Original oil on canvas, 60x90 cm, framed.", "Art"),
]

# (label, start offset, end offset) relative to now
SCHEDULES = [
    ("upcoming", timedelta(days=1), timedelta(days=4)),
    ("active", timedelta(days=-1), timedelta(days=2)),
    ("ending-soon", timedelta(days=-2), timedelta(minutes=30)),
    ("ended", timedelta(days=-5), timedelta(days=-1)),
]


async def reset_auction_data(session: AsyncSession) -> None:
    """Clear likes, bids and auctions."""
    print("Resetting auction data...")
    await session.execute(text("DELETE FROM auction_likes"))
    await session.execute(text("DELETE FROM bids"))
    await session.execute(text("DELETE FROM auctions"))
    await session.commit()
    print("  Cleared auction_likes, bids, auctions")


async def seed_users(session: AsyncSession) -> list[User]:
    """Create 1 admin + SEED_USER_COUNT sample users.

    Users:
    - Admin: admin@test.com / admin12345 (is_admin=True)
    - Email: user0001@test.com onwards
    - Password: password123 (bcrypt hashed)
    """
    print("Seeding users...")

    result = await session.execute(select(User).limit(1))
    if result.scalar_one_or_none():
        print("  Users already exist, skipping...")
        result = await session.execute(select(User).order_by(User.email))
        return list(result.scalars().all())

    users = []

    admin = User(
        name="Admin",
        email="admin@test.com",
        password_hash=get_password_hash("admin12345"),
        is_admin=True,
        profile_picture_url=random_avatar_url(),
    )
    users.append(admin)
    print("  Created admin: admin@test.com / admin12345")

    password_hash = get_password_hash("password123")
    for i in range(1, SEED_USER_COUNT + 1):
        users.append(
            User(
                name=f"User {i:04d}",
                email=f"user{i:04d}@test.com",
                password_hash=password_hash,
                profile_picture_url=random_avatar_url(),
            )
        )

    session.add_all(users)
    await session.commit()

    for user in users:
        await session.refresh(user)

    print(f"  Created {len(users)} users")
    return users


def _bid_history(starting_bid: Decimal, bidders: list[User], count: int) -> list[tuple[User, Decimal]]:
    """Strictly increasing amounts, never the same bidder twice in a row."""
    history = []
    amount = starting_bid
    previous = None
    for _ in range(count):
        candidates = [user for user in bidders if user is not previous] or bidders
        bidder = random.choice(candidates)
        history.append((bidder, amount))
        amount += Decimal(random.randint(5, 50))
        previous = bidder
    return history


async def seed_auctions(session: AsyncSession, users: list[User]) -> list[Auction]:
    """Create two auctions per lifecycle status, with bids where they can exist."""
    print("Seeding auctions...")

    if not RESET_DATA:
        result = await session.execute(select(Auction).limit(1))
        if result.scalar_one_or_none():
            print("  Auctions already exist, skipping...")
            return []

    members = [user for user in users if not user.is_admin]
    now = datetime.now(timezone.utc)
    auctions = []

    for index, (title, description, category) in enumerate(SAMPLE_ITEMS):
        label, start_offset, end_offset = SCHEDULES[index % len(SCHEDULES)]
        seller = members[index % len(members)]
        starting_bid = Decimal(random.randint(20, 400))
        image = f"https://picsum.photos/seed/auction{index}/800/600"

        auction = Auction(
            title=title,
            description=description,
            category=category,
            location="Taipei",
            image_url=image,
            images=[image],
            documents=[],
            starting_bid=starting_bid,
            current_bid=starting_bid,
            start_time=now + start_offset,
            end_time=now + end_offset,
            seller_id=seller.user_id,
            bid_count=0,
            views=random.randint(0, 300),
            version=0,
        )
        session.add(auction)
        await session.flush()

        if label != "upcoming":
            bidders = [user for user in members if user.user_id != seller.user_id]
            history = _bid_history(starting_bid, bidders, random.randint(1, 6))
            for offset, (bidder, amount) in enumerate(history):
                session.add(
                    Bid(
                        auction_id=auction.auction_id,
                        bidder_id=bidder.user_id,
                        amount=amount,
                        created_at=auction.start_time + timedelta(minutes=offset + 1),
                    )
                )
            last_bidder, last_amount = history[-1]
            auction.current_bid = last_amount
            auction.highest_bidder_id = last_bidder.user_id
            auction.bid_count = len(history)
            auction.version = len(history)

        for liker in random.sample(members, k=min(3, len(members))):
            await session.execute(
                auction_likes.insert().values(auction_id=auction.auction_id, user_id=liker.user_id)
            )

        auctions.append(auction)

    await session.commit()

    for auction in auctions:
        print(
            f"  {auction_status(auction, now).value:<12} {auction.title} "
            f"(current_bid={auction.current_bid}, bids={auction.bid_count})"
        )
    print(f"  Created {len(auctions)} auctions")
    return auctions


async def main():
    """Main seed function."""
    print("=" * 60)
    print("Auction Marketplace - Seed Data Script")
    print("=" * 60)
    print(f"  RESET_DATA: {RESET_DATA}")
    print(f"  SEED_USER_COUNT: {SEED_USER_COUNT}")
    print("=" * 60)

    async with async_session_maker() as session:
        if RESET_DATA:
            await reset_auction_data(session)

        users = await seed_users(session)
        await seed_auctions(session, users)

    print("\n" + "=" * 60)
    print("Seed complete!")
    print("=" * 60)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
