"""Redis service for per-auction distributed bid locks."""

import asyncio
import time
import uuid

from redis.asyncio import Redis

from auction_app.core.redis import get_redis


class RedisService:
    """Service class for Redis operations."""

    # Lua script for safe lock release (only delete own lock)
    RELEASE_LOCK_SCRIPT = """
    if redis.call("GET", KEYS[1]) == ARGV[1] then
        return redis.call("DEL", KEYS[1])
    else
        return 0
    end
    """

    LOCK_POLL_INTERVAL = 0.02

    def __init__(self, redis: Redis):
        """Initialize Redis service with a Redis client.

        Args:
            redis: Async Redis client instance
        """
        self.redis = redis
        self._release_lock_script = None

    async def _get_release_lock_script(self):
        """Get or register the release lock Lua script."""
        if self._release_lock_script is None:
            self._release_lock_script = self.redis.register_script(self.RELEASE_LOCK_SCRIPT)
        return self._release_lock_script

    @staticmethod
    def lock_key(auction_id: str) -> str:
        return f"lock:auction:{auction_id}"

    async def acquire_lock(
        self, auction_id: str, owner_id: str | None = None, ttl: int = 2
    ) -> tuple[bool, str]:
        """Try once to acquire the bid lock for an auction.

        Key pattern: lock:auction:{auction_id}
        Uses SET NX EX so a crashed holder cannot block the auction past ``ttl``.

        Args:
            auction_id: Auction UUID string
            owner_id: Unique identifier for lock owner (auto-generated if None)
            ttl: Lock timeout in seconds

        Returns:
            Tuple of (success, owner_id)
        """
        if owner_id is None:
            owner_id = str(uuid.uuid4())

        acquired = await self.redis.set(self.lock_key(auction_id), owner_id, nx=True, ex=ttl)
        return (acquired is not None, owner_id)

    async def wait_for_lock(
        self, auction_id: str, ttl: int = 2, timeout: float = 1.0
    ) -> tuple[bool, str]:
        """Poll acquire_lock until it succeeds or ``timeout`` seconds pass."""
        owner_id = str(uuid.uuid4())
        deadline = time.monotonic() + timeout
        while True:
            acquired, owner_id = await self.acquire_lock(auction_id, owner_id=owner_id, ttl=ttl)
            if acquired or time.monotonic() >= deadline:
                return (acquired, owner_id)
            await asyncio.sleep(self.LOCK_POLL_INTERVAL)

    async def release_lock(self, auction_id: str, owner_id: str) -> bool:
        """Release the bid lock (only if owner matches).

        Args:
            auction_id: Auction UUID string
            owner_id: The owner_id returned from acquire_lock

        Returns:
            True if lock was released, False if not owner or not locked
        """
        script = await self._get_release_lock_script()
        result = await script(keys=[self.lock_key(auction_id)], args=[owner_id])
        return int(result) == 1


async def get_redis_service() -> RedisService:
    """Get RedisService instance with shared Redis connection pool."""
    redis = await get_redis()
    return RedisService(redis)
