from typing import Any, Awaitable, Callable, Optional
import json
import logging

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from watchtrack.services import cache_keys

logger = logging.getLogger(__name__)


class CacheService:
    """
    Derived-data cache in front of expensive per-profile and per-account reads.

    Values are stored as JSON with a TTL. The cache is disposable: a redis
    failure is logged and reported as a miss (or zero keys removed), never
    raised to the caller.
    """

    def __init__(self, client: aioredis.Redis, default_ttl: int = 300):
        self.client = client
        self.default_ttl = default_ttl

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self.client.get(key)
        except RedisError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            await self.client.setex(key, ttl or self.default_ttl, json.dumps(value, default=str))
            return True
        except RedisError as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False

    async def get_or_set(
        self,
        key: str,
        populate: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None
    ) -> Any:
        """Return the cached value for ``key`` or compute, store and return it.

        Errors raised by ``populate`` propagate and nothing is stored.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        try:
            value = await populate()
        except Exception as e:
            logger.error(f"Cache miss and fetch error for key {key}: {e}")
            raise

        await self.set(key, value, ttl)
        return value

    async def invalidate(self, key: str) -> int:
        try:
            return await self.client.delete(key)
        except RedisError as e:
            logger.warning(f"Cache invalidate failed for {key}: {e}")
            return 0

    async def invalidate_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern. Returns the number removed."""
        try:
            keys = [key async for key in self.client.scan_iter(match=pattern)]
            if not keys:
                return 0
            return await self.client.delete(*keys)
        except RedisError as e:
            logger.warning(f"Cache pattern invalidate failed for {pattern}: {e}")
            return 0

    async def flush_all(self):
        try:
            await self.client.flushdb()
            logger.info("Cache completely flushed")
        except RedisError as e:
            logger.warning(f"Cache flush failed: {e}")

    async def invalidate_profile_statistics(self, profile_id: int):
        for key in (
            cache_keys.profile_statistics(profile_id),
            cache_keys.profile_show_stats(profile_id),
            cache_keys.profile_watch_progress(profile_id),
        ):
            await self.invalidate(key)

    async def invalidate_account_statistics(self, account_id: int):
        await self.invalidate(cache_keys.account_statistics(account_id))

    async def invalidate_profile(self, profile_id: int) -> int:
        return await self.invalidate_pattern(cache_keys.all_profile_data(profile_id))

    async def invalidate_profile_shows(self, profile_id: int) -> int:
        """Drop every show, episode and statistics facet of a profile."""
        await self.invalidate(cache_keys.profile_shows(profile_id))

        await self.invalidate(cache_keys.profile_episodes(profile_id))
        await self.invalidate(cache_keys.profile_unwatched_episodes(profile_id))
        await self.invalidate(cache_keys.profile_recent_episodes(profile_id))
        await self.invalidate(cache_keys.profile_upcoming_episodes(profile_id))

        await self.invalidate_profile_statistics(profile_id)

        # show details and anything else keyed under the show prefix
        return await self.invalidate_pattern(cache_keys.profile_show_data(profile_id))

    async def invalidate_account(self, account_id: int) -> int:
        await self.invalidate(cache_keys.account_profiles(account_id))
        await self.invalidate_account_statistics(account_id)
        return await self.invalidate_pattern(cache_keys.all_account_data(account_id))
