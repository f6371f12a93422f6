from datetime import date
from fnmatch import fnmatchcase

from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import select

from watchtrack.models import ShowWatchStatus, SeasonWatchStatus, EpisodeWatchStatus

TODAY = date(2024, 6, 1)

PROFILE = 1
OTHER_PROFILE = 2
ACCOUNT = 10

# Show 1: seasons 11 and 12 have aired, season 13 has not.
SHOW = 1
AIRED_SEASON = 11
SECOND_SEASON = 12
UNAIRED_SEASON = 13
SEASONS = [AIRED_SEASON, SECOND_SEASON, UNAIRED_SEASON]
AIRED_EPISODES = [111, 112, 121, 122]
UNAIRED_EPISODE = 131
EPISODES = AIRED_EPISODES + [UNAIRED_EPISODE]

# Show 2 has no seasons in the catalog.
EMPTY_SHOW = 2


class FakeRedis:
    """In-memory stand-in for the redis.asyncio client methods the cache uses."""

    def __init__(self):
        self.store = {}
        self.ttls = {}
        self.deleted = []
        self.fail = False

    def _check(self):
        if self.fail:
            raise RedisConnectionError("redis is down")

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self._check()
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys):
        self._check()
        self.deleted.extend(keys)
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan_iter(self, match=None):
        self._check()
        for key in list(self.store):
            if match is None or fnmatchcase(key, match):
                yield key

    async def flushdb(self):
        self._check()
        self.store.clear()
        return True

    async def aclose(self):
        pass


async def read_status_rows(session, profile_id=PROFILE) -> dict:
    """Every stored status for a profile, keyed by level then node id."""
    shows = await session.execute(
        select(ShowWatchStatus.show_id, ShowWatchStatus.status)
        .where(ShowWatchStatus.profile_id == profile_id)
    )
    seasons = await session.execute(
        select(SeasonWatchStatus.season_id, SeasonWatchStatus.status)
        .where(SeasonWatchStatus.profile_id == profile_id)
    )
    episodes = await session.execute(
        select(EpisodeWatchStatus.episode_id, EpisodeWatchStatus.status)
        .where(EpisodeWatchStatus.profile_id == profile_id)
    )
    return {
        "show": {node_id: status for node_id, status in shows.all()},
        "season": {node_id: status for node_id, status in seasons.all()},
        "episode": {node_id: status for node_id, status in episodes.all()},
    }
