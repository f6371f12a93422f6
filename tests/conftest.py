from datetime import date

import pytest

from watchtrack.database import build_engine, build_session_factory, init_db
from watchtrack.models import Profile, Show, Season, Episode
from watchtrack.services import CacheService, CascadeEngine, WatchStatusService
from watchtrack.transaction import TransactionHelper

from tests.factories import (
    TODAY, PROFILE, OTHER_PROFILE, ACCOUNT, SHOW, EMPTY_SHOW,
    AIRED_SEASON, SECOND_SEASON, UNAIRED_SEASON, FakeRedis, read_status_rows
)


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite://")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def catalog(session_factory):
    async with session_factory() as session:
        session.add_all([
            Profile(id=PROFILE, account_id=ACCOUNT, name="Alice"),
            Profile(id=OTHER_PROFILE, account_id=ACCOUNT, name="Bob"),
            Show(id=SHOW, title="Long Runner", in_production=True),
            Show(id=EMPTY_SHOW, title="Announced", in_production=True),
        ])
        await session.flush()
        session.add_all([
            Season(id=AIRED_SEASON, show_id=SHOW, season_number=1, release_date=date(2023, 1, 1)),
            Season(id=SECOND_SEASON, show_id=SHOW, season_number=2, release_date=None),
            Season(id=UNAIRED_SEASON, show_id=SHOW, season_number=3, release_date=date(2025, 1, 1)),
        ])
        await session.flush()
        session.add_all([
            Episode(id=111, season_id=AIRED_SEASON, show_id=SHOW, episode_number=1, air_date=date(2023, 1, 1)),
            Episode(id=112, season_id=AIRED_SEASON, show_id=SHOW, episode_number=2, air_date=date(2023, 1, 8)),
            Episode(id=121, season_id=SECOND_SEASON, show_id=SHOW, episode_number=1, air_date=date(2024, 1, 1)),
            Episode(id=122, season_id=SECOND_SEASON, show_id=SHOW, episode_number=2, air_date=None),
            Episode(id=131, season_id=UNAIRED_SEASON, show_id=SHOW, episode_number=1, air_date=date(2025, 1, 1)),
        ])
        await session.commit()


@pytest.fixture
async def session(catalog, session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def cascade():
    return CascadeEngine(today=lambda: TODAY)


@pytest.fixture
def transactions(session_factory):
    return TransactionHelper(session_factory)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return CacheService(fake_redis, default_ttl=300)


@pytest.fixture
def service(catalog, transactions, cache, cascade):
    return WatchStatusService(transactions, cache, cascade)


@pytest.fixture
def status_rows(session_factory):
    """Reads a profile's stored statuses through a fresh session."""
    async def read(profile_id=PROFILE):
        async with session_factory() as session:
            return await read_status_rows(session, profile_id)

    return read
