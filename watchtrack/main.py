from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI, Request
from redis import asyncio as aioredis

from watchtrack.config import Settings, settings as default_settings
from watchtrack.database import build_engine, build_session_factory, init_db
from watchtrack.logging_config import setup_logging
from watchtrack.services import CacheService, CascadeEngine, WatchStatusService
from watchtrack.transaction import TransactionHelper

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application. The engine, redis client and service live for the app's lifetime."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        setup_logging(settings.log_level)
        engine = build_engine(settings.database_url, echo=settings.database_echo)
        await init_db(engine)
        redis_client = aioredis.from_url(settings.redis_url, decode_responses=True)

        app.state.watch_status = WatchStatusService(
            TransactionHelper(build_session_factory(engine)),
            CacheService(redis_client, default_ttl=settings.cache_ttl_seconds),
            CascadeEngine()
        )
        logger.info("Watch status service started")
        yield
        # Shutdown
        await redis_client.aclose()
        await engine.dispose()

    return FastAPI(title="Watchtrack", lifespan=lifespan)


def get_watch_status_service(request: Request) -> WatchStatusService:
    """Dependency for getting the watch status service."""
    return request.app.state.watch_status


app = create_app()
