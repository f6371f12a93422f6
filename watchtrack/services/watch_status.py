from typing import Awaitable, Callable, Iterable, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from watchtrack.services.cache import CacheService
from watchtrack.services.cascade import CascadeEngine
from watchtrack.services.results import StatusUpdateResult
from watchtrack.status import ContentLevel, AnyStatus, parse_level, parse_status
from watchtrack.transaction import TransactionHelper

logger = logging.getLogger(__name__)


class WatchStatusService:
    """
    Entry point for every watch status write.

    Each operation is one transaction. Derived-data cache entries for the
    profile (and its account, when known) are invalidated only after that
    transaction commits; a rolled-back write leaves the cache untouched.
    """

    def __init__(
        self,
        transactions: TransactionHelper,
        cache: CacheService,
        engine: Optional[CascadeEngine] = None
    ):
        self.transactions = transactions
        self.cache = cache
        self.engine = engine or CascadeEngine()

    async def _write(
        self,
        profile_id: int,
        work: Callable[[AsyncSession], Awaitable[StatusUpdateResult]]
    ) -> StatusUpdateResult:
        async def unit(session: AsyncSession) -> StatusUpdateResult:
            result = await work(session)
            result.profile_id = profile_id
            result.account_id = await self.engine.get_account_id_for_profile(session, profile_id)
            return result

        result = await self.transactions.execute_in_transaction(unit)
        logger.info(f"Profile {profile_id}: {result.message} ({result.affected_rows} rows)")
        await self._invalidate(profile_id, result.account_id)
        return result

    async def _invalidate(self, profile_id: int, account_id: Optional[int]):
        try:
            await self.cache.invalidate_profile_shows(profile_id)
            if account_id is not None:
                await self.cache.invalidate_account_statistics(account_id)
        except Exception as e:
            logger.warning(f"Cache invalidation failed for profile {profile_id}: {e}")

    # Favorites

    async def add_to_favorites(
        self,
        profile_id: int,
        show_id: int,
        include_descendants: bool = True
    ) -> StatusUpdateResult:
        """Start tracking a show, and optionally all of its seasons and episodes."""
        async def work(session: AsyncSession) -> StatusUpdateResult:
            affected = await self.engine.insert_show_favorite(session, profile_id, show_id)
            if include_descendants:
                season_ids = await self.engine.get_season_ids_for_show(session, show_id)
                if season_ids:
                    affected += await self.engine.insert_season_favorites(session, profile_id, season_ids)
                    affected += await self.engine.insert_episode_favorites(session, profile_id, season_ids)
            return StatusUpdateResult(
                success=True,
                affected_rows=affected,
                message=f"Show {show_id} added to favorites"
            )

        return await self._write(profile_id, work)

    async def add_season_to_favorites(self, profile_id: int, season_id: int) -> StatusUpdateResult:
        async def work(session: AsyncSession) -> StatusUpdateResult:
            affected = await self.engine.insert_season_favorite(session, profile_id, season_id)
            return StatusUpdateResult(
                success=True,
                affected_rows=affected,
                message=f"Season {season_id} added to favorites"
            )

        return await self._write(profile_id, work)

    async def add_episode_to_favorites(self, profile_id: int, episode_id: int) -> StatusUpdateResult:
        async def work(session: AsyncSession) -> StatusUpdateResult:
            affected = await self.engine.insert_episode_favorite(session, profile_id, episode_id)
            return StatusUpdateResult(
                success=True,
                affected_rows=affected,
                message=f"Episode {episode_id} added to favorites"
            )

        return await self._write(profile_id, work)

    async def remove_from_favorites(self, profile_id: int, show_id: int) -> StatusUpdateResult:
        """Stop tracking a show. Episode rows go first, then seasons, then the show."""
        async def work(session: AsyncSession) -> StatusUpdateResult:
            season_ids = await self.engine.get_season_ids_for_show(session, show_id)
            affected = await self.engine.delete_episode_rows(session, profile_id, season_ids)
            affected += await self.engine.delete_season_rows(session, profile_id, season_ids)
            affected += await self.engine.delete_show_row(session, profile_id, show_id)
            return StatusUpdateResult(
                success=affected > 0,
                affected_rows=affected,
                message=f"Show {show_id} removed from favorites"
            )

        return await self._write(profile_id, work)

    # Status changes

    async def update_status(
        self,
        profile_id: int,
        level,
        node_id: int,
        status,
        recursive: bool = False
    ) -> StatusUpdateResult:
        """
        Force-set a node's status and bring its ancestors back in line.

        A season change recomputes the owning show. An episode change
        recomputes its season, then the show. An untracked node is not an
        error: the result comes back with ``success=False``.
        """
        level = parse_level(level)
        status = parse_status(level, status)

        async def work(session: AsyncSession) -> StatusUpdateResult:
            result = StatusUpdateResult()
            affected = await self.engine.force_set(
                session, level, profile_id, node_id, status, recursive, result.changes
            )
            if not affected:
                result.message = f"{level.value.capitalize()} {node_id} is not tracked"
                return result

            if level == ContentLevel.EPISODE:
                season_id = await self.engine.get_season_id_for_episode(session, node_id)
                if season_id is not None:
                    await self.engine.recompute_season(session, profile_id, season_id, result.changes)
                    await self._recompute_owning_show(session, profile_id, season_id, result)
            elif level == ContentLevel.SEASON:
                await self._recompute_owning_show(session, profile_id, node_id, result)

            result.success = True
            result.affected_rows = affected
            result.message = f"{level.value.capitalize()} {node_id} set to {status.value}"
            return result

        return await self._write(profile_id, work)

    async def _recompute_owning_show(
        self,
        session: AsyncSession,
        profile_id: int,
        season_id: int,
        result: StatusUpdateResult
    ):
        show_id = await self.engine.get_show_id_for_season(session, season_id)
        if show_id is not None:
            await self.engine.recompute_show(session, profile_id, show_id, result.changes)

    async def set_status(
        self,
        profile_id: int,
        level,
        node_id: int,
        status,
        recursive: bool = False
    ) -> bool:
        result = await self.update_status(profile_id, level, node_id, status, recursive)
        return result.success

    # New content

    async def react_to_new_episodes(self, profile_id: int, season_id: int) -> StatusUpdateResult:
        """A WATCHED season that gained episodes drops to WATCHING (and a WATCHED show with it)."""
        async def work(session: AsyncSession) -> StatusUpdateResult:
            result = StatusUpdateResult()
            result.success = await self.engine.demote_for_new_episodes(
                session, profile_id, season_id, result.changes
            )
            result.affected_rows = len(result.changes)
            result.message = (
                f"Season {season_id} demoted for new episodes" if result.success
                else f"Season {season_id} unchanged"
            )
            return result

        return await self._write(profile_id, work)

    async def react_to_new_season(self, profile_id: int, show_id: int) -> StatusUpdateResult:
        async def work(session: AsyncSession) -> StatusUpdateResult:
            result = StatusUpdateResult()
            result.success = await self.engine.demote_show_for_new_content(
                session, profile_id, show_id, result.changes
            )
            result.affected_rows = len(result.changes)
            result.message = (
                f"Show {show_id} demoted for new season" if result.success
                else f"Show {show_id} unchanged"
            )
            return result

        return await self._write(profile_id, work)

    async def react_to_new_content(
        self,
        show_id: int,
        profile_ids: Iterable[int]
    ) -> dict[int, StatusUpdateResult]:
        """
        Apply the new-season demotion for every profile tracking a show.

        Each profile gets its own transaction. A database failure for one
        profile is logged and reported in its result; the others still commit.
        """
        results = {}
        for profile_id in profile_ids:
            try:
                results[profile_id] = await self.react_to_new_season(profile_id, show_id)
            except SQLAlchemyError as e:
                logger.error(f"New content update failed for profile {profile_id}, show {show_id}: {e}")
                results[profile_id] = StatusUpdateResult(
                    success=False,
                    message=f"Error: {e}",
                    profile_id=profile_id
                )
        return results

    # Reads

    async def get_status(self, profile_id: int, level, node_id: int) -> Optional[AnyStatus]:
        """Stored status of a node, or None when the profile does not track it."""
        level = parse_level(level)

        async def work(session: AsyncSession) -> Optional[AnyStatus]:
            return await self.engine.get_status(session, level, profile_id, node_id)

        return await self.transactions.execute_in_transaction(work)
