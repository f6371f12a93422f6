from datetime import date
from typing import Callable, Optional
import logging

from sqlalchemy import select, update, delete, literal, or_, Integer
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from watchtrack.models import (
    Profile, Season, Episode, ShowWatchStatus, SeasonWatchStatus, EpisodeWatchStatus
)
from watchtrack.services.results import StatusChange
from watchtrack.services.rules import (
    StatusTally, EpisodeTally, derive_show_status, derive_season_status
)
from watchtrack.status import (
    ContentLevel, ShowStatus, SeasonStatus, EpisodeStatus, AnyStatus,
    parse_level, season_status_for, episode_status_for
)

logger = logging.getLogger(__name__)

# level -> (status table, node id column)
STATUS_TABLES = {
    ContentLevel.SHOW: (ShowWatchStatus, ShowWatchStatus.show_id),
    ContentLevel.SEASON: (SeasonWatchStatus, SeasonWatchStatus.season_id),
    ContentLevel.EPISODE: (EpisodeWatchStatus, EpisodeWatchStatus.episode_id),
}

_INSERT_BY_DIALECT = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def _insert_ignore(session: AsyncSession, model):
    """INSERT that skips rows whose primary key already exists."""
    dialect = session.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise NotImplementedError(f"Insert-or-ignore is not supported for dialect {dialect}")
    return insert(model.__table__)


class CascadeEngine:
    """
    Moves watch status through the show -> season -> episode hierarchy.

    Force-set pushes a status down onto a node and, optionally, all of its
    descendants. Recompute derives a season from its episodes and a show from
    its seasons. Every method works on the caller's session and never commits;
    the caller owns the transaction.
    """

    def __init__(self, today: Callable[[], date] = date.today):
        self.today = today

    # Lookups

    async def get_status(
        self,
        session: AsyncSession,
        level: ContentLevel,
        profile_id: int,
        node_id: int
    ) -> Optional[AnyStatus]:
        """Stored status of a node, or None if the profile does not track it."""
        model, node_col = STATUS_TABLES[parse_level(level)]
        result = await session.execute(
            select(model.status).where(
                model.profile_id == profile_id,
                node_col == node_id
            )
        )
        return result.scalar_one_or_none()

    async def get_season_ids_for_show(self, session: AsyncSession, show_id: int) -> list[int]:
        result = await session.execute(
            select(Season.id).where(Season.show_id == show_id).order_by(Season.season_number)
        )
        return list(result.scalars().all())

    async def get_show_id_for_season(self, session: AsyncSession, season_id: int) -> Optional[int]:
        result = await session.execute(select(Season.show_id).where(Season.id == season_id))
        return result.scalar_one_or_none()

    async def get_season_id_for_episode(self, session: AsyncSession, episode_id: int) -> Optional[int]:
        result = await session.execute(select(Episode.season_id).where(Episode.id == episode_id))
        return result.scalar_one_or_none()

    async def get_account_id_for_profile(self, session: AsyncSession, profile_id: int) -> Optional[int]:
        result = await session.execute(select(Profile.account_id).where(Profile.id == profile_id))
        return result.scalar_one_or_none()

    # Favorites

    async def insert_show_favorite(self, session: AsyncSession, profile_id: int, show_id: int) -> int:
        stmt = _insert_ignore(session, ShowWatchStatus).values(
            profile_id=profile_id,
            show_id=show_id,
            status=ShowStatus.NOT_WATCHED
        ).on_conflict_do_nothing()
        result = await session.execute(stmt)
        return result.rowcount

    async def insert_season_favorite(self, session: AsyncSession, profile_id: int, season_id: int) -> int:
        stmt = _insert_ignore(session, SeasonWatchStatus).values(
            profile_id=profile_id,
            season_id=season_id,
            status=SeasonStatus.NOT_WATCHED
        ).on_conflict_do_nothing()
        result = await session.execute(stmt)
        return result.rowcount

    async def insert_episode_favorite(self, session: AsyncSession, profile_id: int, episode_id: int) -> int:
        stmt = _insert_ignore(session, EpisodeWatchStatus).values(
            profile_id=profile_id,
            episode_id=episode_id,
            status=EpisodeStatus.NOT_WATCHED
        ).on_conflict_do_nothing()
        result = await session.execute(stmt)
        return result.rowcount

    async def insert_season_favorites(
        self,
        session: AsyncSession,
        profile_id: int,
        season_ids: list[int]
    ) -> int:
        if not season_ids:
            return 0
        stmt = _insert_ignore(session, SeasonWatchStatus).values([
            {"profile_id": profile_id, "season_id": season_id, "status": SeasonStatus.NOT_WATCHED}
            for season_id in season_ids
        ]).on_conflict_do_nothing()
        result = await session.execute(stmt)
        return result.rowcount

    async def insert_episode_favorites(
        self,
        session: AsyncSession,
        profile_id: int,
        season_ids: list[int]
    ) -> int:
        """One set-based insert for every episode of the given seasons."""
        if not season_ids:
            return 0
        episodes = select(
            literal(profile_id, Integer),
            Episode.id
        ).where(Episode.season_id.in_(season_ids))
        stmt = _insert_ignore(session, EpisodeWatchStatus).from_select(
            ["profile_id", "episode_id"], episodes
        ).on_conflict_do_nothing()
        result = await session.execute(stmt)
        return result.rowcount

    async def delete_episode_rows(
        self,
        session: AsyncSession,
        profile_id: int,
        season_ids: list[int]
    ) -> int:
        if not season_ids:
            return 0
        result = await session.execute(
            delete(EpisodeWatchStatus).where(
                EpisodeWatchStatus.profile_id == profile_id,
                EpisodeWatchStatus.episode_id.in_(
                    select(Episode.id).where(Episode.season_id.in_(season_ids))
                )
            )
        )
        return result.rowcount

    async def delete_season_rows(
        self,
        session: AsyncSession,
        profile_id: int,
        season_ids: list[int]
    ) -> int:
        if not season_ids:
            return 0
        result = await session.execute(
            delete(SeasonWatchStatus).where(
                SeasonWatchStatus.profile_id == profile_id,
                SeasonWatchStatus.season_id.in_(season_ids)
            )
        )
        return result.rowcount

    async def delete_show_row(self, session: AsyncSession, profile_id: int, show_id: int) -> int:
        result = await session.execute(
            delete(ShowWatchStatus).where(
                ShowWatchStatus.profile_id == profile_id,
                ShowWatchStatus.show_id == show_id
            )
        )
        return result.rowcount

    # Force-set (top-down)

    async def update_status(
        self,
        session: AsyncSession,
        level: ContentLevel,
        profile_id: int,
        node_id: int,
        status: AnyStatus
    ) -> int:
        """Update a single tracked row. Returns the number of rows touched."""
        model, node_col = STATUS_TABLES[parse_level(level)]
        result = await session.execute(
            update(model).where(
                model.profile_id == profile_id,
                node_col == node_id
            ).values(status=status)
        )
        return result.rowcount

    async def force_set(
        self,
        session: AsyncSession,
        level: ContentLevel,
        profile_id: int,
        node_id: int,
        status: AnyStatus,
        recursive: bool = False,
        changes: Optional[list[StatusChange]] = None,
        as_of: Optional[date] = None
    ) -> int:
        """
        Assign ``status`` to a node and, when recursive, to every tracked row
        below it. Returns the number of rows touched; 0 means the target node
        is not tracked and nothing was written. ``as_of`` decides which
        content has aired when a show is set UP_TO_DATE; it defaults to today.
        """
        level = parse_level(level)
        changes = changes if changes is not None else []

        previous = await self.get_status(session, level, profile_id, node_id)
        if previous is None:
            return 0

        affected = await self.update_status(session, level, profile_id, node_id, status)
        if previous != status:
            changes.append(StatusChange(
                level.value, node_id, previous.value, status.value,
                f"{level.value.capitalize()} set to {status.value}"
            ))

        if not recursive or level == ContentLevel.EPISODE:
            return affected

        as_of = as_of or self.today()
        if level == ContentLevel.SHOW:
            affected += await self._cascade_show(session, profile_id, node_id, status, changes, as_of)
            tracked = await self._season_snapshot(
                session, profile_id, select(Season.id).where(Season.show_id == node_id)
            )
            for season_id in sorted(tracked):
                await self._converge_season(session, profile_id, season_id, changes, as_of)
            await self._converge_show(session, profile_id, node_id, status, changes, as_of)
        else:
            affected += await self._cascade_season(session, profile_id, node_id, status, changes)
            await self._converge_season(session, profile_id, node_id, changes, as_of)

        return affected

    def _aired(self, as_of: date):
        return or_(Episode.air_date.is_(None), Episode.air_date <= as_of)

    async def _cascade_show(
        self,
        session: AsyncSession,
        profile_id: int,
        show_id: int,
        status: ShowStatus,
        changes: list[StatusChange],
        as_of: date
    ) -> int:
        season_ids = select(Season.id).where(Season.show_id == show_id)
        reason = f"Show {show_id} set to {status.value}"

        before_seasons = await self._season_snapshot(session, profile_id, season_ids)
        before_episodes = await self._episode_snapshot(session, profile_id, season_ids)

        affected = 0
        if status == ShowStatus.UP_TO_DATE:
            aired_seasons = select(Episode.season_id).where(
                Episode.season_id.in_(season_ids), self._aired(as_of)
            )
            affected += await self._bulk_update_seasons(
                session, profile_id,
                select(Season.id).where(Season.show_id == show_id, Season.id.in_(aired_seasons)),
                SeasonStatus.WATCHED
            )
            affected += await self._bulk_update_seasons(
                session, profile_id,
                select(Season.id).where(Season.show_id == show_id, Season.id.not_in(aired_seasons)),
                SeasonStatus.UNAIRED
            )
            affected += await self._bulk_update_episodes(
                session, profile_id,
                select(Episode.id).where(Episode.season_id.in_(season_ids), self._aired(as_of)),
                EpisodeStatus.WATCHED
            )
            affected += await self._bulk_update_episodes(
                session, profile_id,
                select(Episode.id).where(Episode.season_id.in_(season_ids), ~self._aired(as_of)),
                EpisodeStatus.UNAIRED
            )
        else:
            affected += await self._bulk_update_seasons(
                session, profile_id, season_ids, season_status_for(status)
            )
            affected += await self._bulk_update_episodes(
                session, profile_id,
                select(Episode.id).where(Episode.season_id.in_(season_ids)),
                episode_status_for(status)
            )

        after_seasons = await self._season_snapshot(session, profile_id, season_ids)
        after_episodes = await self._episode_snapshot(session, profile_id, season_ids)
        self._record_changes(changes, ContentLevel.SEASON, before_seasons, after_seasons, reason)
        self._record_changes(changes, ContentLevel.EPISODE, before_episodes, after_episodes, reason)
        return affected

    async def _cascade_season(
        self,
        session: AsyncSession,
        profile_id: int,
        season_id: int,
        status: SeasonStatus,
        changes: list[StatusChange]
    ) -> int:
        season_ids = select(literal(season_id, Integer))
        before = await self._episode_snapshot(session, profile_id, season_ids)
        affected = await self._bulk_update_episodes(
            session, profile_id,
            select(Episode.id).where(Episode.season_id == season_id),
            episode_status_for(status)
        )
        after = await self._episode_snapshot(session, profile_id, season_ids)
        self._record_changes(
            changes, ContentLevel.EPISODE, before, after,
            f"Season {season_id} set to {status.value}"
        )
        return affected

    async def _converge_season(
        self,
        session: AsyncSession,
        profile_id: int,
        season_id: int,
        changes: list[StatusChange],
        as_of: date
    ):
        """
        Store what recompute would derive from the season's episodes after a
        recursive set. Episodes only know watched or not, so a WATCHING season
        whose episodes were all marked WATCHED becomes WATCHED. A season with
        no tracked episodes keeps its value.
        """
        current = await self.get_status(session, ContentLevel.SEASON, profile_id, season_id)
        tally = await self.episode_tally(session, profile_id, season_id, as_of)
        if current is None or tally.total == 0:
            return
        derived = derive_season_status(tally)
        if derived == current:
            return
        logger.warning(
            f"Season {season_id} for profile {profile_id} set to {current.value}, "
            f"episodes derive {derived.value}"
        )
        await self.update_status(session, ContentLevel.SEASON, profile_id, season_id, derived)
        changes.append(StatusChange(
            ContentLevel.SEASON.value, season_id, current.value, derived.value,
            "Normalized from episode statuses"
        ))

    async def _converge_show(
        self,
        session: AsyncSession,
        profile_id: int,
        show_id: int,
        requested: ShowStatus,
        changes: list[StatusChange],
        as_of: date
    ):
        """
        Store what recompute would derive from the seasons just written, so a
        later recompute agrees with the recursive set. A show with no tracked
        seasons keeps the requested value.
        """
        tally = await self.season_tally(session, profile_id, show_id, as_of)
        if tally.total == 0:
            return
        derived = derive_show_status(tally)
        if derived == requested:
            return
        logger.warning(
            f"Show {show_id} for profile {profile_id} requested {requested.value}, "
            f"seasons derive {derived.value}"
        )
        await self.update_status(session, ContentLevel.SHOW, profile_id, show_id, derived)
        changes.append(StatusChange(
            ContentLevel.SHOW.value, show_id, requested.value, derived.value,
            "Normalized from season statuses"
        ))

    async def _bulk_update_seasons(self, session, profile_id, season_ids, status: SeasonStatus) -> int:
        result = await session.execute(
            update(SeasonWatchStatus).where(
                SeasonWatchStatus.profile_id == profile_id,
                SeasonWatchStatus.season_id.in_(season_ids)
            ).values(status=status)
        )
        return result.rowcount

    async def _bulk_update_episodes(self, session, profile_id, episode_ids, status: EpisodeStatus) -> int:
        result = await session.execute(
            update(EpisodeWatchStatus).where(
                EpisodeWatchStatus.profile_id == profile_id,
                EpisodeWatchStatus.episode_id.in_(episode_ids)
            ).values(status=status)
        )
        return result.rowcount

    async def _season_snapshot(self, session, profile_id, season_ids) -> dict[int, SeasonStatus]:
        result = await session.execute(
            select(SeasonWatchStatus.season_id, SeasonWatchStatus.status).where(
                SeasonWatchStatus.profile_id == profile_id,
                SeasonWatchStatus.season_id.in_(season_ids)
            )
        )
        return {row[0]: row[1] for row in result.all()}

    async def _episode_snapshot(self, session, profile_id, season_ids) -> dict[int, EpisodeStatus]:
        result = await session.execute(
            select(EpisodeWatchStatus.episode_id, EpisodeWatchStatus.status).where(
                EpisodeWatchStatus.profile_id == profile_id,
                EpisodeWatchStatus.episode_id.in_(
                    select(Episode.id).where(Episode.season_id.in_(season_ids))
                )
            )
        )
        return {row[0]: row[1] for row in result.all()}

    @staticmethod
    def _record_changes(changes, level: ContentLevel, before: dict, after: dict, reason: str):
        for node_id, current in sorted(after.items()):
            previous = before.get(node_id)
            if previous != current:
                changes.append(StatusChange(
                    level.value, node_id,
                    previous.value if previous is not None else None,
                    current.value, reason
                ))

    # Recompute (bottom-up)

    async def season_tally(
        self,
        session: AsyncSession,
        profile_id: int,
        show_id: int,
        as_of: Optional[date] = None
    ) -> StatusTally:
        """
        Tally the profile's tracked seasons of a show, with each season's
        airing state as of ``as_of`` (default today) from the catalog.
        """
        as_of = as_of or self.today()
        watched_episodes = select(EpisodeWatchStatus.episode_id).where(
            EpisodeWatchStatus.profile_id == profile_id,
            EpisodeWatchStatus.status == EpisodeStatus.WATCHED
        )
        aired = select(Episode.id).where(
            Episode.season_id == Season.id, self._aired(as_of)
        ).exists()
        upcoming = select(Episode.id).where(
            Episode.season_id == Season.id,
            ~self._aired(as_of),
            Episode.id.not_in(watched_episodes)
        ).exists()
        result = await session.execute(
            select(SeasonWatchStatus.status, aired, upcoming)
            .join(Season, Season.id == SeasonWatchStatus.season_id)
            .where(
                Season.show_id == show_id,
                SeasonWatchStatus.profile_id == profile_id
            )
        )
        return StatusTally.from_schedule(
            (status, bool(has_aired), bool(has_upcoming))
            for status, has_aired, has_upcoming in result.all()
        )

    async def episode_tally(
        self,
        session: AsyncSession,
        profile_id: int,
        season_id: int,
        as_of: Optional[date] = None
    ) -> EpisodeTally:
        result = await session.execute(
            select(EpisodeWatchStatus.status, Episode.air_date)
            .join(Episode, Episode.id == EpisodeWatchStatus.episode_id)
            .where(
                Episode.season_id == season_id,
                EpisodeWatchStatus.profile_id == profile_id
            )
        )
        return EpisodeTally.from_schedule(result.all(), as_of or self.today())

    async def recompute_season(
        self,
        session: AsyncSession,
        profile_id: int,
        season_id: int,
        changes: Optional[list[StatusChange]] = None,
        as_of: Optional[date] = None
    ) -> Optional[SeasonStatus]:
        """Derive a tracked season's status from its episodes. None if untracked."""
        changes = changes if changes is not None else []
        current = await self.get_status(session, ContentLevel.SEASON, profile_id, season_id)
        if current is None:
            return None

        derived = derive_season_status(await self.episode_tally(session, profile_id, season_id, as_of))
        if derived != current:
            await self.update_status(session, ContentLevel.SEASON, profile_id, season_id, derived)
            changes.append(StatusChange(
                ContentLevel.SEASON.value, season_id, current.value, derived.value,
                "Recomputed from episode statuses"
            ))
        return derived

    async def recompute_show(
        self,
        session: AsyncSession,
        profile_id: int,
        show_id: int,
        changes: Optional[list[StatusChange]] = None,
        as_of: Optional[date] = None
    ) -> Optional[ShowStatus]:
        """Derive a tracked show's status from its seasons. None if untracked."""
        changes = changes if changes is not None else []
        current = await self.get_status(session, ContentLevel.SHOW, profile_id, show_id)
        if current is None:
            return None

        derived = derive_show_status(await self.season_tally(session, profile_id, show_id, as_of))
        if derived != current:
            await self.update_status(session, ContentLevel.SHOW, profile_id, show_id, derived)
            changes.append(StatusChange(
                ContentLevel.SHOW.value, show_id, current.value, derived.value,
                "Recomputed from season statuses"
            ))
        return derived

    # New content

    async def demote_for_new_episodes(
        self,
        session: AsyncSession,
        profile_id: int,
        season_id: int,
        changes: Optional[list[StatusChange]] = None
    ) -> bool:
        """
        A WATCHED season that gains episodes drops to WATCHING, and its show
        drops from WATCHED to WATCHING with it. Any other season state,
        including untracked, is left alone. Returns whether the season moved.
        """
        changes = changes if changes is not None else []
        current = await self.get_status(session, ContentLevel.SEASON, profile_id, season_id)
        if current != SeasonStatus.WATCHED:
            return False

        await self.update_status(
            session, ContentLevel.SEASON, profile_id, season_id, SeasonStatus.WATCHING
        )
        changes.append(StatusChange(
            ContentLevel.SEASON.value, season_id, current.value, SeasonStatus.WATCHING.value,
            "New episodes added"
        ))

        show_id = await self.get_show_id_for_season(session, season_id)
        if show_id is not None:
            await self.demote_show_for_new_content(session, profile_id, show_id, changes)
        return True

    async def demote_show_for_new_content(
        self,
        session: AsyncSession,
        profile_id: int,
        show_id: int,
        changes: Optional[list[StatusChange]] = None
    ) -> bool:
        """WATCHED -> WATCHING for a show with new content; nothing else moves."""
        changes = changes if changes is not None else []
        current = await self.get_status(session, ContentLevel.SHOW, profile_id, show_id)
        if current != ShowStatus.WATCHED:
            return False

        await self.update_status(session, ContentLevel.SHOW, profile_id, show_id, ShowStatus.WATCHING)
        changes.append(StatusChange(
            ContentLevel.SHOW.value, show_id, current.value, ShowStatus.WATCHING.value,
            "New content added"
        ))
        return True
