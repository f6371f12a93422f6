"""
Pure status derivation rules.

Shows are derived from their tracked seasons, seasons from their tracked
episodes. Airing is decided by the caller's date, so content that has not
aired yet counts as pending rather than unwatched. Nothing here touches the
database, so the rule tables can be checked exhaustively.
"""
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from watchtrack.status import ShowStatus, SeasonStatus, EpisodeStatus


def has_aired(air_date: Optional[date], as_of: date) -> bool:
    """A missing air date counts as aired."""
    return air_date is None or air_date <= as_of


@dataclass(frozen=True)
class StatusTally:
    """Counts of a show's tracked seasons by status."""
    watched: int = 0
    up_to_date: int = 0
    watching: int = 0
    not_watched: int = 0
    total: int = 0
    
    @classmethod
    def from_seasons(cls, statuses: Iterable[SeasonStatus]) -> "StatusTally":
        """Tally stored season statuses, every season treated as aired and complete."""
        return cls.from_schedule((status, True, False) for status in statuses)
    
    @classmethod
    def from_schedule(cls, seasons: Iterable[tuple]) -> "StatusTally":
        """
        Build a tally from ``(status, has_aired, has_upcoming)`` per season.
        
        ``has_aired`` means the season has at least one aired episode and
        ``has_upcoming`` that it still has an unaired episode the profile has
        not watched. Seasons never hold UP_TO_DATE, so it is inferred here:
        
        - UNAIRED seasons, and unwatched seasons with nothing aired, are pending.
        - WATCHED seasons with upcoming episodes are caught up.
        
        When something is watched and every season is WATCHED, caught up or
        pending, the caught-up and pending seasons count toward ``up_to_date``.
        Otherwise caught-up seasons count as watched and pending ones as not
        watched.
        """
        complete = caught_up = watching = not_watched = pending = 0
        for status, aired, upcoming in seasons:
            if status == SeasonStatus.WATCHED:
                if upcoming:
                    caught_up += 1
                else:
                    complete += 1
            elif status == SeasonStatus.WATCHING:
                watching += 1
            elif status == SeasonStatus.UNAIRED or not aired:
                pending += 1
            else:
                not_watched += 1
        
        total = complete + caught_up + watching + not_watched + pending
        watched = complete + caught_up
        if (caught_up or pending) and watched and watched + pending == total:
            return cls(watched=complete, up_to_date=caught_up + pending, total=total)
        return cls(
            watched=watched,
            watching=watching,
            not_watched=not_watched + pending,
            total=total,
        )


@dataclass(frozen=True)
class EpisodeTally:
    """Counts of a season's tracked episodes by status."""
    watched: int = 0
    not_watched: int = 0
    unaired: int = 0
    total: int = 0
    
    @classmethod
    def from_episodes(cls, statuses: Iterable[EpisodeStatus]) -> "EpisodeTally":
        watched = not_watched = unaired = 0
        for status in statuses:
            if status == EpisodeStatus.WATCHED:
                watched += 1
            elif status == EpisodeStatus.UNAIRED:
                unaired += 1
            else:
                not_watched += 1
        return cls(watched, not_watched, unaired, watched + not_watched + unaired)
    
    @classmethod
    def from_schedule(cls, episodes: Iterable[tuple], as_of: date) -> "EpisodeTally":
        """
        Tally ``(status, air_date)`` pairs as of a date. Airing wins over the
        stored value for anything not watched: an aired episode counts as not
        watched and a future one as unaired.
        """
        return cls.from_episodes(
            status if status == EpisodeStatus.WATCHED
            else EpisodeStatus.NOT_WATCHED if has_aired(air_date, as_of)
            else EpisodeStatus.UNAIRED
            for status, air_date in episodes
        )


def derive_show_status(tally: StatusTally) -> ShowStatus:
    """Show status from season counts. First matching rule wins."""
    if tally.total == 0:
        return ShowStatus.NOT_WATCHED
    if tally.watched == tally.total:
        return ShowStatus.WATCHED
    if tally.up_to_date > 0:
        return ShowStatus.UP_TO_DATE
    # Nothing watched and nothing in progress is the one exception to WATCHING
    if tally.watched == 0 and tally.watching == 0:
        return ShowStatus.NOT_WATCHED
    return ShowStatus.WATCHING


def derive_season_status(tally: EpisodeTally) -> SeasonStatus:
    """Season status from episode counts. A season caught up on every aired episode is WATCHED."""
    if tally.total == 0:
        return SeasonStatus.NOT_WATCHED
    if tally.watched == 0 and tally.unaired == tally.total:
        return SeasonStatus.UNAIRED
    if tally.watched > 0 and tally.not_watched == 0:
        return SeasonStatus.WATCHED
    if tally.watched == 0:
        return SeasonStatus.NOT_WATCHED
    return SeasonStatus.WATCHING
