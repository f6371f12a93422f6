from watchtrack.models.catalog import Profile, Show, Season, Episode
from watchtrack.models.watch_status import ShowWatchStatus, SeasonWatchStatus, EpisodeWatchStatus

__all__ = [
    "Profile",
    "Show",
    "Season",
    "Episode",
    "ShowWatchStatus",
    "SeasonWatchStatus",
    "EpisodeWatchStatus"
]
