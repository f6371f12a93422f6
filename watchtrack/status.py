"""Watch status enumerations, one closed set per content level."""
from enum import Enum
from typing import Union

from watchtrack.errors import InvalidStatusError, UnknownLevelError


class ContentLevel(str, Enum):
    SHOW = "show"
    SEASON = "season"
    EPISODE = "episode"


class ShowStatus(str, Enum):
    NOT_WATCHED = "NOT_WATCHED"
    WATCHING = "WATCHING"
    UP_TO_DATE = "UP_TO_DATE"
    WATCHED = "WATCHED"


class SeasonStatus(str, Enum):
    NOT_WATCHED = "NOT_WATCHED"
    WATCHING = "WATCHING"
    WATCHED = "WATCHED"
    UNAIRED = "UNAIRED"


class EpisodeStatus(str, Enum):
    NOT_WATCHED = "NOT_WATCHED"
    WATCHED = "WATCHED"
    UNAIRED = "UNAIRED"


AnyStatus = Union[ShowStatus, SeasonStatus, EpisodeStatus]

STATUS_TYPES = {
    ContentLevel.SHOW: ShowStatus,
    ContentLevel.SEASON: SeasonStatus,
    ContentLevel.EPISODE: EpisodeStatus,
}


def parse_level(value) -> ContentLevel:
    """Coerce a level name (or member) into a ContentLevel."""
    if isinstance(value, ContentLevel):
        return value
    try:
        return ContentLevel(str(value).lower())
    except ValueError:
        raise UnknownLevelError(value) from None


def parse_status(level, value) -> AnyStatus:
    """
    Validate a raw status for a level and return the level's enum member.
    
    Accepts a member of any level's enum or its string value, so
    ``parse_status("season", ShowStatus.WATCHED)`` gives ``SeasonStatus.WATCHED``
    while ``parse_status("season", "UP_TO_DATE")`` raises InvalidStatusError.
    """
    level = parse_level(level)
    status_type = STATUS_TYPES[level]
    raw = value.value if isinstance(value, Enum) else value
    if not isinstance(raw, str):
        raise InvalidStatusError(level.value, value)
    try:
        return status_type(raw.upper())
    except ValueError:
        raise InvalidStatusError(level.value, value) from None


def season_status_for(status: AnyStatus) -> SeasonStatus:
    """Status a season takes when an ancestor is force-set to ``status``.
    
    UP_TO_DATE is resolved per season by air date, so it never reaches here.
    """
    if status == ShowStatus.UP_TO_DATE:
        raise InvalidStatusError(ContentLevel.SEASON.value, status)
    return SeasonStatus(status.value)


def episode_status_for(status: AnyStatus) -> EpisodeStatus:
    """Status an episode takes when an ancestor is force-set to ``status``."""
    if status.value == "NOT_WATCHED":
        return EpisodeStatus.NOT_WATCHED
    if status.value == "UNAIRED":
        return EpisodeStatus.UNAIRED
    return EpisodeStatus.WATCHED
