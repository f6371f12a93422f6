from sqlalchemy import DateTime, Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from watchtrack.database import Base
from watchtrack.status import ShowStatus, SeasonStatus, EpisodeStatus


def _status_column(status_type, name: str):
    return mapped_column(
        Enum(
            status_type,
            name=name,
            native_enum=False,
            create_constraint=True,
            validate_strings=True,
            length=20,
        ),
        default=status_type.NOT_WATCHED,
        server_default=status_type.NOT_WATCHED.value,
    )


class ShowWatchStatus(Base):
    """Per-profile status of a tracked show."""
    
    __tablename__ = "show_watch_status"
    
    profile_id: Mapped[int] = mapped_column(ForeignKey("profiles.id"), primary_key=True)
    show_id: Mapped[int] = mapped_column(ForeignKey("shows.id"), primary_key=True)
    status: Mapped[ShowStatus] = _status_column(ShowStatus, "show_status")
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)


class SeasonWatchStatus(Base):
    """Per-profile status of a tracked season."""
    
    __tablename__ = "season_watch_status"
    
    profile_id: Mapped[int] = mapped_column(ForeignKey("profiles.id"), primary_key=True)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), primary_key=True)
    status: Mapped[SeasonStatus] = _status_column(SeasonStatus, "season_status")
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)


class EpisodeWatchStatus(Base):
    """Per-profile status of a tracked episode."""
    
    __tablename__ = "episode_watch_status"
    
    profile_id: Mapped[int] = mapped_column(ForeignKey("profiles.id"), primary_key=True)
    episode_id: Mapped[int] = mapped_column(ForeignKey("episodes.id"), primary_key=True)
    status: Mapped[EpisodeStatus] = _status_column(EpisodeStatus, "episode_status")
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)
