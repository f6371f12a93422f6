from sqlalchemy import String, Boolean, ForeignKey, Integer, Date
from sqlalchemy.orm import Mapped, mapped_column
from datetime import date
from typing import Optional
from watchtrack.database import Base


class Profile(Base):
    """A viewer profile; statuses are tracked per profile."""
    
    __tablename__ = "profiles"
    
    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str] = mapped_column(String(200))


class Show(Base):
    """Catalog show."""
    
    __tablename__ = "shows"
    
    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(500))
    in_production: Mapped[bool] = mapped_column(Boolean, default=False)


class Season(Base):
    """Catalog season, child of a show."""
    
    __tablename__ = "seasons"
    
    id: Mapped[int] = mapped_column(primary_key=True)
    show_id: Mapped[int] = mapped_column(ForeignKey("shows.id"), index=True)
    season_number: Mapped[int] = mapped_column(Integer)
    release_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)


class Episode(Base):
    """Catalog episode, child of a season."""
    
    __tablename__ = "episodes"
    
    id: Mapped[int] = mapped_column(primary_key=True)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), index=True)
    show_id: Mapped[int] = mapped_column(ForeignKey("shows.id"), index=True)
    episode_number: Mapped[int] = mapped_column(Integer)
    air_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)  # NULL counts as aired
