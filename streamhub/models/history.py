"""
Watch History Models
Content identifiers and per-video watch progress
"""
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel

from streamhub.core.config import settings
from streamhub.utils.helpers import format_remaining, format_time


class ContentIds(BaseModel):
    """External ids parsed from a canonical content id"""
    imdb: Optional[str] = None
    tmdb: Optional[int] = None
    tvdb: Optional[int] = None
    kitsu: Optional[int] = None
    is_episode: bool = False
    season: Optional[int] = None
    episode: Optional[int] = None

    def has_id(self) -> bool:
        return any(
            value is not None
            for value in (self.imdb, self.tmdb, self.tvdb, self.kitsu)
        )


class ProgressUnit(str, Enum):
    """Unit of WatchHistoryEntry.position / duration"""
    SECONDS = "seconds"
    PERCENT = "percent"  # Trakt playback, duration fixed at 100


class WatchHistoryEntry(BaseModel):
    """
    Watch progress for one video

    Keyed by (meta_id, video_id); for movies video_id equals meta_id,
    for episodes it is the episode id (e.g. "tt0903747:1:3").
    """
    meta_id: str
    meta_type: str = "movie"
    video_id: str

    title: str = ""
    poster_url: str = ""
    series_title: Optional[str] = None
    season: Optional[int] = None
    episode: Optional[int] = None

    position: float = 0.0
    duration: float = 0.0
    last_watched: int = 0
    unit: ProgressUnit = ProgressUnit.SECONDS

    binge_group: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.meta_id}:{self.video_id}"

    @property
    def progress(self) -> float:
        if self.duration <= 0:
            return 0.0
        return min(1.0, max(0.0, self.position / self.duration))

    def is_finished(self) -> bool:
        return self.progress >= settings.FINISHED_THRESHOLD

    def is_resumable(self) -> bool:
        if self.unit == ProgressUnit.PERCENT:
            started = self.position > 0
        else:
            started = self.position > settings.RESUME_THRESHOLD_SECONDS
        return started and not self.is_finished()

    def progress_string(self) -> str:
        if self.unit == ProgressUnit.PERCENT:
            return f"{self.position:.0f}%"
        return f"{format_time(self.position)} / {format_time(self.duration)}"

    def remaining_string(self) -> str:
        if self.unit == ProgressUnit.PERCENT:
            if self.position >= self.duration:
                return "Finished"
            return f"{self.duration - self.position:.0f}% left"
        return format_remaining(self.duration - self.position)

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the on-disk watch history record"""
        record: Dict[str, Any] = {
            "meta_id": self.meta_id,
            "meta_type": self.meta_type,
            "video_id": self.video_id,
            "title": self.title,
            "poster_url": self.poster_url,
        }
        if self.series_title is not None:
            record["series_title"] = self.series_title
        if self.season is not None:
            record["season"] = self.season
        if self.episode is not None:
            record["episode"] = self.episode
        record["position"] = self.position
        record["duration"] = self.duration
        record["last_watched"] = self.last_watched
        if self.binge_group is not None:
            record["binge_group"] = self.binge_group
        return record
