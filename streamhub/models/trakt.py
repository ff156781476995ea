"""
Trakt Models
Records returned by the Trakt API and the persisted tracker config
"""
from typing import Optional

from pydantic import BaseModel, Field


class Ids(BaseModel):
    trakt: Optional[int] = None
    slug: Optional[str] = None
    imdb: Optional[str] = None
    tmdb: Optional[int] = None
    tvdb: Optional[int] = None


class Movie(BaseModel):
    title: Optional[str] = None
    year: Optional[int] = None
    ids: Ids = Field(default_factory=Ids)


class Show(BaseModel):
    title: Optional[str] = None
    year: Optional[int] = None
    ids: Ids = Field(default_factory=Ids)


class Episode(BaseModel):
    season: int = 0
    number: int = 0
    title: Optional[str] = None
    ids: Ids = Field(default_factory=Ids)


class PlaybackProgress(BaseModel):
    """An in-progress item from /sync/playback (progress is 0-100)"""
    id: int = 0
    progress: float = 0.0
    paused_at: str = ""
    type: str = ""
    movie: Optional[Movie] = None
    show: Optional[Show] = None
    episode: Optional[Episode] = None


class DeviceCode(BaseModel):
    device_code: str
    user_code: str
    verification_url: str
    expires_in: int = 600
    interval: int = 5


class TokenPollResult(BaseModel):
    """Outcome of one device-token poll"""
    success: bool = False
    pending: bool = False
    error: Optional[str] = None


class UserSettings(BaseModel):
    username: str = ""
    avatar_url: str = ""


class TraktConfig(BaseModel):
    """Persisted tracker credentials and preferences"""
    client_id: str = ""
    client_secret: str = ""
    access_token: str = ""
    refresh_token: str = ""
    expires_at: int = 0
    enabled: bool = False

    sync_watchlist: bool = True
    sync_history: bool = True
    sync_progress: bool = True

    username: str = ""
    avatar_url: str = ""

    def clear_tokens(self):
        self.access_token = ""
        self.refresh_token = ""
        self.expires_at = 0
        self.enabled = False
        self.username = ""
        self.avatar_url = ""
