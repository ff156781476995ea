"""
Configuration Management
Loads and validates environment variables
"""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    # Storage
    DATA_DIR: Path = Path.home() / ".local" / "share" / "streamhub"

    # Addon protocol client
    USER_AGENT: str = "StreamHub/1.0"
    ADDON_REQUEST_TIMEOUT: float = 30.0
    ADDON_MAX_CONNECTIONS: int = 20
    ADDON_MAX_CONNECTIONS_PER_HOST: int = 6

    # Trakt
    TRAKT_API_URL: str = "https://api.trakt.tv"
    TRAKT_API_VERSION: str = "2"
    TRAKT_CLIENT_ID: str = ""
    TRAKT_CLIENT_SECRET: str = ""
    TRAKT_REQUEST_TIMEOUT: float = 15.0

    # Watch history
    HISTORY_MAX_ENTRIES: int = 500
    HISTORY_SAVE_INTERVAL_SECONDS: float = 10.0
    RESUME_THRESHOLD_SECONDS: float = 30.0
    FINISHED_THRESHOLD: float = 0.9
    CONTINUE_WATCHING_LIMIT: int = 15

    # Scrobbling
    SCROBBLE_DEBOUNCE_SECONDS: float = 5.0

    # Encrypts Trakt tokens at rest when set
    CREDENTIAL_KEY: Optional[str] = None

    # Development
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    @property
    def addons_path(self) -> Path:
        return self.DATA_DIR / "addons.json"

    @property
    def history_path(self) -> Path:
        return self.DATA_DIR / "watch_history.json"

    @property
    def trakt_path(self) -> Path:
        return self.DATA_DIR / "trakt.json"


settings = Settings()

VERSION = "1.0.0"
