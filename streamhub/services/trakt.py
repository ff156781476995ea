"""
Trakt API Client
Device-code OAuth, playback progress sync and scrobbling
"""
import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import aiohttp
from pydantic import ValidationError

from streamhub.core.config import settings
from streamhub.core.errors import AuthError, StreamHubError, TransportError
from streamhub.models.history import ContentIds
from streamhub.models.trakt import (
    DeviceCode,
    PlaybackProgress,
    TokenPollResult,
    TraktConfig,
    UserSettings,
)
from streamhub.utils.crypto import decrypt_secret, encrypt_secret
from streamhub.utils.storage import read_json, write_json

logger = logging.getLogger(__name__)

OOB_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"
SCROBBLE_ACTIONS = ("start", "pause", "stop")

# Device-token poll statuses meaning the code is dead
EXPIRED_STATUSES = {
    404: "Invalid device code",
    409: "Code already used",
    410: "Code expired",
    418: "Access denied by user",
}

SECRET_FIELDS = ("client_secret", "access_token", "refresh_token")


class TraktConfigStore:
    """Persists TraktConfig, encrypting secrets when a credential key is set"""

    def __init__(self, path: Optional[Path] = None, credential_key: Optional[str] = None):
        self.path = path or settings.trakt_path
        self.credential_key = credential_key if credential_key is not None else settings.CREDENTIAL_KEY
        self.config = TraktConfig()

    def load(self) -> TraktConfig:
        data = read_json(self.path, fallback={})
        if not isinstance(data, dict):
            data = {}

        for field in SECRET_FIELDS:
            value = data.get(field)
            if isinstance(value, str) and value:
                plain = decrypt_secret(value, self.credential_key or "")
                if plain is None:
                    logger.warning(f"Could not decrypt stored Trakt {field}")
                data[field] = plain or ""

        try:
            self.config = TraktConfig.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Invalid Trakt config, using defaults: {e}")
            self.config = TraktConfig()
        return self.config

    def save(self) -> bool:
        data = self.config.model_dump()
        if self.credential_key:
            for field in SECRET_FIELDS:
                data[field] = encrypt_secret(data[field], self.credential_key)
        return write_json(self.path, data)


def build_scrobble_body(content_type: str, ids: ContentIds, progress: float) -> Dict[str, Any]:
    id_map: Dict[str, Any] = {}
    if ids.imdb is not None:
        id_map["imdb"] = ids.imdb
    if ids.tmdb is not None:
        id_map["tmdb"] = ids.tmdb
    if ids.tvdb is not None:
        id_map["tvdb"] = ids.tvdb

    if content_type in ("series", "episode") and ids.is_episode:
        body: Dict[str, Any] = {
            "show": {"ids": id_map},
            "episode": {"season": ids.season, "number": ids.episode},
        }
    else:
        body = {"movie": {"ids": id_map}}
    body["progress"] = progress
    return body


class TraktClient:
    """Async client for the Trakt API"""

    def __init__(
        self,
        store: TraktConfigStore,
        session: Optional[aiohttp.ClientSession] = None,
        base_url: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.session = session
        self._owns_session = session is None
        self.base_url = (base_url or settings.TRAKT_API_URL).rstrip("/")
        self.clock = clock
        self._refresh_lock: Optional[asyncio.Lock] = None

    @property
    def config(self) -> TraktConfig:
        return self.store.config

    @property
    def client_id(self) -> str:
        return self.config.client_id or settings.TRAKT_CLIENT_ID

    @property
    def client_secret(self) -> str:
        return self.config.client_secret or settings.TRAKT_CLIENT_SECRET

    async def get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session"""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=settings.TRAKT_REQUEST_TIMEOUT)
            )
            self._owns_session = True
        return self.session

    async def close(self):
        """Close aiohttp session"""
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    def _headers(self, auth: bool) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "trakt-api-key": self.client_id,
            "trakt-api-version": settings.TRAKT_API_VERSION,
            "User-Agent": settings.USER_AGENT,
        }
        if auth and self.config.access_token:
            headers["Authorization"] = f"Bearer {self.config.access_token}"
        return headers

    @staticmethod
    def _error_message(status: int, data: Any) -> str:
        message = f"HTTP {status}"
        if isinstance(data, dict):
            if isinstance(data.get("error"), str):
                message = data["error"]
            if isinstance(data.get("error_description"), str):
                message += f": {data['error_description']}"
        return message

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        auth: bool = False,
    ) -> Tuple[int, Any]:
        """
        Make an API request

        Returns:
            (status, decoded JSON body or None) for 2xx responses

        Raises:
            TransportError: connection failure, timeout or non-2xx status
        """
        session = await self.get_session()
        url = f"{self.base_url}{path}"
        logger.debug(f"Trakt {method} {path}")
        try:
            async with session.request(
                method, url, json=body, headers=self._headers(auth)
            ) as response:
                text = await response.text()
                status = response.status
        except asyncio.TimeoutError as e:
            raise TransportError(f"Request failed: timeout on {path}") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Request failed: {e}") from e

        try:
            data = json.loads(text) if text else None
        except ValueError:
            data = None

        if not 200 <= status < 300:
            raise TransportError(self._error_message(status, data), status)
        return status, data

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def is_authenticated(self) -> bool:
        config = self.config
        return (
            bool(config.access_token)
            and config.expires_at > 0
            and self.clock() < config.expires_at
        )

    def can_sync(self) -> bool:
        """Tracking is switched on and a usable or refreshable token exists"""
        return self.config.enabled and (
            self.is_authenticated() or bool(self.config.refresh_token)
        )

    async def ensure_valid_token(self):
        """
        Make sure an unexpired access token is available

        Raises:
            AuthError: no token and no refresh token, or the refresh failed
        """
        if self.is_authenticated():
            return
        if not self.config.refresh_token:
            raise AuthError("Not authenticated with Trakt")

        # Refresh tokens are single use; concurrent callers wait for one refresh
        if self._refresh_lock is None:
            self._refresh_lock = asyncio.Lock()
        async with self._refresh_lock:
            if self.is_authenticated():
                return
            try:
                await self.refresh_token()
            except StreamHubError as e:
                raise AuthError(f"Token refresh failed: {e}") from e

    def _store_tokens(self, data: Dict[str, Any]):
        config = self.config
        config.access_token = data.get("access_token") or ""
        if data.get("refresh_token"):
            config.refresh_token = data["refresh_token"]

        expires_in = data.get("expires_in")
        created_at = data.get("created_at")
        if isinstance(expires_in, int):
            if isinstance(created_at, int) and created_at > 0:
                config.expires_at = created_at + expires_in
            else:
                config.expires_at = int(self.clock()) + expires_in

    async def start_device_auth(self) -> DeviceCode:
        _, data = await self._request(
            "POST", "/oauth/device/code", {"client_id": self.client_id}
        )
        try:
            return DeviceCode.model_validate(data)
        except ValidationError as e:
            raise TransportError(f"Invalid device code response: {e}") from e

    async def poll_device_token(self, device_code: str) -> TokenPollResult:
        """
        Poll once for the device-code token

        A pending authorization is not an error; the caller keeps polling
        at the interval from start_device_auth until success or error.
        """
        body = {
            "code": device_code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        try:
            _, data = await self._request("POST", "/oauth/device/token", body)
        except TransportError as e:
            if e.status == 400:
                return TokenPollResult(pending=True)
            if e.status in EXPIRED_STATUSES:
                return TokenPollResult(error=EXPIRED_STATUSES[e.status])
            return TokenPollResult(error=str(e))

        if not isinstance(data, dict) or not data.get("access_token"):
            return TokenPollResult(error="No access token in response")

        self._store_tokens(data)
        self.config.enabled = True
        self.store.save()
        logger.info("Trakt device authorization complete")

        try:
            user = await self.get_user_settings()
            self.config.username = user.username
            self.config.avatar_url = user.avatar_url
            self.store.save()
        except StreamHubError as e:
            logger.warning(f"Could not fetch Trakt user settings: {e}")

        return TokenPollResult(success=True)

    async def refresh_token(self):
        if not self.config.refresh_token:
            raise AuthError("No refresh token")
        body = {
            "refresh_token": self.config.refresh_token,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": OOB_REDIRECT_URI,
            "grant_type": "refresh_token",
        }
        _, data = await self._request("POST", "/oauth/token", body)
        if not isinstance(data, dict) or not data.get("access_token"):
            raise TransportError("No access token in refresh response")
        self._store_tokens(data)
        self.store.save()
        logger.info("Trakt token refreshed")

    async def logout(self):
        """Revoke the token remotely (best effort) and forget it locally"""
        token = self.config.access_token
        if token:
            body = {
                "token": token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            }
            try:
                await self._request("POST", "/oauth/revoke", body)
            except StreamHubError as e:
                logger.warning(f"Trakt token revoke failed: {e}")
        self.config.clear_tokens()
        self.store.save()
        logger.info("Logged out of Trakt")

    # ------------------------------------------------------------------
    # User data
    # ------------------------------------------------------------------

    async def get_user_settings(self) -> UserSettings:
        await self.ensure_valid_token()
        _, data = await self._request("GET", "/users/settings", auth=True)
        user = data.get("user") if isinstance(data, dict) else None
        if not isinstance(user, dict):
            return UserSettings()
        images = user.get("images")
        avatar = None
        if isinstance(images, dict) and isinstance(images.get("avatar"), dict):
            avatar = images["avatar"].get("full")
        return UserSettings(
            username=user.get("username") or "",
            avatar_url=avatar if isinstance(avatar, str) else "",
        )

    async def get_playback(self) -> List[PlaybackProgress]:
        """In-progress movies and episodes (progress 0-100)"""
        await self.ensure_valid_token()
        _, data = await self._request("GET", "/sync/playback?extended=full", auth=True)
        items: List[PlaybackProgress] = []
        for item in data if isinstance(data, list) else []:
            try:
                items.append(PlaybackProgress.model_validate(item))
            except ValidationError as e:
                logger.debug(f"Skipping playback item: {e}")
        return items

    async def remove_playback(self, playback_id: int):
        await self.ensure_valid_token()
        await self._request("DELETE", f"/sync/playback/{playback_id}", auth=True)

    # ------------------------------------------------------------------
    # Scrobbling
    # ------------------------------------------------------------------

    async def scrobble(
        self, action: str, content_type: str, ids: ContentIds, progress: float
    ):
        if action not in SCROBBLE_ACTIONS:
            raise ValueError(f"Unknown scrobble action: {action}")
        await self.ensure_valid_token()
        body = build_scrobble_body(content_type, ids, progress)
        await self._request("POST", f"/scrobble/{action}", body, auth=True)
        logger.info(f"Scrobbled {action} ({progress:.1f}%)")

    async def scrobble_start(self, content_type: str, ids: ContentIds, progress: float):
        await self.scrobble("start", content_type, ids, progress)

    async def scrobble_pause(self, content_type: str, ids: ContentIds, progress: float):
        await self.scrobble("pause", content_type, ids, progress)

    async def scrobble_stop(self, content_type: str, ids: ContentIds, progress: float):
        await self.scrobble("stop", content_type, ids, progress)
