"""
Addon Protocol Client
Builds resource URLs and fetches typed responses from addon servers
"""
import asyncio
import logging
from typing import Any, Optional

import aiohttp

from streamhub.core.config import settings
from streamhub.core.errors import TransportError
from streamhub.models.addon import (
    CatalogResponse,
    ExtraArgs,
    Manifest,
    MetaResponse,
    StreamsResponse,
    SubtitlesResponse,
)
from streamhub.services.parser import (
    load_json,
    parse_catalog,
    parse_manifest,
    parse_meta,
    parse_streams,
    parse_subtitles,
)

logger = logging.getLogger(__name__)

MANIFEST_SUFFIX = "/manifest.json"


def base_url(transport_url: str) -> str:
    """Strip a trailing /manifest.json and any trailing slashes"""
    url = transport_url
    if url.endswith(MANIFEST_SUFFIX):
        url = url[: -len(MANIFEST_SUFFIX)]
    return url.rstrip("/")


def manifest_url(url: str) -> str:
    """Normalize a user-supplied addon URL so it points at the manifest"""
    if MANIFEST_SUFFIX in url:
        return url
    return base_url(url) + MANIFEST_SUFFIX


def build_url(
    transport_url: str,
    resource: str,
    content_type: str,
    content_id: str,
    extra: Optional[ExtraArgs] = None,
) -> str:
    url = f"{base_url(transport_url)}/{resource}/{content_type}/{content_id}"
    if extra is not None:
        segment = extra.to_path_segment()
        if segment:
            url += "/" + segment
    return url + ".json"


class AddonClient:
    """Async client for the addon HTTP protocol"""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self.session = session
        self._owns_session = session is None

    async def get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session"""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=settings.ADDON_REQUEST_TIMEOUT),
                connector=aiohttp.TCPConnector(
                    limit=settings.ADDON_MAX_CONNECTIONS,
                    limit_per_host=settings.ADDON_MAX_CONNECTIONS_PER_HOST,
                ),
                headers={
                    "Accept": "application/json",
                    "User-Agent": settings.USER_AGENT,
                },
            )
            self._owns_session = True
        return self.session

    async def close(self):
        """Close aiohttp session"""
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    async def _get_json(self, url: str) -> Any:
        """
        GET a URL and decode its JSON body

        Raises:
            TransportError: connection failure, timeout or non-2xx status
            ParseError: body is not valid JSON
        """
        logger.debug(f"GET {url}")
        session = await self.get_session()
        try:
            async with session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise TransportError(f"HTTP error: {response.status}", response.status)
                body = await response.text()
        except asyncio.TimeoutError as e:
            raise TransportError(f"Request failed: timeout fetching {url}") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Request failed: {e}") from e
        return load_json(body)

    async def fetch_manifest(self, url: str) -> Manifest:
        data = await self._get_json(url)
        return parse_manifest(data, base_url(url))

    async def fetch_catalog(
        self,
        transport_url: str,
        content_type: str,
        catalog_id: str,
        extra: Optional[ExtraArgs] = None,
    ) -> CatalogResponse:
        url = build_url(transport_url, "catalog", content_type, catalog_id, extra)
        return parse_catalog(await self._get_json(url))

    async def fetch_meta(
        self, transport_url: str, content_type: str, content_id: str
    ) -> MetaResponse:
        url = build_url(transport_url, "meta", content_type, content_id)
        return parse_meta(await self._get_json(url))

    async def fetch_streams(
        self, transport_url: str, content_type: str, content_id: str
    ) -> StreamsResponse:
        url = build_url(transport_url, "stream", content_type, content_id)
        return parse_streams(await self._get_json(url))

    async def fetch_subtitles(
        self,
        transport_url: str,
        content_type: str,
        content_id: str,
        video_id: str,
        video_size: Optional[int] = None,
    ) -> SubtitlesResponse:
        extra = f"videoID={video_id}"
        if video_size is not None and video_size > 0:
            extra += f"&videoSize={video_size}"
        url = (
            f"{base_url(transport_url)}/subtitles/{content_type}/{content_id}/{extra}.json"
        )
        return parse_subtitles(await self._get_json(url))
