"""
Addon Aggregator
Concurrent fan-out of protocol requests across matching addons
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from streamhub.core.errors import NotFoundError, StreamHubError
from streamhub.models.addon import (
    CatalogResponse,
    ExtraArgs,
    Manifest,
    MetaPreview,
    MetaResponse,
    Stream,
    Subtitle,
)
from streamhub.services.client import AddonClient
from streamhub.services.registry import AddonRegistry

logger = logging.getLogger(__name__)

ResultCallback = Callable[[Manifest, list], None]
DoneCallback = Callable[[], None]
Fetch = Callable[[], Awaitable[list]]


class AddonAggregator:
    """
    Merges results from every addon able to answer a request

    Per-addon failures are logged and dropped; a partial result set is a
    successful aggregate. `on_result` fires once per addon that returned
    a non-empty list, `on_done` fires exactly once after all of them.
    """

    def __init__(self, registry: AddonRegistry, client: AddonClient):
        self.registry = registry
        self.client = client

    async def _fan_out(
        self,
        label: str,
        targets: Sequence[Tuple[Manifest, Fetch]],
        on_result: Optional[ResultCallback],
        on_done: Optional[DoneCallback],
    ) -> List[Tuple[Manifest, list]]:
        collected: List[Tuple[Manifest, list]] = []

        if not targets:
            logger.debug(f"No addons serve {label}")
            if on_done:
                on_done()
            return collected

        pending = len(targets)

        async def run(manifest: Manifest, fetch: Fetch):
            nonlocal pending
            try:
                items = await fetch()
                if items:
                    collected.append((manifest, items))
                    if on_result:
                        on_result(manifest, items)
            except StreamHubError as e:
                logger.warning(f"{manifest.name or manifest.id} failed {label}: {e}")
            except Exception as e:  # noqa: BLE001
                logger.error(
                    f"Unexpected error from {manifest.name or manifest.id} ({label}): {e}",
                    exc_info=True,
                )
            finally:
                pending -= 1
                if pending == 0 and on_done:
                    on_done()

        await asyncio.gather(*(run(manifest, fetch) for manifest, fetch in targets))
        return collected

    async def fetch_all_streams(
        self,
        content_type: str,
        content_id: str,
        on_result: Optional[ResultCallback] = None,
        on_done: Optional[DoneCallback] = None,
    ) -> List[Tuple[Manifest, List[Stream]]]:
        def fetch(manifest: Manifest) -> Fetch:
            async def call() -> list:
                response = await self.client.fetch_streams(
                    manifest.transportUrl, content_type, content_id
                )
                return response.streams
            return call

        addons = self.registry.providers_for("stream", content_type, content_id)
        targets = [(addon.manifest, fetch(addon.manifest)) for addon in addons]
        return await self._fan_out(
            f"streams for {content_type}/{content_id}", targets, on_result, on_done
        )

    async def fetch_all_subtitles(
        self,
        content_type: str,
        content_id: str,
        video_id: str,
        video_size: Optional[int] = None,
        on_result: Optional[ResultCallback] = None,
        on_done: Optional[DoneCallback] = None,
    ) -> List[Tuple[Manifest, List[Subtitle]]]:
        def fetch(manifest: Manifest) -> Fetch:
            async def call() -> list:
                response = await self.client.fetch_subtitles(
                    manifest.transportUrl, content_type, content_id, video_id, video_size
                )
                return response.subtitles
            return call

        addons = self.registry.providers_for("subtitles", content_type, content_id)
        targets = [(addon.manifest, fetch(addon.manifest)) for addon in addons]
        return await self._fan_out(
            f"subtitles for {content_type}/{content_id}", targets, on_result, on_done
        )

    async def search(
        self,
        query: str,
        on_result: Optional[ResultCallback] = None,
        on_done: Optional[DoneCallback] = None,
        content_type: Optional[str] = None,
    ) -> List[Tuple[Manifest, List[MetaPreview]]]:
        """Query every searchable catalog; one callback per catalog with hits"""
        extra = ExtraArgs(search=query)

        def fetch(manifest: Manifest, catalog_type: str, catalog_id: str) -> Fetch:
            async def call() -> list:
                response = await self.client.fetch_catalog(
                    manifest.transportUrl, catalog_type, catalog_id, extra
                )
                return response.metas
            return call

        targets = [
            (manifest, fetch(manifest, catalog.type, catalog.id))
            for manifest, catalog in self.registry.searchable_catalogs()
            if content_type is None or catalog.type == content_type
        ]
        return await self._fan_out(f"search '{query}'", targets, on_result, on_done)

    async def fetch_catalog(
        self,
        addon_id: str,
        content_type: str,
        catalog_id: str,
        extra: Optional[ExtraArgs] = None,
    ) -> CatalogResponse:
        addon = self.registry.require(addon_id)
        return await self.client.fetch_catalog(
            addon.manifest.transportUrl, content_type, catalog_id, extra
        )

    async def fetch_meta(self, content_type: str, content_id: str) -> MetaResponse:
        """Fetch meta from the highest-priority addon that serves it"""
        addons = self.registry.providers_for("meta", content_type, content_id)
        if not addons:
            raise NotFoundError(f"No addon supports meta for type {content_type}")
        manifest = addons[0].manifest
        logger.debug(f"Fetching meta {content_type}/{content_id} from {manifest.id}")
        return await self.client.fetch_meta(manifest.transportUrl, content_type, content_id)
