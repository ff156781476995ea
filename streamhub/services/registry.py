"""
Addon Registry
Installed addons: persistence, install/uninstall, enable and ordering
"""
import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from streamhub.core.config import settings
from streamhub.core.errors import NotFoundError, ParseError
from streamhub.models.addon import CatalogDefinition, InstalledAddon, Manifest
from streamhub.services import resolver
from streamhub.services.client import AddonClient, manifest_url
from streamhub.services.parser import dump_manifest, parse_manifest
from streamhub.utils.helpers import utc_now_iso
from streamhub.utils.storage import read_json, write_json

logger = logging.getLogger(__name__)

STORE_VERSION = 1

ChangeCallback = Callable[[], None]


class AddonRegistry:
    """
    Owns the list of installed addons

    Every mutation is persisted before observers are notified, so an
    observer reading the store from disk sees the new state.
    """

    def __init__(self, client: AddonClient, path: Optional[Path] = None):
        self.client = client
        self.path = path or settings.addons_path
        self._addons: List[InstalledAddon] = []
        self._observers: List[ChangeCallback] = []

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self):
        data = read_json(self.path, fallback={})
        addons: List[InstalledAddon] = []

        entries = data.get("addons") if isinstance(data, dict) else None
        for entry in entries if isinstance(entries, list) else []:
            if not isinstance(entry, dict) or not isinstance(entry.get("manifest"), dict):
                continue
            transport_url = entry.get("transport_url")
            try:
                manifest = parse_manifest(
                    entry["manifest"],
                    transport_url if isinstance(transport_url, str) else "",
                )
            except ParseError as e:
                logger.warning(f"Skipping stored addon: {e}")
                continue
            order = entry.get("order")
            addons.append(InstalledAddon(
                manifest=manifest,
                enabled=entry.get("enabled") is not False,
                order=order if isinstance(order, int) and not isinstance(order, bool) else len(addons),
                installed_at=entry.get("installed_at") if isinstance(entry.get("installed_at"), str) else "",
            ))

        addons.sort(key=lambda addon: addon.order)
        self._addons = addons
        logger.info(f"Loaded {len(addons)} installed addons")

    def save(self) -> bool:
        data = {
            "version": STORE_VERSION,
            "addons": [
                {
                    "transport_url": addon.manifest.transportUrl,
                    "manifest": dump_manifest(addon.manifest),
                    "enabled": addon.enabled,
                    "order": addon.order,
                    "installed_at": addon.installed_at,
                }
                for addon in self._addons
            ],
        }
        return write_json(self.path, data)

    def on_change(self, callback: ChangeCallback):
        self._observers.append(callback)

    def _commit(self):
        self.save()
        for callback in list(self._observers):
            try:
                callback()
            except Exception as e:  # noqa: BLE001
                logger.warning(f"Addon change observer failed: {e}")

    def _renumber(self):
        for index, addon in enumerate(self._addons):
            addon.order = index

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def install(self, url: str) -> Manifest:
        """
        Fetch a manifest and install (or update) the addon

        An addon already installed under the same manifest id keeps its
        order and enabled flag; only the manifest is replaced.

        Raises:
            TransportError: the manifest could not be fetched
            ParseError: the manifest body is malformed
        """
        url = manifest_url(url)
        manifest = await self.client.fetch_manifest(url)

        existing = self.get(manifest.id)
        if existing is not None:
            existing.manifest = manifest
            logger.info(f"Updated addon {manifest.id} ({manifest.name})")
        else:
            self._addons.append(InstalledAddon(
                manifest=manifest,
                enabled=True,
                order=len(self._addons),
                installed_at=utc_now_iso(),
            ))
            logger.info(f"Installed addon {manifest.id} ({manifest.name})")

        self._commit()
        return manifest

    def uninstall(self, addon_id: str) -> bool:
        addon = self.get(addon_id)
        if addon is None:
            return False
        self._addons.remove(addon)
        self._renumber()
        logger.info(f"Uninstalled addon {addon_id}")
        self._commit()
        return True

    def set_enabled(self, addon_id: str, enabled: bool) -> bool:
        addon = self.get(addon_id)
        if addon is None:
            return False
        addon.enabled = enabled
        self._commit()
        return True

    def move(self, addon_id: str, direction: int) -> bool:
        """Swap an addon with its neighbour; False at either boundary"""
        addon = self.get(addon_id)
        if addon is None or direction == 0:
            return False
        index = self._addons.index(addon)
        target = index + (1 if direction > 0 else -1)
        if target < 0 or target >= len(self._addons):
            return False
        self._addons[index], self._addons[target] = self._addons[target], self._addons[index]
        self._renumber()
        self._commit()
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def providers(self) -> List[InstalledAddon]:
        return list(self._addons)

    def enabled_providers(self) -> List[InstalledAddon]:
        return [addon for addon in self._addons if addon.enabled]

    def get(self, addon_id: str) -> Optional[InstalledAddon]:
        for addon in self._addons:
            if addon.id == addon_id:
                return addon
        return None

    def require(self, addon_id: str) -> InstalledAddon:
        addon = self.get(addon_id)
        if addon is None:
            raise NotFoundError(f"Addon not installed: {addon_id}")
        return addon

    def is_installed(self, addon_id: str) -> bool:
        return self.get(addon_id) is not None

    def providers_for(
        self, resource: str, content_type: str, content_id: str = ""
    ) -> List[InstalledAddon]:
        return resolver.providers_for(self._addons, resource, content_type, content_id)

    def catalogs_of(
        self, content_type: Optional[str] = None
    ) -> List[Tuple[Manifest, CatalogDefinition]]:
        return resolver.catalogs_of(self._addons, content_type)

    def searchable_catalogs(self) -> List[Tuple[Manifest, CatalogDefinition]]:
        return resolver.searchable_catalogs(self._addons)
