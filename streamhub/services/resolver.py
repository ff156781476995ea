"""
Capability Resolver
Selects the installed addons eligible to serve a resource
"""
from typing import Iterable, List, Optional, Tuple

from streamhub.models.addon import CatalogDefinition, InstalledAddon, Manifest


def supports(
    addon: InstalledAddon, resource: str, content_type: str, content_id: str = ""
) -> bool:
    """
    Check whether one addon may answer a resource request

    Resource-level types/idPrefixes override the manifest-level ones; an
    empty list at both levels matches everything.
    """
    if not addon.enabled:
        return False
    manifest = addon.manifest
    definition = manifest.resource(resource)
    if definition is None:
        return False
    return (
        manifest.has_type(content_type, definition)
        and manifest.matches_id_prefix(content_id, definition)
    )


def providers_for(
    addons: Iterable[InstalledAddon],
    resource: str,
    content_type: str,
    content_id: str = "",
) -> List[InstalledAddon]:
    return [
        addon for addon in addons
        if supports(addon, resource, content_type, content_id)
    ]


def catalogs_of(
    addons: Iterable[InstalledAddon], content_type: Optional[str] = None
) -> List[Tuple[Manifest, CatalogDefinition]]:
    result = []
    for addon in addons:
        if not addon.enabled or not addon.manifest.has_resource("catalog"):
            continue
        for catalog in addon.manifest.catalogs:
            if content_type is None or catalog.type == content_type:
                result.append((addon.manifest, catalog))
    return result


def searchable_catalogs(
    addons: Iterable[InstalledAddon],
) -> List[Tuple[Manifest, CatalogDefinition]]:
    return [
        (manifest, catalog)
        for manifest, catalog in catalogs_of(addons)
        if catalog.supports("search")
    ]
