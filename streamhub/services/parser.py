"""
Addon Response Parser
Lenient conversion of addon JSON bodies into protocol models

Missing or wrongly-typed fields become empty values instead of failing the
whole parse; only a missing top-level object (no JSON object at all, no
"meta" in a meta response, no "id" in a manifest) raises ParseError.
"""
import json
from typing import Any, Dict, List, Optional

from streamhub.core.errors import ParseError
from streamhub.models.addon import (
    CatalogDefinition,
    CatalogResponse,
    Manifest,
    Meta,
    MetaLink,
    MetaPreview,
    MetaResponse,
    ResourceDefinition,
    Stream,
    StreamBehaviorHints,
    StreamsResponse,
    Subtitle,
    SubtitlesResponse,
    Trailer,
    Video,
)


def load_json(body: str) -> Any:
    try:
        return json.loads(body)
    except ValueError as e:
        raise ParseError(f"Invalid JSON: {e}") from e


def _root_object(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ParseError(f"{what} response is not a JSON object")
    return data


def _get_str(obj: Dict[str, Any], key: str) -> str:
    value = obj.get(key)
    return value if isinstance(value, str) else ""


def _get_opt_str(obj: Dict[str, Any], key: str) -> Optional[str]:
    value = obj.get(key)
    return value if isinstance(value, str) else None


def _get_opt_int(obj: Dict[str, Any], key: str) -> Optional[int]:
    value = obj.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _get_opt_bool(obj: Dict[str, Any], key: str) -> Optional[bool]:
    value = obj.get(key)
    return value if isinstance(value, bool) else None


def _get_str_list(obj: Dict[str, Any], key: str) -> List[str]:
    value = obj.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _get_objects(obj: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    value = obj.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _get_object(obj: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = obj.get(key)
    return value if isinstance(value, dict) else {}


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------

def parse_resource_definition(node: Any) -> Optional[ResourceDefinition]:
    if isinstance(node, str):
        return ResourceDefinition(name=node) if node else None
    if isinstance(node, dict):
        name = _get_str(node, "name")
        if not name:
            return None
        return ResourceDefinition(
            name=name,
            types=_get_str_list(node, "types"),
            idPrefixes=_get_str_list(node, "idPrefixes"),
        )
    return None


def parse_catalog_definition(obj: Dict[str, Any]) -> CatalogDefinition:
    """
    Parse a manifest catalog entry

    Extra arguments may be declared through the legacy flat arrays
    (extraSupported / extraRequired) and/or the "extra" array of
    {name, isRequired} objects; both are merged without duplicates.
    """
    supported = list(dict.fromkeys(_get_str_list(obj, "extraSupported")))
    required = list(dict.fromkeys(_get_str_list(obj, "extraRequired")))

    for extra in _get_objects(obj, "extra"):
        name = _get_str(extra, "name")
        if not name:
            continue
        target = required if extra.get("isRequired") is True else supported
        if name not in target:
            target.append(name)

    return CatalogDefinition(
        type=_get_str(obj, "type"),
        id=_get_str(obj, "id"),
        name=_get_str(obj, "name"),
        genres=_get_str_list(obj, "genres"),
        extraSupported=supported,
        extraRequired=required,
    )


def parse_manifest(data: Any, transport_url: str) -> Manifest:
    obj = _root_object(data, "Manifest")
    manifest_id = _get_str(obj, "id")
    if not manifest_id:
        raise ParseError("Manifest has no id")

    hints = _get_object(obj, "behaviorHints")
    resources = [
        res for res in (
            parse_resource_definition(node)
            for node in (obj.get("resources") if isinstance(obj.get("resources"), list) else [])
        )
        if res is not None
    ]

    return Manifest(
        id=manifest_id,
        version=_get_str(obj, "version"),
        name=_get_str(obj, "name"),
        description=_get_str(obj, "description"),
        logo=_get_opt_str(obj, "logo"),
        background=_get_opt_str(obj, "background"),
        types=_get_str_list(obj, "types"),
        resources=resources,
        catalogs=[parse_catalog_definition(cat) for cat in _get_objects(obj, "catalogs")],
        idPrefixes=_get_str_list(obj, "idPrefixes"),
        adult=bool(_get_opt_bool(hints, "adult")),
        configurable=bool(_get_opt_bool(hints, "configurable")),
        configurationURL=_get_opt_str(hints, "configurationURL"),
        transportUrl=transport_url,
    )


def dump_manifest(manifest: Manifest) -> Dict[str, Any]:
    """Serialize a manifest back into protocol shape (inverse of parse_manifest)"""
    data: Dict[str, Any] = {
        "id": manifest.id,
        "version": manifest.version,
        "name": manifest.name,
        "description": manifest.description,
    }
    if manifest.logo is not None:
        data["logo"] = manifest.logo
    if manifest.background is not None:
        data["background"] = manifest.background
    data["types"] = list(manifest.types)
    data["idPrefixes"] = list(manifest.idPrefixes)

    resources: List[Any] = []
    for res in manifest.resources:
        if not res.types and not res.idPrefixes:
            resources.append(res.name)
            continue
        node: Dict[str, Any] = {"name": res.name}
        if res.types:
            node["types"] = list(res.types)
        if res.idPrefixes:
            node["idPrefixes"] = list(res.idPrefixes)
        resources.append(node)
    data["resources"] = resources

    data["catalogs"] = [
        {
            "type": cat.type,
            "id": cat.id,
            "name": cat.name,
            "genres": list(cat.genres),
            "extraSupported": list(cat.extraSupported),
            "extraRequired": list(cat.extraRequired),
        }
        for cat in manifest.catalogs
    ]

    hints: Dict[str, Any] = {
        "adult": manifest.adult,
        "configurable": manifest.configurable,
    }
    if manifest.configurationURL is not None:
        hints["configurationURL"] = manifest.configurationURL
    data["behaviorHints"] = hints
    return data


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------

def parse_subtitle(obj: Dict[str, Any]) -> Subtitle:
    return Subtitle(
        id=_get_str(obj, "id"),
        url=_get_str(obj, "url"),
        lang=_get_str(obj, "lang"),
    )


def parse_stream(obj: Dict[str, Any]) -> Stream:
    hints = _get_object(obj, "behaviorHints")
    return Stream(
        url=_get_opt_str(obj, "url"),
        ytId=_get_opt_str(obj, "ytId"),
        infoHash=_get_opt_str(obj, "infoHash"),
        fileIdx=_get_opt_int(obj, "fileIdx"),
        externalUrl=_get_opt_str(obj, "externalUrl"),
        name=_get_opt_str(obj, "name"),
        title=_get_opt_str(obj, "title"),
        description=_get_opt_str(obj, "description"),
        sources=_get_str_list(obj, "sources"),
        subtitles=[parse_subtitle(sub) for sub in _get_objects(obj, "subtitles")],
        behaviorHints=StreamBehaviorHints(
            countryWhitelist=_get_str_list(hints, "countryWhitelist"),
            notWebReady=bool(_get_opt_bool(hints, "notWebReady")),
            bingeGroup=_get_opt_str(hints, "bingeGroup"),
            videoHash=_get_opt_str(hints, "videoHash"),
            videoSize=_get_opt_int(hints, "videoSize"),
            filename=_get_opt_str(hints, "filename"),
        ),
    )


def parse_video(obj: Dict[str, Any]) -> Video:
    # Some addons put the episode title under "name"
    title = _get_str(obj, "title") or _get_str(obj, "name")
    return Video(
        id=_get_str(obj, "id"),
        title=title,
        released=_get_str(obj, "released"),
        thumbnail=_get_opt_str(obj, "thumbnail"),
        overview=_get_opt_str(obj, "overview"),
        season=_get_opt_int(obj, "season"),
        episode=_get_opt_int(obj, "episode"),
        available=_get_opt_bool(obj, "available"),
        streams=[parse_stream(stream) for stream in _get_objects(obj, "streams")],
    )


def _preview_fields(obj: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": _get_str(obj, "id"),
        "type": _get_str(obj, "type"),
        "name": _get_str(obj, "name"),
        "poster": _get_opt_str(obj, "poster"),
        "posterShape": _get_opt_str(obj, "posterShape"),
        "description": _get_opt_str(obj, "description"),
        "releaseInfo": _get_opt_str(obj, "releaseInfo"),
        "imdbRating": _get_opt_str(obj, "imdbRating"),
        "genres": _get_str_list(obj, "genres"),
        "director": _get_str_list(obj, "director"),
        "cast": _get_str_list(obj, "cast"),
        "links": [
            MetaLink(
                name=_get_str(link, "name"),
                category=_get_str(link, "category"),
                url=_get_str(link, "url"),
            )
            for link in _get_objects(obj, "links")
        ],
    }


def parse_meta_preview(obj: Dict[str, Any]) -> MetaPreview:
    return MetaPreview(**_preview_fields(obj))


def parse_meta_object(obj: Dict[str, Any]) -> Meta:
    trailers = [
        Trailer(source=_get_str(trailer, "source"), type=_get_str(trailer, "type"))
        for trailer in _get_objects(obj, "trailers")
        if _get_str(trailer, "source")
    ]
    hints = _get_object(obj, "behaviorHints")
    return Meta(
        **_preview_fields(obj),
        background=_get_opt_str(obj, "background"),
        logo=_get_opt_str(obj, "logo"),
        released=_get_opt_str(obj, "released"),
        runtime=_get_opt_str(obj, "runtime"),
        language=_get_opt_str(obj, "language"),
        country=_get_opt_str(obj, "country"),
        awards=_get_opt_str(obj, "awards"),
        website=_get_opt_str(obj, "website"),
        writer=_get_str_list(obj, "writer"),
        videos=[parse_video(video) for video in _get_objects(obj, "videos")],
        trailers=trailers,
        defaultVideoId=_get_opt_str(hints, "defaultVideoId"),
    )


def parse_catalog(data: Any) -> CatalogResponse:
    obj = _root_object(data, "Catalog")
    return CatalogResponse(
        metas=[parse_meta_preview(meta) for meta in _get_objects(obj, "metas")]
    )


def parse_meta(data: Any) -> MetaResponse:
    obj = _root_object(data, "Meta")
    meta = obj.get("meta")
    if not isinstance(meta, dict):
        raise ParseError("Meta response has no meta object")
    return MetaResponse(meta=parse_meta_object(meta))


def parse_streams(data: Any) -> StreamsResponse:
    obj = _root_object(data, "Streams")
    return StreamsResponse(
        streams=[parse_stream(stream) for stream in _get_objects(obj, "streams")]
    )


def parse_subtitles(data: Any) -> SubtitlesResponse:
    obj = _root_object(data, "Subtitles")
    return SubtitlesResponse(
        subtitles=[parse_subtitle(sub) for sub in _get_objects(obj, "subtitles")]
    )
