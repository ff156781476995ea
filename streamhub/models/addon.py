"""
Addon Protocol Models
Pydantic models for the addon manifest and resource responses
"""
from typing import Dict, List, Optional
from urllib.parse import quote

from pydantic import BaseModel, Field


class ResourceDefinition(BaseModel):
    """Resource declared in a manifest (plain string or object form)"""
    name: str
    types: List[str] = Field(default_factory=list)
    idPrefixes: List[str] = Field(default_factory=list)


class CatalogDefinition(BaseModel):
    """Catalog definition in manifest"""
    type: str = ""
    id: str = ""
    name: str = ""
    genres: List[str] = Field(default_factory=list)
    extraSupported: List[str] = Field(default_factory=list)
    extraRequired: List[str] = Field(default_factory=list)

    def supports(self, extra: str) -> bool:
        return extra in self.extraSupported


class Manifest(BaseModel):
    """Addon manifest - identity and capabilities"""
    id: str
    version: str = ""
    name: str = ""
    description: str = ""
    logo: Optional[str] = None
    background: Optional[str] = None

    types: List[str] = Field(default_factory=list)
    resources: List[ResourceDefinition] = Field(default_factory=list)
    catalogs: List[CatalogDefinition] = Field(default_factory=list)
    idPrefixes: List[str] = Field(default_factory=list)

    # Behavior hints
    adult: bool = False
    configurable: bool = False
    configurationURL: Optional[str] = None

    # Where the addon is hosted
    transportUrl: str = ""

    def resource(self, name: str) -> Optional[ResourceDefinition]:
        for res in self.resources:
            if res.name == name:
                return res
        return None

    def has_resource(self, name: str) -> bool:
        return self.resource(name) is not None

    def has_type(self, content_type: str, resource: Optional[ResourceDefinition] = None) -> bool:
        """Resource-level types win over the manifest's; no types at all matches anything"""
        types = (resource.types if resource else None) or self.types
        if not types:
            return True
        return content_type in types

    def matches_id_prefix(
        self, content_id: str, resource: Optional[ResourceDefinition] = None
    ) -> bool:
        if not content_id:
            return True
        prefixes = (resource.idPrefixes if resource else None) or self.idPrefixes
        if not prefixes:
            return True
        return any(content_id.startswith(prefix) for prefix in prefixes)


class InstalledAddon(BaseModel):
    """An installed addon as tracked by the registry"""
    manifest: Manifest
    enabled: bool = True
    order: int = 0
    installed_at: str = ""

    @property
    def id(self) -> str:
        return self.manifest.id


class MetaLink(BaseModel):
    """Link to an internal page (genre, cast, ...)"""
    name: str = ""
    category: str = ""
    url: str = ""


class Trailer(BaseModel):
    source: str
    type: str = ""


class Subtitle(BaseModel):
    id: str = ""
    url: str = ""
    lang: str = ""


class StreamBehaviorHints(BaseModel):
    countryWhitelist: List[str] = Field(default_factory=list)
    notWebReady: bool = False
    bingeGroup: Optional[str] = None
    videoHash: Optional[str] = None
    videoSize: Optional[int] = None
    filename: Optional[str] = None


class Stream(BaseModel):
    """A playable source; one of url / ytId / infoHash / externalUrl is set"""
    url: Optional[str] = None
    ytId: Optional[str] = None
    infoHash: Optional[str] = None
    fileIdx: Optional[int] = None
    externalUrl: Optional[str] = None

    name: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    sources: List[str] = Field(default_factory=list)
    subtitles: List[Subtitle] = Field(default_factory=list)
    behaviorHints: StreamBehaviorHints = Field(default_factory=StreamBehaviorHints)


class Video(BaseModel):
    """Episode (series) or video (channel) entry of a meta"""
    id: str = ""
    title: str = ""
    released: str = ""
    thumbnail: Optional[str] = None
    overview: Optional[str] = None
    season: Optional[int] = None
    episode: Optional[int] = None
    available: Optional[bool] = None
    streams: List[Stream] = Field(default_factory=list)


class MetaPreview(BaseModel):
    """Catalog item (poster) metadata"""
    id: str = ""
    type: str = ""
    name: str = ""
    poster: Optional[str] = None
    posterShape: Optional[str] = None
    description: Optional[str] = None
    releaseInfo: Optional[str] = None
    imdbRating: Optional[str] = None
    genres: List[str] = Field(default_factory=list)
    director: List[str] = Field(default_factory=list)
    cast: List[str] = Field(default_factory=list)
    links: List[MetaLink] = Field(default_factory=list)


class Meta(MetaPreview):
    """Full metadata for a single title"""
    background: Optional[str] = None
    logo: Optional[str] = None
    released: Optional[str] = None
    runtime: Optional[str] = None
    language: Optional[str] = None
    country: Optional[str] = None
    awards: Optional[str] = None
    website: Optional[str] = None
    writer: List[str] = Field(default_factory=list)
    videos: List[Video] = Field(default_factory=list)
    trailers: List[Trailer] = Field(default_factory=list)
    defaultVideoId: Optional[str] = None


class CatalogResponse(BaseModel):
    """Catalog endpoint response"""
    metas: List[MetaPreview] = Field(default_factory=list)


class MetaResponse(BaseModel):
    meta: Meta


class StreamsResponse(BaseModel):
    streams: List[Stream] = Field(default_factory=list)


class SubtitlesResponse(BaseModel):
    subtitles: List[Subtitle] = Field(default_factory=list)


class ExtraArgs(BaseModel):
    """Extra catalog arguments (search, pagination, genre filter)"""
    search: Optional[str] = None
    skip: Optional[int] = None
    genre: Optional[str] = None
    other: Dict[str, str] = Field(default_factory=dict)

    def to_path_segment(self) -> str:
        """
        Render as the `key=value&...` path segment of a catalog URL

        Known keys come first in the order search, skip, genre; free-form
        keys follow sorted by key. Keys and values are percent-encoded.
        """
        pairs = []
        if self.search is not None:
            pairs.append(("search", self.search))
        if self.skip is not None:
            pairs.append(("skip", str(self.skip)))
        if self.genre is not None:
            pairs.append(("genre", self.genre))
        pairs.extend(sorted(self.other.items()))
        return "&".join(
            f"{quote(key, safe='')}={quote(value, safe='')}" for key, value in pairs
        )
