"""
Test configuration and fixtures
"""
import pytest

from streamhub.models.addon import InstalledAddon
from streamhub.services.client import AddonClient
from streamhub.services.parser import dump_manifest, parse_manifest
from streamhub.services.registry import AddonRegistry
from streamhub.utils.storage import write_json


class FakeClock:
    """Manually advanced replacement for time.time"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_manifest_data(addon_id: str, **overrides) -> dict:
    data = {
        "id": addon_id,
        "version": "1.0.0",
        "name": addon_id.split(".")[-1].title(),
        "description": f"{addon_id} test addon",
        "types": ["movie", "series"],
        "resources": ["stream"],
        "catalogs": [],
        "idPrefixes": ["tt"],
    }
    data.update(overrides)
    return data


def make_addon(addon_id: str, enabled: bool = True, order: int = 0, **overrides) -> InstalledAddon:
    manifest = parse_manifest(
        make_manifest_data(addon_id, **overrides), f"https://{addon_id}.example"
    )
    return InstalledAddon(manifest=manifest, enabled=enabled, order=order)


def make_registry(path, addons, client=None) -> AddonRegistry:
    """Registry loaded from a store file holding the given addons"""
    write_json(path, {
        "version": 1,
        "addons": [
            {
                "transport_url": addon.manifest.transportUrl,
                "manifest": dump_manifest(addon.manifest),
                "enabled": addon.enabled,
                "order": index,
                "installed_at": "2024-01-15T10:30:00Z",
            }
            for index, addon in enumerate(addons)
        ],
    })
    registry = AddonRegistry(client or AddonClient(), path)
    registry.load()
    return registry


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cinemeta_manifest():
    """Manifest in the shape served by a typical metadata addon"""
    return {
        "id": "com.linvo.cinemeta",
        "version": "3.0.13",
        "name": "Cinemeta",
        "description": "The official addon for movie and series catalogs",
        "logo": "https://v3-cinemeta.strem.io/logo.png",
        "types": ["movie", "series"],
        "idPrefixes": ["tt"],
        "resources": [
            "catalog",
            {"name": "meta", "types": ["movie", "series"], "idPrefixes": ["tt"]},
            "addon_catalog",
        ],
        "catalogs": [
            {
                "type": "movie",
                "id": "top",
                "name": "Popular",
                "genres": ["Action", "Drama"],
                "extraSupported": ["search", "genre", "skip"],
            },
            {
                "type": "series",
                "id": "top",
                "name": "Popular",
                "extra": [
                    {"name": "genre", "isRequired": False},
                    {"name": "search"},
                    {"name": "skip"},
                ],
            },
            {
                "type": "movie",
                "id": "year",
                "name": "New",
                "extraRequired": ["genre"],
                "extra": [{"name": "genre", "isRequired": True}],
            },
        ],
        "behaviorHints": {"configurable": False},
    }


@pytest.fixture
def stream_response():
    return {
        "streams": [
            {
                "name": "Torrentio\n1080p",
                "title": "Breaking.Bad.S01E03.1080p.mkv",
                "infoHash": "c9e15763f722f23e98a29decdfae341b98d53056",
                "fileIdx": 2,
                "behaviorHints": {
                    "bingeGroup": "torrentio|1080p|BluRay",
                    "videoSize": 1825361100,
                    "filename": "Breaking.Bad.S01E03.1080p.mkv",
                },
            },
            {
                "url": "https://cdn.example/video.mp4",
                "title": "Direct 720p",
                "subtitles": [{"id": "1", "url": "https://subs.example/en.srt", "lang": "eng"}],
            },
        ]
    }
