"""
Tests for the addon registry
"""
import json
from unittest.mock import AsyncMock, patch

import pytest
from conftest import make_addon, make_manifest_data, make_registry

from streamhub.core.errors import ParseError, TransportError
from streamhub.services.client import AddonClient
from streamhub.services.registry import AddonRegistry


def orders(registry):
    return [(addon.id, addon.order) for addon in registry.providers()]


@pytest.mark.asyncio
async def test_install_appends_with_next_order(tmp_path):
    client = AddonClient()
    registry = AddonRegistry(client, tmp_path / "addons.json")
    get_json = AsyncMock(side_effect=[
        make_manifest_data("org.torrentio"),
        make_manifest_data("org.opensubtitles", resources=["subtitles"]),
    ])

    with patch.object(client, "_get_json", get_json):
        first = await registry.install("https://torrentio.example/")
        await registry.install("https://subs.example/cfg/manifest.json")

    assert get_json.call_args_list[0].args[0] == "https://torrentio.example/manifest.json"
    assert get_json.call_args_list[1].args[0] == "https://subs.example/cfg/manifest.json"
    assert first.transportUrl == "https://torrentio.example"
    assert orders(registry) == [("org.torrentio", 0), ("org.opensubtitles", 1)]

    installed = registry.get("org.torrentio")
    assert installed.enabled is True
    assert installed.installed_at.endswith("Z")


@pytest.mark.asyncio
async def test_reinstall_updates_in_place(tmp_path):
    registry = make_registry(
        tmp_path / "addons.json",
        [make_addon("org.first"), make_addon("org.second"), make_addon("org.third")],
    )
    registry.set_enabled("org.second", False)

    upgraded = make_manifest_data("org.second", version="2.0.0")
    with patch.object(registry.client, "_get_json", AsyncMock(return_value=upgraded)):
        await registry.install("https://org.second.example")

    assert len(registry.providers()) == 3
    second = registry.get("org.second")
    assert second.order == 1
    assert second.enabled is False
    assert second.manifest.version == "2.0.0"
    assert second.installed_at == "2024-01-15T10:30:00Z"


@pytest.mark.asyncio
async def test_failed_install_changes_nothing(tmp_path):
    registry = AddonRegistry(AddonClient(), tmp_path / "addons.json")
    changes = []
    registry.on_change(lambda: changes.append(True))

    failing = AsyncMock(side_effect=TransportError("HTTP error: 500", 500))
    with patch.object(registry.client, "_get_json", failing):
        with pytest.raises(TransportError):
            await registry.install("https://broken.example")

    with patch.object(registry.client, "_get_json", AsyncMock(return_value={"name": "no id"})):
        with pytest.raises(ParseError):
            await registry.install("https://broken.example")

    assert registry.providers() == []
    assert changes == []
    assert not (tmp_path / "addons.json").exists()


def test_uninstall_renumbers_contiguously(tmp_path):
    registry = make_registry(
        tmp_path / "addons.json",
        [make_addon(f"org.addon{i}") for i in range(5)],
    )

    assert registry.uninstall("org.addon1")
    assert registry.uninstall("org.addon3")
    assert not registry.uninstall("org.missing")

    assert orders(registry) == [("org.addon0", 0), ("org.addon2", 1), ("org.addon4", 2)]


def test_move_swaps_neighbours(tmp_path):
    registry = make_registry(
        tmp_path / "addons.json",
        [make_addon("org.a"), make_addon("org.b"), make_addon("org.c")],
    )

    assert registry.move("org.c", -1)
    assert orders(registry) == [("org.a", 0), ("org.c", 1), ("org.b", 2)]

    assert not registry.move("org.a", -1)
    assert not registry.move("org.b", 1)
    assert not registry.move("org.missing", 1)
    assert orders(registry) == [("org.a", 0), ("org.c", 1), ("org.b", 2)]


def test_round_trip_preserves_state(tmp_path, cinemeta_manifest):
    path = tmp_path / "addons.json"
    registry = make_registry(path, [make_addon("org.a"), make_addon("org.b")])
    registry.set_enabled("org.a", False)
    registry.move("org.b", -1)

    reloaded = AddonRegistry(AddonClient(), path)
    reloaded.load()

    assert orders(reloaded) == [("org.b", 0), ("org.a", 1)]
    assert reloaded.get("org.a").enabled is False
    assert reloaded.get("org.a").installed_at == "2024-01-15T10:30:00Z"
    assert reloaded.get("org.a").manifest == registry.get("org.a").manifest


def test_store_file_schema(tmp_path):
    path = tmp_path / "addons.json"
    make_registry(path, [make_addon("org.a")])

    data = json.loads(path.read_text())
    assert data["version"] == 1
    entry = data["addons"][0]
    assert set(entry) == {"transport_url", "manifest", "enabled", "order", "installed_at"}
    assert entry["transport_url"] == "https://org.a.example"
    assert entry["manifest"]["resources"] == ["stream"]


def test_load_sorts_by_order_and_skips_bad_entries(tmp_path):
    path = tmp_path / "addons.json"
    path.write_text(json.dumps({
        "version": 1,
        "addons": [
            {"transport_url": "https://b.example", "manifest": make_manifest_data("org.b"),
             "enabled": True, "order": 1, "installed_at": ""},
            {"transport_url": "https://x.example", "enabled": True, "order": 2},
            {"transport_url": "https://y.example", "manifest": {"name": "no id"}, "order": 3},
            {"transport_url": "https://a.example", "manifest": make_manifest_data("org.a"),
             "enabled": False, "order": 0, "installed_at": ""},
        ],
    }))

    registry = AddonRegistry(AddonClient(), path)
    registry.load()

    assert [addon.id for addon in registry.providers()] == ["org.a", "org.b"]
    assert [addon.id for addon in registry.enabled_providers()] == ["org.b"]


def test_load_missing_or_corrupt_file(tmp_path):
    registry = AddonRegistry(AddonClient(), tmp_path / "missing.json")
    registry.load()
    assert registry.providers() == []

    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{not json")
    registry = AddonRegistry(AddonClient(), corrupt)
    registry.load()
    assert registry.providers() == []


def test_observers_see_saved_state(tmp_path):
    path = tmp_path / "addons.json"
    registry = make_registry(path, [make_addon("org.a"), make_addon("org.b")])
    seen = []

    def observer():
        data = json.loads(path.read_text())
        seen.append([entry["manifest"]["id"] for entry in data["addons"]])

    registry.on_change(observer)
    registry.uninstall("org.a")
    registry.set_enabled("org.b", False)

    assert seen == [["org.b"], ["org.b"]]


def test_queries(tmp_path):
    registry = make_registry(
        tmp_path / "addons.json",
        [make_addon("org.a"), make_addon("org.subs", resources=["subtitles"])],
    )

    assert registry.is_installed("org.a")
    assert not registry.is_installed("org.z")
    assert [a.id for a in registry.providers_for("stream", "movie", "tt0137523")] == ["org.a"]
    assert [a.id for a in registry.providers_for("subtitles", "movie", "tt0137523")] == ["org.subs"]
