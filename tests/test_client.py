"""
Tests for the addon protocol client
"""
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from streamhub.core.errors import ParseError, TransportError
from streamhub.models.addon import ExtraArgs
from streamhub.services.client import AddonClient, base_url, build_url, manifest_url


class FakeResponse:
    def __init__(self, status: int, body: str):
        self.status = status
        self._body = body

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False


class FakeSession:
    closed = False

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.urls = []

    def get(self, url):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.response


def test_base_url_strips_manifest_and_slashes():
    assert base_url("https://addon.example/manifest.json") == "https://addon.example"
    assert base_url("https://addon.example/abc/") == "https://addon.example/abc"
    assert base_url("https://addon.example") == "https://addon.example"


def test_manifest_url_normalization():
    assert manifest_url("https://addon.example") == "https://addon.example/manifest.json"
    assert manifest_url("https://addon.example/") == "https://addon.example/manifest.json"
    assert (
        manifest_url("https://addon.example/cfg/manifest.json")
        == "https://addon.example/cfg/manifest.json"
    )


def test_build_url_plain():
    url = build_url("https://addon.example/manifest.json", "stream", "series", "tt0903747:1:3")
    assert url == "https://addon.example/stream/series/tt0903747:1:3.json"


def test_build_url_extra_order_and_encoding():
    extra = ExtraArgs(genre="Sci-Fi & Fantasy", skip=100, search="star wars", other={"lang": "en"})
    url = build_url("https://addon.example", "catalog", "movie", "top", extra)
    assert url == (
        "https://addon.example/catalog/movie/top/"
        "search=star%20wars&skip=100&genre=Sci-Fi%20%26%20Fantasy&lang=en.json"
    )


def test_build_url_empty_extra_has_no_segment():
    url = build_url("https://addon.example", "catalog", "movie", "top", ExtraArgs())
    assert url == "https://addon.example/catalog/movie/top.json"


@pytest.mark.asyncio
async def test_get_json_success():
    session = FakeSession(FakeResponse(200, '{"streams": []}'))
    client = AddonClient(session=session)

    data = await client._get_json("https://addon.example/stream/movie/tt1.json")

    assert data == {"streams": []}
    assert session.urls == ["https://addon.example/stream/movie/tt1.json"]


@pytest.mark.asyncio
async def test_get_json_http_error_carries_status():
    client = AddonClient(session=FakeSession(FakeResponse(404, "Not Found")))

    with pytest.raises(TransportError) as exc_info:
        await client._get_json("https://addon.example/meta/movie/tt1.json")

    assert exc_info.value.status == 404
    assert exc_info.value.message == "HTTP error: 404"


@pytest.mark.asyncio
async def test_get_json_connection_error():
    error = aiohttp.ClientConnectionError("Connection refused")
    client = AddonClient(session=FakeSession(error=error))

    with pytest.raises(TransportError) as exc_info:
        await client._get_json("https://down.example/manifest.json")

    assert exc_info.value.status is None
    assert exc_info.value.message.startswith("Request failed")


@pytest.mark.asyncio
async def test_get_json_invalid_body():
    client = AddonClient(session=FakeSession(FakeResponse(200, "not json")))

    with pytest.raises(ParseError):
        await client._get_json("https://addon.example/manifest.json")


@pytest.mark.asyncio
async def test_fetch_manifest_sets_transport_url(cinemeta_manifest):
    client = AddonClient()
    with patch.object(client, "_get_json", AsyncMock(return_value=cinemeta_manifest)):
        manifest = await client.fetch_manifest("https://v3-cinemeta.strem.io/manifest.json")

    assert manifest.transportUrl == "https://v3-cinemeta.strem.io"


@pytest.mark.asyncio
async def test_fetch_subtitles_url():
    client = AddonClient()
    get_json = AsyncMock(return_value={"subtitles": []})
    with patch.object(client, "_get_json", get_json):
        await client.fetch_subtitles(
            "https://subs.example/manifest.json", "series", "tt0903747:1:3",
            "c9e15763f722f23e98a29decdfae341b98d53056", 1825361100,
        )
        await client.fetch_subtitles("https://subs.example", "movie", "tt0137523", "abc")

    urls = [call.args[0] for call in get_json.call_args_list]
    assert urls == [
        "https://subs.example/subtitles/series/tt0903747:1:3/"
        "videoID=c9e15763f722f23e98a29decdfae341b98d53056&videoSize=1825361100.json",
        "https://subs.example/subtitles/movie/tt0137523/videoID=abc.json",
    ]


@pytest.mark.asyncio
async def test_close_leaves_injected_session_open():
    session = FakeSession()
    session.close = AsyncMock()
    client = AddonClient(session=session)

    await client.close()

    session.close.assert_not_called()


def test_build_url_free_form_extras_sorted_and_encoded():
    extra = ExtraArgs(skip=20, other={"sort by": "year", "lang": "pt-BR", "filter&x": "a/b"})
    url = build_url("https://addon.example", "catalog", "movie", "top", extra)
    assert url == (
        "https://addon.example/catalog/movie/top/"
        "skip=20&filter%26x=a%2Fb&lang=pt-BR&sort%20by=year.json"
    )
