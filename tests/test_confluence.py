"""Tests for the Confluence REST source, using httpx.MockTransport."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from docweave.errors import ConfigError, SourceError
from docweave.parser.base import InlineImage, Paragraph, RichString
from docweave.parser.confluence import ConfluenceImageCollector, ConfluenceSource, Credentials, image_filename

BASE = "https://wiki.example.com/confluence/"


def _page(html: str) -> dict:
    return {"results": [{"id": "42", "body": {"view": {"value": html}}}], "size": 1}


def _source(handler, auth=Credentials("alice", "secret"), **kwargs) -> ConfluenceSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ConfluenceSource(BASE, "DOC", auth, client=client, **kwargs)


@pytest.mark.asyncio
async def test_fetches_page_by_title() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_page("<h2>Intro</h2><p>Hello</p>"))

    source = _source(handler)
    transcript = await source.get_transcript("Home Page", ["Intro"])

    assert transcript.segments == [Paragraph([RichString("Hello")])]
    assert transcript.title == "Home Page"
    [request] = seen
    assert request.url.path == "/confluence/rest/api/content"
    assert request.url.params["spaceKey"] == "DOC"
    assert request.url.params["title"] == "Home Page"
    assert request.url.params["expand"] == "body.view"
    assert request.headers["Authorization"].startswith("Basic ")


@pytest.mark.asyncio
async def test_cookie_auth_is_sent() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert "JSESSIONID=abc" in request.headers.get("cookie", "")
        assert "authorization" not in request.headers
        return httpx.Response(200, json=_page("<p>x</p>"))

    transcript = await _source(handler, auth={"JSESSIONID": "abc"}).get_transcript("Home")
    assert transcript.segments == [Paragraph([RichString("x")])]


@pytest.mark.asyncio
async def test_credentials_are_mandatory() -> None:
    source = _source(lambda request: httpx.Response(200), auth=None)
    with pytest.raises(SourceError, match="Credentials are mandatory"):
        await source.get_transcript("Home")


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403])
async def test_rejected_credentials(status: int) -> None:
    source = _source(lambda request: httpx.Response(status))
    with pytest.raises(SourceError, match="credentials"):
        await source.get_transcript("Home")


@pytest.mark.asyncio
async def test_server_error_and_bad_json() -> None:
    with pytest.raises(SourceError, match="HTTP 500"):
        await _source(lambda request: httpx.Response(500)).get_transcript("Home")

    with pytest.raises(SourceError, match="proper format"):
        await _source(lambda request: httpx.Response(200, content=b"<html>")).get_transcript("Home")


@pytest.mark.asyncio
async def test_transport_errors_are_retried() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        if calls < 3:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json=_page("<p>ok</p>"))

    transcript = await _source(handler).get_transcript("Home")
    assert calls == 3
    assert transcript.segments == [Paragraph([RichString("ok")])]


def test_page_html_variants() -> None:
    assert ConfluenceSource.page_html({"id": "1", "body": {"view": {"value": "<p>a</p>"}}}) == "<p>a</p>"
    assert ConfluenceSource.page_html(_page("<p>b</p>")) == "<p>b</p>"

    with pytest.raises(SourceError, match="Only one Confluence page"):
        ConfluenceSource.page_html({"results": [{"id": "1"}, {"id": "2"}], "size": 2})
    with pytest.raises(SourceError, match="No Confluence page"):
        ConfluenceSource.page_html({"results": [], "size": 0})
    with pytest.raises(SourceError, match="proper format"):
        ConfluenceSource.page_html({"results": [{"id": "1", "body": {}}], "size": 1})
    with pytest.raises(SourceError, match="proper format"):
        ConfluenceSource.page_html(["not", "a", "mapping"])


def test_blank_configuration_is_rejected() -> None:
    with pytest.raises(ConfigError):
        ConfluenceSource("", "DOC", None, client=httpx.AsyncClient())
    with pytest.raises(ConfigError):
        ConfluenceSource(BASE, " ", None, client=httpx.AsyncClient())


def test_page_url() -> None:
    source = ConfluenceSource("https://wiki.example.com", "DOC", None, client=httpx.AsyncClient())
    assert source.page_url("Home") == "https://wiki.example.com/display/DOC/Home"


def test_image_filename() -> None:
    url = "https://wiki.example.com/download/attachments/12345/diagram.png?version=1&api=v2"
    assert image_filename(url) == "12345_diagram.png"
    assert image_filename("https://h/download/thumbnails/99/photo.JPEG") == "99_photo.jpeg"
    with pytest.raises(ValueError, match="extension"):
        image_filename("https://h/download/attachments/1/file.gif")


def test_image_filename_sanitises_attachment_name() -> None:
    assert image_filename("https://h/download/attachments/5/My%20Shot%281%29.png") == "5_My_Shot_1.png"


@pytest.mark.asyncio
async def test_attachments_of_one_page_get_distinct_files(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/rest/api/content"):
            return httpx.Response(
                200,
                json=_page(
                    '<p><img src="/confluence/download/attachments/12345/diagram.png?version=1">'
                    '<img src="/confluence/download/attachments/12345/screenshot.png?version=2"></p>'
                ),
            )
        return httpx.Response(200, content=request.url.path.rsplit("/", 1)[-1].encode())

    source = _source(handler)
    source.collector = ConfluenceImageCollector(source, tmp_path)
    [paragraph] = (await source.get_transcript("Home")).segments

    first, second = paragraph.text
    assert first.img != second.img
    assert (tmp_path / first.img).read_bytes() == b"diagram.png"
    assert (tmp_path / second.img).read_bytes() == b"screenshot.png"


@pytest.mark.asyncio
async def test_images_are_downloaded(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/rest/api/content"):
            return httpx.Response(
                200,
                json=_page(
                    '<p><img src="/confluence/download/attachments/7/a.png" alt="A">'
                    '<img src="https://wiki.example.com/download/attachments/8/missing.png"></p>'
                ),
            )
        if "/attachments/7/" in request.url.path:
            return httpx.Response(200, content=b"PNG")
        return httpx.Response(404)

    source = _source(handler)
    source.collector = ConfluenceImageCollector(source, tmp_path)
    transcript = await source.get_transcript("Home")

    assert transcript.segments == [
        Paragraph([InlineImage("images/7_a.png", "A"), InlineImage("images/8_missing.png")])
    ]
    assert (tmp_path / "images" / "7_a.png").read_bytes() == b"PNG"
    assert not (tmp_path / "images" / "8_missing.png").exists()
    assert source.collector.pending == {}


def test_collector_leaves_relative_and_data_sources(tmp_path: Path) -> None:
    source = ConfluenceSource(BASE, "DOC", None, client=httpx.AsyncClient())
    collector = ConfluenceImageCollector(source, tmp_path)
    assert collector.stage("data:image/png;base64,AA") == "data:image/png;base64,AA"
    assert collector.stage("images/a.png") == "images/a.png"
    assert collector.pending == {}
