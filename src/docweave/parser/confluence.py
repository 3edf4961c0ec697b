"""Confluence REST source: fetch a page's rendered view and extract it."""

from __future__ import annotations

import asyncio
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import unquote, urljoin, urlparse

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from docweave.errors import ConfigError, SourceError
from docweave.logging_config import get_logger

from .base import Transcript
from .extract import DEFAULT_MAX_DEPTH, extract_transcript
from .images import ImageCollector, NullImageCollector
from .tree import Tree

logger = get_logger(__name__)

_IMAGE_EXTENSIONS = ("jpg", "png", "jpeg")


@dataclass(slots=True, frozen=True)
class Credentials:
    username: str
    password: str


Auth = Credentials | Mapping[str, str]


class ConfluenceSource:
    """Fetch pages of one Confluence space by title.

    ``base_url`` is the Confluence context root, e.g. ``https://host/confluence/``.
    ``auth`` is either :class:`Credentials` (HTTP basic) or a mapping of cookies.
    """

    def __init__(
        self,
        base_url: str,
        space: str | None,
        auth: Auth | None,
        client: httpx.AsyncClient | None = None,
        collector: ImageCollector | None = None,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        timeout: float = 30.0,
    ) -> None:
        if not base_url or not base_url.strip():
            raise ConfigError("Confluence base URL cannot be blank")
        if not space or not space.strip():
            raise ConfigError("Confluence space key cannot be blank")

        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.space = space
        self.credentials = auth if isinstance(auth, Credentials) else None
        self.cookies = dict(auth) if auth is not None and not isinstance(auth, Credentials) else {}
        self._owns_client = client is None
        self.http_client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        if self.cookies:
            self.http_client.cookies.update(self.cookies)
        self.collector = collector or NullImageCollector()
        self.max_depth = max_depth

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    @property
    def auth(self) -> httpx.BasicAuth | None:
        if self.credentials is None:
            return None
        return httpx.BasicAuth(self.credentials.username, self.credentials.password)

    def page_url(self, title: str) -> str:
        if not title:
            raise ConfigError("Confluence page title cannot be blank")
        return f"{self.base_url}display/{self.space}/{title}"

    async def get_transcript(self, index: str, sections: Sequence[str] | None = None) -> Transcript:
        if self.credentials is None and not self.cookies:
            raise SourceError("Credentials are mandatory to access confluence resources")
        if not index:
            raise ConfigError("Confluence page title cannot be blank")

        payload = await self._fetch_page(index)
        markup = self.page_html(payload)
        if not markup:
            raise SourceError(f"It isn't possible to get transcript from {self.page_url(index)}")

        tree = Tree.from_html(markup)
        transcript = extract_transcript(
            tree, sections, collector=self.collector, max_depth=self.max_depth, title=index
        )
        await self.collector.flush()

        logger.info("Extracted Confluence page", title=index, space=self.space, segments=len(transcript.segments))
        return transcript

    async def _fetch_page(self, title: str) -> Any:
        params = {"spaceKey": self.space, "title": title, "expand": "body.view"}
        url = f"{self.base_url}rest/api/content"
        logger.debug("Fetching Confluence page", url=url, title=title, space=self.space)
        try:
            response = await self._get(url, params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in (401, 403):
                raise SourceError(f"Confluence rejected the credentials for '{title}' (HTTP {status})") from exc
            raise SourceError(f"Confluence request for '{title}' failed with HTTP {status}") from exc
        except httpx.HTTPError as exc:
            raise SourceError(f"It isn't possible to get the content from confluence: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise SourceError("Received JSON from Confluence is not in a proper format.") from exc

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        reraise=True,
    )
    async def _get(self, url: str, params: dict[str, str]) -> httpx.Response:
        return await self.http_client.get(url, params=params, auth=self.auth or httpx.USE_CLIENT_DEFAULT)

    @staticmethod
    def page_html(payload: Any) -> str:
        """Pull the rendered page body out of a content lookup or a content search result."""
        if not isinstance(payload, Mapping):
            raise SourceError("Received JSON from Confluence is not in a proper format.")

        if payload.get("id"):
            page = payload
        elif "results" in payload:
            results = payload.get("results") or []
            size = payload.get("size", len(results))
            if size > 1:
                raise SourceError(
                    "Only one Confluence page is allowed at once in this version. Check your request please."
                )
            if size != 1 or not results or not results[0].get("id"):
                raise SourceError("No Confluence page matches the requested title.")
            page = results[0]
        else:
            raise SourceError("Received JSON from Confluence is not in a proper format.")

        try:
            value = page["body"]["view"]["value"]
        except (KeyError, TypeError) as exc:
            raise SourceError("Received JSON from Confluence is not in a proper format.") from exc
        if not value:
            raise SourceError("Received JSON from Confluence is not in a proper format.")
        return value


class ConfluenceImageCollector:
    """Download attachment images into ``<target_dir>/images/``."""

    def __init__(self, source: ConfluenceSource, target_dir: Path) -> None:
        self.source = source
        self.target_dir = Path(target_dir)
        self.pending: dict[str, str] = {}

    def stage(self, src: str) -> str:
        url = src
        if src.startswith("/"):
            url = urljoin(self.source.base_url, src)
        if urlparse(url).scheme not in ("http", "https"):
            return src
        local = f"images/{image_filename(url)}"
        self.pending.setdefault(url, local)
        return local

    async def flush(self) -> None:
        pending, self.pending = self.pending, {}
        if not pending:
            return
        for url, local in pending.items():
            await self._download(url, self.target_dir / local)

    async def _download(self, url: str, destination: Path) -> None:
        try:
            response = await self.source.http_client.get(url, auth=self.source.auth or httpx.USE_CLIENT_DEFAULT)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Image download failed", url=url, error=str(exc), error_type=type(exc).__name__)
            return
        destination.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(destination.write_bytes, response.content)
        logger.debug("Downloaded image", url=url, destination=str(destination), size=len(response.content))


def image_filename(url: str) -> str:
    """``<page id>_<attachment name>.<extension>`` for a Confluence attachment URL.

    Attachment URLs look like ``download/attachments/<page id>/<file>``; the
    extension is the last of jpg/png/jpeg found anywhere in the URL.
    """
    extension = ""
    for candidate in _IMAGE_EXTENSIONS:
        if candidate in url.lower():
            extension = candidate
    if not extension:
        raise ValueError("The image url does not contain an implemented extension")

    parts = PurePosixPath(unquote(urlparse(url).path)).parts
    if len(parts) < 2:
        raise ValueError(f"The image url has no attachment id: {url}")
    name = re.sub(r"[^\w.-]+", "_", PurePosixPath(parts[-1]).stem).strip("_")
    return f"{parts[-2]}_{name}.{extension}" if name else f"{parts[-2]}.{extension}"
