"""Image collectors: the side channel that stages images met during extraction."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import unquote, urlparse

from docweave.logging_config import get_logger

logger = get_logger(__name__)


class ImageCollector(Protocol):
    def stage(self, src: str) -> str:  # pragma: no cover - structural protocol
        """Record ``src`` for staging and return the reference the document should use."""

    async def flush(self) -> None:  # pragma: no cover - structural protocol
        """Copy or download everything staged so far."""


class NullImageCollector:
    """Leaves image references untouched and stages nothing."""

    def stage(self, src: str) -> str:
        return src

    async def flush(self) -> None:
        return None


class LocalImageCollector:
    """Copy images referenced by local documents next to the rendered output."""

    def __init__(self, base_path: Path, target_dir: Path) -> None:
        self.base_path = Path(base_path)
        self.target_dir = Path(target_dir)
        self.pending: dict[str, Path] = {}

    def stage(self, src: str) -> str:
        if is_remote(src):
            return src
        relative = _relative_image_path(src)
        self.pending.setdefault(src, relative)
        return relative.as_posix()

    async def flush(self) -> None:
        pending, self.pending = self.pending, {}
        for src, relative in pending.items():
            await asyncio.to_thread(self._copy, src, relative)

    def _copy(self, src: str, relative: Path) -> None:
        source = self.base_path / relative
        destination = self.target_dir / relative
        if not source.is_file():
            logger.warning("Image not found, skipping", src=src, path=str(source))
            return
        if source.resolve() == destination.resolve():
            return
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
        logger.debug("Copied image", src=src, destination=str(destination))


def is_remote(src: str) -> bool:
    return urlparse(src).scheme in {"http", "https", "data"}


def _relative_image_path(src: str) -> Path:
    """Normalise ``src`` into a relative path that cannot leave the target directory."""
    path = PurePosixPath(unquote(urlparse(src).path))
    parts = [part for part in path.parts if part not in ("/", ".", "..")]
    if not parts:
        raise ValueError(f"Image source has no file component: {src!r}")
    return Path(*parts)
