"""Local document source: HTML files, or AsciiDoc converted by asciidoctor."""

from __future__ import annotations

import asyncio
import shutil
from collections.abc import Sequence
from pathlib import Path

from docweave.errors import SourceError
from docweave.logging_config import get_logger

from .base import Transcript
from .extract import DEFAULT_MAX_DEPTH, extract_transcript
from .images import ImageCollector, NullImageCollector
from .tree import Tree

logger = get_logger(__name__)

_ASCIIDOC_SUFFIXES = (".adoc", ".asciidoc", ".asc")


class LocalSource:
    """Read documents below ``base_path`` and extract them into Transcripts."""

    def __init__(
        self,
        base_path: Path,
        collector: ImageCollector | None = None,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        asciidoctor: str = "asciidoctor",
    ) -> None:
        self.base_path = Path(base_path)
        self.collector = collector or NullImageCollector()
        self.max_depth = max_depth
        self.asciidoctor = asciidoctor

    async def get_transcript(self, index: str, sections: Sequence[str] | None = None) -> Transcript:
        path = self.base_path / index
        if not path.is_file():
            raise SourceError(f"Document not found: {path}")

        markup = await self.read_markup(path)
        tree = Tree.from_html(markup)
        transcript = extract_transcript(
            tree, sections, collector=self.collector, max_depth=self.max_depth, title=index
        )
        await self.collector.flush()

        logger.info("Extracted local document", index=index, segments=len(transcript.segments))
        return transcript

    async def read_markup(self, path: Path) -> str:
        if path.suffix.lower() in _ASCIIDOC_SUFFIXES:
            return await self._convert_asciidoc(path)
        return await asyncio.to_thread(path.read_text, encoding="utf-8", errors="replace")

    async def _convert_asciidoc(self, path: Path) -> str:
        executable = shutil.which(self.asciidoctor)
        if executable is None:
            raise SourceError(f"'{self.asciidoctor}' is required to read AsciiDoc documents such as {path.name}")

        process = await asyncio.create_subprocess_exec(
            executable,
            "-s",
            "-o",
            "-",
            str(path),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise SourceError(
                f"asciidoctor failed on {path.name} (exit {process.returncode}): "
                f"{stderr.decode('utf-8', errors='replace').strip()}"
            )
        return stdout.decode("utf-8", errors="replace")
