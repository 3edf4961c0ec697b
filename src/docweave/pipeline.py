"""Turn a validated index into rendered output."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from docweave.config import DocConfig, NodeConfig, Settings, SourceConfig
from docweave.errors import ConfigError, DocweaveError, PipelineError, SourceError
from docweave.logging_config import get_logger
from docweave.parser.base import DocumentSource, Transcript
from docweave.parser.confluence import ConfluenceImageCollector, ConfluenceSource, Credentials
from docweave.parser.images import LocalImageCollector
from docweave.parser.local import LocalSource

logger = get_logger(__name__)


@dataclass(slots=True)
class DocumentFailure:
    node: NodeConfig
    error: Exception


@dataclass(slots=True)
class PipelineResult:
    transcripts: list[Transcript] = field(default_factory=list)
    failures: list[DocumentFailure] = field(default_factory=list)


class Pipeline:
    """Build one source per configured key and extract every node concurrently.

    Images are staged below ``image_dir`` (normally the output directory).
    """

    def __init__(
        self,
        config: DocConfig,
        settings: Settings,
        image_dir: Path,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self.settings = settings
        self.image_dir = Path(image_dir)
        self._client = client
        self._sources: dict[str, DocumentSource] = {}

    def source(self, key: str) -> DocumentSource:
        if key not in self._sources:
            self._sources[key] = self._build_source(self.config.source_for(key))
        return self._sources[key]

    def _build_source(self, source: SourceConfig) -> DocumentSource:
        if source.kind == "local":
            base = Path(source.source)
            return LocalSource(
                base,
                LocalImageCollector(base, self.image_dir),
                max_depth=self.settings.max_depth,
            )

        confluence = ConfluenceSource(
            source.base_url,
            source.space,
            self._confluence_auth(),
            client=self._client,
            max_depth=self.settings.max_depth,
            timeout=self.settings.request_timeout,
        )
        confluence.collector = ConfluenceImageCollector(confluence, self.image_dir)
        return confluence

    def _confluence_auth(self) -> Credentials | dict[str, str] | None:
        cookies = self.settings.cookies()
        if cookies:
            return cookies
        if self.settings.confluence_username and self.settings.confluence_password is not None:
            return Credentials(self.settings.confluence_username, self.settings.confluence_password)
        return None

    async def run(self) -> PipelineResult:
        """Extract all nodes; a failing document is reported and left out."""
        if not self.config.nodes:
            raise ConfigError("The index lists no documents")

        try:
            outcomes = await asyncio.gather(
                *(self._extract(node) for node in self.config.nodes), return_exceptions=True
            )
        finally:
            await self.aclose()

        result = PipelineResult()
        for node, outcome in zip(self.config.nodes, outcomes):
            if isinstance(outcome, Transcript):
                result.transcripts.append(outcome)
                continue
            if not isinstance(outcome, Exception):
                raise outcome
            logger.error(
                "Document extraction failed",
                key=node.key,
                index=node.index,
                error=str(outcome),
                error_type=type(outcome).__name__,
            )
            result.failures.append(DocumentFailure(node=node, error=outcome))

        if not result.transcripts:
            raise PipelineError(f"None of the {len(self.config.nodes)} documents could be extracted")
        return result

    async def _extract(self, node: NodeConfig) -> Transcript:
        source = self.source(node.key)
        logger.info("Extracting document", key=node.key, index=node.index, sections=node.sections)
        try:
            return await source.get_transcript(node.index, node.sections)
        except DocweaveError:
            raise
        except OSError as exc:
            raise SourceError(f"Cannot read '{node.index}': {exc}") from exc

    async def aclose(self) -> None:
        for source in self._sources.values():
            if isinstance(source, ConfluenceSource):
                await source.aclose()
