"""Exception hierarchy shared by sources, the extraction engine and renderers."""

from __future__ import annotations


class DocweaveError(Exception):
    """Base class for every error raised by docweave."""


class ConfigError(DocweaveError):
    """The configuration file or a caller-supplied option is invalid."""


class SourceError(DocweaveError):
    """A document could not be fetched, authenticated or decoded."""


class ExtractionError(DocweaveError):
    """The extraction engine hit a condition it cannot degrade from."""


class DocumentTooDeepError(ExtractionError):
    def __init__(self, max_depth: int) -> None:
        super().__init__(f"Document too deeply nested (limit: {max_depth} levels)")
        self.max_depth = max_depth


class RenderError(DocweaveError):
    """The renderer was given nothing it can render."""


class PipelineError(DocweaveError):
    """No document of the configured index could be extracted."""
