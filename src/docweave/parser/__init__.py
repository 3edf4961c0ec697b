"""Parser package."""

from .base import (
    Cell,
    Code,
    Col,
    InlineImage,
    Link,
    List,
    Paragraph,
    RichString,
    Script,
    Table,
    TableBody,
    TextAttributes,
    TextElement,
    Transcript,
)
from .confluence import ConfluenceSource, Credentials
from .extract import Extractor, apply_attribute, extract_transcript
from .local import LocalSource
from .tree import NodeKind, Tree

__all__ = [
    "Cell",
    "Code",
    "Col",
    "InlineImage",
    "Link",
    "List",
    "Paragraph",
    "RichString",
    "Script",
    "Table",
    "TableBody",
    "TextAttributes",
    "TextElement",
    "Transcript",
    "ConfluenceSource",
    "Credentials",
    "Extractor",
    "apply_attribute",
    "extract_transcript",
    "LocalSource",
    "NodeKind",
    "Tree",
]
