"""Core document model produced by the extraction engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Protocol, Sequence, Union


class Script(str, Enum):
    NORMAL = "normal"
    SUB = "sub"
    SUPER = "super"


@dataclass(slots=True, frozen=True)
class TextAttributes:
    strong: bool = False
    cursive: bool = False
    underline: bool = False
    script: Script = Script.NORMAL


@dataclass(slots=True, frozen=True)
class RichString:
    text: str
    attrs: TextAttributes = field(default_factory=TextAttributes)


@dataclass(slots=True)
class InlineImage:
    img: str
    title: str | None = None


@dataclass(slots=True)
class Code:
    content: str
    language: str | None = None


@dataclass(slots=True)
class Paragraph:
    text: list[RichString | InlineImage | Link | Code] = field(default_factory=list)


@dataclass(slots=True)
class Link:
    ref: str
    text: Paragraph | InlineImage


RichText = list[Union[RichString, InlineImage, Link, Code]]


@dataclass(slots=True)
class List:
    ordered: bool
    elements: list[Union[RichText, "List", Paragraph, Link, Code]] = field(default_factory=list)


@dataclass(slots=True)
class Col:
    span: str
    style: str | None = None


@dataclass(slots=True)
class Cell:
    type: Literal["header", "data"]
    colspan: str = "1"
    content: list[TableSegment] = field(default_factory=list)


Row = list[Cell]


@dataclass(slots=True)
class TableBody:
    colgroup: list[Col] = field(default_factory=list)
    body: list[Row] = field(default_factory=list)


@dataclass(slots=True)
class Table:
    content: TableBody


@dataclass(slots=True)
class TextElement:
    element: Literal["title", "h1", "h2", "h3", "h4"]
    text: RichText = field(default_factory=list)


TableSegment = Union[Paragraph, InlineImage, List, Table, Code, Link]
TextSegment = Union[TextElement, Paragraph, InlineImage, Link, List, Table, Code]
ListElement = Union[RichText, List, Paragraph, Link, Code]


@dataclass(slots=True)
class Transcript:
    segments: list[TextSegment] = field(default_factory=list)
    title: str | None = None


class DocumentSource(Protocol):
    async def get_transcript(
        self, index: str, sections: Sequence[str] | None = None
    ) -> Transcript:  # pragma: no cover - structural protocol
        """Fetch one document and extract it into a Transcript."""
