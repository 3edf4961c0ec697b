"""Render Transcripts into a single AsciiDoc document."""

from __future__ import annotations

from typing import Sequence

from docweave.errors import RenderError
from docweave.parser.base import (
    Cell,
    Code,
    InlineImage,
    Link,
    List,
    Paragraph,
    RichString,
    RichText,
    Script,
    Table,
    TableBody,
    TextElement,
    TextSegment,
    Transcript,
)

_HEADING_MARKERS = {"title": "=", "h1": "==", "h2": "===", "h3": "====", "h4": "====="}


class AsciiDocRenderer:
    """Emit AsciiDoc with a table-of-contents macro at the top."""

    def render(self, transcripts: Sequence[Transcript], *, title_override: str | None = None) -> str:
        if not transcripts:
            raise RenderError("No transcripts passed")

        out: list[str] = []
        if title_override:
            out.append(f"= {title_override}\n")
        out.append(":toc: macro\ntoc::[]\n\n")
        for transcript in transcripts:
            for segment in transcript.segments:
                rendered = self.render_segment(segment)
                if rendered:
                    out.append(rendered)
                    out.append("\n\n")
            out.append("\n")
        return "".join(out).rstrip() + "\n"

    def render_segment(self, segment: TextSegment) -> str:
        if isinstance(segment, TextElement):
            return f"{_HEADING_MARKERS[segment.element]} {render_rich_text(segment.text).strip()}"
        if isinstance(segment, Paragraph):
            return render_rich_text(segment.text)
        if isinstance(segment, InlineImage):
            return f"image::{segment.img}[{_escape_brackets(segment.title or '')}]"
        if isinstance(segment, Link):
            return render_link(segment)
        if isinstance(segment, List):
            return self.render_list(segment)
        if isinstance(segment, Table):
            return self.render_table(segment.content)
        if isinstance(segment, Code):
            return render_code_block(segment)
        return ""

    def render_list(self, block: List, depth: int = 1) -> str:
        marker = ("." if block.ordered else "*") * depth
        lines: list[str] = []
        for element in block.elements:
            if isinstance(element, List):
                lines.append(self.render_list(element, depth + 1))
            elif isinstance(element, list):
                lines.append(f"{marker} {render_rich_text(element).strip()}")
            elif isinstance(element, Paragraph):
                lines.append(f"{marker} {render_rich_text(element.text).strip()}")
            elif isinstance(element, Link):
                lines.append(f"{marker} {render_link(element)}")
            elif isinstance(element, Code):
                lines.append(f"{marker} {render_inline_code(element)}")
        return "\n".join(line for line in lines if line)

    def render_table(self, table: TableBody, separator: str = "|") -> str:
        columns = len(table.colgroup) or max((len(row) for row in table.body), default=1)
        delimiter = f"{separator}==="
        lines = [f'[cols="{max(columns, 1)}*"]', delimiter]
        for row in table.body:
            lines.append(" ".join(self._render_cell(cell, separator) for cell in row))
        lines.append(delimiter)
        return "\n".join(lines)

    def _render_cell(self, cell: Cell, separator: str) -> str:
        span = f"{cell.colspan}+" if cell.colspan not in ("", "1") else ""
        nested = any(isinstance(segment, (Table, List, Code)) for segment in cell.content)
        style = "a" if nested else ("h" if cell.type == "header" else "")
        parts: list[str] = []
        for segment in cell.content:
            if isinstance(segment, Table):
                if separator == "|":
                    parts.append("\n" + self.render_table(segment.content, separator="!") + "\n")
                else:
                    parts.append(_flatten_table(segment.content))
            elif isinstance(segment, List):
                parts.append("\n" + self.render_list(segment) + "\n")
            elif isinstance(segment, Code):
                parts.append("\n" + render_code_block(segment) + "\n")
            else:
                parts.append(self.render_segment(segment).replace(separator, "\\" + separator))
        return f"{span}{style}{separator}{' '.join(parts)}"


def render_rich_text(run: RichText) -> str:
    parts: list[str] = []
    for fragment in run:
        if isinstance(fragment, RichString):
            parts.append(_render_rich_string(fragment))
        elif isinstance(fragment, InlineImage):
            parts.append(f"image:{fragment.img}[{_escape_brackets(fragment.title or '')}]")
        elif isinstance(fragment, Link):
            parts.append(render_link(fragment))
        elif isinstance(fragment, Code):
            parts.append(render_inline_code(fragment))
    return "".join(parts)


def render_link(link: Link) -> str:
    if isinstance(link.text, InlineImage):
        label = f"image:{link.text.img}[{_escape_brackets(link.text.title or '')}]"
    else:
        label = _escape_brackets(render_rich_text(link.text.text).strip())
    return f"link:{link.ref}[{label}]"


def render_inline_code(code: Code) -> str:
    return f"`+{code.content}+`"


def render_code_block(code: Code) -> str:
    header = f"[source,{code.language}]" if code.language else "[source]"
    return f"{header}\n----\n{code.content.rstrip()}\n----"


def _render_rich_string(fragment: RichString) -> str:
    if fragment.text == "\n":
        return " +\n"
    core = fragment.text.strip()
    if not core:
        return fragment.text
    leading = fragment.text[: len(fragment.text) - len(fragment.text.lstrip())]
    trailing = fragment.text[len(fragment.text.rstrip()) :]

    attrs = fragment.attrs
    if attrs.script is Script.SUB:
        core = f"~{core}~"
    elif attrs.script is Script.SUPER:
        core = f"^{core}^"
    if attrs.underline:
        core = f"[.underline]#{core}#"
    if attrs.cursive:
        core = f"__{core}__"
    if attrs.strong:
        core = f"**{core}**"
    return f"{leading}{core}{trailing}"


def _flatten_table(table: TableBody) -> str:
    texts = []
    for row in table.body:
        for cell in row:
            for segment in cell.content:
                if isinstance(segment, Paragraph):
                    texts.append(render_rich_text(segment.text).strip())
    return " ".join(text for text in texts if text)


def _escape_brackets(text: str) -> str:
    return text.replace("]", "\\]")
