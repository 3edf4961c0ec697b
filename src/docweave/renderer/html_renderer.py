"""Render Transcripts into one self-contained HTML document."""

from __future__ import annotations

import html
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Sequence

from jinja2 import Environment, FileSystemLoader

from docweave.errors import RenderError
from docweave.logging_config import get_logger
from docweave.parser.base import (
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

logger = get_logger(__name__)

_HEADING_TAGS = {"title": 1, "h1": 2, "h2": 3, "h3": 4, "h4": 5}


@dataclass(slots=True)
class TocItem:
    level: int
    title: str
    anchor: str


class HTMLRenderer:
    """Render Transcripts through the ``document.html`` template."""

    def __init__(self, template_path: Path | None = None) -> None:
        if template_path is None:
            template_path = Path(__file__).resolve().parent.parent / "template" / "document.html"

        loader = FileSystemLoader(str(template_path.parent))
        self._env = Environment(loader=loader, autoescape=True, trim_blocks=True, lstrip_blocks=True)
        self._template_name = template_path.name

    def render(self, transcripts: Sequence[Transcript], *, title_override: str | None = None) -> str:
        if not transcripts:
            raise RenderError("No transcripts passed")

        used_anchors: set[str] = set()
        toc_items: list[TocItem] = []
        documents: list[str] = []

        for transcript in transcripts:
            parts = [self._render_segment(segment, toc_items, used_anchors) for segment in transcript.segments]
            documents.append("\n".join(part for part in parts if part))
            logger.debug("Rendered transcript", title=transcript.title, segments=len(transcript.segments))

        page_title = title_override or _first_title(transcripts) or "Documentation"

        template = self._env.get_template(self._template_name)
        return template.render(
            page_title=page_title,
            toc_items=[asdict(item) for item in toc_items],
            documents=documents,
        )

    def _render_segment(self, segment: TextSegment, toc_items: list[TocItem], used_anchors: set[str]) -> str:
        if isinstance(segment, TextElement):
            level = _HEADING_TAGS[segment.element]
            title = _plain_text(segment.text)
            anchor = _dedupe_anchor(_slugify(title) or "section", used_anchors)
            toc_items.append(TocItem(level=level, title=title, anchor=anchor))
            return f'<h{level} id="{anchor}">{self._render_rich_text(segment.text)}</h{level}>'

        return self._render_block(segment)

    def _render_block(self, block: TextSegment) -> str:
        if isinstance(block, Paragraph):
            return f'<p class="doc-paragraph">{self._render_rich_text(block.text)}</p>'

        if isinstance(block, InlineImage):
            return f'<div class="doc-image">{self._render_image(block)}</div>'

        if isinstance(block, Link):
            return f'<p class="doc-paragraph">{self._render_link(block)}</p>'

        if isinstance(block, List):
            return self._render_list(block)

        if isinstance(block, Table):
            return self._render_table(block.content)

        if isinstance(block, Code):
            lang = f' data-lang="{html.escape(block.language)}"' if block.language else ""
            return f'<pre class="doc-code"{lang}><code>{html.escape(block.content)}</code></pre>'

        return ""

    def _render_rich_text(self, run: RichText) -> str:
        parts: list[str] = []
        for fragment in run:
            if isinstance(fragment, RichString):
                parts.append(_render_rich_string(fragment))
            elif isinstance(fragment, InlineImage):
                parts.append(self._render_image(fragment))
            elif isinstance(fragment, Link):
                parts.append(self._render_link(fragment))
            elif isinstance(fragment, Code):
                parts.append(f"<code>{html.escape(fragment.content)}</code>")
        return "".join(parts)

    def _render_image(self, image: InlineImage) -> str:
        alt = html.escape(image.title or "")
        return f'<img src="{html.escape(image.img)}" alt="{alt}" loading="lazy" />'

    def _render_link(self, link: Link) -> str:
        if isinstance(link.text, InlineImage):
            inner = self._render_image(link.text)
        else:
            inner = self._render_rich_text(link.text.text) or html.escape(link.ref)
        return f'<a href="{html.escape(link.ref)}">{inner}</a>'

    def _render_list(self, block: List) -> str:
        tag = "ol" if block.ordered else "ul"
        items: list[str] = []
        for element in block.elements:
            if isinstance(element, list):
                items.append(f"<li>{self._render_rich_text(element)}</li>")
            elif isinstance(element, List):
                items.append(f'<li class="doc-nested">{self._render_list(element)}</li>')
            elif isinstance(element, Paragraph):
                items.append(f"<li>{self._render_rich_text(element.text)}</li>")
            else:
                items.append(f"<li>{self._render_block(element)}</li>")
        return f"<{tag}>{''.join(items)}</{tag}>"

    def _render_table(self, table: TableBody) -> str:
        colgroup_html = ""
        if table.colgroup:
            cols = []
            for col in table.colgroup:
                span = col.span.strip('\\"')
                span_attr = f' span="{html.escape(span)}"' if span.isdigit() else ""
                style_attr = f' style="{html.escape(col.style)}"' if col.style else ""
                cols.append(f"<col{span_attr}{style_attr} />")
            colgroup_html = f"<colgroup>{''.join(cols)}</colgroup>"

        rows = []
        for row in table.body:
            cells = []
            for cell in row:
                tag = "th" if cell.type == "header" else "td"
                colspan = f' colspan="{html.escape(cell.colspan)}"' if cell.colspan != "1" else ""
                content = "".join(self._render_block(segment) for segment in cell.content)
                cells.append(f"<{tag}{colspan}>{content}</{tag}>")
            rows.append(f"<tr>{''.join(cells)}</tr>")

        return f'<div class="doc-table-wrap"><table class="doc-table">{colgroup_html}<tbody>{"".join(rows)}</tbody></table></div>'


def _render_rich_string(fragment: RichString) -> str:
    if fragment.text == "\n":
        return "<br />"
    text = html.escape(fragment.text)
    attrs = fragment.attrs
    if attrs.script is Script.SUB:
        text = f"<sub>{text}</sub>"
    elif attrs.script is Script.SUPER:
        text = f"<sup>{text}</sup>"
    if attrs.underline:
        text = f"<u>{text}</u>"
    if attrs.cursive:
        text = f"<em>{text}</em>"
    if attrs.strong:
        text = f"<strong>{text}</strong>"
    return text


def _plain_text(run: RichText) -> str:
    return " ".join("".join(f.text for f in run if isinstance(f, RichString)).split())


def _first_title(transcripts: Sequence[Transcript]) -> str | None:
    for transcript in transcripts:
        for segment in transcript.segments:
            if isinstance(segment, TextElement) and segment.element == "title":
                return _plain_text(segment.text) or None
    return None


def _slugify(text: str) -> str:
    return re.sub(r"[^\w]+", "-", text.lower()).strip("-")


def _dedupe_anchor(anchor: str, used: set[str]) -> str:
    if anchor not in used:
        used.add(anchor)
        return anchor

    idx = 2
    while True:
        candidate = f"{anchor}-{idx}"
        if candidate not in used:
            used.add(candidate)
            return candidate
        idx += 1
