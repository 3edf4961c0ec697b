"""Markup-to-document-model extraction engine.

The :class:`Extractor` walks a :class:`~docweave.parser.tree.Tree` depth-first,
left to right, and classifies each element into a typed segment. Tables,
lists and rich-text runs are rebuilt by dedicated builders; inline formatting
is propagated onto text fragments while the rich-text recursion unwinds.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import replace

from docweave.errors import ConfigError, DocumentTooDeepError
from docweave.logging_config import get_logger

from .base import (
    Cell,
    Code,
    Col,
    InlineImage,
    Link,
    List,
    ListElement,
    Paragraph,
    RichString,
    RichText,
    Row,
    Script,
    Table,
    TableBody,
    TableSegment,
    TextElement,
    TextSegment,
    Transcript,
)
from .images import ImageCollector, NullImageCollector
from .tree import Node, NodeKind, Tree

logger = get_logger(__name__)

DEFAULT_MAX_DEPTH = 200

# Column groups without a span carry this literal; it must stay distinguishable
# from the row-level colspan default of "1".
COL_SPAN_DEFAULT = '\\"1\\"'
CELL_COLSPAN_DEFAULT = "1"

_HEADING_ELEMENTS = {1: "title", 2: "h1", 3: "h2", 4: "h3", 5: "h4"}

_ATTRIBUTE_CHANGES = {
    NodeKind.STRONG: {"strong": True},
    NodeKind.EM: {"cursive": True},
    NodeKind.UNDERLINE: {"underline": True},
    NodeKind.SUB: {"script": Script.SUB},
    NodeKind.SUP: {"script": Script.SUPER},
}

_LIST_KINDS = (NodeKind.UL, NodeKind.OL)
_CODE_KINDS = (NodeKind.CODE, NodeKind.PRE)
_ROW_GROUP_KINDS = (NodeKind.THEAD, NodeKind.TBODY, NodeKind.TFOOT)


def apply_attribute(run: Sequence[RichString | InlineImage | Link | Code], kind: NodeKind | str) -> RichText:
    """Return a copy of ``run`` with the formatting flag of ``kind`` set on every text fragment.

    ``kind`` may be a :class:`NodeKind` or a tag name (``strong``, ``em``,
    ``underline``, ``sub``, ``sup``). Unknown kinds leave the run unchanged;
    images, links and code fragments are passed through as-is.
    """
    if isinstance(kind, str):
        try:
            kind = NodeKind(kind)
        except ValueError:
            return list(run)

    changes = _ATTRIBUTE_CHANGES.get(kind)
    if changes is None:
        return list(run)

    return [
        RichString(fragment.text, replace(fragment.attrs, **changes)) if isinstance(fragment, RichString) else fragment
        for fragment in run
    ]


def extract_transcript(
    tree: Tree,
    sections: Sequence[str] | None = None,
    *,
    collector: ImageCollector | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
    title: str | None = None,
) -> Transcript:
    """Extract every root of ``tree`` into one Transcript."""
    extractor = Extractor(tree, collector=collector, max_depth=max_depth)
    segments = extractor.extract(sections=sections)
    logger.debug("Extracted transcript", title=title, segments=len(segments), nodes=len(tree))
    return Transcript(segments=segments, title=title)


class Extractor:
    """Turn a node arena into an ordered list of text segments."""

    def __init__(
        self,
        tree: Tree,
        *,
        collector: ImageCollector | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self.tree = tree
        self.collector = collector or NullImageCollector()
        self.max_depth = max_depth

    # ------------------------------------------------------------------
    # Tree walker
    # ------------------------------------------------------------------

    def extract(
        self, node_ids: Iterable[int] | None = None, sections: Sequence[str] | None = None
    ) -> list[TextSegment]:
        """Extract ``node_ids`` (the tree roots by default).

        With ``sections``, only the content of headings whose text matches one
        of the entries is kept.
        """
        ids = tuple(self.tree.roots if node_ids is None else node_ids)
        if sections is None:
            return self.segments(ids)
        if isinstance(sections, (str, bytes)) or not isinstance(sections, Sequence):
            raise ConfigError(f"Section filter must be a list of heading texts, got {type(sections).__name__}")
        wanted = {_normalize_heading(s) for s in sections if isinstance(s, str)}
        if not wanted:
            return self.segments(ids)
        return self._filtered(ids, wanted, 0)

    def segments(self, node_ids: Iterable[int], depth: int = 0) -> list[TextSegment]:
        depth = self._descend(depth)
        result: list[TextSegment] = []
        for index in node_ids:
            node = self.tree[index]
            if node.is_text:
                continue
            result.extend(self._segment(node, depth))
        return result

    def _segment(self, node: Node, depth: int) -> list[TextSegment]:
        depth = self._descend(depth)
        kind = node.kind
        if kind is NodeKind.HEADING:
            return [TextElement(element=_HEADING_ELEMENTS[node.level], text=self.rich_text(node.children, depth))]
        if kind is NodeKind.P:
            return [Paragraph(self.rich_text(node.children, depth))]
        if kind is NodeKind.A:
            return [self.link(node, depth)]
        if kind is NodeKind.IMG:
            return [self.image(node)]
        if kind is NodeKind.TABLE:
            return [Table(self.table(node.children, depth))]
        if kind in _LIST_KINDS:
            return [List(ordered=kind is NodeKind.OL, elements=self.list_elements(node.children, depth))]
        if kind in _CODE_KINDS:
            return [self.code(node)]
        if kind is NodeKind.BR:
            return [Paragraph([RichString("\n")])]
        if kind is NodeKind.DIV and node.has_class("content"):
            return [Paragraph(self.rich_text(node.children, depth))]
        return self.segments(node.children, depth)

    # ------------------------------------------------------------------
    # Section filter
    # ------------------------------------------------------------------

    def section_range(self, heading: Node) -> tuple[int, ...]:
        """Siblings following ``heading`` up to the next heading of the same or higher rank."""
        siblings = self.tree.siblings(heading)
        start = siblings.index(heading.index) + 1
        return siblings[start : self._section_end(siblings, start, heading.level)]

    def _section_end(self, node_ids: Sequence[int], start: int, level: int) -> int:
        end = start
        while end < len(node_ids):
            candidate = self.tree[node_ids[end]]
            if candidate.kind is NodeKind.HEADING and candidate.level <= level:
                break
            end += 1
        return end

    def _filtered(self, node_ids: Sequence[int], wanted: set[str], depth: int) -> list[TextSegment]:
        depth = self._descend(depth)
        result: list[TextSegment] = []
        position = 0
        while position < len(node_ids):
            node = self.tree[node_ids[position]]
            position += 1
            if node.is_text:
                continue
            if node.kind is NodeKind.HEADING and _normalize_heading(self.tree.text_content(node)) in wanted:
                end = self._section_end(node_ids, position, node.level)
                logger.debug("Matched section", heading=self.tree.text_content(node).strip(), nodes=end - position)
                result.extend(self.segments(node_ids[position:end], depth))
                position = end
                continue
            result.extend(self._filtered(node.children or (), wanted, depth))
        return result

    # ------------------------------------------------------------------
    # Rich text
    # ------------------------------------------------------------------

    def rich_text(self, node_ids: Iterable[int], depth: int = 0) -> RichText:
        depth = self._descend(depth)
        run: RichText = []
        for index in node_ids:
            child = self.tree[index]
            kind = child.kind
            if kind is NodeKind.IMG:
                run.append(self.image(child))
            elif kind is NodeKind.A:
                run.append(self.link(child, depth))
            elif kind is NodeKind.BR:
                run.append(RichString("\n"))
            elif kind in _CODE_KINDS:
                run.append(self.code(child))
            elif not child.is_text:
                run.extend(apply_attribute(self.rich_text(child.children, depth), kind))
            elif child.text and child.text.strip():
                run.append(RichString(child.text))
        return run

    def link(self, node: Node, depth: int = 0) -> Link:
        depth = self._descend(depth)
        return Link(ref=node.attrs.get("href", ""), text=self.link_content(node.children, depth))

    def link_content(self, node_ids: Sequence[int], depth: int = 0) -> Paragraph | InlineImage:
        """A link around a single image collapses to the bare image."""
        depth = self._descend(depth)
        if len(node_ids) == 1 and self.tree[node_ids[0]].kind is NodeKind.IMG:
            return self.image(self.tree[node_ids[0]])
        return Paragraph(self.rich_text(node_ids, depth))

    def image(self, node: Node) -> InlineImage:
        return InlineImage(img=self._stage_image(node.attrs.get("src", "")), title=node.attrs.get("alt"))

    def code(self, node: Node) -> Code:
        return Code(content=self.tree.text_content(node), language=node.attrs.get("data-lang") or None)

    def _stage_image(self, src: str) -> str:
        if not src:
            return src
        try:
            return self.collector.stage(src)
        except Exception as exc:
            logger.warning("Image staging failed", src=src, error=str(exc), error_type=type(exc).__name__)
            return src

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    def list_elements(self, node_ids: Iterable[int], depth: int = 0) -> list[ListElement]:
        depth = self._descend(depth)
        result: list[ListElement] = []
        for index in node_ids:
            item = self.tree[index]
            if item.kind is not NodeKind.LI:
                continue
            for child in self.tree.children(item):
                kind = child.kind
                if child.is_text:
                    if child.text != "\n":
                        _append_run(result, self.rich_text([child.index], depth))
                elif kind in _LIST_KINDS:
                    result.append(self._nested_list(child, depth))
                elif kind is NodeKind.P:
                    result.append(Paragraph(self.rich_text(child.children, depth)))
                elif kind is NodeKind.DIV:
                    for element in self.tree.children(child):
                        if element.kind in _LIST_KINDS:
                            result.append(self._nested_list(element, depth))
                elif kind is NodeKind.A:
                    result.append(self.link(child, depth))
                elif kind in _CODE_KINDS:
                    result.append(self.code(child))
                else:
                    _append_run(result, self.rich_text([child.index], depth))
        return result

    def _nested_list(self, node: Node, depth: int) -> List:
        depth = self._descend(depth)
        return List(ordered=node.kind is NodeKind.OL, elements=self.list_elements(node.children, depth))

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def table(self, node_ids: Iterable[int], depth: int = 0) -> TableBody:
        depth = self._descend(depth)
        body = TableBody()
        for index in node_ids:
            child = self.tree[index]
            if child.kind in _ROW_GROUP_KINDS:
                for row in self.tree.children(child):
                    if row.kind is NodeKind.TR:
                        body.body.append(self._row(row, depth))
            elif child.kind is NodeKind.TR:
                body.body.append(self._row(child, depth))
            elif child.kind is NodeKind.COLGROUP:
                body.colgroup.extend(
                    Col(span=col.attrs.get("span", COL_SPAN_DEFAULT), style=col.attrs.get("style"))
                    for col in self.tree.children(child)
                    if col.kind is NodeKind.COL
                )
        return body

    def _row(self, row: Node, depth: int) -> Row:
        depth = self._descend(depth)
        cells: Row = []
        for cell in self.tree.children(row):
            if cell.kind not in (NodeKind.TH, NodeKind.TD):
                continue
            content: list[TableSegment] = []
            kids = self.tree.children(cell)
            if kids and kids[0].kind is not NodeKind.BR:
                content = self.cell_content(cell.children, depth)
            if not content:
                content = [Paragraph([RichString(" ")])]
            cells.append(
                Cell(
                    type="header" if cell.kind is NodeKind.TH else "data",
                    colspan=cell.attrs.get("colspan", CELL_COLSPAN_DEFAULT),
                    content=content,
                )
            )
        return cells

    def cell_content(self, node_ids: Iterable[int], depth: int = 0) -> list[TableSegment]:
        depth = self._descend(depth)
        result: list[TableSegment] = []
        for index in node_ids:
            child = self.tree[index]
            kind = child.kind
            if kind is NodeKind.P:
                _append_paragraph(result, self.rich_text(child.children, depth))
            elif kind in (NodeKind.SPAN, NodeKind.UNDERLINE):
                _append_paragraph(result, self.rich_text([child.index], depth))
            elif kind is NodeKind.IMG:
                result.append(self.image(child))
            elif kind is NodeKind.TABLE:
                result.append(Table(self.table(child.children, depth)))
            elif kind in _LIST_KINDS:
                result.append(self._nested_list(child, depth))
            elif kind is NodeKind.A:
                result.append(self.link(child, depth))
            elif kind in _CODE_KINDS:
                result.append(self.code(child))
            elif kind is NodeKind.DIV:
                for element in self.tree.children(child):
                    if element.is_text:
                        _append_paragraph(result, self.rich_text([element.index], depth))
                    else:
                        result.extend(self.cell_content([element.index], depth))
            elif not child.is_text or child.text != "\n":
                _append_paragraph(result, self.rich_text([child.index], depth))
        return result

    def _descend(self, depth: int) -> int:
        # Called once per recursive builder frame, so the limit also bounds the call stack.
        if depth >= self.max_depth:
            raise DocumentTooDeepError(self.max_depth)
        return depth + 1


def _append_run(result: list[ListElement], run: RichText) -> None:
    if run:
        result.append(run)


def _append_paragraph(result: list[TableSegment], run: RichText) -> None:
    if run:
        result.append(Paragraph(run))


def _normalize_heading(text: str) -> str:
    return " ".join(text.split())
