"""Flat node arena built from parsed markup.

Every element is resolved once into a :class:`NodeKind` so the extraction
engine dispatches over a closed set instead of comparing tag strings. Parent
links are arena indices, never object references.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import CData, Comment, Declaration, Doctype, ProcessingInstruction, Script, Stylesheet


class NodeKind(Enum):
    TEXT = "text"
    HEADING = "heading"
    P = "p"
    A = "a"
    IMG = "img"
    TABLE = "table"
    THEAD = "thead"
    TBODY = "tbody"
    TFOOT = "tfoot"
    TR = "tr"
    TH = "th"
    TD = "td"
    COLGROUP = "colgroup"
    COL = "col"
    UL = "ul"
    OL = "ol"
    LI = "li"
    CODE = "code"
    PRE = "pre"
    BR = "br"
    DIV = "div"
    SPAN = "span"
    STRONG = "strong"
    EM = "em"
    UNDERLINE = "underline"
    SUB = "sub"
    SUP = "sup"
    OTHER = "other"


_HEADING_LEVELS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5}

_TAG_KINDS = {
    "p": NodeKind.P,
    "a": NodeKind.A,
    "img": NodeKind.IMG,
    "table": NodeKind.TABLE,
    "thead": NodeKind.THEAD,
    "tbody": NodeKind.TBODY,
    "tfoot": NodeKind.TFOOT,
    "tr": NodeKind.TR,
    "th": NodeKind.TH,
    "td": NodeKind.TD,
    "colgroup": NodeKind.COLGROUP,
    "col": NodeKind.COL,
    "ul": NodeKind.UL,
    "ol": NodeKind.OL,
    "li": NodeKind.LI,
    "code": NodeKind.CODE,
    "pre": NodeKind.PRE,
    "br": NodeKind.BR,
    "div": NodeKind.DIV,
    "span": NodeKind.SPAN,
    "strong": NodeKind.STRONG,
    "b": NodeKind.STRONG,
    "em": NodeKind.EM,
    "i": NodeKind.EM,
    "u": NodeKind.UNDERLINE,
    "sub": NodeKind.SUB,
    "sup": NodeKind.SUP,
}

_SKIPPED_STRINGS = (Comment, CData, Declaration, Doctype, ProcessingInstruction, Script, Stylesheet)


@dataclass(slots=True)
class Node:
    index: int
    kind: NodeKind
    tag: str | None = None
    text: str | None = None
    attrs: dict[str, str] = field(default_factory=dict)
    children: tuple[int, ...] | None = None
    parent: int | None = None
    level: int = 0

    @property
    def is_text(self) -> bool:
        return self.children is None

    def has_class(self, name: str) -> bool:
        return name in self.attrs.get("class", "").split()


@dataclass(slots=True)
class Tree:
    nodes: list[Node] = field(default_factory=list)
    roots: tuple[int, ...] = ()

    def __getitem__(self, index: int) -> Node:
        return self.nodes[index]

    def __len__(self) -> int:
        return len(self.nodes)

    def children(self, node: Node) -> list[Node]:
        return [self.nodes[i] for i in node.children or ()]

    def parent(self, node: Node) -> Node | None:
        return None if node.parent is None else self.nodes[node.parent]

    def siblings(self, node: Node) -> tuple[int, ...]:
        """Indices of ``node`` and its siblings, in document order."""
        if node.parent is None:
            return self.roots
        return self.nodes[node.parent].children or ()

    def text_content(self, node: Node) -> str:
        """Concatenated text of ``node`` and all of its descendants."""
        return "".join(n.text or "" for n in self.walk(node) if n.is_text)

    def walk(self, node: Node) -> Iterator[Node]:
        """Depth-first, document-order iteration starting at ``node``."""
        stack = [node.index]
        while stack:
            current = self.nodes[stack.pop()]
            yield current
            if current.children:
                stack.extend(reversed(current.children))

    @classmethod
    def from_html(cls, markup: str) -> Tree:
        """Parse an HTML document or fragment into a node arena."""
        soup = BeautifulSoup(markup, "html.parser")
        return cls.from_soup(soup)

    @classmethod
    def from_soup(cls, soup: BeautifulSoup | Tag) -> Tree:
        tree = cls()
        roots: list[int] = []
        # (bs4 element, parent index, sibling list being filled)
        pending: list[tuple[Tag | NavigableString, int | None, list[int]]] = [
            (child, None, roots) for child in reversed(soup.contents)
        ]
        child_lists: dict[int, list[int]] = {}

        while pending:
            element, parent, siblings = pending.pop()
            node = _make_node(len(tree.nodes), element, parent)
            if node is None:
                continue
            tree.nodes.append(node)
            siblings.append(node.index)
            if isinstance(element, Tag):
                own: list[int] = []
                child_lists[node.index] = own
                pending.extend((child, node.index, own) for child in reversed(element.contents))

        for index, kids in child_lists.items():
            tree.nodes[index].children = tuple(kids)
        tree.roots = tuple(roots)
        return tree


def _make_node(index: int, element: Tag | NavigableString, parent: int | None) -> Node | None:
    if isinstance(element, NavigableString):
        if isinstance(element, _SKIPPED_STRINGS):
            return None
        return Node(index=index, kind=NodeKind.TEXT, text=str(element), parent=parent)

    name = (element.name or "").lower()
    attrs = {key: _attr_value(value) for key, value in element.attrs.items()}
    level = _HEADING_LEVELS.get(name, 0)
    if level:
        kind = NodeKind.HEADING
    else:
        kind = _TAG_KINDS.get(name, NodeKind.OTHER)
    if kind is NodeKind.SPAN and "underline" in attrs.get("class", "").split():
        kind = NodeKind.UNDERLINE

    return Node(index=index, kind=kind, tag=name, attrs=attrs, children=(), parent=parent, level=level)


def _attr_value(value: str | list[str]) -> str:
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return str(value)
