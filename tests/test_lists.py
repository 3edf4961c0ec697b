"""Tests for list reconstruction."""

from __future__ import annotations

from docweave.parser.base import Code, Link, List, Paragraph, RichString, TextAttributes
from docweave.parser.extract import Extractor
from docweave.parser.tree import Tree


def _list(markup: str) -> List:
    [segment] = Extractor(Tree.from_html(markup)).extract()
    assert isinstance(segment, List)
    return segment


def test_ordered_list_nested_in_unordered() -> None:
    outer = _list("<ul><li><ol><li>one</li><li>two</li></ol></li></ul>")
    assert outer == List(
        ordered=False,
        elements=[List(ordered=True, elements=[[RichString("one")], [RichString("two")]])],
    )


def test_item_shapes_are_appended_in_order() -> None:
    outer = _list(
        "<ul>\n"
        '<li>text <a href="u">link</a><code>c</code><p>para</p></li>\n'
        "<li><em>styled</em></li>\n"
        "</ul>"
    )
    assert outer.elements == [
        [RichString("text ")],
        Link("u", Paragraph([RichString("link")])),
        Code("c"),
        Paragraph([RichString("para")]),
        [RichString("styled", TextAttributes(cursive=True))],
    ]


def test_div_wrapper_promotes_nested_lists() -> None:
    outer = _list("<ul><li><div><ol><li>a</li></ol><p>ignored</p><ul><li>b</li></ul></div></li></ul>")
    assert outer.elements == [
        List(ordered=True, elements=[[RichString("a")]]),
        List(ordered=False, elements=[[RichString("b")]]),
    ]


def test_non_item_children_are_ignored() -> None:
    outer = _list("<ul><p>stray</p><li>kept</li></ul>")
    assert outer.elements == [[RichString("kept")]]


def test_whitespace_items_add_nothing() -> None:
    outer = _list("<ul><li>\n</li><li>  </li></ul>")
    assert outer.elements == []


def test_deeply_nested_lists() -> None:
    outer = _list("<ul><li>a<ul><li>b<ol><li>c</li></ol></li></ul></li></ul>")
    assert outer.elements[0] == [RichString("a")]
    inner = outer.elements[1]
    assert isinstance(inner, List) and not inner.ordered
    assert inner.elements[1] == List(ordered=True, elements=[[RichString("c")]])
