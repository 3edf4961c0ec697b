from __future__ import annotations

import pytest

from docweave.errors import RenderError
from docweave.parser.base import (
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
from docweave.renderer.asciidoc_renderer import AsciiDocRenderer
from docweave.renderer.html_renderer import HTMLRenderer


def _sample() -> list[Transcript]:
    table = TableBody(
        colgroup=[Col(span="2", style="width: 50%")],
        body=[
            [Cell(type="header", colspan="2", content=[Paragraph([RichString("Head")])])],
            [
                Cell(type="data", content=[Paragraph([RichString("a|b")])]),
                Cell(type="data", content=[List(ordered=False, elements=[[RichString("item")]])]),
            ],
        ],
    )
    first = Transcript(
        title="Home",
        segments=[
            TextElement(element="title", text=[RichString("Guide")]),
            TextElement(element="h1", text=[RichString("Setup & run")]),
            Paragraph(
                [
                    RichString("Hello "),
                    RichString("bold", TextAttributes(strong=True)),
                    RichString(" "),
                    RichString("2", TextAttributes(script=Script.SUPER)),
                    RichString("\n"),
                    Code("x = 1"),
                ]
            ),
            Link("http://example.com", InlineImage("images/1.png", "logo")),
            List(ordered=True, elements=[[RichString("one")], List(ordered=False, elements=[[RichString("two")]])]),
            Code("print('<hi>')", "python"),
            Table(table),
        ],
    )
    second = Transcript(title="Other", segments=[TextElement(element="h1", text=[RichString("Setup & run")])])
    return [first, second]


def test_html_renderer_generates_toc_and_blocks() -> None:
    html = HTMLRenderer().render(_sample())

    assert "<title>Guide</title>" in html
    assert 'href="#setup-run"' in html
    assert 'href="#setup-run-2"' in html
    assert "<strong>bold</strong>" in html
    assert "<sup>2</sup>" in html
    assert "<br />" in html
    assert '<a href="http://example.com"><img src="images/1.png" alt="logo"' in html
    assert "<ol>" in html and '<li class="doc-nested"><ul>' in html
    assert 'data-lang="python"' in html
    assert "print(&#x27;&lt;hi&gt;&#x27;)" in html
    assert '<col span="2" style="width: 50%" />' in html
    assert '<th colspan="2">' in html
    assert "Setup &amp; run" in html


def test_html_renderer_title_override() -> None:
    html = HTMLRenderer().render(_sample(), title_override="Merged")
    assert "<title>Merged</title>" in html


def test_asciidoc_renderer() -> None:
    text = AsciiDocRenderer().render(_sample())

    assert text.startswith(":toc: macro\ntoc::[]\n")
    assert "= Guide" in text
    assert "== Setup & run" in text
    assert "Hello **bold** ^2^ +\n`+x = 1+`" in text
    assert "link:http://example.com[image:images/1.png[logo]]" in text
    assert ". one\n** two" in text
    assert "[source,python]\n----\nprint('<hi>')\n----" in text
    assert '[cols="1*"]' in text
    assert "2+h|Head" in text
    assert "|a\\|b" in text
    assert "a|\n* item\n" in text


@pytest.mark.parametrize("renderer", [HTMLRenderer(), AsciiDocRenderer()])
def test_renderers_reject_empty_input(renderer) -> None:
    with pytest.raises(RenderError):
        renderer.render([])
