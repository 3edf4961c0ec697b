"""Renderer package."""

from .asciidoc_renderer import AsciiDocRenderer
from .html_renderer import HTMLRenderer

__all__ = ["AsciiDocRenderer", "HTMLRenderer"]
