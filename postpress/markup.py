"""Markup converters for Postpress.

This module turns document bodies into HTML fragments. Markdown goes through
mistune with a renderer that adds heading anchors and hands fenced code blocks
to Pygments; HTML and other text documents pass through unchanged.

Key classes:
- MarkdownConverter: Converts Markdown to HTML with syntax highlighting.
- PassthroughConverter: Leaves HTML (and any other text) untouched.
- ConverterRegistry: Picks the converter for a document by file extension.

Key functions:
- convert_markup_to_html: Convert a Markdown body to an HTML fragment.
- highlight_code: Highlight a code snippet with Pygments.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import PurePath

import mistune
from markupsafe import escape
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .protocols import MarkupConverter

DEFAULT_MARKDOWN_EXT = ("markdown", "mkdown", "mkdn", "mkd", "md")

MARKDOWN_PLUGINS = ["strikethrough", "footnotes", "table", "url"]


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from rendered heading text.

    Args:
        text: The heading's inline HTML.

    Returns:
        Slug suitable for anchor links.
    """
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


def highlight_code(code: str, language: str, options: Iterable[str] = ()) -> str | None:
    """Highlight a code snippet with Pygments.

    Args:
        code: Source code to highlight.
        language: Pygments lexer alias, e.g. ``javascript``.
        options: Extra flags; ``linenos`` adds a line-number table.

    Returns:
        HTML wrapped in ``<div class="highlight">``, or None when Pygments has
        no lexer for the language.
    """
    try:
        lexer = get_lexer_by_name(language, stripall=True)
    except ClassNotFound:
        return None
    linenos = "table" if "linenos" in options else False
    formatter = HtmlFormatter(cssclass="highlight", linenos=linenos)
    return highlight(code, lexer, formatter)


def plain_code_block(code: str, language: str | None = None) -> str:
    """Render code as escaped text inside ``<pre><code>``."""
    lang_class = f' class="language-{escape(language)}"' if language else ""
    return f"<pre><code{lang_class}>{escape(code)}</code></pre>\n"


class _HighlightRenderer(mistune.HTMLRenderer):
    """mistune renderer adding heading anchors and Pygments code blocks.

    Raw HTML in the Markdown source is kept as written, since posts freely
    mix the two.
    """

    def __init__(self):
        super().__init__(escape=False)
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id = _generate_heading_id(text)
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a fenced code block.

        The info string's first word is the language; any further words are
        options such as ``linenos``. Blocks without a language, or with one
        Pygments does not know, are emitted as plain preformatted text.
        """
        words = (info or "").split()
        if words:
            highlighted = highlight_code(code, words[0], words[1:])
            if highlighted is not None:
                return highlighted
            return plain_code_block(code, words[0])
        return plain_code_block(code)


def convert_markup_to_html(body: str) -> str:
    """Convert a Markdown body to an HTML fragment.

    A fresh parser is built per call, so conversions can run on several
    threads at once.
    """
    markdown = mistune.create_markdown(renderer=_HighlightRenderer(), plugins=MARKDOWN_PLUGINS)
    return markdown(body)


class MarkdownConverter:
    """Converts Markdown documents to HTML.

    Attributes:
        extensions: File extensions (without the dot) treated as Markdown.
    """

    source_type = "markdown"

    def __init__(self, extensions: Iterable[str] = DEFAULT_MARKDOWN_EXT):
        self.extensions = frozenset(ext.lower().lstrip(".") for ext in extensions)

    def can_convert(self, path: PurePath) -> bool:
        return path.suffix.lower().lstrip(".") in self.extensions

    def output_suffix(self, path: PurePath) -> str:
        return ".html"

    def convert(self, text: str) -> str:
        return convert_markup_to_html(text)


class PassthroughConverter:
    """Leaves HTML and other text documents untouched."""

    source_type = "html"

    def can_convert(self, path: PurePath) -> bool:
        return True

    def output_suffix(self, path: PurePath) -> str:
        return path.suffix

    def convert(self, text: str) -> str:
        return text


class ConverterRegistry:
    """Registry of markup converters, checked in order.

    The passthrough converter accepts everything, so it is always tried last
    and lookups never come back empty.
    """

    def __init__(self, markdown_ext: Iterable[str] = DEFAULT_MARKDOWN_EXT):
        self._converters: list[MarkupConverter] = [MarkdownConverter(markdown_ext)]
        self._fallback = PassthroughConverter()

    def get_converter(self, path: PurePath) -> MarkupConverter:
        """Get the converter for a document path."""
        for converter in self._converters:
            if converter.can_convert(path):
                return converter
        return self._fallback

    def is_markup(self, path: PurePath) -> bool:
        """Check whether a path is converted by something other than passthrough."""
        return self.get_converter(path) is not self._fallback
