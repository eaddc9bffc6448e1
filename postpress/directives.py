"""Template directives available to documents and layouts.

Adds the Jekyll ``highlight`` block tag to Jinja2::

    {% highlight javascript linenos %}
    var x = 1;
    {% endhighlight %}

Inside a Markdown body the block becomes a fenced code block, so the Markdown
step highlights it together with ordinary fences and the highlighted HTML never
has to survive Markdown parsing. Everywhere else it emits Pygments HTML
directly. The mode is chosen per environment through the
``highlight_fenced`` attribute.
"""

from __future__ import annotations

import re

from jinja2 import nodes
from jinja2.ext import Extension
from markupsafe import Markup

from .markup import highlight_code, plain_code_block

# Token types that may glue parts of a lexer name together, as in
# ``objective-c``, ``c++`` or ``html+django``.
_JOINING_TOKENS = {"sub", "add", "dot"}

_BACKTICK_RUN_RE = re.compile(r"`+")


def fence_code(code: str, info: str) -> str:
    """Wrap code in a Markdown fence longer than any backtick run inside it."""
    longest = max((len(run) for run in _BACKTICK_RUN_RE.findall(code)), default=0)
    fence = "`" * max(3, longest + 1)
    return f"\n{fence}{info}\n{code}\n{fence}\n"


class HighlightExtension(Extension):
    """Jinja2 extension implementing ``{% highlight lang [options] %}``."""

    tags = {"highlight"}

    def __init__(self, environment):
        super().__init__(environment)
        environment.extend(highlight_fenced=False)

    def parse(self, parser):
        lineno = next(parser.stream).lineno
        language = parser.stream.expect("name").value
        while parser.stream.current.type in _JOINING_TOKENS:
            language += next(parser.stream).value
            if parser.stream.current.type == "name" and parser.stream.current.value != "linenos":
                language += next(parser.stream).value

        options: list[str] = []
        while parser.stream.current.type != "block_end":
            token = next(parser.stream)
            if token.type == "name":
                options.append(token.value)

        body = parser.parse_statements(("name:endhighlight",), drop_needle=True)
        args = [nodes.Const(language), nodes.Const(" ".join(options))]
        return nodes.CallBlock(
            self.call_method("_render_block", args), [], [], body
        ).set_lineno(lineno)

    def _render_block(self, language: str, options: str, caller) -> str:
        code = str(caller()).strip("\n")
        if self.environment.highlight_fenced:
            info = f"{language} {options}".rstrip()
            return Markup(fence_code(code, info))
        highlighted = highlight_code(code, language, options.split())
        if highlighted is None:
            highlighted = plain_code_block(code, language)
        return Markup(highlighted)
