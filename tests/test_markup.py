from pathlib import PurePosixPath

from jinja2 import Environment

from postpress.directives import HighlightExtension, fence_code
from postpress.markup import (
    ConverterRegistry,
    MarkdownConverter,
    PassthroughConverter,
    _generate_heading_id,
    convert_markup_to_html,
    highlight_code,
)
from postpress.protocols import MarkupConverter


def test_heading_converts_with_anchor():
    assert convert_markup_to_html("# Hello") == '<h1 id="hello">Hello</h1>\n'


def test_duplicate_headings_get_unique_ids():
    html = convert_markup_to_html("## Usage\n\n## Usage\n")
    assert '<h2 id="usage">' in html
    assert '<h2 id="usage-1">' in html


def test_heading_id_ignores_inline_markup():
    assert _generate_heading_id("The <em>new</em> keyword!") == "the-new-keyword"


def test_inline_markup_and_blockquotes():
    html = convert_markup_to_html(
        "Use *emphasis* and [links](http://example.com).\n\n> Quoted advice\n"
    )
    assert "<em>emphasis</em>" in html
    assert '<a href="http://example.com">links</a>' in html
    assert "<blockquote>" in html


def test_raw_html_passes_through():
    html = convert_markup_to_html('<div class="note">Keep me</div>\n')
    assert '<div class="note">Keep me</div>' in html


def test_tagged_fence_is_highlighted():
    html = convert_markup_to_html("```javascript\nvar x = 1;\n```\n")
    assert '<div class="highlight">' in html
    assert '<span class="kd">var</span>' in html
    assert '<span class="nx">x</span>' in html


def test_untagged_fence_is_plain():
    html = convert_markup_to_html("```\nvar x = 1;\n```\n")
    assert html == "<pre><code>var x = 1;\n</code></pre>\n"


def test_unknown_language_falls_back_to_plain():
    html = convert_markup_to_html("```notalanguage\na < b\n```\n")
    assert '<pre><code class="language-notalanguage">a &lt; b\n</code></pre>' in html


def test_highlight_code_linenos():
    assert highlight_code("x", "no-such-lexer") is None
    html = highlight_code("var x;\nvar y;\n", "js", ["linenos"])
    assert "linenos" in html


def test_converter_registry():
    registry = ConverterRegistry(["md", "markdown"])
    assert isinstance(registry.get_converter(PurePosixPath("a.md")), MarkdownConverter)
    assert isinstance(registry.get_converter(PurePosixPath("a.MARKDOWN")), MarkdownConverter)
    assert isinstance(registry.get_converter(PurePosixPath("a.html")), PassthroughConverter)
    assert registry.is_markup(PurePosixPath("a.md"))
    assert not registry.is_markup(PurePosixPath("feed.xml"))
    assert registry.get_converter(PurePosixPath("feed.xml")).output_suffix(PurePosixPath("feed.xml")) == ".xml"


def test_converters_satisfy_protocol():
    assert isinstance(MarkdownConverter(), MarkupConverter)
    assert isinstance(PassthroughConverter(), MarkupConverter)


def test_fence_code_outgrows_backticks_inside():
    fenced = fence_code("a ``` b", "text")
    assert "\n````text\n" in fenced
    assert fenced.rstrip().endswith("````")


def test_highlight_directive_modes():
    env = Environment(extensions=[HighlightExtension])
    source = "{% highlight javascript %}\nvar x = 1;\n{% endhighlight %}"

    html = env.from_string(source).render()
    assert '<span class="kd">var</span>' in html

    fenced_env = env.overlay()
    fenced_env.highlight_fenced = True
    fenced = fenced_env.from_string(source).render()
    assert "```javascript\nvar x = 1;\n```" in fenced


def test_highlight_directive_language_names_and_options():
    env = Environment(extensions=[HighlightExtension])
    env.highlight_fenced = True
    out = env.from_string("{% highlight objective-c linenos %}\nint x;\n{% endhighlight %}").render()
    assert "```objective-c linenos\n" in out
    out = env.from_string("{% highlight c++ %}\nint x;\n{% endhighlight %}").render()
    assert "```c++\n" in out


def test_highlight_directive_unknown_language_is_plain():
    env = Environment(extensions=[HighlightExtension])
    html = env.from_string("{% highlight nope %}a < b{% endhighlight %}").render()
    assert html == '<pre><code class="language-nope">a &lt; b</code></pre>\n'
