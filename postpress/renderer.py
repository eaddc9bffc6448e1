"""Document rendering for Postpress.

Turns one Document into one RenderedPage:

1. merge front-matter defaults from the configuration,
2. render template directives in the body (``{{ page.title }}``,
   ``{% highlight %}``, ``{% include %}``),
3. convert the body to HTML with the converter for its file type,
4. wrap the result in its layout, then in that layout's parent, and so on,
5. compute the URL and output path.

Rendering reads nothing from disk and writes nothing; the layouts, includes and
site variables it needs are handed to it up front.

Key classes:
- RenderedPage: The finished page and where it goes.
- Renderer: Renders documents against a fixed set of layouts and includes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any

from jinja2 import DictLoader, Environment, TemplateError, TemplateSyntaxError, select_autoescape
from markupsafe import Markup

from .config import SiteConfig
from .directives import HighlightExtension
from .errors import TemplateFailure
from .frontmatter import Document
from .layouts import Layout, LayoutRegistry
from .markup import ConverterRegistry
from .permalinks import derive_location, document_categories, document_date, document_slug
from .utils import as_list, titleize


@dataclass(frozen=True)
class RenderedPage:
    """A rendered document.

    Attributes:
        source_path: Path of the document relative to the site root.
        url: Site-relative URL of the page.
        output_path: Path relative to the destination directory.
        html: The final page text.
    """

    source_path: PurePosixPath
    url: str
    output_path: PurePosixPath
    html: str


def _describe_template_error(exc: TemplateError) -> str:
    if isinstance(exc, TemplateSyntaxError):
        return f"Template syntax error on line {exc.lineno}: {exc.message}"
    return f"{type(exc).__name__}: {exc}"


class Renderer:
    """Renders documents with Jinja2 layouts.

    Attributes:
        config: Site configuration.
        layouts: Registry of layout templates.
        includes: Include fragments keyed by name.
        converters: Registry of markup converters.
        env: Jinja2 environment for layouts, includes and HTML bodies.
    """

    def __init__(
        self,
        config: SiteConfig,
        layouts: LayoutRegistry,
        includes: Mapping[str, str] | None = None,
        converters: ConverterRegistry | None = None,
    ):
        self.config = config
        self.layouts = layouts
        self.includes = dict(includes or {})
        self.converters = converters or ConverterRegistry(config.markdown_ext)
        self.env = Environment(
            loader=DictLoader({**self.includes, **layouts.templates()}),
            autoescape=select_autoescape(["html", "xml"], default_for_string=False),
            extensions=[HighlightExtension],
            keep_trailing_newline=True,
        )
        # Markdown bodies get fenced code from {% highlight %} so the Markdown
        # step does the highlighting.
        self._markdown_env = self.env.overlay()
        self._markdown_env.highlight_fenced = True

    def resolve_layout(self, name: str, source_path: PurePosixPath | str = "") -> Layout:
        """Look up a layout by name.

        Raises:
            UnknownLayout: If the registry has no such layout.
        """
        return self.layouts.resolve(name, source_path)

    def page_variables(self, document: Document) -> dict[str, Any]:
        """Build the ``page`` mapping templates see for a document.

        Front-matter keys are passed through; ``title``, ``url``, ``date``,
        ``tags``, ``categories``, ``slug`` and ``path`` are always present.

        Raises:
            MalformedFrontMatter: If the front matter date cannot be parsed.
        """
        document = self.config.apply_defaults(document)
        converter = self.converters.get_converter(document.relative_path)
        location = derive_location(
            document, self.config.permalink, converter.output_suffix(document.relative_path)
        )
        variables = dict(document.front_matter)
        variables.update(
            title=document.front_matter.get("title") or titleize(document.relative_path.name),
            url=location.url,
            date=document_date(document),
            tags=as_list(document.front_matter.get("tags")),
            categories=document_categories(document),
            slug=document_slug(document),
            path=document.relative_path.as_posix(),
            is_post=document.is_post or document.is_draft,
        )
        return variables

    def render(self, document: Document, site: Mapping[str, Any] | None = None) -> RenderedPage:
        """Render a document into a page.

        Args:
            document: Parsed source document.
            site: Site-wide template variables; defaults to the configuration values.

        Returns:
            RenderedPage with final HTML and output location.

        Raises:
            UnknownLayout: If the document or one of its layouts names a missing layout.
            TemplateFailure: If a directive or layout fails to render.
            MalformedFrontMatter: If the front matter date cannot be parsed.
        """
        document = self.config.apply_defaults(document)
        converter = self.converters.get_converter(document.relative_path)
        suffix = converter.output_suffix(document.relative_path)
        location = derive_location(document, self.config.permalink, suffix)
        context = {
            "page": self.page_variables(document),
            "site": site if site is not None else self.config.site_variables(),
        }

        env = self._markdown_env if converter.source_type == "markdown" else self.env
        try:
            body = env.from_string(document.body).render(context)
        except TemplateError as exc:
            raise TemplateFailure(document.relative_path, _describe_template_error(exc)) from exc

        content = converter.convert(body)
        html = self._apply_layouts(document, content, context)
        return RenderedPage(document.relative_path, location.url, location.output_path, html)

    def _apply_layouts(self, document: Document, content: str, context: dict[str, Any]) -> str:
        seen: list[str] = []
        name = document.layout
        while name is not None:
            if name in seen:
                chain = " -> ".join([*seen, name])
                raise TemplateFailure(document.relative_path, f"Layout cycle: {chain}")
            seen.append(name)
            layout = self.resolve_layout(name, document.relative_path)
            try:
                template = self.env.get_template(layout.template_name)
                content = template.render(
                    context, content=Markup(content), layout=layout.front_matter
                )
            except TemplateError as exc:
                message = f"In layout {name!r}: {_describe_template_error(exc)}"
                raise TemplateFailure(document.relative_path, message) from exc
            name = layout.parent
        return content
