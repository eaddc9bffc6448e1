"""Site configuration for Postpress.

Configuration lives in ``_config.yml`` at the root of the source tree and is
merged over DEFAULT_CONFIG. Every value, including ones Postpress does not use
itself (``title``, ``url``, ``author``...), is exposed to templates as
``site.<key>``.

Front-matter defaults follow the Jekyll shape::

    defaults:
      - scope:
          path: ""
          type: posts
        values:
          layout: post
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import BuildError
from .frontmatter import Document

CONFIG_FILENAME = "_config.yml"

DEFAULT_CONFIG: dict[str, Any] = {
    "destination": "_site",
    "permalink": "date",
    "markdown_ext": "markdown,mkdown,mkdn,mkd,md",
    "exclude": ["Gemfile", "Gemfile.lock", "node_modules", "vendor"],
    "include": [],
    "defaults": [],
    "show_drafts": False,
}


def _string_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    return tuple(str(item) for item in value)


@dataclass(frozen=True)
class SiteConfig:
    """Immutable configuration for one build.

    Attributes:
        source: Root of the source tree.
        destination: Directory the site is written to.
        permalink: Permalink style or pattern for posts.
        markdown_ext: Extensions treated as Markdown.
        exclude: Glob patterns of source paths to skip.
        include: Glob patterns re-admitting otherwise hidden paths.
        defaults: Front-matter defaults as (scope, values) entries.
        show_drafts: Whether ``_drafts`` are rendered.
        values: The full merged configuration mapping.
    """

    source: Path
    destination: Path
    permalink: str = "date"
    markdown_ext: tuple[str, ...] = ("markdown", "mkdown", "mkdn", "mkd", "md")
    exclude: tuple[str, ...] = ()
    include: tuple[str, ...] = ()
    defaults: tuple[dict[str, Any], ...] = ()
    show_drafts: bool = False
    values: dict[str, Any] = dataclasses.field(default_factory=dict)

    @classmethod
    def from_mapping(cls, source: Path, mapping: dict[str, Any]) -> SiteConfig:
        """Build a SiteConfig from a merged configuration mapping."""
        destination = Path(mapping.get("destination") or DEFAULT_CONFIG["destination"])
        if not destination.is_absolute():
            destination = source / destination
        defaults = mapping.get("defaults") or []
        if not isinstance(defaults, list) or not all(isinstance(d, dict) for d in defaults):
            raise BuildError(source / CONFIG_FILENAME, "'defaults' must be a list of mappings")
        for index, entry in enumerate(defaults):
            for key in ("scope", "values"):
                if entry.get(key) is not None and not isinstance(entry[key], dict):
                    raise BuildError(
                        source / CONFIG_FILENAME,
                        f"'defaults' entry {index}: '{key}' must be a mapping",
                    )
        return cls(
            source=source,
            destination=destination,
            permalink=str(mapping.get("permalink") or "date"),
            markdown_ext=_string_tuple(mapping.get("markdown_ext")),
            exclude=_string_tuple(mapping.get("exclude")),
            include=_string_tuple(mapping.get("include")),
            defaults=tuple(defaults),
            show_drafts=bool(mapping.get("show_drafts")),
            values=dict(mapping),
        )

    def site_variables(self) -> dict[str, Any]:
        """Return a fresh copy of the values exposed as ``site``."""
        return dict(self.values)

    def apply_defaults(self, document: Document) -> Document:
        """Merge matching front-matter defaults beneath a document's own.

        Scopes are applied in order, so later entries override earlier ones;
        the document's own front matter always wins. Applying twice gives
        the same result as applying once.
        """
        merged: dict[str, Any] = {}
        for entry in self.defaults:
            if _scope_matches(entry.get("scope") or {}, document):
                merged.update(entry.get("values") or {})
        if not merged:
            return document
        merged.update(document.front_matter)
        return dataclasses.replace(document, front_matter=merged)


def _scope_matches(scope: dict[str, Any], document: Document) -> bool:
    path = str(scope.get("path") or "").strip("/")
    if path:
        relative = document.relative_path.as_posix()
        if relative != path and not relative.startswith(f"{path}/"):
            return False
    kind = scope.get("type")
    if kind:
        if document.is_post:
            actual = "posts"
        elif document.is_draft:
            actual = "drafts"
        else:
            actual = "pages"
        if kind != actual:
            return False
    return True


def load_config(source: Path, overrides: dict[str, Any] | None = None) -> SiteConfig:
    """Load site configuration from ``_config.yml``.

    Args:
        source: Root directory of the source tree.
        overrides: Values that take precedence over the file, e.g. from CLI flags.

    Returns:
        SiteConfig with defaults applied.

    Raises:
        BuildError: If the file is not valid YAML or not a mapping.
    """
    config_path = source / CONFIG_FILENAME
    config = DEFAULT_CONFIG.copy()
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise BuildError(config_path, f"Cannot load configuration: {exc}", exc) from exc
        if not isinstance(loaded, dict):
            raise BuildError(config_path, "Configuration must be a mapping")
        config.update(loaded)
    if overrides:
        config.update({k: v for k, v in overrides.items() if v is not None})
    return SiteConfig.from_mapping(source, config)
