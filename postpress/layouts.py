"""Layout registry and include fragments for Postpress.

Layouts live in ``_layouts/`` and are named by their path without suffix
(``_layouts/post.html`` is ``post``). A layout may carry front matter naming a
parent ``layout``, which wraps its output in turn. Includes live in
``_includes/`` and are referenced by their relative path
(``{% include "footer.html" %}``).

Both are read once before rendering starts and are never changed afterwards,
so any number of render calls may share them.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from loguru import logger

from .errors import BuildError, RenderError, UnknownLayout
from .frontmatter import parse_document

LAYOUTS_DIR = "_layouts"
INCLUDES_DIR = "_includes"


@dataclass(frozen=True)
class Layout:
    """A named HTML skeleton.

    Attributes:
        name: Name documents refer to the layout by.
        template_name: Key of the template in the Jinja2 loader.
        source: Template text, without its front matter.
        front_matter: The layout's own front matter.
    """

    name: str
    template_name: str
    source: str
    front_matter: dict[str, Any] = field(default_factory=dict)

    @property
    def parent(self) -> str | None:
        value = self.front_matter.get("layout")
        if value is None or str(value).strip().lower() in ("", "null", "none"):
            return None
        return str(value).strip()


class LayoutRegistry(Mapping[str, Layout]):
    """Read-only mapping of layout name to Layout."""

    def __init__(self, layouts: Iterable[Layout] = ()):
        self._layouts: dict[str, Layout] = {}
        for layout in layouts:
            if layout.name in self._layouts:
                logger.warning(
                    "Layout {!r} defined twice; keeping {}",
                    layout.name,
                    self._layouts[layout.name].template_name,
                )
                continue
            self._layouts[layout.name] = layout

    def __getitem__(self, key: str) -> Layout:
        return self._layouts[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._layouts)

    def __len__(self) -> int:
        return len(self._layouts)

    def resolve(self, name: str, source_path: PurePosixPath | str = "") -> Layout:
        """Look up a layout by name.

        Args:
            name: Layout name.
            source_path: Document being rendered, for error reporting.

        Raises:
            UnknownLayout: If no layout has that name.
        """
        try:
            return self._layouts[name]
        except KeyError:
            raise UnknownLayout(source_path, name) from None

    def templates(self) -> dict[str, str]:
        """Return template sources keyed by loader name."""
        return {layout.template_name: layout.source for layout in self._layouts.values()}

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"LayoutRegistry({sorted(self._layouts)})"


def _iter_files(root: Path) -> list[Path]:
    if not root.is_dir():
        return []
    return sorted(p for p in root.rglob("*") if p.is_file() and not p.name.startswith("."))


def load_layouts(site_dir: Path) -> LayoutRegistry:
    """Read every layout under ``_layouts``.

    Raises:
        BuildError: If a layout cannot be read or has malformed front matter.
    """
    root = site_dir / LAYOUTS_DIR
    layouts: list[Layout] = []
    for path in _iter_files(root):
        relative = PurePosixPath(path.relative_to(site_dir).as_posix())
        try:
            document = parse_document(path.read_text(encoding="utf-8"), relative)
        except (OSError, UnicodeDecodeError) as exc:
            raise BuildError(path, f"Cannot read layout: {exc}", exc) from exc
        except RenderError as exc:
            raise BuildError(path, exc.message, exc) from exc
        name = relative.relative_to(LAYOUTS_DIR).with_suffix("").as_posix()
        layouts.append(Layout(name, relative.as_posix(), document.body, document.front_matter))
    return LayoutRegistry(layouts)


def load_includes(site_dir: Path) -> dict[str, str]:
    """Read every fragment under ``_includes`` keyed by its relative path.

    Raises:
        BuildError: If a fragment cannot be read.
    """
    root = site_dir / INCLUDES_DIR
    includes: dict[str, str] = {}
    for path in _iter_files(root):
        try:
            includes[path.relative_to(root).as_posix()] = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise BuildError(path, f"Cannot read include: {exc}", exc) from exc
    return includes
