"""Site building for Postpress.

Builds a site in three passes:

1. read and parse every document, dropping ``published: false`` ones,
2. collect the page variables of all documents into the ``site`` mapping
   (``site.posts``, ``site.tags``...),
3. render and write each document, then copy static files.

A document that fails in any pass is recorded with its error and left out; the
others still build. Only problems affecting every document, such as a missing
source directory or a broken layout, abort the build with BuildError.

Key functions:
- build_site: Build the whole site.
- load_site: Load the configuration, layouts and includes into a Renderer.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

from loguru import logger

from .config import SiteConfig, load_config
from .content import SourceLoader, matches_patterns
from .errors import BuildError, IOFailure, RenderError
from .frontmatter import DRAFTS_DIR, POSTS_DIR, Document, read_document
from .layouts import INCLUDES_DIR, LAYOUTS_DIR, load_includes, load_layouts
from .protocols import PageWriter
from .renderer import RenderedPage, Renderer
from .utils import build_index, ensure_clean_dir

# Source directories a destination may never be placed in.
RESERVED_DIRS = (POSTS_DIR, DRAFTS_DIR, LAYOUTS_DIR, INCLUDES_DIR)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class BuildResult:
    """Result of a site build.

    Attributes:
        pages: Pages rendered and written.
        failures: Per-document errors, in the order they occurred.
        destination: Directory the site was written to.
        static_files: Destination paths of copied static files.
    """

    pages: list[RenderedPage]
    failures: list[RenderError]
    destination: Path
    static_files: list[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class FileSystemWriter:
    """Writes rendered pages below a destination directory."""

    def __init__(self, destination: Path):
        self.destination = destination
        self._root = destination.resolve()

    def target_for(self, page: RenderedPage) -> Path:
        target = (self.destination / page.output_path).resolve()
        if target != self._root and self._root not in target.parents:
            raise IOFailure(page.source_path, f"Output path escapes destination: {page.output_path}")
        return target

    def write(self, page: RenderedPage) -> Path:
        target = self.target_for(page)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "w", encoding="utf-8") as f:
                f.write(page.html)
        except OSError as exc:
            raise IOFailure(page.source_path, f"Cannot write {target}: {exc}") from exc
        return target


def _run(func: Callable[[T], R], items: Iterable[T], jobs: int) -> list[R]:
    """Map func over items, on a thread pool when jobs > 1, keeping order."""
    items = list(items)
    if jobs <= 1 or len(items) <= 1:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=jobs) as executor:
        return list(executor.map(func, items))


def load_site(
    source: Path, overrides: dict[str, Any] | None = None
) -> tuple[SiteConfig, Renderer]:
    """Load configuration, layouts and includes, and build a Renderer.

    Raises:
        BuildError: If the source is missing or any of these fail to load.
    """
    if not source.is_dir():
        raise BuildError(source, "Source directory does not exist")
    config = load_config(source, overrides)
    renderer = Renderer(config, load_layouts(source), load_includes(source))
    return config, renderer


def site_context(config: SiteConfig, variables: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Build the ``site`` template mapping.

    ``site.posts`` is newest first; ``site.pages`` holds everything else in
    source order; ``site.tags`` and ``site.categories`` index the posts.
    """
    variables = list(variables)
    posts = sorted(
        (v for v in variables if v["is_post"]),
        key=lambda v: (v["date"], v["path"]),
        reverse=True,
    )
    site = config.site_variables()
    site.update(
        posts=posts,
        pages=[v for v in variables if not v["is_post"]],
        tags=build_index(posts, "tags"),
        categories=build_index(posts, "categories"),
    )
    return site


def _check_destination(config: SiteConfig) -> None:
    """Refuse destinations whose cleaning would delete source files.

    Outside the source tree anything goes except an ancestor of the source.
    Inside it, the destination must sit in an underscore directory that is
    not one of RESERVED_DIRS, or be covered by an ``exclude`` pattern.
    """
    source = config.source.resolve()
    destination = config.destination.resolve()
    if destination == source or destination in source.parents:
        raise BuildError(destination, "Destination would overwrite the source directory")
    if source not in destination.parents:
        return
    parts = destination.relative_to(source).parts
    if parts[0] in RESERVED_DIRS or parts[0].startswith("."):
        raise BuildError(destination, f"Destination is inside the source directory {parts[0]}")
    if not parts[0].startswith("_") and not matches_patterns(parts, config.exclude):
        raise BuildError(
            destination,
            "Destination inside the source must start with '_' or be listed in exclude",
        )


def build_site(
    source: Path,
    destination: Path | None = None,
    include_drafts: bool = False,
    jobs: int = 1,
    clean_output: bool = True,
) -> BuildResult:
    """Build the entire site.

    Args:
        source: Root of the source tree.
        destination: Optional output directory overriding the configuration.
        include_drafts: Whether to render ``_drafts``.
        jobs: Number of worker threads used to read and render documents.
        clean_output: Whether to empty the destination before building.

    Returns:
        BuildResult with written pages and per-document failures.

    Raises:
        BuildError: If the build cannot start.
    """
    overrides = None
    if destination is not None:
        overrides = {"destination": str(destination.absolute())}
    config, renderer = load_site(source, overrides)
    _check_destination(config)
    include_drafts = include_drafts or config.show_drafts

    sources = SourceLoader(config, renderer.converters).discover(include_drafts)
    logger.debug(
        "Found {} documents and {} static files in {}",
        len(sources.documents),
        len(sources.static_files),
        source,
    )

    failures: list[RenderError] = []

    def load(path: Path) -> tuple[Document, dict[str, Any]] | RenderError:
        try:
            document = config.apply_defaults(read_document(source, path))
            return document, renderer.page_variables(document)
        except RenderError as exc:
            return exc

    loaded: list[tuple[Document, dict[str, Any]]] = []
    for outcome in _run(load, sources.documents, jobs):
        if isinstance(outcome, RenderError):
            failures.append(outcome)
        elif outcome[0].published:
            loaded.append(outcome)
        else:
            logger.debug("Skipping unpublished {}", outcome[0].relative_path)

    site = site_context(config, (variables for _, variables in loaded))

    if clean_output:
        ensure_clean_dir(config.destination)
    else:
        config.destination.mkdir(parents=True, exist_ok=True)
    writer: PageWriter = FileSystemWriter(config.destination)

    def render(document: Document) -> RenderedPage | RenderError:
        try:
            return renderer.render(document, site)
        except RenderError as exc:
            return exc

    pages: list[RenderedPage] = []
    claimed: dict[str, RenderedPage] = {}
    for outcome in _run(render, (document for document, _ in loaded), jobs):
        if isinstance(outcome, RenderError):
            failures.append(outcome)
            continue
        key = outcome.output_path.as_posix()
        if key in claimed:
            logger.warning(
                "Conflict: {} and {} both write {}",
                claimed[key].source_path,
                outcome.source_path,
                key,
            )
        try:
            writer.write(outcome)
        except IOFailure as exc:
            failures.append(exc)
            continue
        claimed[key] = outcome
        pages.append(outcome)
        logger.debug("Rendered {} -> {}", outcome.source_path, key)

    static_files = _copy_static(config, sources.static_files, failures)

    for failure in failures:
        logger.error("{}: {}", failure.source_path, failure.message)
    logger.info("Built {} pages into {}", len(pages), config.destination)
    return BuildResult(pages, failures, config.destination, static_files)


def _copy_static(
    config: SiteConfig,
    paths: Iterable[Path],
    failures: list[RenderError],
) -> list[Path]:
    copied: list[Path] = []
    for path in paths:
        rel = path.relative_to(config.source)
        target = config.destination / rel
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, target)
        except OSError as exc:
            failures.append(IOFailure(rel, f"Cannot copy static file: {exc}"))
            continue
        copied.append(target)
    return copied
