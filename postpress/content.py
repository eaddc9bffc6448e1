"""Source discovery for Postpress.

Walks the source tree and sorts every file into one of three piles:

- documents, rendered into pages: Markdown files, posts, and any other
  text file that starts with a front-matter delimiter,
- static files, copied to the destination unchanged,
- everything else, skipped: paths starting with ``_`` or ``.`` (apart from
  ``_posts`` and, when drafts are on, ``_drafts``), ``exclude`` matches, the
  configuration file and the destination directory itself.

``include`` patterns re-admit hidden paths such as ``.htaccess``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path

from loguru import logger

from .config import CONFIG_FILENAME, SiteConfig
from .frontmatter import DRAFTS_DIR, POSTS_DIR, has_front_matter
from .markup import ConverterRegistry
from .utils import is_hidden, split_date_prefix


@dataclass
class SiteSources:
    """Files found under the source tree.

    Attributes:
        documents: Paths of documents to render.
        static_files: Paths of files to copy as they are.
    """

    documents: list[Path] = field(default_factory=list)
    static_files: list[Path] = field(default_factory=list)


def matches_patterns(parts: tuple[str, ...], patterns: tuple[str, ...]) -> bool:
    """Check whether a path or any of its leading directories match a glob."""
    for index in range(1, len(parts) + 1):
        prefix = "/".join(parts[:index])
        if any(fnmatch(prefix, pattern.strip("/")) for pattern in patterns):
            return True
    return False


class SourceLoader:
    """Finds documents and static files in a source tree.

    Attributes:
        config: Site configuration.
        converters: Registry deciding which extensions are markup.
    """

    def __init__(self, config: SiteConfig, converters: ConverterRegistry | None = None):
        self.config = config
        self.converters = converters or ConverterRegistry(config.markdown_ext)

    def discover(self, include_drafts: bool = False) -> SiteSources:
        """Sort the source tree into documents and static files.

        Args:
            include_drafts: Whether files under ``_drafts`` are documents.

        Returns:
            SiteSources with both lists in path order.
        """
        source = self.config.source
        destination = self.config.destination.resolve()
        sources = SiteSources()
        for path in sorted(source.rglob("*")):
            if path.is_dir():
                continue
            resolved = path.resolve()
            if resolved == destination or destination in resolved.parents:
                continue
            rel = path.relative_to(source)
            if rel.as_posix() == CONFIG_FILENAME:
                continue
            if not self._is_visible(rel, include_drafts):
                continue
            if not (self.converters.is_markup(rel) or has_front_matter(path)):
                sources.static_files.append(path)
            elif not self._is_post_dir(rel) or self._is_valid_post(rel):
                sources.documents.append(path)
        return sources

    def _is_post_dir(self, rel: Path) -> bool:
        return any(part in (POSTS_DIR, DRAFTS_DIR) for part in rel.parts[:-1])

    def _is_valid_post(self, rel: Path) -> bool:
        if POSTS_DIR not in rel.parts[:-1]:
            return True
        date, _ = split_date_prefix(rel.stem)
        if date is None:
            logger.warning("Skipping {}: post filenames must start with YYYY-MM-DD-", rel)
            return False
        return True

    def _is_visible(self, rel: Path, include_drafts: bool) -> bool:
        parts = rel.parts
        if matches_patterns(parts, self.config.include):
            return True
        if matches_patterns(parts, self.config.exclude):
            return False
        allowed = {POSTS_DIR}
        if include_drafts:
            allowed.add(DRAFTS_DIR)
        return not is_hidden(part for part in parts if part not in allowed)
