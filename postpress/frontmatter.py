"""Front-matter parsing for Postpress.

A document optionally starts with a YAML block fenced by ``---`` lines::

    ---
    layout: post
    title: Prototype chains
    tags: [javascript, oop]
    ---
    Body text...

Scalars are loaded with PyYAML's base loader, so every value stays the literal
string written in the block (``2013-05-12`` is not turned into a date and
``true`` is not turned into a bool). Lists and nested mappings keep their shape.

Key classes:
- Document: An immutable source document.

Key functions:
- parse_document: Split source text into a Document.
- read_document: Read and parse a document from disk.
"""

from __future__ import annotations

import codecs
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Any

import yaml

from .errors import IOFailure, MalformedFrontMatter

DELIMITER = "---"
CLOSING_DELIMITERS = (DELIMITER, "...")

POSTS_DIR = "_posts"
DRAFTS_DIR = "_drafts"


@dataclass(frozen=True)
class Document:
    """A source content unit, read once per build.

    Attributes:
        relative_path: Path of the source relative to the site root.
        front_matter: Read-only view of the mapping parsed from the leading
            YAML block.
        body: Raw body text following the block.
        modified: Modification time of the source file, when known.
    """

    relative_path: PurePosixPath
    front_matter: Mapping[str, Any] = field(default_factory=dict)
    body: str = ""
    modified: datetime | None = None

    def __post_init__(self):
        object.__setattr__(self, "front_matter", MappingProxyType(dict(self.front_matter)))

    @property
    def layout(self) -> str | None:
        """Declared layout name, or None when no layout applies."""
        value = self.front_matter.get("layout")
        if value is None:
            return None
        name = str(value).strip()
        if name.lower() in ("", "null", "none", "~"):
            return None
        return name

    @property
    def is_post(self) -> bool:
        return POSTS_DIR in self.relative_path.parts[:-1]

    @property
    def is_draft(self) -> bool:
        return DRAFTS_DIR in self.relative_path.parts[:-1]

    @property
    def published(self) -> bool:
        """False only when front matter says ``published: false``."""
        return str(self.front_matter.get("published", "true")).lower() != "false"


def parse_document(
    source_text: str,
    relative_path: PurePosixPath | str = "",
    modified: datetime | None = None,
) -> Document:
    """Split source text into front matter and body.

    Args:
        source_text: Full text of the source file.
        relative_path: Path of the source relative to the site root.
        modified: Optional modification time to carry on the document.

    Returns:
        Document with parsed front matter. Text that does not start with the
        delimiter line yields empty front matter and the text verbatim as body.

    Raises:
        MalformedFrontMatter: If the opening delimiter is never closed, or the
            block is not a YAML mapping.
    """
    path = PurePosixPath(relative_path)
    source_text = source_text.removeprefix("\ufeff")
    lines = source_text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != DELIMITER:
        return Document(path, {}, source_text, modified)

    for index in range(1, len(lines)):
        if lines[index].rstrip() in CLOSING_DELIMITERS:
            break
    else:
        raise MalformedFrontMatter(path, "Front matter block is never closed")

    block = "".join(lines[1:index])
    body = "".join(lines[index + 1 :])
    try:
        data = yaml.load(block, Loader=yaml.BaseLoader)
    except yaml.YAMLError as exc:
        raise MalformedFrontMatter(path, f"Invalid YAML in front matter: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MalformedFrontMatter(path, "Front matter must be a mapping of keys to values")
    return Document(path, data, body, modified)


def read_document(site_dir: Path, path: Path) -> Document:
    """Read a source file and parse it.

    Args:
        site_dir: Site root the relative path is computed against.
        path: Absolute path to the source file.

    Returns:
        Parsed Document.

    Raises:
        IOFailure: If the file cannot be read or is not UTF-8 text.
        MalformedFrontMatter: If its front matter is malformed.
    """
    relative = PurePosixPath(path.relative_to(site_dir).as_posix())
    try:
        text = path.read_text(encoding="utf-8")
        modified = datetime.fromtimestamp(path.stat().st_mtime)
    except (OSError, UnicodeDecodeError) as exc:
        raise IOFailure(relative, f"Cannot read source: {exc}") from exc
    return parse_document(text, relative, modified)


def has_front_matter(path: Path) -> bool:
    """Check whether a file starts with the front-matter delimiter line."""
    try:
        with open(path, "rb") as f:
            first_line = f.readline(64)
    except OSError:
        return False
    first_line = first_line.removeprefix(codecs.BOM_UTF8)
    return first_line.endswith(b"\n") and first_line.rstrip() == DELIMITER.encode()
