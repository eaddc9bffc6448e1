"""Utility functions for Postpress.

String and path helpers shared by the renderer and the builder.

Key functions:
    slugify: Convert filenames and titles to URL slugs.
    titleize: Convert filenames to human-readable titles.
    split_date_prefix: Split a YYYY-MM-DD- prefix off a filename stem.
    parse_date: Parse the date formats accepted in front matter.
    as_list: Normalize a front-matter value into a list of strings.
    build_index: Group page variables by tag or category.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import re
import shutil
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

DATE_PREFIX_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})-(.+)$")

# Formats accepted for a front-matter ``date`` value, most specific first.
DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M %z",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
)


def slugify(name: str) -> str:
    """Convert a filename stem or title to a URL-friendly slug.

    Args:
        name: Text to convert.

    Returns:
        Lowercase slug made of letters, digits and hyphens.

    Examples:
        >>> slugify("JavaScript Idioms")
        'javascript-idioms'
    """
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", name)
    return cleaned.strip("-").lower()


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Removes date prefixes (YYYY-MM-DD), replaces hyphens and underscores
    with spaces, and capitalizes each word.

    Examples:
        >>> titleize("2013-05-12-prototype-chains.md")
        'Prototype Chains'
    """
    base = Path(filename).stem
    _, rest = split_date_prefix(base)
    words = re.split(r"[\s\-_]+", rest)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def split_date_prefix(stem: str) -> tuple[datetime | None, str]:
    """Split a YYYY-MM-DD- prefix from a filename stem.

    Args:
        stem: Filename without extension.

    Returns:
        Tuple of (date or None, remaining name). An out-of-range date such as
        2013-13-40 counts as no date, and the stem is returned whole.
    """
    match = DATE_PREFIX_RE.match(stem)
    if not match:
        return None, stem
    year, month, day, rest = match.groups()
    try:
        return datetime(int(year), int(month), int(day)), rest
    except ValueError:
        return None, stem


def parse_date(value: str) -> datetime:
    """Parse a front-matter date string.

    Args:
        value: Date text, e.g. ``2013-05-12`` or ``2013-05-12 10:30:00 -0700``.

    Returns:
        Parsed naive datetime. A UTC offset, when given, is dropped so the
        wall-clock time as written is kept and all dates stay comparable.

    Raises:
        ValueError: If no accepted format matches.
    """
    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=None)
        except ValueError:
            continue
    raise ValueError(f"Unrecognized date: {text!r}")


def as_list(value: Any) -> list[str]:
    """Normalize a front-matter value into a list of strings.

    Jekyll accepts tags and categories either as a YAML list or as a single
    space-separated string; both forms end up as a list here.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if str(item).strip()]
    return str(value).split()


def build_index(pages: Iterable[dict[str, Any]], key: str) -> dict[str, list]:
    """Build an index mapping each value of ``key`` to the pages carrying it.

    Args:
        pages: Iterable of page variable mappings.
        key: Name of a list-valued field, e.g. ``"tags"``.

    Returns:
        Dictionary mapping values to lists of pages, in input order.
    """
    index: dict[str, list] = {}
    for page in pages:
        for value in page.get(key, []):
            index.setdefault(value, []).append(page)
    return index


def is_hidden(parts: Iterable[str]) -> bool:
    """Check whether any path component starts with ``_`` or ``.``."""
    return any(part.startswith(("_", ".")) for part in parts)


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)
