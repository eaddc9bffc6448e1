"""Output path derivation for Postpress.

Posts are placed by a permalink pattern built from their date, categories and
slug; pages mirror their path in the source tree. A ``permalink`` in front
matter overrides either.

Key classes:
- PageLocation: URL and output path of a rendered page.

Key functions:
- derive_location: Compute where a document is published.
- document_date: Resolve a document's date.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath

from .errors import MalformedFrontMatter
from .frontmatter import DRAFTS_DIR, POSTS_DIR, Document
from .utils import as_list, parse_date, slugify, split_date_prefix

PERMALINK_STYLES = {
    "date": "/:categories/:year/:month/:day/:title:output_ext",
    "pretty": "/:categories/:year/:month/:day/:title/",
    "ordinal": "/:categories/:year/:y_day/:title:output_ext",
    "none": "/:categories/:title:output_ext",
}

PLACEHOLDER_RE = re.compile(r":([a-z_]+)")

DATE_PLACEHOLDERS = frozenset(
    {"year", "short_year", "month", "i_month", "day", "i_day", "y_day"}
)


@dataclass(frozen=True)
class PageLocation:
    """Where a rendered page is published.

    Attributes:
        url: Site-relative URL, always starting with ``/``.
        output_path: Path of the HTML file relative to the destination.
    """

    url: str
    output_path: PurePosixPath


def document_date(document: Document) -> datetime | None:
    """Resolve a document's date.

    Front matter ``date`` wins, then a YYYY-MM-DD filename prefix, then, for
    drafts only, the file's modification time.

    Raises:
        MalformedFrontMatter: If the front matter date cannot be parsed.
    """
    value = document.front_matter.get("date")
    if value:
        try:
            return parse_date(value)
        except ValueError as exc:
            raise MalformedFrontMatter(document.relative_path, str(exc)) from exc
    date, _ = split_date_prefix(document.relative_path.stem)
    if date is not None:
        return date
    if document.is_draft:
        return document.modified
    return None


def document_slug(document: Document) -> str:
    """Slug for a document, from front matter ``slug`` or the filename."""
    value = document.front_matter.get("slug")
    if value:
        return slugify(str(value))
    _, name = split_date_prefix(document.relative_path.stem)
    return slugify(name) or "index"


def document_categories(document: Document) -> list[str]:
    """Categories of a document.

    For posts, directories above ``_posts`` come first, followed by the front
    matter ``category`` and ``categories`` values. Duplicates are dropped.
    """
    categories: list[str] = []
    if document.is_post or document.is_draft:
        for part in document.relative_path.parts[:-1]:
            if part in (POSTS_DIR, DRAFTS_DIR):
                break
            categories.append(part)
    categories.extend(as_list(document.front_matter.get("category")))
    categories.extend(as_list(document.front_matter.get("categories")))
    seen: list[str] = []
    for category in categories:
        if category not in seen:
            seen.append(category)
    return seen


def _expand(pattern: str, values: dict[str, str]) -> str:
    def repl(match: re.Match) -> str:
        key = match.group(1)
        return values.get(key, match.group(0))

    expanded = PLACEHOLDER_RE.sub(repl, pattern)
    expanded = re.sub(r"/+", "/", expanded)
    return expanded if expanded.startswith("/") else f"/{expanded}"


def _placeholders(document: Document, output_suffix: str) -> dict[str, str]:
    values = {
        "title": document_slug(document),
        "slug": document_slug(document),
        "categories": "/".join(slugify(c) for c in document_categories(document)),
        "output_ext": output_suffix,
    }
    date = document_date(document)
    if date is not None:
        values.update(
            year=f"{date.year:04d}",
            short_year=f"{date.year % 100:02d}",
            month=f"{date.month:02d}",
            i_month=str(date.month),
            day=f"{date.day:02d}",
            i_day=str(date.day),
            y_day=f"{date.timetuple().tm_yday:03d}",
        )
    return values


def _location_from_url(url: str, output_suffix: str) -> PageLocation:
    if url.endswith("/"):
        return PageLocation(url, PurePosixPath(url.strip("/")) / "index.html")
    if not PurePosixPath(url).suffix:
        url += output_suffix
    return PageLocation(url, PurePosixPath(url.lstrip("/")))


def _check_date(pattern: str, values: dict[str, str], document: Document) -> None:
    """Refuse a pattern that needs a date when the document has none."""
    if "year" in values:
        return
    needed = sorted(set(PLACEHOLDER_RE.findall(pattern)) & DATE_PLACEHOLDERS)
    if needed:
        raise MalformedFrontMatter(
            document.relative_path,
            f"Permalink uses :{needed[0]} but the document has no date",
        )


def derive_location(document: Document, permalink: str, output_suffix: str) -> PageLocation:
    """Compute the URL and output path of a document.

    Args:
        document: The document being published.
        permalink: Site permalink style (``date``, ``pretty``, ``ordinal``,
            ``none``) or a custom pattern.
        output_suffix: Suffix of the rendered file, e.g. ``.html``.

    Returns:
        PageLocation for the document. A permalink whose last segment has no
        suffix gets ``output_suffix`` appended.

    Raises:
        MalformedFrontMatter: If the date is unparseable, or the permalink
            uses date placeholders and the document has no date.
    """
    pattern = PERMALINK_STYLES.get(permalink, permalink)
    values = _placeholders(document, output_suffix)

    explicit = document.front_matter.get("permalink")
    if explicit:
        _check_date(str(explicit), values, document)
        return _location_from_url(_expand(str(explicit), values), output_suffix)

    if document.is_post or document.is_draft:
        _check_date(pattern, values, document)
        return _location_from_url(_expand(pattern, values), output_suffix)

    relative = document.relative_path.with_suffix(output_suffix)
    if relative.name == "index.html":
        parent = relative.parent.as_posix()
        url = "/" if parent == "." else f"/{parent}/"
        return PageLocation(url, relative)
    if output_suffix == ".html" and pattern.endswith("/"):
        return _location_from_url(f"/{relative.with_suffix('').as_posix()}/", output_suffix)
    return PageLocation(f"/{relative.as_posix()}", relative)
