"""Error types raised while rendering a site.

Per-document errors derive from RenderError and carry the offending source
path. The builder records them and keeps going with the remaining documents.
BuildError is reserved for problems that make the whole build impossible,
such as a missing source directory or a broken layout file.
"""

from __future__ import annotations

from pathlib import Path


class RenderError(Exception):
    """Error rendering a single document.

    Attributes:
        source_path: Path to the document that failed.
        message: Human-readable error message.
    """

    def __init__(self, source_path: Path | str, message: str):
        self.source_path = Path(source_path)
        self.message = message
        super().__init__(f"{self.source_path}: {message}")


class MalformedFrontMatter(RenderError):
    """The front-matter block is unterminated, not YAML, or not a mapping."""


class UnknownLayout(RenderError):
    """A document or layout names a layout missing from the registry.

    Attributes:
        layout: The name that failed to resolve.
    """

    def __init__(self, source_path: Path | str, layout: str):
        self.layout = layout
        super().__init__(source_path, f"Unknown layout: {layout!r}")


class IOFailure(RenderError):
    """A source could not be read or a destination could not be written."""


class TemplateFailure(RenderError):
    """A template directive in a body or layout failed to render."""


class BuildError(Exception):
    """Error that aborts the whole build.

    Attributes:
        source_path: Path to the file or directory at fault.
        message: Human-readable error message.
        original_error: The original exception, when one was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")
