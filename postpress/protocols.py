"""Protocol definitions for Postpress.

The renderer depends on these interfaces rather than on mistune or the file
system directly, so conversion can be swapped and rendering tested in memory.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path, PurePath
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .renderer import RenderedPage


@runtime_checkable
class MarkupConverter(Protocol):
    """Protocol for converting a document body to an HTML fragment.

    Implementations handle one markup language each.
    """

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Return the source type identifier (e.g., 'markdown', 'html')."""
        ...

    @abstractmethod
    def can_convert(self, path: PurePath) -> bool:
        """Check if this converter handles the given document path."""
        ...

    @abstractmethod
    def output_suffix(self, path: PurePath) -> str:
        """Return the file suffix the rendered page should be written with."""
        ...

    @abstractmethod
    def convert(self, text: str) -> str:
        """Convert body text to HTML.

        Args:
            text: Body text with template directives already resolved.

        Returns:
            HTML fragment.
        """
        ...


@runtime_checkable
class PageWriter(Protocol):
    """Protocol for persisting rendered pages."""

    @abstractmethod
    def write(self, page: RenderedPage) -> Path:
        """Persist a rendered page.

        Args:
            page: Page to write.

        Returns:
            Path the page was written to.

        Raises:
            IOFailure: If the destination cannot be written.
        """
        ...
