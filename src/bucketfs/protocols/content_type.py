"""ContentTypeResolver protocol for guessing MIME types from file names."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class ContentTypeResolver(Protocol):
    """Protocol for content type detection."""

    def guess(self, path: str) -> str | None:
        """Return the MIME type for a path, or None if undetermined."""
        ...
