"""Content type detection from file extensions."""

import mimetypes

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class MimetypesContentTypeResolver:
    """Guesses content types using the ``mimetypes`` registry.

    Extra mappings (extension -> type) take precedence over the registry.
    """

    def __init__(self, overrides: dict[str, str] | None = None) -> None:
        self._overrides = {
            ext.lower() if ext.startswith(".") else f".{ext.lower()}": content_type
            for ext, content_type in (overrides or {}).items()
        }

    def guess(self, path: str) -> str | None:
        name = path.rsplit("/", 1)[-1]
        _, dot, ext = name.rpartition(".")
        if dot and f".{ext.lower()}" in self._overrides:
            return self._overrides[f".{ext.lower()}"]

        content_type, _ = mimetypes.guess_type(name, strict=False)
        return content_type
