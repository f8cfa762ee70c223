"""bucketfs exceptions."""


class BucketFSError(Exception):
    """Base exception for bucketfs."""

    pass


class ConfigError(BucketFSError):
    """Configuration error."""

    pass


class FileStoreError(BucketFSError):
    """A file store operation could not be completed.

    Attributes:
        message: Human-readable error message.
        path: Logical store path the operation targeted (if applicable).
    """

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path


class FileStoreNotFoundError(FileStoreError):
    """The requested file does not exist."""

    pass


class FileStoreAlreadyExistsError(FileStoreError):
    """A file already exists at the target path."""

    pass


class FileStoreInvalidArgumentError(FileStoreError, ValueError):
    """An operation was called with arguments it cannot act on."""

    pass


class StorageBackendError(BucketFSError):
    """The object storage backend reported a failure.

    Backends raise this for every failed round-trip. ``code`` carries the
    backend's own error code (``NoSuchKey``, ``NotFound``, ``NoSuchBucket``,
    ``AccessDenied``...) so the file store can tell a confirmed absence from
    an indeterminate failure.
    """

    def __init__(
        self,
        message: str = "Storage backend error",
        *,
        code: str | None = None,
        key: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.key = key
        self.cause = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.append(f"code={self.code}")
        if self.key:
            parts.append(f"key={self.key}")
        return " ".join(parts)
