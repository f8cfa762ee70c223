"""ObjectStorageBackend protocol for flat key/value blob stores (S3 and compatibles)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO, Protocol, runtime_checkable

# Error codes a backend reports for a confirmed absence
ERROR_NO_SUCH_KEY = "NoSuchKey"
ERROR_NOT_FOUND = "NotFound"
ERROR_NO_SUCH_BUCKET = "NoSuchBucket"


@runtime_checkable
class ObjectBody(Protocol):
    """Readable object content."""

    async def read(self, amt: int | None = None) -> bytes:
        """Read up to ``amt`` bytes, or everything that is left."""
        ...

    def close(self) -> None:
        """Release the underlying connection."""
        ...


@dataclass(frozen=True)
class ObjectSummary:
    """One object as reported by a listing call."""

    key: str
    size: int
    last_modified: datetime
    etag: str | None = None


@dataclass(frozen=True)
class ObjectMetadata:
    """Metadata returned by a head request."""

    key: str
    content_length: int
    last_modified: datetime
    content_type: str | None = None
    etag: str | None = None


@dataclass(frozen=True)
class ObjectResponse:
    """Metadata plus content returned by a get request."""

    metadata: ObjectMetadata
    body: ObjectBody


@dataclass(frozen=True)
class ListObjectsPage:
    """A single page of a prefix listing.

    ``common_prefixes`` is only populated when the request asked for
    grouping by a delimiter.
    """

    objects: list[ObjectSummary] = field(default_factory=list)
    common_prefixes: list[str] = field(default_factory=list)
    next_continuation_token: str | None = None


@runtime_checkable
class ObjectStorageBackend(Protocol):
    """Protocol for object storage backends.

    Every method raises ``StorageBackendError`` (with the backend's error
    code) when the round-trip fails. Methods returning ``bool`` report
    whether the backend acknowledged the request as successful.
    """

    async def get_object(self, bucket: str, key: str) -> ObjectResponse:
        """Fetch an object's metadata and content."""
        ...

    async def head_object(self, bucket: str, key: str) -> ObjectMetadata:
        """Fetch an object's metadata only."""
        ...

    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes | BinaryIO,
        content_type: str | None = None,
    ) -> bool:
        """Store an object, replacing any existing one."""
        ...

    async def delete_object(self, bucket: str, key: str) -> bool:
        """Delete one object. Deleting a missing key succeeds."""
        ...

    async def delete_objects(self, bucket: str, keys: list[str]) -> bool:
        """Delete a batch of objects in one request."""
        ...

    async def copy_object(
        self,
        source_bucket: str,
        source_key: str,
        destination_bucket: str,
        destination_key: str,
    ) -> bool:
        """Copy an object server-side."""
        ...

    async def list_objects_v2(
        self,
        bucket: str,
        prefix: str,
        delimiter: str | None = None,
        continuation_token: str | None = None,
        max_keys: int | None = None,
    ) -> ListObjectsPage:
        """List one page of objects under a prefix."""
        ...
