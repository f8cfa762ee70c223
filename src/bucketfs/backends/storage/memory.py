"""In-memory object storage backend."""

import asyncio
import base64
import hashlib
from dataclasses import dataclass
from datetime import datetime
from typing import Any, BinaryIO

from bucketfs.exceptions import StorageBackendError
from bucketfs.protocols.clock import Clock
from bucketfs.protocols.object_storage import (
    ERROR_NO_SUCH_BUCKET,
    ERROR_NO_SUCH_KEY,
    ERROR_NOT_FOUND,
    ListObjectsPage,
    ObjectMetadata,
    ObjectResponse,
    ObjectSummary,
)
from bucketfs.utils.clock import SystemClock

# Same limits S3 enforces per request
MAX_KEYS_PER_PAGE = 1000
MAX_KEYS_PER_DELETE = 1000


@dataclass
class StoredObject:
    """An object held in memory."""

    data: bytes
    content_type: str | None
    last_modified: datetime
    etag: str


class BytesBody:
    """Object body over an in-memory buffer."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._offset = 0
        self.closed = False

    async def read(self, amt: int | None = None) -> bytes:
        if amt is None or amt < 0:
            chunk = self._data[self._offset:]
        else:
            chunk = self._data[self._offset:self._offset + amt]
        self._offset += len(chunk)
        return chunk

    def close(self) -> None:
        self.closed = True


def _encode_token(marker: str, is_prefix: bool) -> str:
    raw = ("p:" if is_prefix else "k:") + marker
    return base64.urlsafe_b64encode(raw.encode()).decode()


def _decode_token(token: str) -> tuple[str, bool]:
    try:
        raw = base64.urlsafe_b64decode(token.encode()).decode()
    except (ValueError, UnicodeDecodeError) as e:
        raise StorageBackendError(
            "The continuation token provided is incorrect",
            code="InvalidArgument",
            cause=e,
        ) from e
    kind, _, marker = raw.partition(":")
    if kind not in ("p", "k"):
        raise StorageBackendError(
            "The continuation token provided is incorrect", code="InvalidArgument"
        )
    return marker, kind == "p"


class MemoryObjectStorage:
    """In-memory object storage with S3 listing semantics.

    Suitable for development and testing. Data is lost on restart.
    Supports delimiter grouping, page size limits, continuation tokens,
    and injected failures. Every request is recorded in ``calls``.
    """

    def __init__(
        self,
        buckets: list[str] | None = None,
        page_size: int = MAX_KEYS_PER_PAGE,
        clock: Clock | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize memory object storage.

        Args:
            buckets: Buckets that exist from the start
            page_size: Largest page a listing returns
            clock: Time source for object timestamps
            **kwargs: Ignored (for compatibility with other backends)
        """
        self._buckets: dict[str, dict[str, StoredObject]] = {
            name: {} for name in (buckets or [])
        }
        self.page_size = min(page_size, MAX_KEYS_PER_PAGE)
        self._clock = clock or SystemClock()
        self._lock = asyncio.Lock()
        self._failures: dict[str, list[Exception | None]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def create_bucket(self, bucket: str) -> None:
        """Create an empty bucket if it does not exist."""
        self._buckets.setdefault(bucket, {})

    def fail_next(
        self,
        operation: str,
        error: Exception,
        times: int = 1,
        after: int = 0,
    ) -> None:
        """Make calls to ``operation`` raise ``error``.

        The first ``after`` calls go through, the ``times`` calls after them fail.
        """
        self._failures.setdefault(operation, []).extend([None] * after + [error] * times)

    def keys(self, bucket: str) -> list[str]:
        """Return every key in a bucket, sorted. Useful for testing."""
        return sorted(self._buckets.get(bucket, {}))

    def _record(self, operation: str, **params: Any) -> None:
        self.calls.append((operation, params))
        pending = self._failures.get(operation)
        if pending:
            error = pending.pop(0)
            if error is not None:
                raise error

    def _bucket(self, bucket: str) -> dict[str, StoredObject]:
        objects = self._buckets.get(bucket)
        if objects is None:
            raise StorageBackendError(
                "The specified bucket does not exist", code=ERROR_NO_SUCH_BUCKET
            )
        return objects

    @staticmethod
    def _metadata(key: str, obj: StoredObject) -> ObjectMetadata:
        return ObjectMetadata(
            key=key,
            content_length=len(obj.data),
            last_modified=obj.last_modified,
            content_type=obj.content_type,
            etag=obj.etag,
        )

    async def get_object(self, bucket: str, key: str) -> ObjectResponse:
        """Fetch an object's metadata and content."""
        async with self._lock:
            self._record("get_object", bucket=bucket, key=key)
            obj = self._bucket(bucket).get(key)
            if obj is None:
                raise StorageBackendError(
                    "The specified key does not exist", code=ERROR_NO_SUCH_KEY, key=key
                )
            return ObjectResponse(metadata=self._metadata(key, obj), body=BytesBody(obj.data))

    async def head_object(self, bucket: str, key: str) -> ObjectMetadata:
        """Fetch an object's metadata only."""
        async with self._lock:
            self._record("head_object", bucket=bucket, key=key)
            obj = self._bucket(bucket).get(key)
            if obj is None:
                raise StorageBackendError("Not Found", code=ERROR_NOT_FOUND, key=key)
            return self._metadata(key, obj)

    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes | BinaryIO,
        content_type: str | None = None,
    ) -> bool:
        """Store an object, replacing any existing one."""
        data = body if isinstance(body, bytes) else body.read()
        async with self._lock:
            self._record("put_object", bucket=bucket, key=key, content_type=content_type)
            self._bucket(bucket)[key] = StoredObject(
                data=data,
                content_type=content_type,
                last_modified=self._clock.now(),
                etag=hashlib.md5(data).hexdigest(),
            )
        return True

    async def delete_object(self, bucket: str, key: str) -> bool:
        """Delete one object. Deleting a missing key succeeds."""
        async with self._lock:
            self._record("delete_object", bucket=bucket, key=key)
            self._bucket(bucket).pop(key, None)
        return True

    async def delete_objects(self, bucket: str, keys: list[str]) -> bool:
        """Delete a batch of objects in one request."""
        async with self._lock:
            self._record("delete_objects", bucket=bucket, keys=list(keys))
            if len(keys) > MAX_KEYS_PER_DELETE:
                raise StorageBackendError(
                    f"A batch delete accepts at most {MAX_KEYS_PER_DELETE} keys",
                    code="MalformedXML",
                )
            objects = self._bucket(bucket)
            for key in keys:
                objects.pop(key, None)
        return True

    async def copy_object(
        self,
        source_bucket: str,
        source_key: str,
        destination_bucket: str,
        destination_key: str,
    ) -> bool:
        """Copy an object server-side."""
        async with self._lock:
            self._record(
                "copy_object",
                source_bucket=source_bucket,
                source_key=source_key,
                destination_bucket=destination_bucket,
                destination_key=destination_key,
            )
            source = self._bucket(source_bucket).get(source_key)
            if source is None:
                raise StorageBackendError(
                    "The specified key does not exist", code=ERROR_NO_SUCH_KEY, key=source_key
                )
            self._bucket(destination_bucket)[destination_key] = StoredObject(
                data=source.data,
                content_type=source.content_type,
                last_modified=self._clock.now(),
                etag=source.etag,
            )
        return True

    async def list_objects_v2(
        self,
        bucket: str,
        prefix: str,
        delimiter: str | None = None,
        continuation_token: str | None = None,
        max_keys: int | None = None,
    ) -> ListObjectsPage:
        """List one page of objects under a prefix.

        Objects and common prefixes both count towards the page size.
        """
        async with self._lock:
            self._record(
                "list_objects_v2",
                bucket=bucket,
                prefix=prefix,
                delimiter=delimiter,
                continuation_token=continuation_token,
                max_keys=max_keys,
            )
            objects = self._bucket(bucket)
            limit = self.page_size if not max_keys else min(max_keys, self.page_size)

            marker: str | None = None
            marker_is_prefix = False
            if continuation_token:
                marker, marker_is_prefix = _decode_token(continuation_token)

            summaries: list[ObjectSummary] = []
            common_prefixes: list[str] = []
            last: tuple[str, bool] | None = None
            truncated = False

            for key in sorted(k for k in objects if k.startswith(prefix)):
                if marker is not None:
                    if key <= marker:
                        continue
                    if marker_is_prefix and key.startswith(marker):
                        continue

                group: str | None = None
                if delimiter:
                    index = key.find(delimiter, len(prefix))
                    if index >= 0:
                        group = key[: index + len(delimiter)]
                if group is not None and common_prefixes and common_prefixes[-1] == group:
                    continue

                if len(summaries) + len(common_prefixes) >= limit:
                    truncated = True
                    break

                if group is not None:
                    common_prefixes.append(group)
                    last = (group, True)
                else:
                    obj = objects[key]
                    summaries.append(
                        ObjectSummary(
                            key=key,
                            size=len(obj.data),
                            last_modified=obj.last_modified,
                            etag=obj.etag,
                        )
                    )
                    last = (key, False)

            next_token = _encode_token(*last) if truncated and last else None
            return ListObjectsPage(
                objects=summaries,
                common_prefixes=common_prefixes,
                next_continuation_token=next_token,
            )

    async def clear(self) -> None:
        """Remove every object from every bucket. Useful for testing."""
        async with self._lock:
            for objects in self._buckets.values():
                objects.clear()
