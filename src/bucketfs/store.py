"""File store over an object storage bucket.

Object storage has no real directories, no rename and paginated listings.
``S3FileStore`` emulates a hierarchical file store on top of it:

- Directories exist when at least one key shares their prefix, either a
  zero-byte placeholder (``images/``) or any object below them.
- Listings are derived on every call from prefix listings, following
  continuation tokens until exhausted. Nothing is cached between calls.
- Move is copy followed by delete and is not atomic.
- Deletes report failure as ``False`` instead of raising.
"""

from typing import BinaryIO

from bucketfs.config import StoreOptions
from bucketfs.entries import DirectoryEntry, FileEntry, FileStoreEntry
from bucketfs.exceptions import (
    FileStoreAlreadyExistsError,
    FileStoreError,
    FileStoreInvalidArgumentError,
    FileStoreNotFoundError,
    StorageBackendError,
)
from bucketfs.observability import (
    OperationContext,
    Timer,
    emit_counter,
    get_logger,
)
from bucketfs.paths import (
    DIRECTORY_DELIMITER,
    ancestor_directories,
    normalize_path,
    to_directory_key,
    to_logical_path,
    to_object_key,
)
from bucketfs.protocols.clock import Clock
from bucketfs.protocols.content_type import ContentTypeResolver
from bucketfs.protocols.object_storage import (
    ERROR_NO_SUCH_BUCKET,
    ERROR_NO_SUCH_KEY,
    ERROR_NOT_FOUND,
    ObjectBody,
    ObjectStorageBackend,
    ObjectSummary,
)
from bucketfs.utils.clock import SystemClock
from bucketfs.utils.content_type import DEFAULT_CONTENT_TYPE, MimetypesContentTypeResolver

logger = get_logger(__name__)

# Codes that confirm an object is absent. Anything else is indeterminate.
ABSENT_ERROR_CODES = frozenset({ERROR_NOT_FOUND, ERROR_NO_SUCH_KEY, ERROR_NO_SUCH_BUCKET})

LIST_DURATION_METRIC = "bucketfs.list.duration_ms"


class S3FileStore:
    """Hierarchical file store backed by a single bucket.

    Paths are ``/``-separated and relative to the configured prefix, without
    leading or trailing delimiters (``"images/a.png"``). The empty path is the
    root of the store.
    """

    def __init__(
        self,
        backend: ObjectStorageBackend,
        options: StoreOptions,
        clock: Clock | None = None,
        content_types: ContentTypeResolver | None = None,
    ) -> None:
        """Initialize the file store.

        Args:
            backend: Object storage client the store issues requests through
            options: Bucket and key prefix
            clock: Time source for synthesized directory timestamps
            content_types: Resolver used to label uploaded files
        """
        self._backend = backend
        self._options = options
        self._clock = clock or SystemClock()
        self._content_types = content_types or MimetypesContentTypeResolver()

    @property
    def backend(self) -> ObjectStorageBackend:
        return self._backend

    @property
    def options(self) -> StoreOptions:
        return self._options

    @property
    def bucket_name(self) -> str:
        return self._options.bucket_name

    def _context(self, operation: str) -> OperationContext:
        return OperationContext(bucket=self.bucket_name, operation=operation)

    # --- Existence & metadata ---

    async def object_exists(self, bucket: str, key: str) -> bool:
        """Check whether an object exists with a metadata-only request.

        Returns False only when the backend confirms the key or the bucket
        is missing. Any other failure propagates.
        """
        try:
            await self._backend.head_object(bucket, key)
        except StorageBackendError as e:
            if e.code in ABSENT_ERROR_CODES:
                return False
            raise
        return True

    async def get_file_info(self, path: str) -> FileEntry | None:
        """Get the entry for the file at ``path``, or None if there is none."""
        key = to_object_key(self._options, path)

        try:
            response = await self._backend.get_object(self.bucket_name, key)
        except StorageBackendError as e:
            if e.code == ERROR_NO_SUCH_KEY:
                return None
            raise

        response.body.close()
        return FileEntry.from_metadata(path, response.metadata)

    async def get_file_stream(self, path: str | FileStoreEntry) -> ObjectBody:
        """Open the content of a file for reading.

        The caller must ``close()`` the returned body.

        Raises:
            FileStoreNotFoundError: If no file exists at the path
        """
        if not isinstance(path, str):
            path = path.path
        key = to_object_key(self._options, path)

        try:
            response = await self._backend.get_object(self.bucket_name, key)
        except StorageBackendError as e:
            if e.code == ERROR_NO_SUCH_KEY:
                raise FileStoreNotFoundError(
                    f"Cannot read file '{path}' because it does not exist.", path=path
                ) from e
            raise
        return response.body

    async def read_file(self, path: str) -> bytes | None:
        """Read a whole file. Returns None if it does not exist."""
        try:
            body = await self.get_file_stream(path)
        except FileStoreNotFoundError:
            return None

        try:
            return await body.read()
        finally:
            body.close()

    # --- Listing ---

    async def list_objects(
        self,
        prefix: str,
        max_results: int = 0,
        continuation_token: str | None = None,
    ) -> tuple[list[ObjectSummary], str | None]:
        """Issue one listing request, without delimiter grouping.

        Args:
            prefix: Raw key prefix
            max_results: Page size cap; 0 leaves it to the backend
            continuation_token: Token from the previous page

        Returns:
            The page's objects and the token for the next page, if any
        """
        async with Timer(LIST_DURATION_METRIC) as timer:
            page = await self._backend.list_objects_v2(
                self.bucket_name,
                prefix,
                continuation_token=continuation_token,
                max_keys=max_results or None,
            )
        logger.debug(
            "Listed objects",
            context={
                "prefix": prefix,
                "count": len(page.objects),
                "truncated": page.next_continuation_token is not None,
            },
            duration_ms=timer.duration_ms,
        )
        return page.objects, page.next_continuation_token

    async def get_directory_info(self, path: str) -> DirectoryEntry | None:
        """Get the entry for the directory at ``path``, or None if there is none.

        A directory exists when at least one object, its own placeholder
        included, lives under its key prefix. A placeholder sorts first, so
        when there is one its timestamp is used; otherwise the clock's.
        """
        path = normalize_path(path)
        prefix = to_directory_key(self._options, path)
        objects, _ = await self.list_objects(prefix, max_results=1)
        if not objects:
            return None
        if objects[0].key == prefix:
            return DirectoryEntry.from_placeholder(path, objects[0])
        return DirectoryEntry.create(path, self._clock.now())

    async def get_directory_content(
        self,
        path: str = "",
        include_subdirectories: bool = False,
    ) -> list[FileStoreEntry]:
        """List the files and directories under ``path``, ordered by path.

        Without ``include_subdirectories`` only direct children are returned:
        the listing is grouped by the delimiter so nested keys collapse into
        common prefixes. With it, every object below ``path`` is returned along
        with each directory between ``path`` and those objects.

        A path with nothing under it yields an empty list.
        """
        path = normalize_path(path)
        prefix = to_directory_key(self._options, path)
        delimiter = None if include_subdirectories else DIRECTORY_DELIMITER

        files: list[FileStoreEntry] = []
        directories: set[str] = set()
        continuation_token: str | None = None
        pages = 0

        async with self._context("get_directory_content"):
            while True:
                async with Timer(LIST_DURATION_METRIC):
                    page = await self._backend.list_objects_v2(
                        self.bucket_name,
                        prefix,
                        delimiter=delimiter,
                        continuation_token=continuation_token,
                    )
                pages += 1

                # Only present when grouping by the delimiter
                for common_prefix in page.common_prefixes:
                    directory = to_logical_path(self._options, common_prefix)
                    directories.add(directory.rstrip(DIRECTORY_DELIMITER))

                for summary in page.objects:
                    relative_path = to_logical_path(self._options, summary.key)

                    if summary.key.endswith(DIRECTORY_DELIMITER):
                        directory = relative_path.rstrip(DIRECTORY_DELIMITER)
                        # The placeholder of the listed directory is not its own child
                        if directory != path:
                            directories.add(directory)
                            if include_subdirectories:
                                directories.update(ancestor_directories(directory, path))
                        continue

                    files.append(FileEntry.from_summary(relative_path, summary))

                    # Without grouping the backend only returns objects, so the
                    # directories they live in are rebuilt from their keys.
                    if include_subdirectories:
                        directories.update(ancestor_directories(relative_path, path))

                continuation_token = page.next_continuation_token
                if not continuation_token:
                    break

            now = self._clock.now()
            entries = files + [DirectoryEntry.create(d, now) for d in directories if d]
            entries.sort(key=lambda entry: entry.path)

            logger.debug(
                "Resolved directory content",
                context={
                    "path": path,
                    "recursive": include_subdirectories,
                    "pages": pages,
                    "files": len(files),
                    "directories": len(entries) - len(files),
                },
            )
            return entries

    # --- Mutations ---

    async def try_create_directory(self, path: str) -> bool:
        """Create an empty directory by writing its placeholder object."""
        key = to_directory_key(self._options, normalize_path(path))
        return await self._backend.put_object(self.bucket_name, key, b"")

    async def create_file_from_stream(
        self,
        path: str,
        data: bytes | BinaryIO,
        overwrite: bool = False,
    ) -> str:
        """Create or replace the file at ``path``.

        The existence check and the upload are separate requests: two
        concurrent creates without ``overwrite`` may both succeed.

        Returns:
            The path of the created file

        Raises:
            FileStoreAlreadyExistsError: If the file exists and overwrite is False
            FileStoreError: If the upload fails
        """
        key = to_object_key(self._options, path)

        async with self._context("create_file_from_stream"):
            if not overwrite and await self.object_exists(self.bucket_name, key):
                raise FileStoreAlreadyExistsError(
                    f"Cannot create file '{path}' because it already exists.", path=path
                )

            content_type = self._content_types.guess(path) or DEFAULT_CONTENT_TYPE

            try:
                succeeded = await self._backend.put_object(
                    self.bucket_name, key, data, content_type=content_type
                )
            except Exception as e:
                raise FileStoreError(f"Error creating file '{path}'. {e}", path=path) from e

            if not succeeded:
                raise FileStoreError(
                    f"Error creating file '{path}'. The backend rejected the upload.",
                    path=path,
                )

            logger.debug("File created", context={"path": path, "content_type": content_type})
            return path

    async def try_delete_file(self, path: str) -> bool:
        """Delete the file at ``path``.

        Returns:
            Whether the backend reported success. Backend errors are logged
            and reported as False.
        """
        key = to_object_key(self._options, path)

        async with self._context("try_delete_file"):
            try:
                return await self._backend.delete_object(self.bucket_name, key)
            except StorageBackendError as e:
                logger.warning("Failed to delete file", context={"path": path}, error=e)
                emit_counter("bucketfs.delete.failed", {"kind": "file"})
                return False

    async def delete_objects(self, bucket: str, keys: list[str]) -> bool:
        """Delete a batch of keys. An empty batch succeeds without a request."""
        if not keys:
            return True
        return await self._backend.delete_objects(bucket, keys)

    async def try_delete_directory(self, path: str) -> bool:
        """Delete every object under ``path``, page by page.

        Not transactional: a failure partway leaves part of the tree in
        place. Deleting again is safe.

        Returns:
            True once nothing is left to delete. Backend errors and rejected
            batches are logged and reported as False.
        """
        path = normalize_path(path)
        prefix = to_directory_key(self._options, path)
        deleted = 0

        async with self._context("try_delete_directory"):
            try:
                objects, continuation_token = await self.list_objects(prefix)
                if not objects:
                    return True

                result = await self.delete_objects(self.bucket_name, [o.key for o in objects])
                deleted += len(objects)

                while result and continuation_token:
                    objects, continuation_token = await self.list_objects(
                        prefix, continuation_token=continuation_token
                    )
                    result = await self.delete_objects(self.bucket_name, [o.key for o in objects])
                    deleted += len(objects)

            except StorageBackendError as e:
                logger.warning(
                    "Failed to delete directory",
                    context={"path": path, "deleted": deleted},
                    error=e,
                )
                emit_counter("bucketfs.delete.failed", {"kind": "directory"})
                return False

            if not result:
                logger.warning(
                    "Batch delete rejected",
                    context={"path": path, "deleted": deleted},
                )
                emit_counter("bucketfs.delete.failed", {"kind": "directory"})
            else:
                logger.info("Directory deleted", context={"path": path, "objects": deleted})
            return result

    async def copy_file(self, src_path: str, dst_path: str) -> None:
        """Copy a file. Never overwrites the destination.

        Raises:
            FileStoreInvalidArgumentError: If both paths are the same
            FileStoreNotFoundError: If the source does not exist
            FileStoreAlreadyExistsError: If the destination already exists
        """
        if src_path == dst_path:
            raise FileStoreInvalidArgumentError(
                "The values for src_path and dst_path must not be the same.", path=src_path
            )

        source_key = to_object_key(self._options, src_path)
        destination_key = to_object_key(self._options, dst_path)

        async with self._context("copy_file"):
            if not await self.object_exists(self.bucket_name, source_key):
                raise FileStoreNotFoundError(
                    f"Cannot copy file '{src_path}' because it does not exist.", path=src_path
                )

            if await self.object_exists(self.bucket_name, destination_key):
                raise FileStoreAlreadyExistsError(
                    f"Cannot copy file '{src_path}' because a file already exists "
                    f"in the new path '{dst_path}'.",
                    path=dst_path,
                )

            succeeded = await self._backend.copy_object(
                self.bucket_name, source_key, self.bucket_name, destination_key
            )
            if not succeeded:
                raise FileStoreError(
                    f"Error copying file '{src_path}' to '{dst_path}'.", path=src_path
                )

    async def move_file(self, old_path: str, new_path: str) -> None:
        """Move a file by copying it and then deleting the source.

        Not atomic. If the copy fails nothing is deleted. If the delete
        fails both files remain and a warning is logged.
        """
        await self.copy_file(old_path, new_path)

        if not await self.try_delete_file(old_path):
            logger.warning(
                "Moved file but could not delete the source",
                context={"old_path": old_path, "new_path": new_path},
            )
