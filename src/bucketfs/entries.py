"""File and directory entries returned by the file store.

Entries are read-only snapshots built per request from backend responses.
Directories have no backing object of their own in most cases, so a
``DirectoryEntry`` is usually synthesized with the resolution time as its
timestamp.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Union

from bucketfs.paths import DIRECTORY_DELIMITER, name_of, parent_directory_of
from bucketfs.protocols.object_storage import ObjectMetadata, ObjectSummary


@dataclass(frozen=True)
class FileEntry:
    """A file backed by exactly one object."""

    path: str
    name: str
    directory_path: str
    length: int
    last_modified_utc: datetime

    is_directory: ClassVar[bool] = False

    @classmethod
    def create(
        cls,
        path: str,
        name: str,
        length: int,
        last_modified_utc: datetime,
    ) -> "FileEntry":
        return cls(
            path=path,
            name=name,
            directory_path=parent_directory_of(path, name),
            length=length,
            last_modified_utc=last_modified_utc,
        )

    @classmethod
    def from_summary(cls, path: str, summary: ObjectSummary) -> "FileEntry":
        """Build from a listing result."""
        return cls.create(path, name_of(summary.key), summary.size, summary.last_modified)

    @classmethod
    def from_metadata(cls, path: str, metadata: ObjectMetadata) -> "FileEntry":
        """Build from a get/head response."""
        return cls.create(
            path,
            name_of(metadata.key),
            metadata.content_length,
            metadata.last_modified,
        )


@dataclass(frozen=True)
class DirectoryEntry:
    """A directory, either a placeholder object or implied by object keys."""

    path: str
    name: str
    directory_path: str
    last_modified_utc: datetime

    is_directory: ClassVar[bool] = True

    @property
    def length(self) -> int:
        return 0

    @classmethod
    def create(cls, path: str, last_modified_utc: datetime) -> "DirectoryEntry":
        path = path.rstrip(DIRECTORY_DELIMITER)
        name = name_of(path)
        return cls(
            path=path,
            name=name,
            directory_path=parent_directory_of(path, name),
            last_modified_utc=last_modified_utc,
        )

    @classmethod
    def from_placeholder(
        cls, path: str, placeholder: ObjectSummary | ObjectMetadata
    ) -> "DirectoryEntry":
        """Build from the directory's placeholder object, keeping its timestamp."""
        return cls.create(path, placeholder.last_modified)


FileStoreEntry = Union[FileEntry, DirectoryEntry]
