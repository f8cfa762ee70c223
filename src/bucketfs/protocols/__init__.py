"""Protocol interfaces for pluggable collaborators."""

from bucketfs.protocols.clock import Clock
from bucketfs.protocols.content_type import ContentTypeResolver
from bucketfs.protocols.object_storage import (
    ERROR_NO_SUCH_BUCKET,
    ERROR_NO_SUCH_KEY,
    ERROR_NOT_FOUND,
    ListObjectsPage,
    ObjectBody,
    ObjectMetadata,
    ObjectResponse,
    ObjectStorageBackend,
    ObjectSummary,
)

__all__ = [
    "Clock",
    "ContentTypeResolver",
    "ERROR_NO_SUCH_BUCKET",
    "ERROR_NO_SUCH_KEY",
    "ERROR_NOT_FOUND",
    "ListObjectsPage",
    "ObjectBody",
    "ObjectMetadata",
    "ObjectResponse",
    "ObjectStorageBackend",
    "ObjectSummary",
]
