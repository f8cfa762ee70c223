"""bucketfs - a hierarchical file store over an object storage bucket."""

from bucketfs.config import Config, StoreOptions
from bucketfs.entries import DirectoryEntry, FileEntry, FileStoreEntry
from bucketfs.exceptions import (
    BucketFSError,
    ConfigError,
    FileStoreAlreadyExistsError,
    FileStoreError,
    FileStoreInvalidArgumentError,
    FileStoreNotFoundError,
    StorageBackendError,
)
from bucketfs.factory import create_file_store
from bucketfs.observability import (
    LogLevel,
    OperationContext,
    StructuredLogger,
    Timer,
    configure_logging,
    emit_counter,
    emit_metric,
    emit_timer,
    get_logger,
    register_metric_callback,
)
from bucketfs.store import S3FileStore

__version__ = "0.1.0"
__all__ = [
    # Core
    "Config",
    "S3FileStore",
    "StoreOptions",
    "create_file_store",
    # Entries
    "DirectoryEntry",
    "FileEntry",
    "FileStoreEntry",
    # Errors
    "BucketFSError",
    "ConfigError",
    "FileStoreAlreadyExistsError",
    "FileStoreError",
    "FileStoreInvalidArgumentError",
    "FileStoreNotFoundError",
    "StorageBackendError",
    # Observability
    "LogLevel",
    "OperationContext",
    "StructuredLogger",
    "Timer",
    "configure_logging",
    "emit_counter",
    "emit_metric",
    "emit_timer",
    "get_logger",
    "register_metric_callback",
]
