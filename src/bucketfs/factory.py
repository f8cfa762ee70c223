"""Factory function for creating file stores from configuration."""

from bucketfs.config import Config
from bucketfs.exceptions import ConfigError
from bucketfs.observability import configure_logging, get_logger
from bucketfs.plugins import create_storage_backend
from bucketfs.protocols import Clock, ContentTypeResolver, ObjectStorageBackend
from bucketfs.store import S3FileStore

logger = get_logger(__name__)


def create_file_store(
    config: Config,
    backend: ObjectStorageBackend | None = None,
    clock: Clock | None = None,
    content_types: ContentTypeResolver | None = None,
    setup_logging: bool = True,
) -> S3FileStore:
    """Create a file store for the configured bucket.

    Args:
        config: Loaded configuration
        backend: Backend to use instead of the configured one
        clock: Time source (system clock if not set)
        content_types: Content type resolver (mimetypes if not set)
        setup_logging: Apply ``config.logging`` to the ``bucketfs`` logger.
            Pass False when the host application configures logging itself.

    Returns:
        Configured file store

    Raises:
        ConfigError: If no bucket is configured, the backend is unknown or
            the logging level is invalid
    """
    if setup_logging:
        try:
            configure_logging(config.logging.level, config.logging.format)
        except ValueError as e:
            raise ConfigError(f"Invalid logging level '{config.logging.level}'") from e

    storage = config.storage
    options = storage.store_options()

    if backend is None:
        try:
            backend = create_storage_backend(
                storage.backend,
                buckets=[options.bucket_name],
                **storage.s3.model_dump(),
            )
        except ValueError as e:
            raise ConfigError(str(e)) from e

    logger.info(
        "File store configured",
        context={
            "backend": storage.backend,
            "bucket": options.bucket_name,
            "prefix": options.prefix,
        },
    )
    return S3FileStore(backend, options, clock=clock, content_types=content_types)
