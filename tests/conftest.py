"""Pytest configuration and fixtures."""

import logging
from datetime import datetime, timezone

import pytest

from bucketfs.backends.storage.memory import MemoryObjectStorage
from bucketfs.config import StoreOptions
from bucketfs.store import S3FileStore
from bucketfs.utils.clock import FixedClock

BUCKET = "media-bucket"
NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    """A clock frozen at NOW."""
    return FixedClock(NOW)


@pytest.fixture
def backend(clock):
    """An in-memory backend with one bucket."""
    return MemoryObjectStorage(buckets=[BUCKET], clock=clock)


@pytest.fixture
def store(backend, clock):
    """A file store without a key prefix."""
    return S3FileStore(backend, StoreOptions(bucket_name=BUCKET), clock=clock)


@pytest.fixture
def prefixed_store(backend, clock):
    """A file store namespaced under tenant1/."""
    return S3FileStore(
        backend, StoreOptions(bucket_name=BUCKET, prefix="tenant1"), clock=clock
    )


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary for testing."""
    return {
        "storage": {
            "backend": "memory",
            "bucket_name": BUCKET,
            "prefix": "tenant1",
            "s3": {
                "endpoint_url": "http://localhost:9000",
                "region": "us-east-1",
                "addressing_style": "path",
            },
        },
        "logging": {"level": "DEBUG", "format": "text"},
    }


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo any logging setup a test applied to the bucketfs logger."""
    package_logger = logging.getLogger("bucketfs")
    level, handlers = package_logger.level, list(package_logger.handlers)
    yield
    package_logger.setLevel(level)
    package_logger.handlers[:] = handlers
