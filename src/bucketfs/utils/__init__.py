"""Utility modules for bucketfs."""

from bucketfs.utils.clock import FixedClock, SystemClock
from bucketfs.utils.content_type import DEFAULT_CONTENT_TYPE, MimetypesContentTypeResolver
from bucketfs.utils.validation import normalize_prefix, validate_bucket_name

__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "FixedClock",
    "MimetypesContentTypeResolver",
    "SystemClock",
    "normalize_prefix",
    "validate_bucket_name",
]
