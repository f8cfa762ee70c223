"""Input validation utilities."""

import re

# S3 bucket naming: lowercase letters, digits, dots and hyphens.
# Must start and end with a letter or number.
BUCKET_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")

# Dotted-quad, which S3 rejects as a bucket name
IP_ADDRESS_RE = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")


def validate_bucket_name(value: str, name: str = "bucket_name") -> str:
    """Validate an object storage bucket name.

    Args:
        value: The bucket name to validate
        name: Name of the field for error messages

    Returns:
        The validated bucket name

    Raises:
        ValueError: If the bucket name is invalid
    """
    if not value or not value.strip():
        raise ValueError(f"{name} cannot be empty")

    if not BUCKET_NAME_RE.match(value):
        raise ValueError(
            f"Invalid {name}: must be 3-63 characters, start and end with a "
            "lowercase letter or number, and contain only lowercase letters, "
            "numbers, dots, and hyphens"
        )

    if ".." in value or IP_ADDRESS_RE.match(value):
        raise ValueError(f"Invalid {name}: {value}")

    return value


def normalize_prefix(value: str | None, delimiter: str = "/") -> str | None:
    """Normalize a key prefix so it always ends with the delimiter.

    Blank prefixes normalize to None.
    """
    if value is None or not value.strip():
        return None
    if not value.endswith(delimiter):
        value += delimiter
    return value
