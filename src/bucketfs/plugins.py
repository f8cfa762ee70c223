"""Storage backend discovery via Python entry points.

Backends register under the ``bucketfs.backends.storage`` group, for example
in a ``pyproject.toml``::

    [project.entry-points."bucketfs.backends.storage"]
    s3 = "bucketfs.backends.storage.s3:S3ObjectStorage"

Entry points are only loaded when selected, so picking the ``memory``
backend never imports the S3 client libraries.
"""

from importlib.metadata import EntryPoint, entry_points
from typing import Any

from bucketfs.protocols import ObjectStorageBackend

BACKEND_GROUPS = {
    "storage": "bucketfs.backends.storage",
}


def _entry_points(group: str) -> dict[str, EntryPoint]:
    full_group = BACKEND_GROUPS.get(group, group)
    return {ep.name: ep for ep in entry_points(group=full_group)}


def available_backends(group: str) -> list[str]:
    """Return the sorted names registered for a backend group."""
    return sorted(_entry_points(group))


def discover_backends(group: str) -> dict[str, Any]:
    """Load every registered backend for a group.

    Args:
        group: The backend group name (storage) or a full entry point group

    Returns:
        Dictionary mapping backend names to their classes
    """
    return {name: ep.load() for name, ep in _entry_points(group).items()}


def get_backend(group: str, name: str) -> Any:
    """Load a single backend class by group and name.

    Raises:
        ValueError: If no backend is registered under ``name``
    """
    registered = _entry_points(group)
    if name not in registered:
        available = ", ".join(sorted(registered)) or "(none)"
        raise ValueError(f"Unknown {group} backend '{name}'. Available: {available}")
    return registered[name].load()


def create_storage_backend(backend: str, **kwargs: Any) -> ObjectStorageBackend:
    """Create an ObjectStorageBackend instance.

    Args:
        backend: The backend name (e.g., "s3", "memory")
        **kwargs: Backend-specific configuration, passed to the constructor
    """
    cls = get_backend("storage", backend)
    return cls(**kwargs)
