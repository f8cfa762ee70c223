"""Translation between logical store paths and object keys.

Object storage has a flat key space. Directories are emulated with the ``/``
delimiter convention: a key prefix ending in ``/`` stands for a directory,
and an optional configured prefix namespaces every key the store touches.

All functions here are pure.
"""

from collections.abc import Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bucketfs.config import StoreOptions

DIRECTORY_DELIMITER = "/"


def _prefix(options: "StoreOptions | None") -> str:
    if options is None or not options.prefix:
        return ""
    return options.prefix


def to_object_key(options: "StoreOptions | None", path: str) -> str:
    """Map a logical path to the object key that stores it."""
    return _prefix(options) + path


def to_directory_key(options: "StoreOptions | None", path: str) -> str:
    """Map a logical directory path to its key prefix.

    The result always ends with the delimiter, except for the root of an
    unprefixed store which maps to the empty string.
    """
    key = _prefix(options) + (path or "")
    if key and not key.endswith(DIRECTORY_DELIMITER):
        key += DIRECTORY_DELIMITER
    return key


def to_logical_path(options: "StoreOptions | None", key: str) -> str:
    """Strip the configured prefix from an object key.

    Only a literal leading match is removed. A key that does not start with
    the prefix is returned unchanged.
    """
    prefix = _prefix(options)
    if prefix and key and key.startswith(prefix):
        return key[len(prefix):]
    return key


def parent_directory_of(path: str, name: str) -> str:
    """Return the directory part of ``path``, which must end with ``name``."""
    if len(path) > len(name):
        return path[: len(path) - len(name)].rstrip(DIRECTORY_DELIMITER)
    return ""


def name_of(path: str) -> str:
    """Return the final segment of a path."""
    return path.rstrip(DIRECTORY_DELIMITER).rsplit(DIRECTORY_DELIMITER, 1)[-1]


def ancestor_directories(path: str, root: str = "") -> Iterator[str]:
    """Yield every ancestor directory of ``path`` strictly below ``root``.

    ``ancestor_directories("a/b/c.txt")`` yields ``"a"`` then ``"a/b"``;
    with ``root="a"`` only ``"a/b"`` is yielded.
    """
    if not path:
        return

    root = root.strip(DIRECTORY_DELIMITER)
    start = 0
    while True:
        index = path.find(DIRECTORY_DELIMITER, start)
        if index < 0:
            return
        ancestor = path[:index]
        if ancestor and (not root or ancestor.startswith(root + DIRECTORY_DELIMITER)):
            yield ancestor
        start = index + 1


def normalize_path(path: str | None) -> str:
    """Drop leading and trailing delimiters; ``None`` and ``"/"`` become the root."""
    return (path or "").strip(DIRECTORY_DELIMITER)
