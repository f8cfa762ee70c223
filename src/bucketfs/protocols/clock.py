"""Clock protocol for obtaining the current time."""

from datetime import datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Protocol for a UTC time source."""

    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""
        ...
