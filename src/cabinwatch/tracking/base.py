"""Base interface for telemetry snapshot sources."""

from abc import ABC, abstractmethod
from typing import Any


class TrackingError(RuntimeError):
    """The tracking source could not produce a snapshot."""


class SnapshotSource(ABC):
    """Abstract base for all telemetry backends."""

    name: str = "source"

    @abstractmethod
    async def fetch(self) -> dict[str, Any]:
        """Return one raw snapshot payload: {"devices": [...], "lastUpdate": ...}.

        Raises:
            TrackingError: If the backend is unreachable or answers garbage.
        """
