"""Abstract store adapter over the authoritative character state."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class StoreAdapter(ABC):
    """Authoritative character/world state, owned outside the engine."""

    @abstractmethod
    async def fetch_state(self) -> dict[str, Any]:
        """Return the full authoritative state, re-read from its source."""

    @abstractmethod
    def read_variable(self, path: str, default: Any = None) -> Any:
        """Dotted-path read against the most recently fetched state."""

    @abstractmethod
    async def write_variable(self, path: str, value: Any) -> None:
        """Dotted-path write; not durable until :meth:`persist`."""

    @abstractmethod
    async def persist(self) -> None:
        """Durably commit pending writes."""
