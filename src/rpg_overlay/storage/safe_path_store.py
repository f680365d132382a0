"""Cached, single-flight view over the store adapter's state.

Reads never raise: a missing segment, an unloaded cache or a malformed
value all resolve to the caller's default. Concurrent loads share one
fetch so a burst of re-renders costs a single adapter round-trip.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from rpg_overlay.errors import DataError, StoreError
from rpg_overlay.storage.adapter import StoreAdapter
from rpg_overlay.utils import get_path

logger = logging.getLogger(__name__)

StateListener = Callable[[dict[str, Any]], None]


def _retrieve_outcome(task: asyncio.Future) -> None:
    # Mark a failure as retrieved when every caller was cancelled
    if not task.cancelled():
        task.exception()


class SafePathStore:
    def __init__(self, adapter: StoreAdapter) -> None:
        self.adapter = adapter
        self._state: dict[str, Any] | None = None
        self._pending: asyncio.Task | None = None
        self._generation = 0
        self._listeners: list[StateListener] = []
        self._stats = {
            "load_requests": 0,
            "fetches": 0,
            "coalesced": 0,
            "failures": 0,
        }

    @property
    def is_loaded(self) -> bool:
        return self._state is not None

    @property
    def stats(self) -> dict[str, int]:
        return dict(self._stats)

    async def load_all(self, force: bool = False) -> dict[str, Any]:
        """Return the full state, fetching it at most once per burst.

        The fetch runs in its own task that every caller awaits through
        ``asyncio.shield``, so cancelling one caller never cancels the
        fetch or strands the others. All callers receive the same object.
        """
        self._stats["load_requests"] += 1
        if self._state is not None and not force:
            return self._state

        if self._pending is not None:
            self._stats["coalesced"] += 1
        else:
            self._pending = asyncio.ensure_future(self._load(self._generation))
            self._pending.add_done_callback(_retrieve_outcome)
        return await asyncio.shield(self._pending)

    async def _load(self, generation: int) -> dict[str, Any]:
        try:
            state = await self._fetch()
        except Exception:
            self._stats["failures"] += 1
            raise
        finally:
            if self._pending is asyncio.current_task():
                self._pending = None

        if generation == self._generation:
            self._state = state
            self._notify(state)
        else:
            logger.debug("State invalidated during load; result not cached")
        return state

    async def _fetch(self) -> dict[str, Any]:
        self._stats["fetches"] += 1
        try:
            state = await self.adapter.fetch_state()
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"State fetch failed: {e}") from e
        if not isinstance(state, dict):
            raise DataError(f"Store returned {type(state).__name__}, expected a mapping")
        return state

    def get(self, path: str, default: Any = None) -> Any:
        """Dotted-path read of the cached state; never raises."""
        if self._state is None:
            logger.warning(f"Read of '{path}' before state was loaded")
            return default
        try:
            return get_path(self._state, path, default)
        except Exception as e:
            logger.warning(f"Failed to read '{path}': {e}")
            return default

    def invalidate(self) -> None:
        """Drop the cache; a load already in flight will not repopulate it."""
        self._state = None
        self._generation += 1
        self._pending = None

    def on_state_changed(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, state: dict[str, Any]) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener failed")
