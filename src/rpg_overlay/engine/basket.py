"""Upgrade basket — in-memory staging of pending upgrades."""
from __future__ import annotations

from typing import Callable, Iterator

from rpg_overlay.models.progression import POINTS_PER_UPGRADE, IntentType, UpgradeIntent


class UpgradeBasket:
    """Ordered set of staged (type, name) upgrade intents.

    No validation happens here: the caller only offers toggles on nodes the
    evaluator marked learnable. ``on_change`` fires after every mutation so
    the caller can re-evaluate all visible nodes.
    """

    def __init__(self, on_change: Callable[[UpgradeBasket], None] | None = None) -> None:
        self._intents: list[UpgradeIntent] = []
        self.on_change = on_change

    def toggle(self, type: IntentType | str, name: str) -> bool:
        """Stage the intent, or unstage it if already present.

        Returns True if the intent is staged after the call.
        """
        intent = UpgradeIntent(IntentType(type), name)
        if intent in self._intents:
            self._intents.remove(intent)
            staged = False
        else:
            self._intents.append(intent)
            staged = True
        self._changed()
        return staged

    def is_staged(self, type: IntentType | str, name: str) -> bool:
        return UpgradeIntent(IntentType(type), name) in self._intents

    def total_cost(self) -> int:
        return len(self._intents) * POINTS_PER_UPGRADE

    def clear(self) -> None:
        self._intents.clear()
        self._changed()

    @property
    def intents(self) -> list[UpgradeIntent]:
        return list(self._intents)

    def is_empty(self) -> bool:
        return not self._intents

    def __iter__(self) -> Iterator[UpgradeIntent]:
        return iter(list(self._intents))

    def __len__(self) -> int:
        return len(self._intents)

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self)
