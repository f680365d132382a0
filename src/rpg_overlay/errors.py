"""Error hierarchy for the progression engine."""
from __future__ import annotations

from typing import Any


class OverlayError(Exception):
    """Base class for all rpg-overlay errors."""


class DataError(OverlayError):
    """Malformed or missing skill/job definition or character state."""


class ValidationError(OverlayError):
    """An upgrade was rejected before any store mutation.

    ``reason`` is the short machine-stable string shown to the user;
    the message carries the details.
    """

    reason = "invalid upgrade"

    def __init__(self, message: str, intent: Any = None) -> None:
        super().__init__(message)
        self.intent = intent


class InsufficientBudgetError(ValidationError):
    reason = "insufficient points"

    def __init__(self, required: int, available: int, intent: Any = None) -> None:
        super().__init__(
            f"Not enough profession points (need {required}, have {available})", intent,
        )
        self.required = required
        self.available = available


class JobLevelUnmetError(ValidationError):
    reason = "job level insufficient"

    def __init__(self, skill_name: str, required: int, current: int, intent: Any = None) -> None:
        super().__init__(
            f"'{skill_name}' needs job level {required} (current {current})", intent,
        )
        self.required = required
        self.current = current


class DependencyUnmetError(ValidationError):
    reason = "dependency unmet"

    def __init__(self, skill_name: str, dependency: str, required: int, current: int,
                 intent: Any = None) -> None:
        super().__init__(
            f"'{skill_name}' needs '{dependency}' at level {required} (current {current})", intent,
        )
        self.dependency = dependency
        self.required = required
        self.current = current


class AlreadyMasteredError(ValidationError):
    reason = "already mastered"

    def __init__(self, name: str, level: int, intent: Any = None) -> None:
        super().__init__(f"'{name}' is already at its maximum level ({level})", intent)
        self.level = level


class StoreError(OverlayError):
    """Network or persistence failure reported by the store adapter."""


class PartialCommitError(StoreError):
    """A store write failed after the budget deduction was persisted.

    ``applied`` lists the intents that were durably written, ``pending``
    the ones that were not.
    """

    def __init__(self, message: str, applied: list, pending: list) -> None:
        super().__init__(message)
        self.applied = list(applied)
        self.pending = list(pending)


class CommitInProgressError(OverlayError):
    """A commit was requested while another one is still running."""
