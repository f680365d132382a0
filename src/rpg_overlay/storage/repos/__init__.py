from __future__ import annotations

from rpg_overlay.storage.repos.journal_repo import CommitJournalRepo
from rpg_overlay.storage.repos.state_repo import StateRepo

__all__ = [
    "CommitJournalRepo",
    "StateRepo",
]
