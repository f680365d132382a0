"""Commit coordinator — applies a staged basket to the authoritative store.

Validation runs against freshly fetched state before the first write, so a
rejected commit leaves both the store and the basket untouched.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from rpg_overlay.errors import (
    CommitInProgressError,
    InsufficientBudgetError,
    PartialCommitError,
    StoreError,
    ValidationError,
)
from rpg_overlay.mechanics.eligibility import check_intent, tree_skill_for
from rpg_overlay.mechanics.skill_levels import (
    INHERENT_MAX_LEVEL,
    bonus_for_level,
    has_bonus_text,
    patch_bonus_text,
    rank_for_level,
)
from rpg_overlay.models.progression import (
    CharacterProgression,
    IntentType,
    LearnedSkillRecord,
    StatePaths,
    UpgradeIntent,
)
from rpg_overlay.utils import get_path

if TYPE_CHECKING:
    from rpg_overlay.engine.basket import UpgradeBasket
    from rpg_overlay.engine.skill_graph import SkillGraph
    from rpg_overlay.storage.adapter import StoreAdapter
    from rpg_overlay.storage.repos.journal_repo import CommitJournalRepo
    from rpg_overlay.storage.safe_path_store import SafePathStore

logger = logging.getLogger(__name__)

DEFAULT_SKILL_TYPE = "被动"
NO_COST = "无"


@dataclass
class CommitResult:
    intents: list[UpgradeIntent] = field(default_factory=list)
    budget_before: int = 0
    budget_after: int = 0
    levels: dict[str, int] = field(default_factory=dict)

    @property
    def points_spent(self) -> int:
        return self.budget_before - self.budget_after

    @property
    def is_empty(self) -> bool:
        return not self.intents


@dataclass
class _PlannedWrite:
    intent: UpgradeIntent
    path: str
    value: Any
    level: int


class CommitCoordinator:
    def __init__(
        self,
        adapter: StoreAdapter,
        graph: SkillGraph,
        path_store: SafePathStore,
        paths: StatePaths | None = None,
        batch_writes: bool = True,
        patch_descriptions: bool = True,
        inherent_max_level: int = INHERENT_MAX_LEVEL,
        journal: CommitJournalRepo | None = None,
    ) -> None:
        self.adapter = adapter
        self.graph = graph
        self.path_store = path_store
        self.paths = paths or StatePaths()
        self.batch_writes = batch_writes
        self.patch_descriptions = patch_descriptions
        self.inherent_max_level = inherent_max_level
        self.journal = journal
        self._in_progress = False

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    async def commit(self, basket: UpgradeBasket) -> CommitResult:
        """Apply every staged intent, deducting one point each.

        Raises a ValidationError subtype (nothing written, basket kept),
        StoreError, or PartialCommitError in sequential mode when some
        writes already landed.
        """
        if self._in_progress:
            raise CommitInProgressError("A commit is already in progress")
        if basket.is_empty():
            return CommitResult()

        self._in_progress = True
        try:
            intents = basket.intents
            progression = await self._fetch_progression()
            self._validate(intents, basket.total_cost(), progression)

            budget_before = progression.budget
            budget_after = budget_before - basket.total_cost()
            plan = [self._plan(intent, progression) for intent in intents]

            if self.batch_writes:
                await self._write_batched(budget_after, plan, budget_before)
            else:
                await self._write_sequential(budget_after, plan, budget_before)

            result = CommitResult(
                intents=intents,
                budget_before=budget_before,
                budget_after=budget_after,
                levels={str(w.intent): w.level for w in plan},
            )
            self._journal("committed", intents, intents, budget_before, budget_after)
            logger.info(
                f"Committed {len(intents)} upgrade(s), points {budget_before} -> {budget_after}"
            )
            basket.clear()
            await self._reload()
            return result
        finally:
            self._in_progress = False

    async def _fetch_progression(self) -> CharacterProgression:
        try:
            state = await self.adapter.fetch_state()
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Could not fetch state before commit: {e}") from e
        return CharacterProgression.from_reader(
            lambda path, default: get_path(state, path, default), self.paths,
        )

    def _validate(
        self, intents: list[UpgradeIntent], cost: int, progression: CharacterProgression,
    ) -> None:
        try:
            if progression.budget < cost:
                raise InsufficientBudgetError(cost, progression.budget)
            for intent in intents:
                check_intent(intent, self.graph, progression, self.inherent_max_level)
        except ValidationError as e:
            logger.info(f"Commit rejected ({e.reason}): {e}")
            raise

    def _plan(self, intent: UpgradeIntent, progression: CharacterProgression) -> _PlannedWrite:
        if intent.type is IntentType.JOB:
            level = progression.job_level(intent.name) + 1
            return _PlannedWrite(intent, self.paths.job_level(intent.name), level, level)

        level = progression.skill_level(intent.name) + 1
        record = self._build_skill_record(intent.name, level, progression)
        return _PlannedWrite(intent, self.paths.skill(intent.name), record.to_raw(), level)

    def _build_skill_record(
        self, name: str, level: int, progression: CharacterProgression,
    ) -> LearnedSkillRecord:
        """Snapshot the record for ``name`` at ``level``.

        Skills from an open tree take text and cost from the definition's
        level entry; any other skill keeps what was stored. A ``+N`` in the
        text the character already had is bumped to the new bonus.
        """
        base = progression.skills.get(name) or LearnedSkillRecord()
        fallback = f"效果提升至 {rank_for_level(level)} 水平。"
        found = tree_skill_for(name, self.graph, progression)
        if found is not None:
            skill = found.skill
            info = skill.level_info(level)
            description = (info.description if info else "") or skill.description or fallback
            cost = info.cost if info else NO_COST
            skill_type = skill.type
        else:
            description = base.description or fallback
            cost = base.cost or NO_COST
            skill_type = base.type or DEFAULT_SKILL_TYPE

        source = base.description or description
        if self.patch_descriptions and has_bonus_text(source):
            description = patch_bonus_text(source, level)

        return base.model_copy(update={
            "level": level,
            "description": description,
            "cost": cost,
            "type": skill_type,
            "rank": rank_for_level(level),
            "bonus": bonus_for_level(level),
        })

    async def _write_batched(
        self, budget_after: int, plan: list[_PlannedWrite], budget_before: int,
    ) -> None:
        try:
            await self.adapter.write_variable(self.paths.budget, budget_after)
            for write in plan:
                await self.adapter.write_variable(write.path, write.value)
            await self.adapter.persist()
        except Exception as e:
            intents = [w.intent for w in plan]
            self._journal("failed", intents, [], budget_before, budget_before, str(e))
            if isinstance(e, StoreError):
                raise
            raise StoreError(f"Commit failed, nothing was saved: {e}") from e

    async def _write_sequential(
        self, budget_after: int, plan: list[_PlannedWrite], budget_before: int,
    ) -> None:
        intents = [w.intent for w in plan]
        try:
            await self.adapter.write_variable(self.paths.budget, budget_after)
            await self.adapter.persist()
        except Exception as e:
            self._journal("failed", intents, [], budget_before, budget_before, str(e))
            if isinstance(e, StoreError):
                raise
            raise StoreError(f"Could not deduct points: {e}") from e

        applied: list[UpgradeIntent] = []
        for write in plan:
            try:
                await self.adapter.write_variable(write.path, write.value)
                await self.adapter.persist()
            except Exception as e:
                pending = intents[len(applied):]
                logger.error(
                    f"Partial commit: points deducted ({budget_before} -> {budget_after}); "
                    f"applied={[str(i) for i in applied]} pending={[str(i) for i in pending]}: {e}"
                )
                self._journal("partial", intents, applied, budget_before, budget_after, str(e))
                raise PartialCommitError(
                    f"Commit stopped at '{write.intent}': {e}", applied, pending,
                ) from e
            applied.append(write.intent)

    async def _reload(self) -> None:
        self.path_store.invalidate()
        try:
            await self.path_store.load_all()
        except StoreError as e:
            # The commit itself is durable; the next read retries the load
            logger.warning(f"Reload after commit failed: {e}")

    def _journal(
        self,
        status: str,
        intents: list[UpgradeIntent],
        applied: list[UpgradeIntent],
        budget_before: int,
        budget_after: int,
        error: str | None = None,
    ) -> None:
        if self.journal is None:
            return
        self.journal.record(
            status,
            [str(i) for i in intents],
            [str(i) for i in applied],
            budget_before,
            budget_after,
            error,
        )
