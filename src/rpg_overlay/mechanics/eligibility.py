"""Eligibility rules — pure classification of upgrade nodes, no I/O.

Every node is classified against *committed* progression plus the budget
left after the basket's staged cost. Staged upgrades never satisfy a
dependency. The whole view is recomputed on every basket change because
each staged intent consumes budget shared by all nodes.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from rpg_overlay.errors import (
    AlreadyMasteredError,
    DependencyUnmetError,
    JobLevelUnmetError,
    ValidationError,
)
from rpg_overlay.mechanics.skill_levels import INHERENT_MAX_LEVEL
from rpg_overlay.models.progression import (
    POINTS_PER_UPGRADE,
    CharacterProgression,
    IntentType,
    JobProgress,
    LearnedSkillRecord,
    LockReason,
    NodeEvaluation,
    NodeStatus,
    ProgressionView,
    UpgradeIntent,
)
from rpg_overlay.models.skill_tree import SkillDefinition

if TYPE_CHECKING:
    from rpg_overlay.engine.basket import UpgradeBasket
    from rpg_overlay.engine.skill_graph import SkillGraph, SkillLookup


def first_unmet_dependency(
    skill: SkillDefinition, graph: SkillGraph, progression: CharacterProgression,
) -> tuple[str, int, int] | None:
    """Return (dependency name, required level, current level) for the first
    unmet dependency, or None when all are satisfied.

    Dependencies pointing at skills missing from the graph are ignored.
    """
    for dep in skill.dependencies:
        found = graph.find_by_id(dep.skill_id)
        if found is None:
            continue
        current = progression.skill_level(found.skill.name)
        if current < dep.level:
            return found.skill.name, dep.level, current
    return None


def skill_job_level(job_key: str, graph: SkillGraph, progression: CharacterProgression) -> int:
    """Job level that gates a skill owned by ``job_key``.

    Universal skills are gated by the character's highest job level.
    """
    if job_key == graph.universal_job:
        return progression.highest_job_level()
    return progression.job_level(job_key)


def tree_skill_for(
    name: str, graph: SkillGraph, progression: CharacterProgression,
) -> SkillLookup | None:
    """Graph entry for ``name`` when its tree is open to the character.

    Skills from the tree of a job the character does not hold are treated
    as inherent once learned, so this returns None for them.
    """
    found = graph.find_by_name(name)
    if found is None:
        return None
    if found.job_key == graph.universal_job or found.job_key in progression.jobs:
        return found
    return None


def _budget_status(available_budget: int, staged: bool) -> tuple[NodeStatus, LockReason | None]:
    # A staged node has already reserved its own point
    if staged or available_budget >= POINTS_PER_UPGRADE:
        return NodeStatus.LEARNABLE, None
    return NodeStatus.LOCKED, LockReason.INSUFFICIENT_POINTS


def evaluate_skill(
    skill: SkillDefinition,
    job_level: int,
    progression: CharacterProgression,
    graph: SkillGraph,
    available_budget: int,
    staged: bool = False,
    job_key: str | None = None,
) -> NodeEvaluation:
    """Classify a tree skill as mastered, learnable or locked."""
    current = progression.skill_level(skill.name)
    node = NodeEvaluation(
        type=IntentType.SKILL,
        name=skill.name,
        status=NodeStatus.MASTERED,
        current_level=current,
        max_level=skill.max_level,
        point_cost=POINTS_PER_UPGRADE,
        staged=staged,
        job_key=job_key,
    )
    if current >= skill.max_level:
        return node

    next_info = skill.level_info(current + 1)
    if next_info is None:
        return node
    node.next_level = next_info

    deps_met = first_unmet_dependency(skill, graph, progression) is None
    level_met = job_level >= next_info.required_job_level

    if deps_met and level_met:
        node.status, node.reason = _budget_status(available_budget, staged)
    else:
        node.status = NodeStatus.LOCKED
        node.reason = LockReason.JOB_LEVEL_INSUFFICIENT if not level_met else LockReason.DEPENDENCY_UNMET
    return node


def evaluate_job(
    name: str, job: JobProgress, available_budget: int, staged: bool = False,
) -> NodeEvaluation:
    """Jobs have no prerequisites; only an optional level cap and the budget."""
    node = NodeEvaluation(
        type=IntentType.JOB,
        name=name,
        status=NodeStatus.MASTERED,
        current_level=job.current_level,
        max_level=job.max_level,
        point_cost=POINTS_PER_UPGRADE,
        staged=staged,
    )
    if job.max_level is not None and job.current_level >= job.max_level:
        return node
    node.status, node.reason = _budget_status(available_budget, staged)
    return node


def evaluate_inherent_skill(
    name: str,
    record: LearnedSkillRecord,
    available_budget: int,
    staged: bool = False,
    max_level: int = INHERENT_MAX_LEVEL,
) -> NodeEvaluation:
    """Skills acquired outside any tree: capped, budget-gated only."""
    node = NodeEvaluation(
        type=IntentType.SKILL,
        name=name,
        status=NodeStatus.MASTERED,
        current_level=record.level,
        max_level=max_level,
        point_cost=POINTS_PER_UPGRADE,
        staged=staged,
    )
    if record.level >= max_level:
        return node
    node.status, node.reason = _budget_status(available_budget, staged)
    return node


def evaluate_all(
    graph: SkillGraph,
    progression: CharacterProgression,
    basket: UpgradeBasket,
    inherent_max_level: int = INHERENT_MAX_LEVEL,
) -> ProgressionView:
    """Classify every visible node against the current basket."""
    staged_cost = basket.total_cost()
    available = progression.budget - staged_cost
    view = ProgressionView(budget=progression.budget, staged_cost=staged_cost)
    in_tree: set[str] = set()

    for job_name, job in progression.jobs.items():
        view.jobs.append(
            evaluate_job(job_name, job, available, basket.is_staged(IntentType.JOB, job_name))
        )
        tree = graph.job(job_name)
        if tree is None or job_name == graph.universal_job:
            continue
        nodes = []
        for skill in graph.skills_of(tree):
            in_tree.add(skill.name)
            nodes.append(evaluate_skill(
                skill, job.current_level, progression, graph, available,
                staged=basket.is_staged(IntentType.SKILL, skill.name),
                job_key=job_name,
            ))
        view.job_skills[job_name] = nodes

    universal_level = progression.highest_job_level()
    for skill in graph.universal_skills():
        if skill.name in in_tree:
            continue
        in_tree.add(skill.name)
        view.universal_skills.append(evaluate_skill(
            skill, universal_level, progression, graph, available,
            staged=basket.is_staged(IntentType.SKILL, skill.name),
            job_key=graph.universal_job,
        ))

    for name, record in progression.skills.items():
        if name in in_tree:
            continue
        view.inherent_skills.append(evaluate_inherent_skill(
            name, record, available,
            staged=basket.is_staged(IntentType.SKILL, name),
            max_level=inherent_max_level,
        ))

    return view


def check_intent(
    intent: UpgradeIntent,
    graph: SkillGraph,
    progression: CharacterProgression,
    inherent_max_level: int = INHERENT_MAX_LEVEL,
) -> None:
    """Raise the matching ValidationError if ``intent`` cannot be applied
    to the committed ``progression``. Budget is checked by the caller.
    """
    if intent.type is IntentType.JOB:
        job = progression.jobs.get(intent.name)
        if job is None:
            raise ValidationError(f"Character has no job '{intent.name}'", intent)
        if job.max_level is not None and job.current_level >= job.max_level:
            raise AlreadyMasteredError(intent.name, job.current_level, intent)
        return

    current = progression.skill_level(intent.name)
    found = tree_skill_for(intent.name, graph, progression)
    if found is None:
        if current == 0 and intent.name in graph:
            raise ValidationError(
                f"'{intent.name}' belongs to a job the character does not hold", intent,
            )
        if current >= inherent_max_level:
            raise AlreadyMasteredError(intent.name, current, intent)
        return

    skill = found.skill
    next_info = skill.level_info(current + 1)
    if current >= skill.max_level or next_info is None:
        raise AlreadyMasteredError(intent.name, current, intent)

    job_level = skill_job_level(found.job_key, graph, progression)
    if job_level < next_info.required_job_level:
        raise JobLevelUnmetError(intent.name, next_info.required_job_level, job_level, intent)

    unmet = first_unmet_dependency(skill, graph, progression)
    if unmet is not None:
        dep_name, required, dep_level = unmet
        raise DependencyUnmetError(intent.name, dep_name, required, dep_level, intent)
