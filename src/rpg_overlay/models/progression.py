from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, Optional

from pydantic import BaseModel, ConfigDict

from rpg_overlay.mechanics.skill_levels import numeric_skill_level
from rpg_overlay.models.skill_tree import LevelRequirement
from rpg_overlay.utils import is_meta_key

logger = logging.getLogger(__name__)

# Every upgrade step, job or skill, costs one profession point
POINTS_PER_UPGRADE = 1

# Host-language aliases written alongside the canonical record keys
_RECORD_ALIASES = {"level": "等级", "rank": "称号", "bonus": "加值"}


class IntentType(str, Enum):
    JOB = "job"
    SKILL = "skill"


class NodeStatus(str, Enum):
    MASTERED = "mastered"
    LEARNABLE = "learnable"
    LOCKED = "locked"


class LockReason(str, Enum):
    INSUFFICIENT_POINTS = "insufficient points"
    JOB_LEVEL_INSUFFICIENT = "job level insufficient"
    DEPENDENCY_UNMET = "dependency unmet"


@dataclass(frozen=True)
class UpgradeIntent:
    type: IntentType
    name: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", IntentType(self.type))

    def __str__(self) -> str:
        return f"{self.type.value}:{self.name}"


@dataclass
class StatePaths:
    """Where the character's progression lives inside the state blob."""

    budget: str = "主角.职业点数"
    jobs: str = "主角.职业"
    skills: str = "主角.技能列表"
    job_level_key: str = "当前等级"
    job_max_level_key: str = "最大等级"

    @classmethod
    def from_config(cls, cfg: dict[str, Any] | None) -> StatePaths:
        cfg = cfg or {}
        defaults = cls()
        return cls(
            budget=cfg.get("budget_path", defaults.budget),
            jobs=cfg.get("jobs_path", defaults.jobs),
            skills=cfg.get("skills_path", defaults.skills),
            job_level_key=cfg.get("job_level_key", defaults.job_level_key),
            job_max_level_key=cfg.get("job_max_level_key", defaults.job_max_level_key),
        )

    def job_level(self, job_name: str) -> str:
        return f"{self.jobs}.{job_name}.{self.job_level_key}"

    def skill(self, skill_name: str) -> str:
        return f"{self.skills}.{skill_name}"


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


class LearnedSkillRecord(BaseModel):
    """Character-side snapshot of a learned skill.

    Text fields are copied from the definition when the level is acquired
    and never recomputed afterwards. Unknown host fields are kept.
    """

    model_config = ConfigDict(extra="allow")

    level: int = 0
    description: str = ""
    cost: Any = None
    type: Optional[str] = None
    rank: Optional[str] = None
    bonus: Optional[int] = None

    @classmethod
    def from_raw(cls, raw: Any) -> LearnedSkillRecord:
        if not isinstance(raw, dict):
            return cls()
        data = {k: v for k, v in raw.items() if k not in _RECORD_ALIASES.values()}
        data["level"] = numeric_skill_level(raw)
        description = data.get("description")
        data["description"] = "" if description is None else str(description)
        if "rank" not in data and "称号" in raw:
            data["rank"] = raw["称号"]
        if "bonus" not in data and "加值" in raw:
            data["bonus"] = raw["加值"]
        for key in ("type", "rank"):
            if data.get(key) is not None:
                data[key] = str(data[key])
        if data.get("bonus") is not None:
            data["bonus"] = _as_int(data["bonus"], 0)
        return cls.model_validate(data)

    def to_raw(self) -> dict[str, Any]:
        data = self.model_dump(exclude_none=True)
        for key, alias in _RECORD_ALIASES.items():
            if key in data:
                data[alias] = data[key]
        return data


@dataclass
class JobProgress:
    current_level: int = 1
    max_level: Optional[int] = None

    @classmethod
    def from_raw(cls, raw: Any, paths: StatePaths) -> JobProgress:
        if not isinstance(raw, dict):
            return cls()
        level = _as_int(raw.get(paths.job_level_key), 1)
        max_raw = raw.get(paths.job_max_level_key)
        return cls(current_level=level, max_level=_as_int(max_raw) if max_raw is not None else None)


@dataclass
class CharacterProgression:
    """Committed progression state read from the store."""

    budget: int = 0
    jobs: dict[str, JobProgress] = field(default_factory=dict)
    skills: dict[str, LearnedSkillRecord] = field(default_factory=dict)

    @classmethod
    def from_reader(cls, read: Callable[[str, Any], Any], paths: StatePaths) -> CharacterProgression:
        """Build from any ``read(path, default)`` accessor."""
        raw_budget = read(paths.budget, 0)
        budget = _as_int(raw_budget, 0)
        if budget != raw_budget:
            logger.warning(f"Non-integer budget {raw_budget!r} at {paths.budget}, read as {budget}")

        raw_jobs = read(paths.jobs, {})
        jobs: dict[str, JobProgress] = {}
        if isinstance(raw_jobs, dict):
            for name, data in raw_jobs.items():
                if not is_meta_key(name):
                    jobs[name] = JobProgress.from_raw(data, paths)

        raw_skills = read(paths.skills, {})
        skills: dict[str, LearnedSkillRecord] = {}
        if isinstance(raw_skills, dict):
            for name, data in raw_skills.items():
                if not is_meta_key(name):
                    skills[name] = LearnedSkillRecord.from_raw(data)

        return cls(budget=budget, jobs=jobs, skills=skills)

    def skill_level(self, name: str) -> int:
        record = self.skills.get(name)
        return record.level if record else 0

    def job_level(self, name: str) -> int:
        """Current level of a held job, 0 if the character does not hold it."""
        job = self.jobs.get(name)
        return job.current_level if job else 0

    def highest_job_level(self) -> int:
        return max((j.current_level for j in self.jobs.values()), default=0)


@dataclass
class NodeEvaluation:
    type: IntentType
    name: str
    status: NodeStatus
    current_level: int
    max_level: Optional[int] = None
    reason: Optional[LockReason] = None
    next_level: Optional[LevelRequirement] = None
    point_cost: int = 1
    staged: bool = False
    job_key: Optional[str] = None

    @property
    def is_learnable(self) -> bool:
        return self.status is NodeStatus.LEARNABLE


@dataclass
class ProgressionView:
    """Every visible node, classified against one basket state."""

    budget: int
    staged_cost: int
    jobs: list[NodeEvaluation] = field(default_factory=list)
    job_skills: dict[str, list[NodeEvaluation]] = field(default_factory=dict)
    universal_skills: list[NodeEvaluation] = field(default_factory=list)
    inherent_skills: list[NodeEvaluation] = field(default_factory=list)

    @property
    def available(self) -> int:
        return self.budget - self.staged_cost

    def nodes(self) -> Iterator[NodeEvaluation]:
        yield from self.jobs
        for skills in self.job_skills.values():
            yield from skills
        yield from self.universal_skills
        yield from self.inherent_skills

    def find(self, type: IntentType | str, name: str) -> NodeEvaluation | None:
        wanted = IntentType(type)
        for node in self.nodes():
            if node.type is wanted and node.name == name:
                return node
        return None
