"""Skill graph — immutable index over a skill-tree definition document."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError

from rpg_overlay.errors import DataError
from rpg_overlay.models.skill_tree import JobDefinition, SkillDefinition, as_sequence

logger = logging.getLogger(__name__)

UNIVERSAL_JOB = "通用"


@dataclass(frozen=True)
class SkillLookup:
    skill: SkillDefinition
    job_key: str


class SkillGraph:
    """Jobs, their skills, and the dependency edges between skills.

    Built once per load of the definition document and read-only afterwards.
    """

    def __init__(self, jobs: Mapping[str, JobDefinition], universal_job: str = UNIVERSAL_JOB) -> None:
        self._jobs = MappingProxyType(dict(jobs))
        self.universal_job = universal_job
        by_name: dict[str, SkillLookup] = {}
        by_id: dict[str, SkillLookup] = {}
        for key, job in self._jobs.items():
            for skill in job.skills:
                lookup = SkillLookup(skill=skill, job_key=key)
                # First definition wins, matching a front-to-back scan
                by_name.setdefault(skill.name, lookup)
                by_id.setdefault(skill.id, lookup)
        self._by_name = MappingProxyType(by_name)
        self._by_id = MappingProxyType(by_id)

    @classmethod
    def build(cls, document: Any, universal_job: str = UNIVERSAL_JOB) -> SkillGraph:
        """Parse a definition document of ``job key -> job object``.

        Malformed jobs and skills are logged and left out; the rest of the
        graph is still built.
        """
        if not isinstance(document, dict):
            raise DataError(
                f"Skill tree definition must be an object, got {type(document).__name__}"
            )

        jobs: dict[str, JobDefinition] = {}
        for job_key, raw_job in document.items():
            if not isinstance(raw_job, dict):
                logger.warning(f"Skipping job '{job_key}': definition is not an object")
                continue
            try:
                raw_skills = as_sequence(raw_job.get("skills"))
            except ValueError as e:
                logger.warning(f"Skipping skills of job '{job_key}': {e}")
                raw_skills = []

            skills = []
            for raw_skill in raw_skills:
                try:
                    skills.append(SkillDefinition.model_validate(raw_skill))
                except PydanticValidationError as e:
                    label = raw_skill.get("name", "?") if isinstance(raw_skill, dict) else raw_skill
                    logger.warning(f"Skipping malformed skill '{label}' in job '{job_key}': {e}")

            try:
                jobs[job_key] = JobDefinition(
                    key=job_key,
                    id=raw_job.get("id"),
                    name=str(raw_job.get("name") or job_key),
                    branch=raw_job.get("branch"),
                    tier=raw_job.get("tier"),
                    description=raw_job.get("description"),
                    skills=tuple(skills),
                )
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed job '{job_key}': {e}")

        graph = cls(jobs, universal_job=universal_job)
        logger.info(f"Skill graph built: {len(jobs)} jobs, {len(graph._by_id)} skills")
        return graph

    @classmethod
    def empty(cls, universal_job: str = UNIVERSAL_JOB) -> SkillGraph:
        return cls({}, universal_job=universal_job)

    # -- Lookups --

    def find_by_name(self, name: str) -> SkillLookup | None:
        return self._by_name.get(name)

    def find_by_id(self, skill_id: str) -> SkillLookup | None:
        return self._by_id.get(skill_id)

    def skills_of(self, job: str | JobDefinition) -> tuple[SkillDefinition, ...]:
        """Ordered skills of a job, given its key or definition."""
        if isinstance(job, JobDefinition):
            return job.skills
        definition = self._jobs.get(job)
        return definition.skills if definition else ()

    def job(self, key: str) -> JobDefinition | None:
        return self._jobs.get(key)

    def jobs(self) -> list[JobDefinition]:
        """Per-job iteration, universal root excluded."""
        return [job for key, job in self._jobs.items() if key != self.universal_job]

    def universal_skills(self) -> tuple[SkillDefinition, ...]:
        return self.skills_of(self.universal_job)

    def __contains__(self, skill_name: object) -> bool:
        return skill_name in self._by_name

    def __len__(self) -> int:
        return len(self._jobs)

    @property
    def is_empty(self) -> bool:
        return not self._jobs
