from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def as_sequence(value: Any) -> list:
    """Normalise an array-or-keyed-map collection into a list."""
    if value is None:
        return []
    if isinstance(value, dict):
        return list(value.values())
    if isinstance(value, (list, tuple)):
        return list(value)
    raise ValueError(f"expected a list or a mapping, got {type(value).__name__}")


def _text(value: Any) -> str:
    return "" if value is None else str(value)


class LevelRequirement(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    level: int = Field(ge=1)
    required_job_level: int = 0
    cost: int | str = 1
    description: str = ""

    @field_validator("required_job_level", mode="before")
    @classmethod
    def _default_job_level(cls, v: Any) -> Any:
        return v or 0

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, v: Any) -> str:
        return _text(v)


class SkillDependency(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    skill_id: str
    level: int = 1

    @field_validator("skill_id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("level", mode="before")
    @classmethod
    def _default_level(cls, v: Any) -> Any:
        return v or 1


class SkillDefinition(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    max_level: int = Field(default=1, ge=1)
    levels: tuple[LevelRequirement, ...] = ()
    dependencies: tuple[SkillDependency, ...] = ()
    description: str = ""
    type: str = "被动"
    icon: Optional[str] = None
    position: Optional[dict[str, Any]] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("max_level", mode="before")
    @classmethod
    def _default_max_level(cls, v: Any) -> Any:
        return v or 1

    @field_validator("levels", "dependencies", mode="before")
    @classmethod
    def _normalise_collection(cls, v: Any) -> list:
        return as_sequence(v)

    @field_validator("levels", mode="after")
    @classmethod
    def _sort_levels(cls, v: tuple[LevelRequirement, ...]) -> tuple[LevelRequirement, ...]:
        return tuple(sorted(v, key=lambda lvl: lvl.level))

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, v: Any) -> str:
        return _text(v)

    @field_validator("type", mode="before")
    @classmethod
    def _default_type(cls, v: Any) -> str:
        return _text(v) or "被动"

    def level_info(self, level: int) -> LevelRequirement | None:
        """Return the requirement entry for ``level``, or None."""
        for entry in self.levels:
            if entry.level == level:
                return entry
        return None


class JobDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    id: Optional[str] = None
    name: str
    branch: Optional[str] = None
    tier: Optional[str] = None
    description: str = ""
    skills: tuple[SkillDefinition, ...] = ()

    @field_validator("id", "branch", "tier", mode="before")
    @classmethod
    def _coerce_optional_text(cls, v: Any) -> Any:
        return None if v is None else str(v)

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, v: Any) -> str:
        return _text(v)
