from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from rpg_overlay.engine.skill_graph import UNIVERSAL_JOB, SkillGraph
from rpg_overlay.errors import DataError

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent
DEFAULT_SKILL_TREE = CONTENT_DIR / "skill_trees.json"


def load_json(filepath: Path) -> Any:
    with open(filepath, encoding="utf-8") as f:
        return json.load(f)


def load_skill_tree(
    path: str | Path | None = None, universal_job: str = UNIVERSAL_JOB,
) -> SkillGraph:
    """Build the skill graph from a definition file.

    A missing, unreadable or malformed definition yields an empty graph so
    the overlay can still show jobs and inherent skills.
    """
    filepath = Path(path) if path else DEFAULT_SKILL_TREE
    if not filepath.exists():
        logger.warning(f"Skill tree definition not found at {filepath}; using an empty graph")
        return SkillGraph.empty(universal_job)
    try:
        document = load_json(filepath)
        return SkillGraph.build(document, universal_job)
    except (OSError, json.JSONDecodeError, DataError) as e:
        logger.error(f"Could not load skill tree from {filepath}: {e}")
        return SkillGraph.empty(universal_job)
