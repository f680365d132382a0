"""Tests for src/rpg_overlay/mechanics/eligibility.py."""
from __future__ import annotations

import pytest

from rpg_overlay.engine.basket import UpgradeBasket
from rpg_overlay.errors import (
    AlreadyMasteredError,
    DependencyUnmetError,
    JobLevelUnmetError,
    ValidationError,
)
from rpg_overlay.mechanics.eligibility import (
    check_intent,
    evaluate_all,
    evaluate_inherent_skill,
    evaluate_job,
    evaluate_skill,
    first_unmet_dependency,
)
from rpg_overlay.models.progression import (
    CharacterProgression,
    IntentType,
    JobProgress,
    LearnedSkillRecord,
    LockReason,
    NodeStatus,
    UpgradeIntent,
)


def _progression(budget=3, jobs=None, skills=None) -> CharacterProgression:
    return CharacterProgression(
        budget=budget,
        jobs={name: JobProgress(current_level=lvl) for name, lvl in (jobs or {}).items()},
        skills={name: LearnedSkillRecord(level=lvl) for name, lvl in (skills or {}).items()},
    )


class TestScenarios:
    def test_learnable_skill_at_matching_job_level(self, graph):
        progression = _progression(budget=3, jobs={"猎人": 2})
        skill = graph.find_by_name("箭术技巧").skill
        node = evaluate_skill(skill, 2, progression, graph, available_budget=3)
        assert node.status is NodeStatus.LEARNABLE
        assert node.reason is None
        assert node.point_cost == 1
        assert node.next_level.required_job_level == 2

    def test_dependency_unmet_regardless_of_budget(self, graph):
        progression = _progression(budget=99, jobs={"战士": 5})
        skill = graph.find_by_name("流水架势").skill
        node = evaluate_skill(skill, 5, progression, graph, available_budget=99)
        assert node.status is NodeStatus.LOCKED
        assert node.reason is LockReason.DEPENDENCY_UNMET

    def test_shared_budget_relocks_after_staging(self, graph):
        progression = _progression(budget=1, jobs={"猎人": 2})
        basket = UpgradeBasket()

        view = evaluate_all(graph, progression, basket)
        assert view.find("skill", "箭术技巧").is_learnable
        assert view.find("skill", "追踪").is_learnable

        basket.toggle("skill", "箭术技巧")
        view = evaluate_all(graph, progression, basket)
        staged = view.find("skill", "箭术技巧")
        other = view.find("skill", "追踪")
        assert staged.is_learnable and staged.staged
        assert other.status is NodeStatus.LOCKED
        assert other.reason is LockReason.INSUFFICIENT_POINTS


class TestEvaluateSkill:
    def test_mastered_at_max_level(self, graph):
        progression = _progression(jobs={"猎人": 3}, skills={"追踪": 1})
        skill = graph.find_by_name("追踪").skill
        node = evaluate_skill(skill, 3, progression, graph, available_budget=3)
        assert node.status is NodeStatus.MASTERED
        assert node.next_level is None

    def test_job_level_insufficient(self, graph):
        progression = _progression(jobs={"猎人": 1})
        skill = graph.find_by_name("箭术技巧").skill
        node = evaluate_skill(skill, 1, progression, graph, available_budget=3)
        assert node.status is NodeStatus.LOCKED
        assert node.reason is LockReason.JOB_LEVEL_INSUFFICIENT

    def test_job_level_reported_before_dependency(self, graph):
        progression = _progression(jobs={"战士": 1})
        skill = graph.find_by_name("铁壁").skill
        node = evaluate_skill(skill, 1, progression, graph, available_budget=3)
        assert node.reason is LockReason.JOB_LEVEL_INSUFFICIENT

    def test_dependency_met_by_committed_level(self, graph):
        progression = _progression(jobs={"战士": 1}, skills={"剑式基础": 1})
        skill = graph.find_by_name("流水架势").skill
        node = evaluate_skill(skill, 1, progression, graph, available_budget=1)
        assert node.status is NodeStatus.LEARNABLE

    def test_no_budget(self, graph):
        progression = _progression(budget=0, jobs={"战士": 1})
        skill = graph.find_by_name("剑式基础").skill
        node = evaluate_skill(skill, 1, progression, graph, available_budget=0)
        assert node.status is NodeStatus.LOCKED
        assert node.reason is LockReason.INSUFFICIENT_POINTS

    def test_missing_level_entry_counts_as_mastered(self):
        from rpg_overlay.engine.skill_graph import SkillGraph

        graph = SkillGraph.build({"甲": {"skills": [
            {"id": 1, "name": "残缺", "max_level": 3, "levels": [{"level": 1}]},
        ]}})
        skill = graph.find_by_name("残缺").skill
        node = evaluate_skill(skill, 1, _progression(skills={"残缺": 1}), graph, 3)
        assert node.status is NodeStatus.MASTERED


class TestFirstUnmetDependency:
    def test_reports_name_and_levels(self, graph):
        skill = graph.find_by_name("流水架势").skill
        assert first_unmet_dependency(skill, graph, _progression()) == ("剑式基础", 1, 0)

    def test_dependency_missing_from_graph_is_ignored(self):
        from rpg_overlay.engine.skill_graph import SkillGraph

        graph = SkillGraph.build({"甲": {"skills": [
            {"id": 1, "name": "孤儿", "dependencies": [{"skill_id": 404, "level": 3}]},
        ]}})
        skill = graph.find_by_name("孤儿").skill
        assert first_unmet_dependency(skill, graph, _progression()) is None


class TestEvaluateJob:
    def test_learnable_without_cap(self):
        node = evaluate_job("战士", JobProgress(current_level=9), available_budget=1)
        assert node.status is NodeStatus.LEARNABLE
        assert node.type is IntentType.JOB

    def test_mastered_at_cap(self):
        node = evaluate_job("猎人", JobProgress(current_level=5, max_level=5), available_budget=1)
        assert node.status is NodeStatus.MASTERED

    def test_staged_job_stays_learnable_with_zero_left(self):
        node = evaluate_job("战士", JobProgress(), available_budget=0, staged=True)
        assert node.status is NodeStatus.LEARNABLE


class TestEvaluateInherentSkill:
    def test_budget_only(self):
        node = evaluate_inherent_skill("潜行", LearnedSkillRecord(level=2), available_budget=0)
        assert node.reason is LockReason.INSUFFICIENT_POINTS

    def test_capped(self):
        node = evaluate_inherent_skill("潜行", LearnedSkillRecord(level=5), available_budget=3)
        assert node.status is NodeStatus.MASTERED
        assert node.max_level == 5


class TestEvaluateAll:
    def test_groups_visible_nodes(self, graph, progression):
        view = evaluate_all(graph, progression, UpgradeBasket())
        assert [n.name for n in view.jobs] == ["战士", "猎人"]
        assert set(view.job_skills) == {"战士", "猎人"}
        assert [n.name for n in view.universal_skills] == ["急救"]
        assert [n.name for n in view.inherent_skills] == ["潜行"]
        assert view.available == 3

    def test_universal_skill_gated_by_highest_job_level(self, graph):
        progression = _progression(jobs={"战士": 1, "猎人": 4})
        view = evaluate_all(graph, progression, UpgradeBasket())
        assert view.find("skill", "急救").is_learnable

        progression = _progression(jobs={"战士": 4}, skills={"急救": 1})
        node = evaluate_all(graph, progression, UpgradeBasket()).find("skill", "急救")
        assert node.reason is LockReason.JOB_LEVEL_INSUFFICIENT

    def test_trees_of_unheld_jobs_hidden(self, graph):
        view = evaluate_all(graph, _progression(jobs={"战士": 1}), UpgradeBasket())
        assert view.find("skill", "箭术技巧") is None

    def test_learned_skill_from_unheld_tree_is_inherent(self, graph):
        progression = _progression(budget=1, jobs={"猎人": 2}, skills={"剑式基础": 1})
        view = evaluate_all(graph, progression, UpgradeBasket())
        assert "战士" not in view.job_skills
        node = view.find("skill", "剑式基础")
        assert node in view.inherent_skills
        assert node.max_level == 5
        assert node.is_learnable

    def test_staged_dependency_does_not_unlock(self, graph):
        progression = _progression(budget=5, jobs={"战士": 3})
        basket = UpgradeBasket()
        basket.toggle("skill", "剑式基础")
        node = evaluate_all(graph, progression, basket).find("skill", "流水架势")
        assert node.reason is LockReason.DEPENDENCY_UNMET

    def test_staged_cost_matches_basket(self, graph, progression):
        basket = UpgradeBasket()
        basket.toggle("job", "战士")
        basket.toggle("skill", "潜行")
        view = evaluate_all(graph, progression, basket)
        assert view.staged_cost == 2
        assert view.available == 1


class TestCheckIntent:
    def test_passes_for_learnable(self, graph, progression):
        check_intent(UpgradeIntent("skill", "箭术技巧"), graph, progression)

    def test_job_level(self, graph):
        with pytest.raises(JobLevelUnmetError) as exc:
            check_intent(UpgradeIntent("skill", "箭术技巧"), graph, _progression(jobs={"猎人": 1}))
        assert exc.value.required == 2
        assert exc.value.current == 1
        assert exc.value.reason == "job level insufficient"

    def test_dependency(self, graph):
        with pytest.raises(DependencyUnmetError) as exc:
            check_intent(UpgradeIntent("skill", "流水架势"), graph, _progression(jobs={"战士": 2}))
        assert exc.value.dependency == "剑式基础"

    def test_mastered_tree_skill(self, graph):
        progression = _progression(jobs={"猎人": 2}, skills={"追踪": 1})
        with pytest.raises(AlreadyMasteredError):
            check_intent(UpgradeIntent("skill", "追踪"), graph, progression)

    def test_mastered_inherent_skill(self, graph):
        progression = _progression(skills={"潜行": 5})
        with pytest.raises(AlreadyMasteredError):
            check_intent(UpgradeIntent("skill", "潜行"), graph, progression)

    def test_unheld_job(self, graph):
        with pytest.raises(ValidationError):
            check_intent(UpgradeIntent("job", "法师"), graph, _progression(jobs={"战士": 1}))

    def test_capped_job(self, graph):
        progression = CharacterProgression(
            budget=1, jobs={"猎人": JobProgress(current_level=5, max_level=5)},
        )
        with pytest.raises(AlreadyMasteredError):
            check_intent(UpgradeIntent("job", "猎人"), graph, progression)

    def test_learned_skill_from_unheld_tree_passes_as_inherent(self, graph):
        progression = _progression(jobs={"猎人": 2}, skills={"剑式基础": 3})
        check_intent(UpgradeIntent("skill", "剑式基础"), graph, progression)

        progression = _progression(jobs={"猎人": 2}, skills={"剑式基础": 5})
        with pytest.raises(AlreadyMasteredError):
            check_intent(UpgradeIntent("skill", "剑式基础"), graph, progression)

    def test_unlearned_skill_from_unheld_tree(self, graph):
        with pytest.raises(ValidationError) as exc:
            check_intent(UpgradeIntent("skill", "剑式基础"), graph, _progression(jobs={"猎人": 2}))
        assert "does not hold" in str(exc.value)
