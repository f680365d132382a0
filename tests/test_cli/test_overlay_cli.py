"""Tests for the typer CLI and the OverlayApp wiring behind it."""
from __future__ import annotations

import asyncio
import json

import pytest
from typer.testing import CliRunner

from rpg_overlay.app import OverlayApp
from rpg_overlay.cli.main import app

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        "[storage]\n"
        f'db_path = "{(tmp_path / "overlay.db").as_posix()}"\n'
        'character_id = "hero"\n'
        "[logging]\n"
        'level = "ERROR"\n',
        encoding="utf-8",
    )
    return path


@pytest.fixture
def state_file(tmp_path, sample_state):
    path = tmp_path / "state.json"
    path.write_text(json.dumps(sample_state, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def overlay(tmp_path, sample_state):
    app_ = OverlayApp(config={"storage": {"db_path": str(tmp_path / "app.db")}})
    app_.import_state(sample_state)
    yield app_
    app_.shutdown()


class TestOverlayApp:
    def test_defaults(self, overlay):
        assert overlay.character_id == "default"
        assert overlay.paths.budget == "主角.职业点数"

    def test_toggle_refuses_locked_node(self, overlay):
        assert asyncio.run(overlay.toggle("skill", "流水架势")) is False
        assert overlay.basket.is_empty()

    def test_toggle_then_commit(self, overlay):
        async def run():
            assert await overlay.toggle("skill", "剑式基础") is True
            result = await overlay.commit()
            view = await overlay.view()
            return result, view

        result, view = asyncio.run(run())
        assert result.budget_after == 2
        assert view.find("skill", "剑式基础").current_level == 1
        assert view.find("skill", "流水架势").is_learnable
        assert overlay.journal.list_entries()[0]["status"] == "committed"

    def test_unstage_always_allowed(self, overlay):
        async def run():
            await overlay.toggle("job", "战士")
            return await overlay.toggle("job", "战士")

        assert asyncio.run(run()) is False
        assert overlay.basket.is_empty()

    def test_cancel_clears_basket(self, overlay):
        asyncio.run(overlay.toggle("job", "战士"))
        overlay.cancel()
        assert overlay.basket.is_empty()


class TestCli:
    def test_import_and_export(self, config_file, state_file):
        result = runner.invoke(app, ["--config", str(config_file), "import-state", str(state_file)])
        assert result.exit_code == 0, result.output

        result = runner.invoke(app, ["--config", str(config_file), "export-state"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["主角"]["职业点数"] == 3

    def test_show(self, config_file, state_file):
        runner.invoke(app, ["--config", str(config_file), "import-state", str(state_file)])
        result = runner.invoke(app, ["--config", str(config_file), "show"])
        assert result.exit_code == 0, result.output
        assert "箭术技巧" in result.output
        assert "Profession points" in result.output

    def test_upgrade(self, config_file, state_file):
        runner.invoke(app, ["--config", str(config_file), "import-state", str(state_file)])
        result = runner.invoke(
            app, ["--config", str(config_file), "upgrade", "job:战士", "skill:箭术技巧"],
        )
        assert result.exit_code == 0, result.output

        result = runner.invoke(app, ["--config", str(config_file), "export-state"])
        state = json.loads(result.stdout)
        assert state["主角"]["职业点数"] == 1
        assert state["主角"]["职业"]["战士"]["当前等级"] == 2

    def test_upgrade_rejects_bad_item(self, config_file):
        result = runner.invoke(app, ["--config", str(config_file), "upgrade", "spell:火球"])
        assert result.exit_code != 0

    def test_history(self, config_file, state_file):
        runner.invoke(app, ["--config", str(config_file), "import-state", str(state_file)])
        runner.invoke(app, ["--config", str(config_file), "upgrade", "job:猎人"])
        result = runner.invoke(app, ["--config", str(config_file), "history"])
        assert result.exit_code == 0, result.output
        assert "committed" in result.output
