"""Typer CLI application."""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from rpg_overlay.errors import OverlayError, PartialCommitError, ValidationError

app = typer.Typer(
    name="rpg-overlay",
    help="Job and skill progression for a role-playing character",
    no_args_is_help=True,
)

_state: dict = {}


def _get_app():
    from rpg_overlay.app import OverlayApp, _load_config

    config_path = _state.get("config_path")
    config = _load_config(config_path) if config_path else _load_config()
    return OverlayApp(config=config, character_id=_state.get("character_id"))


def _parse_item(item: str) -> tuple[str, str]:
    kind, sep, name = item.partition(":")
    if not sep or kind not in ("job", "skill") or not name:
        raise typer.BadParameter(f"Expected job:NAME or skill:NAME, got '{item}'")
    return kind, name


@app.callback()
def main(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config.toml"),
    character: Optional[str] = typer.Option(None, "--character", help="Character id"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Configure the session shared by every command."""
    from rpg_overlay.app import _load_config

    _state["config_path"] = config
    _state["character_id"] = character
    cfg = _load_config(config) if config else _load_config()
    level = "DEBUG" if verbose else cfg.get("logging", {}).get("level", "WARNING")
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("import-state")
def import_state(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON state file"),
) -> None:
    """Replace the character's stored state with a JSON document."""
    from rpg_overlay.cli.display import ProgressionDisplay

    display = ProgressionDisplay()
    overlay = _get_app()
    try:
        with open(path, encoding="utf-8") as f:
            state = json.load(f)
    except json.JSONDecodeError as e:
        display.show_error(f"Invalid JSON in {path}: {e}")
        raise typer.Exit(code=1)
    if not isinstance(state, dict):
        display.show_error("State document must be a JSON object")
        raise typer.Exit(code=1)
    try:
        overlay.import_state(state)
    finally:
        overlay.shutdown()
    display.show_success(f"Imported state for '{overlay.character_id}'")


@app.command("export-state")
def export_state(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file instead of stdout"),
) -> None:
    """Print the character's stored state as JSON."""
    overlay = _get_app()
    try:
        state = asyncio.run(overlay.export_state())
    finally:
        overlay.shutdown()
    text = json.dumps(state, ensure_ascii=False, indent=2)
    if output:
        output.write_text(text + "\n", encoding="utf-8")
    else:
        typer.echo(text)


@app.command()
def show() -> None:
    """Show jobs and skills with their current eligibility."""
    from rpg_overlay.cli.display import ProgressionDisplay

    overlay = _get_app()
    try:
        view = asyncio.run(overlay.view())
    except OverlayError as e:
        ProgressionDisplay().show_error(str(e))
        raise typer.Exit(code=1)
    finally:
        overlay.shutdown()
    ProgressionDisplay().show_view(view, overlay.character_id)


@app.command()
def upgrade(
    items: list[str] = typer.Argument(..., help="Upgrades to apply, e.g. job:战士 skill:剑式基础"),
) -> None:
    """Stage the given upgrades and commit them in one batch."""
    from rpg_overlay.cli.display import ProgressionDisplay

    display = ProgressionDisplay()
    parsed = [_parse_item(item) for item in items]
    overlay = _get_app()

    async def _run():
        for kind, name in parsed:
            if overlay.basket.is_staged(kind, name):
                continue
            if not await overlay.toggle(kind, name):
                node = (await overlay.view()).find(kind, name)
                reason = node.reason.value if node and node.reason else "not available"
                display.show_info(f"Skipped {kind}:{name} ({reason})")
        return await overlay.commit()

    try:
        result = asyncio.run(_run())
    except ValidationError as e:
        display.show_error(f"{e.reason}: {e}")
        raise typer.Exit(code=1)
    except PartialCommitError as e:
        display.show_error(str(e))
        display.show_info(f"Applied: {', '.join(map(str, e.applied)) or 'none'}")
        display.show_info(f"Not applied: {', '.join(map(str, e.pending))}")
        raise typer.Exit(code=2)
    except OverlayError as e:
        display.show_error(str(e))
        raise typer.Exit(code=1)
    finally:
        overlay.shutdown()
    display.show_commit(result)


@app.command()
def history(
    limit: int = typer.Option(10, "--limit", "-n", help="Number of entries"),
) -> None:
    """List recent commits, including partial ones."""
    from rich import box
    from rich.table import Table

    from rpg_overlay.cli.display import console

    overlay = _get_app()
    try:
        entries = overlay.journal.list_entries(limit)
    finally:
        overlay.shutdown()
    if not entries:
        console.print("[dim]No commits recorded.[/dim]")
        return
    table = Table(title="Commit History", box=box.ROUNDED, border_style="cyan")
    table.add_column("When")
    table.add_column("Status", style="bold")
    table.add_column("Upgrades")
    table.add_column("Points")
    for entry in entries:
        table.add_row(
            entry["committed_at"][:19],
            entry["status"],
            ", ".join(entry["intents"]),
            f"{entry['budget_before']} -> {entry['budget_after']}",
        )
    console.print(table)


if __name__ == "__main__":
    app()
