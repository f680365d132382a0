"""Rich terminal rendering of the progression view."""
from __future__ import annotations

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from rpg_overlay.engine.commit import CommitResult
from rpg_overlay.mechanics.skill_levels import rank_for_level
from rpg_overlay.models.progression import IntentType, NodeEvaluation, NodeStatus, ProgressionView

console = Console()

_STATUS_STYLE = {
    NodeStatus.MASTERED: "yellow",
    NodeStatus.LEARNABLE: "green",
    NodeStatus.LOCKED: "red",
}

_STATUS_LABEL = {
    NodeStatus.MASTERED: "mastered",
    NodeStatus.LEARNABLE: "learnable",
    NodeStatus.LOCKED: "locked",
}


def _level_text(node: NodeEvaluation) -> str:
    if node.max_level is None:
        return f"Lv.{node.current_level}"
    return f"{node.current_level}/{node.max_level}"


def _status_text(node: NodeEvaluation) -> Text:
    style = _STATUS_STYLE[node.status]
    text = Text(_STATUS_LABEL[node.status], style=style)
    if node.reason is not None:
        text.append(f" ({node.reason.value})", style="dim")
    if node.staged:
        text.append(" +1", style="bold cyan")
    return text


class ProgressionDisplay:
    def __init__(self, output: Console | None = None) -> None:
        self.console = output or console

    def show_view(self, view: ProgressionView, character_id: str = "") -> None:
        header = Text()
        header.append("Profession points: ", style="bold")
        header.append(str(view.budget), style="yellow")
        if view.staged_cost:
            header.append(f"  (staged -{view.staged_cost}, left {view.available})", style="cyan")
        title = f"{character_id} - Progression" if character_id else "Progression"
        self.console.print(Panel(header, title=title, border_style="cyan", box=box.ROUNDED))

        self.show_nodes("Jobs", view.jobs)
        for job_name, skills in view.job_skills.items():
            self.show_nodes(f"{job_name} - Skills", skills, with_requirements=True)
        if view.universal_skills:
            self.show_nodes("Universal Skills", view.universal_skills, with_requirements=True)
        if view.inherent_skills:
            self.show_nodes("Inherent Skills", view.inherent_skills)

    def show_nodes(
        self, title: str, nodes: list[NodeEvaluation], with_requirements: bool = False,
    ) -> None:
        if not nodes:
            self.console.print(f"[dim]{title}: none[/dim]")
            return
        table = Table(title=title, box=box.ROUNDED, border_style="cyan")
        table.add_column("Name", style="bold")
        table.add_column("Level", justify="center")
        table.add_column("Rank", style="dim")
        table.add_column("Status")
        if with_requirements:
            table.add_column("Next", style="dim")
        for node in nodes:
            rank = (
                rank_for_level(node.current_level)
                if node.type is IntentType.SKILL and node.current_level else "-"
            )
            row = [node.name, _level_text(node), rank, _status_text(node)]
            if with_requirements:
                nxt = node.next_level
                row.append(
                    f"job Lv.{nxt.required_job_level}: {nxt.description}" if nxt else "-"
                )
            table.add_row(*row)
        self.console.print(table)

    def show_commit(self, result: CommitResult) -> None:
        if result.is_empty:
            self.console.print("[dim]Nothing staged.[/dim]")
            return
        lines = Text()
        for intent in result.intents:
            level = result.levels.get(str(intent), 0)
            lines.append(f"{intent.type.value} ", style="dim")
            lines.append(intent.name, style="bold")
            lines.append(f" -> Lv.{level}\n")
        lines.append(
            f"Points: {result.budget_before} -> {result.budget_after}", style="yellow",
        )
        self.console.print(Panel(lines, title="Upgrades applied", border_style="green"))

    def show_error(self, message: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {message}")

    def show_info(self, message: str) -> None:
        self.console.print(f"[bold blue]Info:[/bold blue] {message}")

    def show_success(self, message: str) -> None:
        self.console.print(f"[bold green]{message}[/bold green]")
