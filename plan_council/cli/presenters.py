"""
Presentation functions for CLI output.

All print_* and display functions for Rich console output.
"""

from typing import Any

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from plan_council.engine import SYNTHESIZED_PLAN_ID, Persona, SessionReport
from plan_council.settings import Settings

PLAN_THEME = Theme(
    {
        "plan.accent": "bold #5B8DEF",
        "plan.meta": "dim",
        "plan.tool": "#E0B15A",
        "plan.success": "green",
        "plan.warning": "bold yellow",
        "plan.error": "bold red",
    }
)

# Shared console instance with plan theme
console = Console(theme=PLAN_THEME)


def print_session_header(problem: str, agents: int, rounds: int, settings: Settings) -> None:
    """Print the problem panel with session parameters."""
    console.print()
    console.print(Panel(f"[bold]{problem}[/bold]", title="Problem", border_style="white"))
    console.print()
    console.print(f"[plan.meta]Agents: {agents}, Review rounds: {rounds}[/plan.meta]")
    console.print(
        f"[plan.meta]Models: {', '.join(m.split('/')[-1] for m in settings.council_models)}[/plan.meta]"
    )
    console.print(f"[plan.meta]Synthesizer: {settings.chairman_model.split('/')[-1]}[/plan.meta]")
    console.print()


def print_progress_event(event: dict[str, Any]) -> None:
    """Render one progress event from the orchestrator."""
    event_type = event["type"]
    message = event.get("message", "")

    if event_type == "phase_start":
        console.print(f"\n[bold cyan]━━━ {message} ━━━[/bold cyan]\n")
    elif event_type == "personas_ready":
        console.print(Markdown(message))
    elif event_type in ("agent_complete", "synthesis_complete", "vote_cast"):
        console.print(Markdown(message))
    elif event_type == "round_complete":
        console.print(f"[plan.success]✓[/plan.success] {message}")
    elif event_type == "tool_use":
        console.print(f"[plan.tool]{message}[/plan.tool]")
    elif event_type == "winner":
        console.print(f"\n[plan.success]{message}[/plan.success]")
    elif event_type == "tie":
        console.print(f"\n[plan.warning]{message}[/plan.warning]")
    elif event_type == "session_start":
        console.print(f"[plan.meta]{message}[/plan.meta]")
    # artifacts_written is shown by print_session_report


def print_session_report(report: SessionReport) -> None:
    """Display the vote table, the winning plan(s) and the artifact paths."""
    result = report.result

    table = Table(title="Votes", show_header=True, header_style="bold magenta")
    table.add_column("Voter", style="cyan")
    table.add_column("Voted For", style="green")
    table.add_column("Reason")
    for vote in result.votes:
        table.add_row(vote.voter_name, vote.voted_for, vote.reason)
    console.print()
    console.print(table)
    console.print()

    for winner in result.winners:
        plan = result.plan_for(winner)
        title = "Unified Synthesized Plan" if winner == SYNTHESIZED_PLAN_ID else f"{winner}'s Plan"
        console.print(
            Panel(
                Markdown(plan.content) if plan else f"(No plan found for {winner})",
                title=f"[bold green]{title} • {result.max_votes} votes[/bold green]",
                border_style="green",
                padding=(1, 2),
            )
        )

    console.print()
    print_success(f"Transcript saved to: {report.transcript_path}")
    print_success(f"Winning plan saved to: {report.winning_plan_path}")


def print_personas_table(personas: list[Persona], source: str) -> None:
    """Print the persona catalog."""
    table = Table(title=f"Persona Catalog ({source})", show_header=True, header_style="plan.accent")
    table.add_column("ID", style="plan.meta", width=14)
    table.add_column("Name", style="green")
    table.add_column("Description")
    table.add_column("Expertise", style="plan.meta")
    table.add_column("Tone", style="plan.meta")

    for persona in personas:
        table.add_row(
            persona.id or "",
            persona.name,
            persona.description,
            ", ".join(persona.expertise),
            persona.tone,
        )

    console.print()
    console.print(table)
    console.print()


def print_settings(settings: Settings) -> None:
    """Show the effective configuration."""
    table = Table(title="Plan Council Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="dim")
    table.add_column("Value", style="green")

    for model in settings.council_models:
        table.add_row("Agent model", model)
    table.add_row("[bold yellow]Synthesizer[/bold yellow]", f"[bold yellow]{settings.chairman_model}[/bold yellow]")
    table.add_row("Persona catalog", str(settings.personas_path))
    table.add_row("Output directory", str(settings.output_dir))
    table.add_row("Workspace", str(settings.workspace_dir))
    table.add_row("Cooldown", f"{settings.cooldown_seconds:g}s")
    table.add_row("Defaults", f"{settings.default_agents} agents, {settings.default_rounds} rounds")
    table.add_row("API key", "set" if settings.openrouter_api_key else "[red]missing[/red]")

    console.print()
    console.print(table)
    console.print()


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[plan.error]{message}[/plan.error]")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")
