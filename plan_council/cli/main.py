#!/usr/bin/env python3
"""
Plan Council CLI - Several expert agents propose, review and vote on a plan.

Usage:
    plan-council plan "How should we add offline sync to the app?"
    plan-council plan "Fix flaky CI" --agents 4 --rounds 2
    plan-council personas
    plan-council config
"""

import asyncio
from pathlib import Path

import typer

from plan_council.cli.presenters import (
    print_error,
    print_personas_table,
    print_session_header,
    print_session_report,
    print_settings,
)
from plan_council.cli.runners import run_plan_with_progress
from plan_council.engine import ConfigurationError, PersonaCatalog, SessionError
from plan_council.settings import clamp_agent_count, clamp_review_rounds, load_settings

app = typer.Typer(
    name="plan-council",
    help="Run a multi-agent planning session and vote on the best plan.",
    add_completion=False,
    no_args_is_help=True,
)


@app.command()
def plan(
    problem: str | None = typer.Argument(
        None,
        help="The problem statement to plan for",
    ),
    agents: int | None = typer.Option(
        None,
        "--agents",
        "-a",
        help="Number of agents (1-6, default from config)",
    ),
    rounds: int | None = typer.Option(
        None,
        "--rounds",
        "-r",
        help="Number of peer-review rounds (0-5, default from config)",
    ),
    catalog: Path | None = typer.Option(
        None,
        "--catalog",
        help="Persona catalog YAML (default from config)",
    ),
    output_dir: Path | None = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Directory for the transcript and winning plan",
    ),
    cooldown: float | None = typer.Option(
        None,
        "--cooldown",
        help="Seconds to wait between agent calls",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Path to config.yaml",
    ),
):
    """
    Start a multi-agent planning session.

    Examples:
        plan-council plan "How to fix bug X"
        plan-council plan "Design a billing service" -a 4 -r 2
        plan-council plan "Migrate to Postgres" --catalog team.yaml -o plans/
    """
    settings = load_settings(config)
    if not problem:
        problem = typer.prompt("Enter the problem statement")

    agent_count = clamp_agent_count(settings.default_agents if agents is None else agents)
    review_rounds = clamp_review_rounds(settings.default_rounds if rounds is None else rounds)

    print_session_header(problem, agent_count, review_rounds, settings)

    try:
        report = asyncio.run(
            run_plan_with_progress(
                problem,
                agent_count,
                review_rounds,
                settings,
                catalog_path=catalog,
                output_dir=output_dir,
                cooldown_seconds=cooldown,
            )
        )
    except (ConfigurationError, SessionError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_session_report(report)


@app.command()
def personas(
    catalog: Path | None = typer.Option(
        None,
        "--catalog",
        help="Persona catalog YAML (default from config)",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Path to config.yaml",
    ),
):
    """Show the persona catalog."""
    path = catalog or load_settings(config).personas_path
    entries = PersonaCatalog(path=path).entries()
    if not entries:
        print_error(f"No personas found in {path}; sessions will generate personas with the model.")
        raise typer.Exit(1)
    print_personas_table(entries, str(path))


@app.command("config")
def show_config(
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Path to config.yaml",
    ),
):
    """Show the effective configuration."""
    print_settings(load_settings(config))


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
