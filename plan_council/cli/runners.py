"""
CLI runners for planning sessions.

Wires the engine to OpenRouter clients, the persona catalog and the artifact
store, and renders progress with Rich while the session runs.
"""

import asyncio
import contextlib
import signal
from pathlib import Path
from typing import Any

from rich.progress import Progress, SpinnerColumn, TextColumn

from plan_council.adapters.artifact_store import FileArtifactWriter
from plan_council.adapters.openrouter_client import OpenRouterClient
from plan_council.cli.presenters import console, print_progress_event
from plan_council.engine import (
    ConfigurationError,
    DeliberationOrchestrator,
    PersonaCatalog,
    SessionReport,
)
from plan_council.settings import Settings


def build_client(settings: Settings, model: str) -> OpenRouterClient:
    return OpenRouterClient(
        model=model,
        api_key=settings.openrouter_api_key,
        api_url=settings.openrouter_api_url,
        timeout=settings.request_timeout,
        max_tool_calls=settings.max_tool_calls,
    )


def build_orchestrator(
    settings: Settings,
    catalog_path: Path | None = None,
    output_dir: Path | None = None,
    cooldown_seconds: float | None = None,
    on_progress=None,
) -> DeliberationOrchestrator:
    """
    Assemble an orchestrator from settings and command-line overrides.

    Raises:
        ConfigurationError: If no OpenRouter API key is configured
    """
    if not settings.openrouter_api_key:
        raise ConfigurationError(
            "OPENROUTER_API_KEY is not set. Add it to your environment or a .env file."
        )

    chairman = build_client(settings, settings.chairman_model)
    return DeliberationOrchestrator(
        generator=chairman,
        catalog=PersonaCatalog(path=catalog_path or settings.personas_path, generator=chairman),
        writer=FileArtifactWriter(output_dir or settings.output_dir),
        agent_generators=[build_client(settings, model) for model in settings.council_models],
        synthesis_generator=chairman,
        workspace_dir=settings.workspace_dir,
        cooldown_seconds=settings.cooldown_seconds if cooldown_seconds is None else cooldown_seconds,
        on_progress=on_progress,
    )


async def run_plan_with_progress(
    problem: str,
    agents: int,
    rounds: int,
    settings: Settings,
    catalog_path: Path | None = None,
    output_dir: Path | None = None,
    cooldown_seconds: float | None = None,
) -> SessionReport:
    """
    Run a planning session with a spinner and streamed progress messages.

    Ctrl-C sets the session's cancellation signal; the agent call in flight
    finishes and the session then fails without writing artifacts.

    Returns:
        The SessionReport of the completed session

    Raises:
        ConfigurationError: If the session cannot start
        SessionError: If the session fails or is cancelled
    """
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("[cyan]Assembling the team...", total=None)

        def on_progress(event: dict[str, Any]) -> None:
            if event["type"] == "phase_start":
                progress.update(task, description=f"[cyan]{event['message']}")
            elif event["type"] == "agent_complete":
                progress.update(task, description=f"[cyan]{event['phase'].title()}: {event['agent']} done")
            print_progress_event(event)

        orchestrator = build_orchestrator(
            settings,
            catalog_path=catalog_path,
            output_dir=output_dir,
            cooldown_seconds=cooldown_seconds,
            on_progress=on_progress,
        )
        # add_signal_handler is unavailable on Windows event loops
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signal.SIGINT, cancel_event.set)
        try:
            return await orchestrator.run(problem, agents, rounds, cancel_event=cancel_event)
        finally:
            progress.remove_task(task)
            with contextlib.suppress(NotImplementedError):
                loop.remove_signal_handler(signal.SIGINT)
