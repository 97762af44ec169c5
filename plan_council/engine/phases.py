"""
Sequential phase execution.

Every phase that involves all agents runs them one at a time, in the order
they were created, with a cooldown after each call. Agents share one external
rate quota, so phases never fan out concurrently.
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from .agent import DeliberationAgent
from .errors import SessionCancelled

Cooldown = Callable[[float], Awaitable[None]]
ProgressSink = Callable[[dict[str, Any]], None]

DEFAULT_COOLDOWN_SECONDS = 1.0


async def no_cooldown(_seconds: float) -> None:
    """Cooldown that returns immediately."""


def emit_progress(sink: ProgressSink | None, event: dict[str, Any]) -> None:
    """
    Deliver one progress event, fire-and-forget.

    A missing sink is a no-op. Errors raised by the sink are dropped.
    """
    if sink is None:
        return
    with contextlib.suppress(Exception):
        sink(event)


@dataclass(frozen=True)
class PhaseResult:
    """Text produced by one agent in one phase."""

    agent_name: str
    content: str


class PhaseRunner:
    """
    Runs one prompt per agent, strictly in agent order.

    Args:
        agents: Agents in instantiation order
        cooldown: Awaitable delay, ``asyncio.sleep`` by default
        cooldown_seconds: Delay after each agent call
        cancel_event: Checked before every agent call
        on_progress: Receives an ``agent_complete`` event per agent
    """

    def __init__(
        self,
        agents: Sequence[DeliberationAgent],
        cooldown: Cooldown = asyncio.sleep,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        cancel_event: asyncio.Event | None = None,
        on_progress: ProgressSink | None = None,
    ):
        self.agents = list(agents)
        self.cooldown = cooldown
        self.cooldown_seconds = cooldown_seconds
        self.cancel_event = cancel_event
        self.on_progress = on_progress

    def check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise SessionCancelled("Session cancelled")

    async def run(
        self,
        phase: str,
        build_prompt: Callable[[DeliberationAgent], str],
        completed_message: str = "has finished",
    ) -> list[PhaseResult]:
        """
        Execute a phase across all agents.

        Args:
            phase: Phase name used in progress events
            build_prompt: Builds the prompt for a given agent
            completed_message: Progress text appended to the agent name

        Returns:
            One PhaseResult per agent, in agent order

        Raises:
            SessionCancelled: If cancellation is observed before an agent call
            GenerationError: If any agent's generation fails
        """
        results = []
        for agent in self.agents:
            self.check_cancelled()
            content = await agent.generate(build_prompt(agent))
            results.append(PhaseResult(agent_name=agent.name, content=content))
            emit_progress(
                self.on_progress,
                {
                    "type": "agent_complete",
                    "phase": phase,
                    "agent": agent.name,
                    "message": f"**{agent.name}** {completed_message}.",
                },
            )
            await self.cooldown(self.cooldown_seconds)
        return results
