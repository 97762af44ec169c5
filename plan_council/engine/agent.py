"""
Deliberation agents.

An agent binds one persona to a generation capability and a tool scope, and
turns the capability's event stream into plain text.
"""

from collections.abc import AsyncIterator, Callable
from typing import Any, Protocol

from ..adapters.workspace_tools import ToolScope
from .prompts import build_agent_system_prompt

LogCallback = Callable[[str], None]


class GenerationCapability(Protocol):
    """Protocol for text generation backends.

    ``stream`` yields event dicts. ``{"type": "token", "content": str}`` events
    carry generated text; ``{"type": "tool_call", "tool": str, "args": dict}``
    events report tool use. Other event types may appear and are ignored.
    Failures are raised, not yielded.
    """

    def stream(
        self, system_prompt: str, prompt: str, tool_scope: ToolScope | None = None
    ) -> AsyncIterator[dict[str, Any]]: ...


async def collect_text(
    generator: GenerationCapability,
    system_prompt: str,
    prompt: str,
    tool_scope: ToolScope | None = None,
    on_tool_call: Callable[[str], None] | None = None,
) -> str:
    """
    Run one generation request and accumulate its content tokens.

    Args:
        generator: The generation capability
        system_prompt: System context for the request
        prompt: Full prompt text
        tool_scope: Tools available during generation
        on_tool_call: Called with the tool name for every tool_call event

    Returns:
        The concatenated content tokens
    """
    full_text = ""
    async for event in generator.stream(system_prompt, prompt, tool_scope):
        if event["type"] == "token":
            full_text += event["content"]
        elif event["type"] == "tool_call" and on_tool_call is not None:
            on_tool_call(event["tool"])
    return full_text


class DeliberationAgent:
    """One persona-bound participant in a planning session."""

    def __init__(
        self,
        name: str,
        description: str,
        generator: GenerationCapability,
        tool_scope: ToolScope | None = None,
        log: LogCallback | None = None,
    ):
        self.name = name
        self.description = description
        self.generator = generator
        self.tool_scope = tool_scope
        self.system_prompt = build_agent_system_prompt(name, description)
        self._log = log

    def _on_tool_call(self, tool_name: str) -> None:
        if self._log is not None:
            self._log(f"[{self.name}] is using tool: {tool_name}")

    async def generate(self, prompt: str) -> str:
        """Send one prompt and return the generated text (tool output excluded)."""
        return await collect_text(
            self.generator,
            self.system_prompt,
            prompt,
            tool_scope=self.tool_scope,
            on_tool_call=self._on_tool_call,
        )

    def __repr__(self) -> str:
        return f"DeliberationAgent({self.name!r})"
