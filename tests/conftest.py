"""
Pytest configuration and fixtures for planning council tests.

This module provides a scripted generation capability and in-memory
collaborators so sessions can run without making actual API calls.
"""

import json
from collections.abc import Callable
from datetime import datetime
from typing import Any

import pytest

from plan_council.engine import GenerationError

# =============================================================================
# Sample Model Responses
# =============================================================================

SAMPLE_PERSONAS_RESPONSE = json.dumps(
    [
        {"name": "AgentA", "description": "DescA"},
        {"name": "AgentB", "description": "DescB"},
    ]
)

SAMPLE_CATALOG_YAML = """personas:
  - id: architect
    name: Architect
    description: Designs the structure.
    expertise: [architecture, apis]
    focus_areas: [modularity]
    tone: measured
  - id: tester
    name: Tester
    description: Breaks things on purpose.
    expertise: [testing]
    focus_areas: [edge cases]
    tone: skeptical
  - id: designer
    name: Designer
    description: Cares about the user journey.
    expertise: [ux]
    focus_areas: [onboarding]
    tone: empathetic
"""

FIXED_START = datetime(2025, 1, 2, 3, 4, 5, 678901)


def vote_json(voted_for: str, reason: str = "Best plan") -> str:
    return json.dumps({"votedFor": voted_for, "reason": reason})


# =============================================================================
# Fakes
# =============================================================================


class ScriptedGenerator:
    """
    Generation capability that replays queued responses in call order.

    A queued Exception is raised instead of returned. ``respond`` can replace
    the queue with a function of (system_prompt, prompt). ``tool_calls`` are
    emitted as tool_call events before the content.
    """

    def __init__(
        self,
        responses: list[Any] | None = None,
        respond: Callable[[str, str], str] | None = None,
        tool_calls: list[str] | None = None,
    ):
        self.responses = list(responses or [])
        self.respond = respond
        self.tool_calls = list(tool_calls or [])
        self.calls: list[dict[str, Any]] = []

    async def stream(self, system_prompt, prompt, tool_scope=None):
        self.calls.append({"system": system_prompt, "prompt": prompt, "tool_scope": tool_scope})
        if self.respond is not None:
            text = self.respond(system_prompt, prompt)
        elif self.responses:
            text = self.responses.pop(0)
        else:
            raise GenerationError("No scripted response left")
        if isinstance(text, Exception):
            raise text
        for tool in self.tool_calls:
            yield {"type": "tool_call", "tool": tool, "args": {}}
            yield {"type": "tool_result", "tool": tool, "result": "ignored"}
        yield {"type": "token", "content": text}

    @property
    def prompts(self) -> list[str]:
        return [call["prompt"] for call in self.calls]


class MemoryArtifactWriter:
    """ArtifactWriter that keeps writes in memory."""

    def __init__(self, fail_with: Exception | None = None):
        self.writes: list[tuple[str, str]] = []
        self.fail_with = fail_with

    def allocate_paths(self, started_at):
        stamp = started_at.isoformat().replace(":", "-").replace(".", "-")
        return f"transcript-{stamp}.md", f"winning_plan-{stamp}.md"

    def write(self, path, content):
        if self.fail_with is not None:
            raise self.fail_with
        self.writes.append((path, content))


class RecordingCooldown:
    """Zero-duration cooldown that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def scripted_generator() -> type[ScriptedGenerator]:
    """Return the ScriptedGenerator class for building fakes in tests."""
    return ScriptedGenerator


@pytest.fixture
def memory_writer() -> MemoryArtifactWriter:
    return MemoryArtifactWriter()


@pytest.fixture
def recording_cooldown() -> RecordingCooldown:
    return RecordingCooldown()


@pytest.fixture
def progress_events() -> list[dict[str, Any]]:
    """A list that can be passed (via .append) as a progress sink."""
    return []


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "personas.yaml"
    path.write_text(SAMPLE_CATALOG_YAML)
    return path
