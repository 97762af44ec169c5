"""
Planning session orchestration.

A session moves through a fixed sequence of states:
team assembly -> proposal -> review (x rounds) -> validation -> synthesis
-> voting -> resolution -> artifact emission.

The current plan set is replaced wholesale at the end of every phase that
revises plans. Artifacts are only written after resolution succeeds.
"""

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from ..adapters.workspace_tools import ToolScope
from ..settings import clamp_agent_count, clamp_review_rounds
from .agent import DeliberationAgent, GenerationCapability
from .artifacts import Transcript, build_winning_plan_document, format_persona_list
from .errors import ConfigurationError, PersistenceError, SessionError
from .models import Plan, SessionResult
from .personas import Persona, PersonaCatalog, disambiguate_names
from .phases import (
    DEFAULT_COOLDOWN_SECONDS,
    Cooldown,
    PhaseResult,
    PhaseRunner,
    ProgressSink,
    emit_progress,
)
from .prompts import (
    build_proposal_prompt,
    build_review_prompt,
    build_synthesis_prompt,
    build_validation_prompt,
    build_voting_prompt,
    format_plans,
)
from .voting import (
    SYNTHESIZED_PLAN_ID,
    UNKNOWN_CANDIDATE,
    parse_vote,
    resolve_winners,
    tally_votes,
)

SYNTHESIZER_NAME = "Synthesizer"
SYNTHESIZER_DESCRIPTION = (
    "Master plan synthesizer who creates unified plans from multiple perspectives"
)


class ArtifactWriter(Protocol):
    """Persists session documents."""

    def allocate_paths(self, started_at: datetime) -> tuple[str, str]:
        """Return (transcript_path, winning_plan_path) for a session."""
        ...

    def write(self, path: str, content: str) -> None: ...


@dataclass(frozen=True)
class SessionReport:
    """A completed session: its result and where the artifacts went."""

    result: SessionResult
    personas: tuple[Persona, ...]
    transcript_path: str
    winning_plan_path: str


class DeliberationOrchestrator:
    """
    Runs planning sessions.

    Args:
        generator: Default generation capability (synthesis, and agents when
            ``agent_generators`` is not given)
        catalog: Persona source
        writer: Artifact writer
        agent_generators: Per-agent capabilities, assigned round-robin
        synthesis_generator: Capability for the synthesizer
        workspace_dir: Root for each agent's read-only tools; None disables tools
        cooldown: Awaitable delay between agent calls
        cooldown_seconds: Delay length
        on_progress: Receives progress event dicts
        clock: Source of the session start time
    """

    def __init__(
        self,
        generator: GenerationCapability | None,
        catalog: PersonaCatalog,
        writer: ArtifactWriter,
        agent_generators: Sequence[GenerationCapability] | None = None,
        synthesis_generator: GenerationCapability | None = None,
        workspace_dir: Path | None = None,
        cooldown: Cooldown = asyncio.sleep,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        on_progress: ProgressSink | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        if generator is None:
            raise ConfigurationError("No generation capability available.")
        self.generator = generator
        self.catalog = catalog
        self.writer = writer
        self.agent_generators = list(agent_generators or [])
        self.synthesis_generator = synthesis_generator or generator
        self.workspace_dir = workspace_dir
        self.cooldown = cooldown
        self.cooldown_seconds = cooldown_seconds
        self.on_progress = on_progress
        self.clock = clock

    def _emit(self, event_type: str, message: str, **details: Any) -> None:
        emit_progress(self.on_progress, {"type": event_type, "message": message, **details})

    def _log_tool_use(self, message: str) -> None:
        self._emit("tool_use", message)

    def _generator_for(self, index: int) -> GenerationCapability:
        if not self.agent_generators:
            return self.generator
        return self.agent_generators[index % len(self.agent_generators)]

    def _tool_scope(self) -> ToolScope | None:
        if self.workspace_dir is None:
            return None
        return ToolScope(root=self.workspace_dir)

    def _build_agent(self, persona: Persona, generator: GenerationCapability) -> DeliberationAgent:
        return DeliberationAgent(
            persona.name,
            persona.description,
            generator,
            tool_scope=self._tool_scope(),
            log=self._log_tool_use,
        )

    async def run(
        self,
        problem: str,
        agent_count: int,
        review_rounds: int,
        cancel_event: asyncio.Event | None = None,
    ) -> SessionReport:
        """
        Run one planning session end to end.

        Args:
            problem: The problem statement
            agent_count: Number of agents, clamped to [1, 6]
            review_rounds: Number of review rounds, clamped to [0, 5]
            cancel_event: External cancellation signal

        Returns:
            SessionReport with the result and artifact paths

        Raises:
            ConfigurationError: If the problem statement is blank
            SessionError: If any phase fails or the session is cancelled
            PersistenceError: If writing the artifacts fails
        """
        if not problem or not problem.strip():
            raise ConfigurationError("Please provide a problem statement.")
        problem = problem.strip()
        agent_count = clamp_agent_count(agent_count)
        review_rounds = clamp_review_rounds(review_rounds)

        started_at = self.clock()
        transcript = Transcript(problem)
        self._emit(
            "session_start",
            f'Starting planning session for: "{problem}"\n'
            f"Agents: {agent_count}, Rounds: {review_rounds}",
            agents=agent_count,
            rounds=review_rounds,
        )

        try:
            personas, result = await self._deliberate(
                problem, agent_count, review_rounds, transcript, cancel_event
            )
        except Exception as e:
            raise SessionError(str(e)) from e

        try:
            transcript_path, winning_plan_path = self.writer.allocate_paths(started_at)
            self.writer.write(transcript_path, transcript.render())
            self.writer.write(winning_plan_path, build_winning_plan_document(problem, result))
        except Exception as e:
            raise PersistenceError(str(e), result=result) from e

        self._emit(
            "artifacts_written",
            f"Session Complete.\nTranscript saved to: {transcript_path}\n"
            f"Winning Plan saved to: {winning_plan_path}",
            transcript_path=transcript_path,
            winning_plan_path=winning_plan_path,
        )
        return SessionReport(
            result=result,
            personas=tuple(personas),
            transcript_path=transcript_path,
            winning_plan_path=winning_plan_path,
        )

    async def _deliberate(
        self,
        problem: str,
        agent_count: int,
        review_rounds: int,
        transcript: Transcript,
        cancel_event: asyncio.Event | None,
    ) -> tuple[list[Persona], SessionResult]:
        # Team assembly
        self._emit("phase_start", "Generating personas...", phase="team_assembly")
        personas = await self.catalog.select_personas(problem, agent_count)
        personas = disambiguate_names(personas, reserved=(SYNTHESIZED_PLAN_ID, UNKNOWN_CANDIDATE))
        if not personas:
            raise RuntimeError("No personas available for the session.")
        transcript.add_personas(personas)
        self._emit(
            "personas_ready",
            f"Personas created:\n{format_persona_list(personas)}",
            personas=[p.name for p in personas],
        )

        agents = [self._build_agent(p, self._generator_for(i)) for i, p in enumerate(personas)]
        runner = PhaseRunner(
            agents,
            cooldown=self.cooldown,
            cooldown_seconds=self.cooldown_seconds,
            cancel_event=cancel_event,
            on_progress=self.on_progress,
        )

        # Proposal
        self._emit("phase_start", "Phase 1: Initial Proposals", phase="proposal")
        transcript.add_section("Phase 1: Initial Proposals")
        results = await runner.run(
            "proposal", lambda agent: build_proposal_prompt(problem), "has proposed a plan"
        )
        plans = _plan_set(results)
        transcript.add_plans(plans.values(), "Proposal")

        # Review rounds
        for round_number in range(1, review_rounds + 1):
            self._emit(
                "phase_start",
                f"Phase 2: Review Round {round_number}/{review_rounds}",
                phase="review",
                round=round_number,
            )
            transcript.add_section(f"Phase 2: Review Round {round_number}")
            plans_text = _format_plan_set(plans)
            results = await runner.run(
                "review",
                lambda agent: build_review_prompt(problem, plans_text),
                "has refined their plan",
            )
            plans = _plan_set(results)
            transcript.add_plans(plans.values(), f"Refined Plan (Round {round_number})")
            self._emit(
                "round_complete",
                f"Review round {round_number}/{review_rounds} complete.",
                round=round_number,
            )

        # Validation: each agent sees only its own plan
        self._emit("phase_start", "Phase 3: Quality Validation", phase="validation")
        transcript.add_section("Phase 3: Quality Validation")
        snapshot = dict(plans)
        results = await runner.run(
            "validation",
            lambda agent: build_validation_prompt(problem, snapshot[agent.name].content),
            "has validated their plan",
        )
        plans = _plan_set(results)
        transcript.add_plans(plans.values(), "Validated Plan")

        # Synthesis
        runner.check_cancelled()
        self._emit("phase_start", "Phase 4: Synthesis", phase="synthesis")
        transcript.add_section("Phase 4: Synthesis")
        synthesizer = DeliberationAgent(
            SYNTHESIZER_NAME,
            SYNTHESIZER_DESCRIPTION,
            self.synthesis_generator,
            tool_scope=self._tool_scope(),
            log=self._log_tool_use,
        )
        synthesized_content = await synthesizer.generate(
            build_synthesis_prompt(problem, _format_plan_set(plans))
        )
        synthesized_plan = Plan(agent_name=SYNTHESIZED_PLAN_ID, content=synthesized_content)
        transcript.add_synthesized_plan(synthesized_plan)
        self._emit(
            "synthesis_complete",
            f"**{SYNTHESIZER_NAME}** has created a unified plan combining the best elements.",
        )
        await self.cooldown(self.cooldown_seconds)

        # Voting
        self._emit("phase_start", "Phase 5: Voting", phase="voting")
        transcript.add_section("Phase 5: Voting")
        candidates = [*plans, SYNTHESIZED_PLAN_ID]
        ballot_text = format_plans(
            [(p.agent_name, p.content) for p in [*plans.values(), synthesized_plan]]
        )
        results = await runner.run(
            "voting",
            lambda agent: build_voting_prompt(ballot_text, candidates),
            "has cast a vote",
        )
        runner.check_cancelled()
        votes = [parse_vote(r.agent_name, r.content) for r in results]
        transcript.add_votes(votes)
        for vote in votes:
            self._emit(
                "vote_cast",
                f"**{vote.voter_name}** voted for **{vote.voted_for}**.",
                voter=vote.voter_name,
                voted_for=vote.voted_for,
                reason=vote.reason,
            )

        # Resolution
        winners, max_votes = resolve_winners(tally_votes(votes))
        result = SessionResult(
            winners=tuple(winners),
            max_votes=max_votes,
            plans=plans,
            synthesized_plan=synthesized_plan,
            votes=tuple(votes),
        )
        transcript.add_result(result)
        if result.is_tie:
            self._emit(
                "tie",
                f"Tie between: {', '.join(winners)}. Please review the winning plans.",
                winners=list(winners),
                max_votes=max_votes,
            )
        else:
            self._emit(
                "winner",
                f"Winner: {winners[0]}",
                winners=list(winners),
                max_votes=max_votes,
            )
        return personas, result


def _plan_set(results: list[PhaseResult]) -> dict[str, Plan]:
    """Build the next current plan set from a phase's results."""
    return {r.agent_name: Plan(agent_name=r.agent_name, content=r.content) for r in results}


def _format_plan_set(plans: dict[str, Plan]) -> str:
    return format_plans((p.agent_name, p.content) for p in plans.values())
