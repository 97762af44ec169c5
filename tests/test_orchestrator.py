"""
End-to-end tests for DeliberationOrchestrator.

Every session runs against scripted generation capabilities, an in-memory
artifact writer and a zero-duration cooldown.
"""

import asyncio
import json
import re

import pytest

from plan_council.engine import (
    SYNTHESIZED_PLAN_ID,
    ConfigurationError,
    DeliberationOrchestrator,
    GenerationError,
    PersistenceError,
    Persona,
    PersonaCatalog,
    SessionCancelled,
    SessionError,
)
from tests.conftest import FIXED_START, SAMPLE_PERSONAS_RESPONSE, MemoryArtifactWriter, vote_json

PROBLEM = "Fix bug"


def make_orchestrator(generator, writer, cooldown, **kwargs):
    catalog = kwargs.pop("catalog", None) or PersonaCatalog(personas=[], generator=generator)
    return DeliberationOrchestrator(
        generator, catalog, writer, cooldown=cooldown, clock=lambda: FIXED_START, **kwargs
    )


def agent_name(system_prompt):
    return re.match(r"You are (.+?)\. ", system_prompt).group(1)


class PhaseAwareResponder:
    """
    Answers each prompt according to the phase it belongs to.

    Proposals, refinements and validations are tagged with the agent name so
    tests can follow each plan through the session. Every agent votes for
    ``vote_for``.
    """

    def __init__(self, vote_for=SYNTHESIZED_PLAN_ID):
        self.vote_for = vote_for
        self.validation_prompts = {}
        self.voting_prompts = []

    def __call__(self, system_prompt, prompt):
        if prompt.startswith("I need to solve the following problem"):
            count = int(re.search(r"Generate (\d+) distinct", prompt).group(1))
            return json.dumps(
                [{"name": f"Expert{i}", "description": f"Desc{i}"} for i in range(1, count + 1)]
            )
        if prompt.startswith("The discussion is over"):
            self.voting_prompts.append(prompt)
            return vote_json(self.vote_for)
        if "All validated plans:" in prompt:
            return "Synthesized content"
        name = agent_name(system_prompt)
        if "Here is your current plan:" in prompt:
            self.validation_prompts[name] = prompt
            return f"Validated {name}"
        if "Here are the current plans proposed by the team" in prompt:
            return f"Refined {name}"
        return f"Proposal {name}"


class TestFullSession:
    @pytest.mark.asyncio
    async def test_two_agents_one_round(self, scripted_generator, memory_writer, recording_cooldown):
        generator = scripted_generator(
            [
                SAMPLE_PERSONAS_RESPONSE,
                "Plan A Content",
                "Plan B Content",
                "Refined Plan A Content",
                "Refined Plan B Content",
                "Refined Plan A Content",
                "Refined Plan B Content",
                "Synthesized Content",
                vote_json("AgentA"),
                vote_json("AgentA"),
            ]
        )
        orchestrator = make_orchestrator(generator, memory_writer, recording_cooldown)

        report = await orchestrator.run(PROBLEM, 2, 1)

        assert report.result.winners == ("AgentA",)
        assert report.result.max_votes == 2
        assert [p.name for p in report.personas] == ["AgentA", "AgentB"]
        assert report.transcript_path == "transcript-2025-01-02T03-04-05-678901.md"

        (transcript_path, transcript), (winning_path, winning) = memory_writer.writes
        assert transcript_path == report.transcript_path
        assert winning_path == report.winning_plan_path

        assert transcript.startswith("# Planning Session Transcript\n\n## Problem Statement\nFix bug")
        assert "- **AgentA**: DescA" in transcript
        assert "### AgentA's Proposal\nPlan A Content" in transcript
        assert "### AgentB's Refined Plan (Round 1)\nRefined Plan B Content" in transcript
        assert "### AgentA's Validated Plan\nRefined Plan A Content" in transcript
        assert "### Synthesized Plan\nSynthesized Content" in transcript
        assert '- **AgentB** voted for **AgentA**: "Best plan"' in transcript
        assert "Winner: AgentA with 2 votes." in transcript

        assert winning.startswith("# Winning Plan(s)\n\n**Problem:** Fix bug")
        assert "> **Winner:** AgentA's Plan" in winning
        assert "**Votes:** 2/2" in winning
        assert winning.endswith("Refined Plan A Content")

    @pytest.mark.asyncio
    async def test_cooldown_after_every_agent_call(self, scripted_generator, memory_writer, recording_cooldown):
        generator = scripted_generator(respond=PhaseAwareResponder())
        orchestrator = make_orchestrator(
            generator, memory_writer, recording_cooldown, cooldown_seconds=0.5
        )

        await orchestrator.run(PROBLEM, 2, 1)

        # 2 agents x 4 phases, plus the synthesizer
        assert recording_cooldown.delays == [0.5] * 9

    @pytest.mark.asyncio
    async def test_tie_with_no_review_rounds(self, scripted_generator, memory_writer, recording_cooldown):
        generator = scripted_generator(
            [
                SAMPLE_PERSONAS_RESPONSE,
                "Plan A Content",
                "Plan B Content",
                "Validated Plan A Content",
                "Validated Plan B Content",
                "Synthesized Content",
                vote_json("AgentA"),
                vote_json("AgentB"),
            ]
        )
        orchestrator = make_orchestrator(generator, memory_writer, recording_cooldown)

        report = await orchestrator.run(PROBLEM, 2, 0)

        assert report.result.is_tie
        assert report.result.winners == ("AgentA", "AgentB")
        transcript, winning = (content for _, content in memory_writer.writes)
        assert "Review Round" not in transcript
        assert "Tie between: AgentA, AgentB with 1 votes each." in transcript
        assert "> **Result:** TIE between AgentA, AgentB" in winning
        assert "## Plan by AgentA\n\nValidated Plan A Content" in winning
        assert "## Plan by AgentB\n\nValidated Plan B Content" in winning

    @pytest.mark.asyncio
    async def test_unparsable_personas_fall_back_to_synthetic(
        self, scripted_generator, memory_writer, recording_cooldown
    ):
        generator = scripted_generator(
            [
                "Invalid JSON",
                "Plan 1",
                "Plan 2",
                "Validated 1",
                "Validated 2",
                "Synthesized",
                vote_json("Agent_1"),
                vote_json("Agent_1"),
            ]
        )
        orchestrator = make_orchestrator(generator, memory_writer, recording_cooldown)

        report = await orchestrator.run(PROBLEM, 2, 0)

        assert [p.name for p in report.personas] == ["Agent_1", "Agent_2"]
        assert report.result.winners == ("Agent_1",)
        assert "### Agent_2's Proposal\nPlan 2" in memory_writer.writes[0][1]

    @pytest.mark.asyncio
    async def test_synthesized_plan_can_win(self, scripted_generator, memory_writer, recording_cooldown):
        generator = scripted_generator(respond=PhaseAwareResponder(vote_for=SYNTHESIZED_PLAN_ID))
        orchestrator = make_orchestrator(generator, memory_writer, recording_cooldown)

        report = await orchestrator.run(PROBLEM, 3, 0)

        assert report.result.winners == (SYNTHESIZED_PLAN_ID,)
        winning = memory_writer.writes[1][1]
        assert "Unified Synthesized Plan" in winning
        assert "**Votes:** 3/3" in winning
        assert winning.endswith("Synthesized content")

    @pytest.mark.asyncio
    async def test_unknown_winner_has_placeholder_plan(
        self, scripted_generator, memory_writer, recording_cooldown
    ):
        responder = PhaseAwareResponder(vote_for=SYNTHESIZED_PLAN_ID)

        def garbled_votes(system_prompt, prompt):
            if prompt.startswith("The discussion is over"):
                return "I pick the second one."
            return responder(system_prompt, prompt)

        generator = scripted_generator(respond=garbled_votes)
        orchestrator = make_orchestrator(generator, memory_writer, recording_cooldown)

        report = await orchestrator.run(PROBLEM, 2, 0)

        assert report.result.winners == ("Unknown",)
        assert [v.reason for v in report.result.votes] == ["Failed to parse vote"] * 2
        assert "(No plan found for Unknown)" in memory_writer.writes[1][1]


class TestPlanFlow:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("agent_count", [1, 2, 3, 4, 5, 6])
    @pytest.mark.parametrize("review_rounds", [0, 1, 2, 5])
    async def test_plan_set_follows_agents(
        self, scripted_generator, memory_writer, recording_cooldown, agent_count, review_rounds
    ):
        responder = PhaseAwareResponder()
        generator = scripted_generator(respond=responder)
        orchestrator = make_orchestrator(generator, memory_writer, recording_cooldown)

        report = await orchestrator.run(PROBLEM, agent_count, review_rounds)

        names = [f"Expert{i}" for i in range(1, agent_count + 1)]
        assert [p.name for p in report.personas] == names
        assert list(report.result.plans) == names
        assert [p.content for p in report.result.plans.values()] == [f"Validated {n}" for n in names]
        assert report.result.max_votes == agent_count

        transcript = memory_writer.writes[0][1]
        assert transcript.count("'s Proposal\n") == agent_count
        assert transcript.count("'s Refined Plan (Round ") == agent_count * review_rounds
        assert transcript.count("'s Validated Plan\n") == agent_count
        assert len(generator.calls) == 1 + agent_count * (3 + review_rounds) + 1
        assert len(recording_cooldown.delays) == agent_count * (3 + review_rounds) + 1

    @pytest.mark.asyncio
    async def test_validation_sees_only_own_plan(self, scripted_generator, memory_writer, recording_cooldown):
        responder = PhaseAwareResponder()
        generator = scripted_generator(respond=responder)
        orchestrator = make_orchestrator(generator, memory_writer, recording_cooldown)

        await orchestrator.run(PROBLEM, 3, 1)

        assert set(responder.validation_prompts) == {"Expert1", "Expert2", "Expert3"}
        for name, prompt in responder.validation_prompts.items():
            assert f"Refined {name}" in prompt
            others = {"Expert1", "Expert2", "Expert3"} - {name}
            assert not any(f"Refined {other}" in prompt for other in others)

    @pytest.mark.asyncio
    async def test_review_sees_every_current_plan(self, scripted_generator, memory_writer, recording_cooldown):
        generator = scripted_generator(respond=PhaseAwareResponder())
        orchestrator = make_orchestrator(generator, memory_writer, recording_cooldown)

        await orchestrator.run(PROBLEM, 2, 2)

        review_prompts = [p for p in generator.prompts if "current plans proposed by the team" in p]
        assert len(review_prompts) == 4
        for prompt in review_prompts[:2]:
            assert "Plan from Expert1:\nProposal Expert1\n---" in prompt
            assert "Plan from Expert2:\nProposal Expert2\n---" in prompt
        for prompt in review_prompts[2:]:
            assert "Plan from Expert1:\nRefined Expert1\n---" in prompt
            assert "Proposal Expert1" not in prompt

    @pytest.mark.asyncio
    async def test_ballot_lists_validated_plans_and_synthesis(
        self, scripted_generator, memory_writer, recording_cooldown
    ):
        responder = PhaseAwareResponder()
        generator = scripted_generator(respond=responder)
        orchestrator = make_orchestrator(generator, memory_writer, recording_cooldown)

        await orchestrator.run(PROBLEM, 2, 0)

        ballot = responder.voting_prompts[0]
        assert "Plan from Expert2:\nValidated Expert2\n---" in ballot
        assert "Plan from Synthesized Plan:\nSynthesized content\n---" in ballot
        assert "The candidates are: Expert1, Expert2, Synthesized Plan" in ballot

    @pytest.mark.asyncio
    async def test_counts_are_clamped(self, scripted_generator, memory_writer, recording_cooldown):
        generator = scripted_generator(respond=PhaseAwareResponder())
        orchestrator = make_orchestrator(generator, memory_writer, recording_cooldown)

        report = await orchestrator.run(PROBLEM, 10, -3)

        assert len(report.personas) == 6
        assert "Generate 6 distinct" in generator.prompts[0]
        assert "Review Round" not in memory_writer.writes[0][1]

    @pytest.mark.asyncio
    async def test_catalog_personas_skip_generation(
        self, scripted_generator, memory_writer, recording_cooldown, catalog_file
    ):
        generator = scripted_generator(respond=PhaseAwareResponder())
        catalog = PersonaCatalog(path=catalog_file, generator=generator)
        orchestrator = make_orchestrator(generator, memory_writer, recording_cooldown, catalog=catalog)

        report = await orchestrator.run(PROBLEM, 2, 0)

        assert {p.name for p in report.personas} <= {"Architect", "Tester", "Designer"}
        assert not any(p.startswith("I need to solve") for p in generator.prompts)

    @pytest.mark.asyncio
    async def test_reserved_persona_names_are_renamed(
        self, scripted_generator, memory_writer, recording_cooldown
    ):
        generator = scripted_generator(respond=PhaseAwareResponder())
        catalog = PersonaCatalog(personas=[Persona("Synthesized Plan", "Impostor")])
        orchestrator = make_orchestrator(generator, memory_writer, recording_cooldown, catalog=catalog)

        report = await orchestrator.run(PROBLEM, 1, 0)

        assert [p.name for p in report.personas] == ["Synthesized Plan_2"]


class TestGenerators:
    @pytest.mark.asyncio
    async def test_agent_generators_assigned_round_robin(
        self, scripted_generator, memory_writer, recording_cooldown
    ):
        responder = PhaseAwareResponder()
        first = scripted_generator(respond=responder)
        second = scripted_generator(respond=responder)
        chairman = scripted_generator(respond=responder)
        orchestrator = make_orchestrator(
            chairman, memory_writer, recording_cooldown, agent_generators=[first, second]
        )

        await orchestrator.run(PROBLEM, 3, 0)

        assert {agent_name(c["system"]) for c in first.calls} == {"Expert1", "Expert3"}
        assert {agent_name(c["system"]) for c in second.calls} == {"Expert2"}
        assert [agent_name(c["system"]) for c in chairman.calls[1:]] == ["Synthesizer"]

    @pytest.mark.asyncio
    async def test_synthesis_generator_used_for_synthesis(
        self, scripted_generator, memory_writer, recording_cooldown
    ):
        responder = PhaseAwareResponder()
        generator = scripted_generator(respond=responder)
        synthesis = scripted_generator(["Chairman synthesis"])
        orchestrator = make_orchestrator(
            generator, memory_writer, recording_cooldown, synthesis_generator=synthesis
        )

        report = await orchestrator.run(PROBLEM, 2, 0)

        assert report.result.synthesized_plan.content == "Chairman synthesis"
        assert "All validated plans:" in synthesis.prompts[0]

    @pytest.mark.asyncio
    async def test_workspace_tools_scoped_to_directory(
        self, scripted_generator, memory_writer, recording_cooldown, tmp_path
    ):
        generator = scripted_generator(respond=PhaseAwareResponder())
        orchestrator = make_orchestrator(
            generator, memory_writer, recording_cooldown, workspace_dir=tmp_path
        )

        await orchestrator.run(PROBLEM, 1, 0)

        agent_calls = generator.calls[1:]
        assert all(c["tool_scope"].root == tmp_path for c in agent_calls)

    @pytest.mark.asyncio
    async def test_no_tools_without_workspace(self, scripted_generator, memory_writer, recording_cooldown):
        generator = scripted_generator(respond=PhaseAwareResponder())
        orchestrator = make_orchestrator(generator, memory_writer, recording_cooldown)

        await orchestrator.run(PROBLEM, 1, 0)

        assert all(c["tool_scope"] is None for c in generator.calls)


class TestProgressEvents:
    @pytest.mark.asyncio
    async def test_event_sequence(
        self, scripted_generator, memory_writer, recording_cooldown, progress_events
    ):
        generator = scripted_generator(respond=PhaseAwareResponder(vote_for="Expert1"))
        orchestrator = make_orchestrator(
            generator, memory_writer, recording_cooldown, on_progress=progress_events.append
        )

        await orchestrator.run(PROBLEM, 2, 1)

        assert [e["type"] for e in progress_events] == [
            "session_start",
            "phase_start",
            "personas_ready",
            "phase_start",
            "agent_complete",
            "agent_complete",
            "phase_start",
            "agent_complete",
            "agent_complete",
            "round_complete",
            "phase_start",
            "agent_complete",
            "agent_complete",
            "phase_start",
            "synthesis_complete",
            "phase_start",
            "agent_complete",
            "agent_complete",
            "vote_cast",
            "vote_cast",
            "winner",
            "artifacts_written",
        ]
        assert progress_events[0]["message"] == 'Starting planning session for: "Fix bug"\nAgents: 2, Rounds: 1'
        assert progress_events[-2]["message"] == "Winner: Expert1"
        assert progress_events[-1]["transcript_path"] == memory_writer.writes[0][0]

    @pytest.mark.asyncio
    async def test_tie_event(self, scripted_generator, memory_writer, recording_cooldown, progress_events):
        generator = scripted_generator(
            [
                SAMPLE_PERSONAS_RESPONSE,
                "Plan A",
                "Plan B",
                "Validated A",
                "Validated B",
                "Synthesized",
                vote_json("AgentB"),
                vote_json("AgentA"),
            ]
        )
        orchestrator = make_orchestrator(
            generator, memory_writer, recording_cooldown, on_progress=progress_events.append
        )

        await orchestrator.run(PROBLEM, 2, 0)

        tie = next(e for e in progress_events if e["type"] == "tie")
        assert tie["winners"] == ["AgentB", "AgentA"]
        assert tie["message"].startswith("Tie between: AgentB, AgentA.")

    @pytest.mark.asyncio
    async def test_tool_use_is_reported(
        self, scripted_generator, memory_writer, recording_cooldown, progress_events, tmp_path
    ):
        generator = scripted_generator(respond=PhaseAwareResponder(), tool_calls=["read_file"])
        orchestrator = make_orchestrator(
            generator,
            memory_writer,
            recording_cooldown,
            workspace_dir=tmp_path,
            on_progress=progress_events.append,
        )

        await orchestrator.run(PROBLEM, 1, 0)

        tool_messages = [e["message"] for e in progress_events if e["type"] == "tool_use"]
        assert tool_messages == [
            "[Expert1] is using tool: read_file",
            "[Expert1] is using tool: read_file",
            "[Synthesizer] is using tool: read_file",
            "[Expert1] is using tool: read_file",
        ]


class TestFailures:
    def test_missing_generator_is_configuration_error(self, memory_writer):
        with pytest.raises(ConfigurationError):
            DeliberationOrchestrator(None, PersonaCatalog(), memory_writer)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("problem", ["", "   \n"])
    async def test_blank_problem_is_rejected(self, scripted_generator, memory_writer, recording_cooldown, problem):
        generator = scripted_generator()
        orchestrator = make_orchestrator(generator, memory_writer, recording_cooldown)

        with pytest.raises(ConfigurationError):
            await orchestrator.run(problem, 2, 1)

        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_generation_failure_aborts_without_artifacts(
        self, scripted_generator, memory_writer, recording_cooldown
    ):
        generator = scripted_generator(
            [SAMPLE_PERSONAS_RESPONSE, "Plan A", GenerationError("quota exceeded")]
        )
        orchestrator = make_orchestrator(generator, memory_writer, recording_cooldown)

        with pytest.raises(SessionError) as exc_info:
            await orchestrator.run(PROBLEM, 2, 1)

        assert str(exc_info.value) == "Planning session failed: quota exceeded"
        assert isinstance(exc_info.value.__cause__, GenerationError)
        assert exc_info.value.result is None
        assert memory_writer.writes == []

    @pytest.mark.asyncio
    async def test_persistence_failure_carries_result(self, scripted_generator, recording_cooldown):
        writer = MemoryArtifactWriter(fail_with=OSError("disk full"))
        generator = scripted_generator(respond=PhaseAwareResponder(vote_for="Expert2"))
        orchestrator = make_orchestrator(generator, writer, recording_cooldown)

        with pytest.raises(PersistenceError) as exc_info:
            await orchestrator.run(PROBLEM, 2, 0)

        assert "disk full" in str(exc_info.value)
        assert exc_info.value.result.winners == ("Expert2",)

    @pytest.mark.asyncio
    async def test_cancellation_stops_before_next_agent(self, scripted_generator, memory_writer):
        generator = scripted_generator(respond=PhaseAwareResponder())
        cancel_event = asyncio.Event()
        delays = []

        async def cancel_after_three_calls(seconds):
            delays.append(seconds)
            if len(delays) == 3:
                cancel_event.set()

        orchestrator = make_orchestrator(generator, memory_writer, cancel_after_three_calls)

        with pytest.raises(SessionError) as exc_info:
            await orchestrator.run(PROBLEM, 2, 1, cancel_event=cancel_event)

        assert isinstance(exc_info.value.__cause__, SessionCancelled)
        # persona generation + two proposals + one review
        assert len(generator.calls) == 4
        assert memory_writer.writes == []

    @pytest.mark.asyncio
    async def test_cancellation_before_synthesis(self, scripted_generator, memory_writer):
        generator = scripted_generator(respond=PhaseAwareResponder())
        cancel_event = asyncio.Event()
        delays = []

        async def cancel_after_validation(seconds):
            delays.append(seconds)
            if len(delays) == 2:
                cancel_event.set()

        orchestrator = make_orchestrator(generator, memory_writer, cancel_after_validation)

        with pytest.raises(SessionError):
            await orchestrator.run(PROBLEM, 1, 0, cancel_event=cancel_event)

        assert not any("All validated plans:" in p for p in generator.prompts)

    @pytest.mark.asyncio
    async def test_cancellation_after_last_vote(self, scripted_generator, memory_writer, progress_events):
        generator = scripted_generator(respond=PhaseAwareResponder())
        cancel_event = asyncio.Event()
        delays = []

        async def cancel_after_voting(seconds):
            delays.append(seconds)
            # proposal, validation, synthesis, vote
            if len(delays) == 4:
                cancel_event.set()

        orchestrator = make_orchestrator(
            generator, memory_writer, cancel_after_voting, on_progress=progress_events.append
        )

        with pytest.raises(SessionError) as exc_info:
            await orchestrator.run(PROBLEM, 1, 0, cancel_event=cancel_event)

        assert isinstance(exc_info.value.__cause__, SessionCancelled)
        assert memory_writer.writes == []
        assert not any(e["type"] in ("winner", "tie", "artifacts_written") for e in progress_events)


class TestProgressSinkFailures:
    @pytest.mark.asyncio
    async def test_raising_sink_does_not_affect_session(
        self, scripted_generator, memory_writer, recording_cooldown
    ):
        received = []

        def broken_sink(event):
            received.append(event["type"])
            raise RuntimeError("ui gone")

        generator = scripted_generator(respond=PhaseAwareResponder(vote_for="Expert1"))
        orchestrator = make_orchestrator(
            generator, memory_writer, recording_cooldown, on_progress=broken_sink
        )

        report = await orchestrator.run(PROBLEM, 1, 0)

        assert report.result.winners == ("Expert1",)
        assert len(memory_writer.writes) == 2
        assert received[0] == "session_start"
        assert received[-1] == "artifacts_written"
        assert "agent_complete" in received

    @pytest.mark.asyncio
    async def test_raising_sink_during_tool_use(self, scripted_generator, memory_writer, recording_cooldown, tmp_path):
        def broken_sink(event):
            if event["type"] == "tool_use":
                raise RuntimeError("ui gone")

        generator = scripted_generator(respond=PhaseAwareResponder(), tool_calls=["glob"])
        orchestrator = make_orchestrator(
            generator, memory_writer, recording_cooldown, workspace_dir=tmp_path, on_progress=broken_sink
        )

        report = await orchestrator.run(PROBLEM, 1, 0)

        assert report.result.winners == (SYNTHESIZED_PLAN_ID,)
