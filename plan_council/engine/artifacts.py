"""
Markdown documents produced by a planning session.

The transcript accumulates every phase's output as the session runs; the
winning-plan document is built once the vote has been resolved.
"""

from collections.abc import Iterable

from .models import Plan, SessionResult
from .personas import Persona
from .voting import SYNTHESIZED_PLAN_ID, Vote


class Transcript:
    """Incrementally built session transcript."""

    def __init__(self, problem: str):
        self._parts = [f"# Planning Session Transcript\n\n## Problem Statement\n{problem}\n\n"]

    def add_personas(self, personas: Iterable[Persona]) -> None:
        self._parts.append(f"## Personas\n{format_persona_list(personas)}\n\n")

    def add_section(self, title: str) -> None:
        self._parts.append(f"## {title}\n\n")

    def add_plans(self, plans: Iterable[Plan], heading: str) -> None:
        """Append one ``### <name>'s <heading>`` entry per plan."""
        for plan in plans:
            self._parts.append(f"### {plan.agent_name}'s {heading}\n{plan.content}\n\n")

    def add_synthesized_plan(self, plan: Plan) -> None:
        self._parts.append(f"### Synthesized Plan\n{plan.content}\n\n")

    def add_votes(self, votes: Iterable[Vote]) -> None:
        for vote in votes:
            self._parts.append(
                f'- **{vote.voter_name}** voted for **{vote.voted_for}**: "{vote.reason}"\n'
            )

    def add_result(self, result: SessionResult) -> None:
        self._parts.append("\n## Result\n")
        if result.is_tie:
            self._parts.append(
                f"Tie between: {', '.join(result.winners)} with {result.max_votes} votes each.\n"
            )
        else:
            self._parts.append(f"Winner: {result.winners[0]} with {result.max_votes} votes.\n")

    def render(self) -> str:
        return "".join(self._parts)


def format_persona_list(personas: Iterable[Persona]) -> str:
    return "\n".join(f"- **{p.name}**: {p.description}" for p in personas)


def _plan_content(result: SessionResult, candidate: str) -> str:
    plan = result.plan_for(candidate)
    if plan is None:
        return f"(No plan found for {candidate})"
    return plan.content


def build_winning_plan_document(problem: str, result: SessionResult) -> str:
    """
    Build the winner-focused document.

    Args:
        problem: The problem statement
        result: Resolved session outcome

    Returns:
        Markdown with the single winning plan, or every tied plan
    """
    total_votes = len(result.votes)
    content = f"# Winning Plan(s)\n\n**Problem:** {problem}\n\n"

    if not result.is_tie:
        winner = result.winners[0]
        if winner == SYNTHESIZED_PLAN_ID:
            content += (
                "> **Winner:** Unified Synthesized Plan "
                "(combining best elements from all agents)\n\n"
            )
        else:
            content += f"> **Winner:** {winner}'s Plan\n\n"
        content += f"**Votes:** {result.max_votes}/{total_votes}\n\n---\n\n"
        content += _plan_content(result, winner)
        return content

    content += (
        f"> **Result:** TIE between {', '.join(result.winners)}\n\n"
        f"**Votes:** {result.max_votes} each\n\n---\n\n"
    )
    for winner in result.winners:
        content += f"## Plan by {winner}\n\n{_plan_content(result, winner)}\n\n---\n\n"
    return content
