"""Data types shared across a planning session."""

from dataclasses import dataclass, field

from .voting import SYNTHESIZED_PLAN_ID, Vote


@dataclass(frozen=True)
class Plan:
    agent_name: str
    content: str


@dataclass(frozen=True)
class SessionResult:
    """
    Outcome of the voting phase.

    Attributes:
        winners: Winning candidate names; more than one means a tie
        max_votes: Vote count shared by the winners
        plans: Final plan per deliberating agent, in agent order
        synthesized_plan: The synthesizer's unified plan
        votes: Every vote cast, in agent order
    """

    winners: tuple[str, ...]
    max_votes: int
    plans: dict[str, Plan]
    synthesized_plan: Plan
    votes: tuple[Vote, ...] = field(default=())

    @property
    def is_tie(self) -> bool:
        return len(self.winners) > 1

    def plan_for(self, candidate: str) -> Plan | None:
        """Look up a candidate's plan; None for names that are not candidates."""
        if candidate == SYNTHESIZED_PLAN_ID:
            return self.synthesized_plan
        return self.plans.get(candidate)
