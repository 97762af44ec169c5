"""
Vote parsing, tallying and winner resolution.

Ties are a valid outcome: every candidate sharing the top count is a winner
and no tie-break is applied.
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

from .extraction import extract_structured

SYNTHESIZED_PLAN_ID = "Synthesized Plan"
UNKNOWN_CANDIDATE = "Unknown"
UNPARSED_VOTE_REASON = "Failed to parse vote"


@dataclass(frozen=True)
class Vote:
    voter_name: str
    voted_for: str
    reason: str


def parse_vote(voter_name: str, response_text: str) -> Vote:
    """
    Parse a ``{"votedFor": ..., "reason": ...}`` response.

    Args:
        voter_name: The agent that cast the vote
        response_text: Raw model output

    Returns:
        The parsed Vote, or an ``Unknown`` vote if either field is missing
        or not a string
    """
    data = extract_structured(response_text)
    if (
        isinstance(data, dict)
        and isinstance(data.get("votedFor"), str)
        and isinstance(data.get("reason"), str)
    ):
        return Vote(voter_name=voter_name, voted_for=data["votedFor"], reason=data["reason"])
    return Vote(voter_name=voter_name, voted_for=UNKNOWN_CANDIDATE, reason=UNPARSED_VOTE_REASON)


def tally_votes(votes: Iterable[Vote]) -> dict[str, int]:
    """
    Count votes per candidate, matching names exactly.

    Only candidates with at least one vote appear, in order of first vote.
    """
    return dict(Counter(vote.voted_for for vote in votes))


def resolve_winners(tally: dict[str, int]) -> tuple[list[str], int]:
    """
    Find the candidate(s) with the highest count.

    Args:
        tally: Candidate name to vote count

    Returns:
        Tuple of (winners in tally order, max_votes). More than one winner
        means a tie.
    """
    max_votes = 0
    winners: list[str] = []
    for candidate, count in tally.items():
        if count > max_votes:
            max_votes = count
            winners = [candidate]
        elif count == max_votes:
            winners.append(candidate)
    return winners, max_votes
