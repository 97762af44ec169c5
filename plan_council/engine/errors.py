"""
Error types for planning sessions.

Only generation, persistence and cancellation failures ever reach the caller
of a session. Catalog and extraction problems are absorbed by fallbacks in
``personas`` and ``voting`` and have no exception type of their own.
"""

from typing import Any


class PlanCouncilError(Exception):
    """Base class for all planning council errors."""


class ConfigurationError(PlanCouncilError):
    """Raised before a session starts when required inputs are missing."""


class GenerationError(PlanCouncilError):
    """Raised when the generation capability fails (quota, transport, model error)."""


class SessionCancelled(PlanCouncilError):
    """Raised inside a phase once the cancellation signal has been observed."""


class SessionError(PlanCouncilError):
    """
    Session-level failure surfaced to the caller.

    Attributes:
        result: The SessionResult if resolution completed before the failure
    """

    def __init__(self, message: str, result: Any = None):
        super().__init__(f"Planning session failed: {message}")
        self.result = result


class PersistenceError(SessionError):
    """Raised when the artifact writer fails after the winner was resolved."""
