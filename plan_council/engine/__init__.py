"""
Planning session engine.

This package provides the core logic for multi-agent planning sessions:
persona selection, sequential phase execution, voting and artifact building.

Public API:
    - Orchestration: DeliberationOrchestrator, SessionReport, ArtifactWriter
    - Phases: PhaseRunner, PhaseResult, no_cooldown, emit_progress
    - Agents: DeliberationAgent, GenerationCapability, collect_text
    - Personas: Persona, PersonaCatalog, synthetic_personas, disambiguate_names
    - Voting: Vote, parse_vote, tally_votes, resolve_winners
    - Extraction: extract_structured, parse_whole, parse_fenced_block, parse_delimited_span
    - Templates: PromptTemplate, substitute
    - Errors: PlanCouncilError, ConfigurationError, GenerationError, SessionCancelled,
              SessionError, PersistenceError
"""

from .agent import DeliberationAgent, GenerationCapability, collect_text
from .artifacts import Transcript, build_winning_plan_document
from .errors import (
    ConfigurationError,
    GenerationError,
    PersistenceError,
    PlanCouncilError,
    SessionCancelled,
    SessionError,
)
from .extraction import (
    extract_structured,
    parse_delimited_span,
    parse_fenced_block,
    parse_whole,
)
from .models import Plan, SessionResult
from .orchestrator import (
    SYNTHESIZER_NAME,
    ArtifactWriter,
    DeliberationOrchestrator,
    SessionReport,
)
from .personas import Persona, PersonaCatalog, disambiguate_names, synthetic_personas
from .phases import PhaseResult, PhaseRunner, emit_progress, no_cooldown
from .templates import PromptTemplate, substitute
from .voting import (
    SYNTHESIZED_PLAN_ID,
    UNKNOWN_CANDIDATE,
    Vote,
    parse_vote,
    resolve_winners,
    tally_votes,
)

__all__ = [
    # Orchestration
    "DeliberationOrchestrator",
    "SessionReport",
    "ArtifactWriter",
    "SYNTHESIZER_NAME",
    # Phases
    "PhaseRunner",
    "PhaseResult",
    "no_cooldown",
    "emit_progress",
    # Agents
    "DeliberationAgent",
    "GenerationCapability",
    "collect_text",
    # Personas
    "Persona",
    "PersonaCatalog",
    "synthetic_personas",
    "disambiguate_names",
    # Data
    "Plan",
    "SessionResult",
    # Voting
    "Vote",
    "parse_vote",
    "tally_votes",
    "resolve_winners",
    "SYNTHESIZED_PLAN_ID",
    "UNKNOWN_CANDIDATE",
    # Extraction
    "extract_structured",
    "parse_whole",
    "parse_fenced_block",
    "parse_delimited_span",
    # Artifacts
    "Transcript",
    "build_winning_plan_document",
    # Templates
    "PromptTemplate",
    "substitute",
    # Errors
    "PlanCouncilError",
    "ConfigurationError",
    "GenerationError",
    "SessionCancelled",
    "SessionError",
    "PersistenceError",
]
