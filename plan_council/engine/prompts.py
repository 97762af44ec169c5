"""
Prompt templates for planning sessions.

All prompt construction logic is centralized here for easier maintenance.
"""

from collections.abc import Iterable

from .templates import PromptTemplate

PLAN_INSTRUCTIONS = """CRITICAL INSTRUCTIONS:
1. DO NOT include your internal thinking process, reasoning, or decision-making steps
2. DO NOT use phrases like "I'm analyzing", "I'm considering", "I've decided", "I think", "I believe"
3. DO NOT include meta-commentary about the planning process itself
4. Output ONLY the final plan content in a clean, professional format"""

PLAN_SECTIONS = """## Overview
Brief summary of the approach and key objectives.

## Product Features
List concrete features with brief descriptions. Include user stories where relevant.

## Technology Stack
Specify technologies, frameworks, and tools with rationale.

## UI/UX Design
Describe the user interface, key screens, and user experience flow.

## Implementation Phases
Break down into phases with specific deliverables and timelines.

## Success Metrics
Define how to measure the success of this plan."""

AGENT_SYSTEM = PromptTemplate(
    "agent_system",
    """You are {{name}}. {{description}}

You are participating in a planning session with other agents. You have access to read-only tools to explore the codebase. Use them to understand the context before proposing a plan.""",
)

PERSONA_BUILDER_SYSTEM = PromptTemplate(
    "persona_builder_system",
    "You are an expert team builder. Your goal is to create diverse, capable personas to solve a specific problem.",
)

PERSONA_GENERATION = PromptTemplate(
    "persona_generation",
    """I need to solve the following problem: "{{problem}}".
Generate {{count}} distinct, expert personas that would be best suited to solve this problem together.
They should have different perspectives (e.g., specific technical expertise, cautious vs. innovative, user-focused vs. backend-focused).

Return the result ONLY as a raw JSON array of objects, where each object has "name" and "description" fields.
Do not include markdown formatting like ```json.
Example:
[{"name": "SecurityExpert", "description": "Focuses on vulnerabilities..."}, {"name": "UXDesigner", "description": "Prioritizes user journey..."}]""",
)

PROPOSAL = PromptTemplate(
    "proposal",
    """The user has the following problem: "{{problem}}".

Based on your expertise, propose a detailed plan to solve this.

{{instructions}}

Structure your plan with these sections (use markdown headers):

{{sections}}

Be specific, actionable, and comprehensive. Focus on deliverables and outcomes, not your thought process.""",
)

REVIEW = PromptTemplate(
    "review",
    """The user has the following problem: "{{problem}}".

Here are the current plans proposed by the team:
{{plans}}

Your task: Provide an UPDATED, refined version of your plan based on the feedback and ideas from other plans.

{{instructions}}
5. DO NOT include critiques of other plans

Structure your refined plan with these sections (use markdown headers):

{{sections}}

Incorporate the best ideas from other plans while maintaining your unique perspective. Be specific, actionable, and comprehensive. Focus on deliverables and outcomes.""",
)

VALIDATION = PromptTemplate(
    "validation",
    """You are reviewing your plan to ensure it properly addresses the user's request: "{{problem}}"

Here is your current plan:
{{plan}}

Your task: Review your own plan and verify it comprehensively addresses the user's request.

CRITICAL INSTRUCTIONS:
1. Check if the plan covers all aspects mentioned in the user's request
2. Identify any gaps or missing elements
3. If the plan is incomplete or lacks detail, EXPAND it significantly
4. Ensure the plan is specific and actionable, not vague or high-level
5. DO NOT include your internal thinking process or meta-commentary
6. Output ONLY the final validated and potentially expanded plan

Structure your validated plan with these sections:

{{sections}}

Make sure your plan is thorough and complete.""",
)

SYNTHESIS = PromptTemplate(
    "synthesis",
    """You are a master synthesizer. Your task is to create the ultimate plan by combining the best elements from all the plans below.

User's original request: "{{problem}}"

All validated plans:
{{plans}}

CRITICAL INSTRUCTIONS:
1. Analyze all plans and identify the strongest elements from each
2. Create a single, comprehensive, unified plan that incorporates the best ideas
3. Resolve any contradictions or conflicts between plans
4. Fill in any gaps that exist across all plans
5. DO NOT include your internal thinking process or meta-commentary
6. DO NOT mention which plan an idea came from - just present the unified plan
7. Output ONLY the final synthesized plan

Structure your synthesized plan with these sections:

{{sections}}

## Risk Mitigation
Key risks and how to address them.

Create a plan that is better than any individual plan - a true synthesis of excellence.""",
)

VOTING = PromptTemplate(
    "voting",
    """The discussion is over. Here are the final plans:
{{plans}}

The candidates are: {{candidates}}

Vote for the single best plan. You may vote for your own if it is truly superior, but be objective.

Return ONLY a raw JSON object with fields: "votedFor" (exactly one of the candidate names above) and "reason" (string).
Do not include markdown formatting.
Example: {"votedFor": "SecurityExpert", "reason": "It addresses the root cause..."}""",
)


def format_plans(plans: Iterable[tuple[str, str]]) -> str:
    """
    Format (name, content) pairs as the plan listing shown to agents.

    Args:
        plans: Pairs of agent name (or candidate id) and plan content

    Returns:
        One ``Plan from <name>:`` block per plan, separated by ``---``
    """
    return "\n".join(f"Plan from {name}:\n{content}\n---" for name, content in plans)


def build_agent_system_prompt(name: str, description: str) -> str:
    return AGENT_SYSTEM.render(name=name, description=description)


def build_persona_prompt(problem: str, count: int) -> str:
    return PERSONA_GENERATION.render(problem=problem, count=str(count))


def build_proposal_prompt(problem: str) -> str:
    return PROPOSAL.render(problem=problem, instructions=PLAN_INSTRUCTIONS, sections=PLAN_SECTIONS)


def build_review_prompt(problem: str, plans_text: str) -> str:
    return REVIEW.render(
        problem=problem, plans=plans_text, instructions=PLAN_INSTRUCTIONS, sections=PLAN_SECTIONS
    )


def build_validation_prompt(problem: str, own_plan: str) -> str:
    return VALIDATION.render(problem=problem, plan=own_plan, sections=PLAN_SECTIONS)


def build_synthesis_prompt(problem: str, plans_text: str) -> str:
    return SYNTHESIS.render(problem=problem, plans=plans_text, sections=PLAN_SECTIONS)


def build_voting_prompt(plans_text: str, candidates: Iterable[str]) -> str:
    return VOTING.render(plans=plans_text, candidates=", ".join(candidates))
