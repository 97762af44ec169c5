"""Configuration for the planning council.

Loads settings from config.yaml if present, falls back to defaults.
API keys are always loaded from environment variables.
"""

import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from dotenv import load_dotenv

load_dotenv()

# Find project root (where config.yaml lives)
_PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = _PROJECT_ROOT / "config.yaml"

# Default persona catalog ships inside the package
DEFAULT_PERSONAS_PATH = Path(__file__).parent / "personas.yaml"

MIN_AGENTS, MAX_AGENTS = 1, 6
MIN_ROUNDS, MAX_ROUNDS = 0, 5

# Defaults (used if config.yaml is missing)
_DEFAULTS = {
    "council_models": [
        "openai/gpt-4o-mini",
        "x-ai/grok-3",
        "deepseek/deepseek-chat",
    ],
    "chairman_model": "openai/gpt-4o-mini",
    "openrouter_api_url": "https://openrouter.ai/api/v1/chat/completions",
    "personas_path": str(DEFAULT_PERSONAS_PATH),
    "output_dir": ".",
    "workspace_dir": ".",
    "cooldown_seconds": 1.0,
    "default_agents": 3,
    "default_rounds": 1,
    "request_timeout": 120.0,
    "max_tool_calls": 5,
}


@dataclass(frozen=True)
class Settings:
    """Effective configuration for one CLI invocation."""

    council_models: list[str]
    chairman_model: str
    openrouter_api_url: str
    openrouter_api_key: str | None
    personas_path: Path
    output_dir: Path
    workspace_dir: Path
    cooldown_seconds: float
    default_agents: int
    default_rounds: int
    request_timeout: float
    max_tool_calls: int


def _load_config(path: Path) -> dict:
    """Load configuration from YAML file or return defaults."""
    if path.exists():
        with open(path) as f:
            config = yaml.safe_load(f) or {}
        # Merge with defaults (config values override defaults)
        return {**_DEFAULTS, **config}
    return dict(_DEFAULTS)


def load_settings(path: Path | str | None = None) -> Settings:
    """Build a Settings value from config.yaml (or defaults) and the environment."""
    config = _load_config(Path(path) if path else DEFAULT_CONFIG_PATH)
    models = config["council_models"] or _DEFAULTS["council_models"]
    return Settings(
        council_models=list(models),
        chairman_model=config["chairman_model"],
        openrouter_api_url=config["openrouter_api_url"],
        # API key from environment (never in config file)
        openrouter_api_key=os.getenv("OPENROUTER_API_KEY"),
        personas_path=Path(config["personas_path"]),
        output_dir=Path(config["output_dir"]),
        workspace_dir=Path(config["workspace_dir"]),
        cooldown_seconds=float(config["cooldown_seconds"]),
        default_agents=clamp_agent_count(int(config["default_agents"])),
        default_rounds=clamp_review_rounds(int(config["default_rounds"])),
        request_timeout=float(config["request_timeout"]),
        max_tool_calls=int(config["max_tool_calls"]),
    )


def clamp_agent_count(count: int) -> int:
    """Clamp the number of deliberating agents to [1, 6]."""
    return max(MIN_AGENTS, min(MAX_AGENTS, count))


def clamp_review_rounds(rounds: int) -> int:
    """Clamp the number of peer-review rounds to [0, 5]."""
    return max(MIN_ROUNDS, min(MAX_ROUNDS, rounds))
