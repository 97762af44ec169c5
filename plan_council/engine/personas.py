"""
Persona selection for planning sessions.

Personas come from a human-editable YAML catalog when one is available. When
the catalog is missing or empty, one model call generates them, and when that
output cannot be parsed, generic ``Agent_N`` personas are synthesized.
"""

import random
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .agent import GenerationCapability, collect_text
from .extraction import extract_structured
from .prompts import PERSONA_BUILDER_SYSTEM, build_persona_prompt


@dataclass(frozen=True)
class Persona:
    """A named expert profile."""

    name: str
    description: str
    id: str | None = None
    expertise: tuple[str, ...] = field(default=())
    focus_areas: tuple[str, ...] = field(default=())
    tone: str = ""

    @classmethod
    def from_record(cls, record: Any) -> "Persona | None":
        """Build a Persona from a catalog or model record; None if it has no usable name."""
        if not isinstance(record, dict):
            return None
        name = record.get("name")
        if not isinstance(name, str) or not name.strip():
            return None
        return cls(
            name=name.strip(),
            description=str(record.get("description") or ""),
            id=str(record["id"]) if record.get("id") is not None else None,
            expertise=tuple(str(item) for item in record.get("expertise") or ()),
            focus_areas=tuple(str(item) for item in record.get("focus_areas") or ()),
            tone=str(record.get("tone") or ""),
        )


def synthetic_personas(count: int) -> list[Persona]:
    """Generic personas used when generated output cannot be parsed."""
    return [
        Persona(
            name=f"Agent_{i}",
            description=f"An expert agent focused on aspect {i} of the problem.",
        )
        for i in range(1, count + 1)
    ]


def disambiguate_names(personas: list[Persona], reserved: Iterable[str] = ()) -> list[Persona]:
    """
    Make persona names unique within a session.

    The first occurrence keeps its name; later duplicates, and any persona
    using a reserved name, become ``Name_2``, ``Name_3``, ... skipping any
    name already taken.
    """
    reserved = set(reserved)
    taken = {p.name for p in personas} | reserved
    seen: set[str] = set(reserved)
    result = []
    for persona in personas:
        name = persona.name
        if name in seen:
            suffix = 2
            while f"{name}_{suffix}" in taken:
                suffix += 1
            name = f"{name}_{suffix}"
            taken.add(name)
            persona = Persona(
                name=name,
                description=persona.description,
                id=persona.id,
                expertise=persona.expertise,
                focus_areas=persona.focus_areas,
                tone=persona.tone,
            )
        seen.add(name)
        result.append(persona)
    return result


def load_catalog_file(path: Path) -> list[Persona]:
    """
    Read personas from a YAML document.

    Accepts either a top-level ``personas:`` list or a bare list. A missing,
    unreadable or malformed document yields an empty list.
    """
    if not path.exists():
        return []
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError):
        return []

    if isinstance(data, dict):
        data = data.get("personas")
    if not isinstance(data, list):
        return []

    personas = [Persona.from_record(record) for record in data]
    return [p for p in personas if p is not None]


class PersonaCatalog:
    """
    Supplies personas for a session.

    Args:
        path: YAML catalog file; loaded lazily, once per instance
        personas: Explicit catalog entries (take precedence over path)
        generator: Capability used for the generation fallback
        rng: Random source for shuffling the catalog
    """

    def __init__(
        self,
        path: Path | str | None = None,
        personas: list[Persona] | None = None,
        generator: GenerationCapability | None = None,
        rng: random.Random | None = None,
    ):
        self.path = Path(path) if path else None
        self.generator = generator
        self._rng = rng or random.Random()
        self._entries = list(personas) if personas is not None else None

    def entries(self) -> list[Persona]:
        """The fixed catalog (possibly empty)."""
        if self._entries is None:
            self._entries = load_catalog_file(self.path) if self.path else []
        return list(self._entries)

    async def select_personas(self, query: str, count: int) -> list[Persona]:
        """
        Pick personas for a problem statement.

        Args:
            query: The problem statement
            count: Number of personas wanted

        Returns:
            Up to ``count`` personas with unique names. A small catalog can
            return fewer.

        Raises:
            GenerationError: If the generation fallback itself fails
        """
        catalog = self.entries()
        if catalog:
            self._rng.shuffle(catalog)
            return disambiguate_names(catalog[:count])

        if self.generator is None:
            return synthetic_personas(count)
        return disambiguate_names(await self.generate_personas(query, count))

    async def generate_personas(self, query: str, count: int) -> list[Persona]:
        """Ask the model for personas, falling back to synthetic ones on unparsable output."""
        text = await collect_text(
            self.generator, PERSONA_BUILDER_SYSTEM.render(), build_persona_prompt(query, count)
        )
        parsed = extract_structured(text)
        if isinstance(parsed, list):
            personas = [p for p in (Persona.from_record(r) for r in parsed) if p is not None]
            if personas:
                return personas[:count]
        return synthetic_personas(count)
