"""
Prompt templates with named placeholders.

Placeholders are written ``{{name}}``. Substitution is a pure function of the
template text and a mapping of values. A placeholder with no value is removed
from the output rather than left in place.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def substitute(text: str, values: Mapping[str, str]) -> str:
    """Replace every ``{{name}}`` in text; unknown names become the empty string."""
    return PLACEHOLDER_PATTERN.sub(lambda m: str(values.get(m.group(1), "")), text)


@dataclass(frozen=True)
class PromptTemplate:
    """A named prompt with its declared placeholders."""

    name: str
    text: str

    @property
    def placeholders(self) -> tuple[str, ...]:
        seen = []
        for match in PLACEHOLDER_PATTERN.finditer(self.text):
            if match.group(1) not in seen:
                seen.append(match.group(1))
        return tuple(seen)

    def render(self, **values: str) -> str:
        return substitute(self.text, values)
