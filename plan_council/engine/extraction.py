"""
Best-effort recovery of JSON values embedded in free-form model output.

Three strategies are tried in order, stopping at the first success:

1. ``parse_whole`` - the entire text is JSON
2. ``parse_fenced_block`` - the content of the first fenced code block
3. ``parse_delimited_span`` - from the first ``{`` or ``[`` to the last
   matching closer

Known limitation: the last strategy does not balance nested delimiters. Text
such as ``{"a": 1} and {"b": 2}`` spans both objects and fails to parse, and
prose containing a stray closer after the JSON can produce a wrong span.
Callers must always supply a fallback for a ``None`` result.
"""

import json
import re
from typing import Any

FENCED_BLOCK_PATTERN = re.compile(r"```(?:[\w+-]+)?\s*([\s\S]*?)\s*```")

_CLOSERS = {"{": "}", "[": "]"}


def _loads(text: str) -> Any | None:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


def parse_whole(text: str) -> Any | None:
    """Parse the entire text as JSON."""
    return _loads(text)


def parse_fenced_block(text: str) -> Any | None:
    """Parse the content of the first triple-backtick block, optionally language-tagged."""
    match = FENCED_BLOCK_PATTERN.search(text)
    if not match:
        return None
    return _loads(match.group(1))


def parse_delimited_span(text: str) -> Any | None:
    """
    Parse the span between the first opening delimiter and the last matching closer.

    Args:
        text: Raw model output

    Returns:
        Parsed value, or None if no span parses
    """
    match = re.search(r"[{\[]", text)
    if not match:
        return None

    start = match.start()
    closer = _CLOSERS[text[start]]
    end = text.rfind(closer)
    if end <= start:
        return None
    return _loads(text[start : end + 1])


EXTRACTION_STRATEGIES = (parse_whole, parse_fenced_block, parse_delimited_span)


def extract_structured(text: str) -> Any | None:
    """
    Recover a JSON value from model output.

    Args:
        text: Raw model output

    Returns:
        The first value recovered by the ordered strategies, or None
    """
    if not text:
        return None
    for strategy in EXTRACTION_STRATEGIES:
        value = strategy(text)
        if value is not None:
            return value
    return None
