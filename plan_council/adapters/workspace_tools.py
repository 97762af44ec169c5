"""Read-only workspace tools offered to deliberating agents.

Each agent gets its own ToolScope: a workspace root plus an allow-list of tool
names. Anything not on the allow-list is denied.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

MAX_FILE_CHARS = 20_000
MAX_MATCHES = 50

# Tool definitions for OpenRouter/OpenAI function calling
READ_FILE_TOOL = {
    "type": "function",
    "function": {
        "name": "read_file",
        "description": "Read a text file from the workspace.",
        "parameters": {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "File path relative to the workspace root"}
            },
            "required": ["path"],
        },
    },
}

LIST_DIRECTORY_TOOL = {
    "type": "function",
    "function": {
        "name": "list_directory",
        "description": "List the entries of a workspace directory.",
        "parameters": {
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Directory path relative to the workspace root (default: root)",
                }
            },
        },
    },
}

SEARCH_FILE_CONTENT_TOOL = {
    "type": "function",
    "function": {
        "name": "search_file_content",
        "description": "Search workspace files for lines matching a regular expression.",
        "parameters": {
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "description": "Regular expression to search for"},
                "path": {
                    "type": "string",
                    "description": "Directory to search, relative to the workspace root",
                },
            },
            "required": ["pattern"],
        },
    },
}

GLOB_TOOL = {
    "type": "function",
    "function": {
        "name": "glob",
        "description": "Find workspace files matching a glob pattern such as '**/*.py'.",
        "parameters": {
            "type": "object",
            "properties": {"pattern": {"type": "string", "description": "Glob pattern"}},
            "required": ["pattern"],
        },
    },
}

TOOL_DEFINITIONS = {
    tool["function"]["name"]: tool
    for tool in (READ_FILE_TOOL, LIST_DIRECTORY_TOOL, SEARCH_FILE_CONTENT_TOOL, GLOB_TOOL)
}

READ_ONLY_TOOLS = frozenset(TOOL_DEFINITIONS)


@dataclass(frozen=True)
class ToolScope:
    """Permission scope for one agent's tool use."""

    root: Path
    allowed: frozenset[str] = field(default=READ_ONLY_TOOLS)

    def permits(self, tool_name: str) -> bool:
        return tool_name in self.allowed and tool_name in TOOL_DEFINITIONS

    def definitions(self) -> list[dict[str, Any]]:
        """Tool definitions to advertise to the model."""
        return [TOOL_DEFINITIONS[name] for name in sorted(self.allowed) if name in TOOL_DEFINITIONS]

    def _resolve(self, relative: str | None) -> Path:
        root = self.root.resolve()
        target = (root / (relative or ".")).resolve()
        if not target.is_relative_to(root):
            raise ValueError(f"Path escapes the workspace: {relative}")
        return target

    async def execute(self, tool_name: str, tool_args: dict[str, Any]) -> str:
        """
        Execute a tool and return the result as a string.

        Args:
            tool_name: Name of the tool to execute
            tool_args: Arguments to pass to the tool

        Returns:
            String result of tool execution, or a denial message
        """
        if not self.permits(tool_name):
            return f"Tool not permitted: {tool_name}"

        if tool_name == "read_file":
            path = self._resolve(tool_args.get("path"))
            text = path.read_text(encoding="utf-8", errors="replace")
            if len(text) > MAX_FILE_CHARS:
                text = text[:MAX_FILE_CHARS] + "\n... (truncated)"
            return text

        if tool_name == "list_directory":
            path = self._resolve(tool_args.get("path"))
            entries = sorted(path.iterdir(), key=lambda p: (not p.is_dir(), p.name))
            return "\n".join(f"{p.name}/" if p.is_dir() else p.name for p in entries)

        if tool_name == "glob":
            root = self.root.resolve()
            matches = sorted(
                str(p.relative_to(root))
                for p in root.glob(tool_args.get("pattern", ""))
                if p.resolve().is_relative_to(root)
            )
            return "\n".join(matches[:MAX_MATCHES]) or "No files matched."

        # search_file_content
        pattern = re.compile(tool_args.get("pattern", ""))
        base = self._resolve(tool_args.get("path"))
        root = self.root.resolve()
        hits = []
        for path in sorted(base.rglob("*")):
            if not path.is_file():
                continue
            try:
                lines = path.read_text(encoding="utf-8").splitlines()
            except (UnicodeDecodeError, OSError):
                continue
            for number, line in enumerate(lines, 1):
                if pattern.search(line):
                    hits.append(f"{path.relative_to(root)}:{number}: {line.strip()}")
                    if len(hits) >= MAX_MATCHES:
                        return "\n".join(hits)
        return "\n".join(hits) or "No matches found."
