"""OpenRouter API client used as the generation capability for planning agents."""

import json
from collections.abc import AsyncGenerator
from typing import Any

import httpx

from ..engine.errors import GenerationError
from .workspace_tools import ToolScope

DEFAULT_API_URL = "https://openrouter.ai/api/v1/chat/completions"


class OpenRouterClient:
    """
    Streaming chat-completion client bound to one model.

    Each call to ``stream`` is an independent request, so a single client can
    back several agents that share a model.
    """

    def __init__(
        self,
        model: str,
        api_key: str | None,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 120.0,
        max_tool_calls: int = 5,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.model = model
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.max_tool_calls = max_tool_calls
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def stream(
        self, system_prompt: str, prompt: str, tool_scope: ToolScope | None = None
    ) -> AsyncGenerator[dict[str, Any], None]:
        """
        Send one prompt and stream the response, running tool calls in between.

        Args:
            system_prompt: System context for the conversation
            prompt: The user prompt
            tool_scope: Tools the model may call; None disables tool calling

        Yields:
            {'type': 'token', 'content': str} - Content tokens as they arrive
            {'type': 'tool_call', 'tool': str, 'args': dict} - When a tool is called
            {'type': 'tool_result', 'tool': str, 'result': str} - Tool execution result

        Raises:
            GenerationError: If the request fails or the stream reports an error
        """
        conversation: list[dict[str, Any]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]
        tools = tool_scope.definitions() if tool_scope else []

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                for attempt in range(self.max_tool_calls + 1):
                    payload: dict[str, Any] = {
                        "model": self.model,
                        "messages": conversation,
                        "stream": True,
                    }
                    # Last round goes out without tools so the model must answer in text
                    if tools and attempt < self.max_tool_calls:
                        payload["tools"] = tools

                    current_content = ""
                    tool_calls_buffer: dict[int, dict[str, Any]] = {}

                    async with client.stream(
                        "POST", self.api_url, headers=self._headers(), json=payload
                    ) as response:
                        response.raise_for_status()

                        async for line in response.aiter_lines():
                            if not line or not line.startswith("data: "):
                                continue

                            data_str = line[6:]
                            if data_str == "[DONE]":
                                break

                            try:
                                data = json.loads(data_str)
                            except json.JSONDecodeError:
                                continue

                            if "error" in data:
                                error = data["error"]
                                message = error.get("message") if isinstance(error, dict) else error
                                raise GenerationError(f"{self.model}: {message}")

                            delta = (data.get("choices") or [{}])[0].get("delta", {})

                            content = delta.get("content")
                            if content:
                                current_content += content
                                yield {"type": "token", "content": content}

                            # First chunk has id+name, later chunks only index+arguments
                            for tc in delta.get("tool_calls") or []:
                                entry = tool_calls_buffer.setdefault(
                                    tc.get("index", 0), {"id": None, "name": "", "arguments": ""}
                                )
                                if tc.get("id"):
                                    entry["id"] = tc["id"]
                                fn = tc.get("function") or {}
                                if fn.get("name"):
                                    entry["name"] = fn["name"]
                                if fn.get("arguments"):
                                    entry["arguments"] += fn["arguments"]

                    # Tool calls on the final, tool-free round are not executed
                    if not tool_calls_buffer or tool_scope is None or "tools" not in payload:
                        return

                    # Content must be a string or omitted, not None, for some models
                    assistant_msg: dict[str, Any] = {"role": "assistant", "tool_calls": []}
                    if current_content:
                        assistant_msg["content"] = current_content
                    tool_results_to_add = []

                    for index, tc_data in sorted(tool_calls_buffer.items()):
                        tool_name = tc_data["name"]
                        try:
                            tool_args = json.loads(tc_data["arguments"]) if tc_data["arguments"] else {}
                        except json.JSONDecodeError:
                            tool_args = {}

                        tool_call_id = tc_data["id"] or f"call_{index}"
                        assistant_msg["tool_calls"].append(
                            {
                                "id": tool_call_id,
                                "type": "function",
                                "function": {"name": tool_name, "arguments": json.dumps(tool_args)},
                            }
                        )

                        yield {"type": "tool_call", "tool": tool_name, "args": tool_args}

                        try:
                            tool_result = await tool_scope.execute(tool_name, tool_args)
                        except Exception as e:
                            tool_result = f"Error executing tool: {e}"

                        yield {"type": "tool_result", "tool": tool_name, "result": tool_result[:200]}

                        tool_results_to_add.append(
                            {"role": "tool", "tool_call_id": tool_call_id, "content": tool_result}
                        )

                    conversation.append(assistant_msg)
                    conversation.extend(tool_results_to_add)

        except httpx.HTTPError as e:
            raise GenerationError(f"Error querying model {self.model}: {e}") from e
