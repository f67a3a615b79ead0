"""Tool round — execute requested tool calls and re-prompt for a final answer.

A round is: detect tool calls in a completion, run each one sequentially
through the ToolClient, fold all outputs into one synthetic user turn, and
run exactly one more completion in JSON mode without tools. A failing
tool call never aborts the round; its error text stands in for its output.
"""

import asyncio
import json
from typing import Any

from chat_backend.application.interfaces.chat_provider import ChatProvider
from chat_backend.application.interfaces.tool_client import ToolClient
from chat_backend.application.services.completion_options import CompletionOptions
from chat_backend.application.services.structured_reply_parser import parse_structured_reply
from chat_backend.application.services.suggestion_finalizer import SuggestionGenerator
from chat_backend.domain.entities import (
    ChatCompletionResult,
    ChatMessage,
    StructuredReply,
    ToolCall,
    ToolExecutionResult,
    ToolInfo,
)
from chat_backend.infrastructure.logging.colored_logger import ChatStage, StageLogger

slog = StageLogger("ToolCallCoordinator")

IMAGE_CONTENT_PLACEHOLDER = "[Image content]"
FOLLOW_UP_TEMPLATE = (
    "Tool results:\n{results}\n\nPlease provide your response based on these tool results."
)


def resolve_tool(name: str, tools: list[ToolInfo]) -> ToolInfo | None:
    """Find a tool by exact, then case-insensitive, then loose name match.

    The loose match ignores underscores and accepts the requested name as
    a substring, since vendors namespace or mangle tool names.
    """
    if not name:
        return None
    for tool in tools:
        if tool.name == name:
            return tool
    lowered = name.lower()
    for tool in tools:
        if tool.name.lower() == lowered:
            return tool
    loose = lowered.replace("_", "")
    if not loose:
        return None
    for tool in tools:
        if loose in tool.name.lower().replace("_", ""):
            return tool
    return None


def render_tool_output(envelope: Any) -> str:
    """Turn a tool result envelope into display text.

    The first ``text`` chunk wins; an ``image`` chunk becomes a placeholder;
    anything else is serialized as JSON.
    """
    content = envelope.get("content") if isinstance(envelope, dict) else None
    if isinstance(content, list):
        for chunk in content:
            if not isinstance(chunk, dict):
                continue
            if chunk.get("type") == "text" and isinstance(chunk.get("text"), str):
                return chunk["text"]
            if chunk.get("type") == "image":
                return IMAGE_CONTENT_PLACEHOLDER
    return json.dumps(envelope, ensure_ascii=False, indent=2, default=str)


def aggregate_results(results: list[ToolExecutionResult]) -> str:
    return "\n\n".join(f"[{r.tool_name}]\n{r.output_text}" for r in results)


def _parse_arguments(raw: str) -> dict[str, Any]:
    if not raw or not raw.strip():
        return {}
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        raise ValueError("arguments must be a JSON object")
    return parsed


async def reply_from_plain_text(
    generator: SuggestionGenerator,
    provider: ChatProvider,
    model: str,
    text: str,
    language_hint: str | None,
) -> StructuredReply:
    """Use unstructured model text verbatim and generate follow-ups for it."""
    suggestions = await generator.generate(provider, model, text, language_hint)
    return StructuredReply(message=text, suggestions=suggestions)


class ToolCallCoordinator:
    """Runs the tool round for one candidate attempt."""

    def __init__(
        self,
        tool_client: ToolClient,
        suggestion_generator: SuggestionGenerator,
        *,
        tool_timeout_seconds: float = 10.0,
        model_timeout_seconds: float = 90.0,
    ):
        self._tool_client = tool_client
        self._suggestions = suggestion_generator
        self._tool_timeout = tool_timeout_seconds
        self._model_timeout = model_timeout_seconds

    @staticmethod
    def detect(result: ChatCompletionResult) -> list[ToolCall]:
        """Tool calls requested by a completion; empty when none."""
        return [call for call in result.tool_calls if call.function.name]

    async def execute_call(
        self, call: ToolCall, tools: list[ToolInfo], trace_id: str = ""
    ) -> ToolExecutionResult:
        """Run one tool call. Always returns a result, never raises."""
        name = call.function.name

        try:
            arguments = _parse_arguments(call.function.arguments)
        except ValueError as exc:
            slog.step_warning(ChatStage.TOOLS, "Bad tool arguments", tool=name, trace_id=trace_id)
            return ToolExecutionResult(
                tool_name=name,
                output_text=f"Tool arguments could not be parsed: {exc}",
                failed=True,
                call_id=call.id,
            )

        tool = resolve_tool(name, tools)
        if tool is None:
            slog.step_warning(ChatStage.TOOLS, "Tool not found", tool=name, trace_id=trace_id)
            return ToolExecutionResult(
                tool_name=name,
                output_text=f"Tool not found: {name}",
                failed=True,
                call_id=call.id,
            )

        slog.step_start(
            ChatStage.TOOLS, f"Calling {tool.name}", server=tool.server_id, trace_id=trace_id
        )
        try:
            envelope = await asyncio.wait_for(
                self._tool_client.call_tool(tool.server_id, tool.name, arguments),
                timeout=self._tool_timeout,
            )
        except asyncio.TimeoutError as exc:
            slog.step_error(ChatStage.TOOLS, f"{tool.name} timed out", error=exc, trace_id=trace_id)
            return ToolExecutionResult(
                tool_name=name,
                output_text=f"Tool execution timed out after {self._tool_timeout:g}s",
                failed=True,
                call_id=call.id,
            )
        except Exception as exc:
            slog.step_error(ChatStage.TOOLS, f"{tool.name} failed", error=exc, trace_id=trace_id)
            return ToolExecutionResult(
                tool_name=name,
                output_text=f"Tool execution failed: {exc}",
                failed=True,
                call_id=call.id,
            )

        output = render_tool_output(envelope)
        slog.step_complete(
            ChatStage.TOOLS, f"{tool.name} returned", chars=len(output), trace_id=trace_id
        )
        return ToolExecutionResult(tool_name=name, output_text=output, call_id=call.id)

    async def execute(
        self, calls: list[ToolCall], tools: list[ToolInfo], trace_id: str = ""
    ) -> list[ToolExecutionResult]:
        """Run calls sequentially in the order received."""
        results = []
        for call in calls:
            results.append(await self.execute_call(call, tools, trace_id))
        return results

    @staticmethod
    def build_follow_up(
        json_prompt: list[ChatMessage],
        first_result: ChatCompletionResult,
        results: list[ToolExecutionResult],
    ) -> list[ChatMessage]:
        """JSON-mode prompt + the model's own text + a turn carrying tool outputs."""
        messages = list(json_prompt)
        if first_result.content.strip():
            messages.append(ChatMessage(role="assistant", content=first_result.content))
        messages.append(
            ChatMessage(
                role="user",
                content=FOLLOW_UP_TEMPLATE.format(results=aggregate_results(results)),
            )
        )
        return messages

    async def run_round(
        self,
        provider: ChatProvider,
        model: str,
        *,
        first_result: ChatCompletionResult,
        calls: list[ToolCall],
        tools: list[ToolInfo],
        json_prompt: list[ChatMessage],
        options: CompletionOptions,
        language_hint: str | None = None,
        trace_id: str = "",
    ) -> StructuredReply | None:
        """Execute ``calls`` and return the reply of the second completion.

        Returns ``None`` when the second completion yields no text at all.
        Provider errors and timeouts of the second completion propagate to
        the caller as attempt failures.
        """
        results = await self.execute(calls, tools, trace_id)
        failed = sum(1 for r in results if r.failed)
        slog.detail(f"{len(results)} tool result(s), {failed} failed", trace_id=trace_id)

        messages = self.build_follow_up(json_prompt, first_result, results)
        slog.step_start(ChatStage.PROVIDER, f"Follow-up completion with {model}", trace_id=trace_id)
        final = await asyncio.wait_for(
            provider.complete(messages, model, json_mode=True, **options.as_kwargs()),
            timeout=self._model_timeout,
        )

        text = final.content.strip()
        reply = parse_structured_reply(text, language_hint)
        if reply is not None:
            slog.step_complete(ChatStage.PARSE, "Structured reply after tool round", trace_id=trace_id)
            return reply
        if text:
            slog.step_warning(
                ChatStage.PARSE, "Follow-up was not structured, using raw text", trace_id=trace_id
            )
            return await reply_from_plain_text(self._suggestions, provider, model, text, language_hint)
        return None
