"""Completion orchestrator — the candidate loop behind every chat reply.

Drives the ``OrchestratorState`` machine: for each model candidate in
order, build the prompt, call the provider under a timeout, run the tool
round when the model asks for it, and parse the structured reply. The
first usable reply wins; when every candidate fails a single
``ModelRequestFailedError`` carrying the trace id is raised and the
per-attempt diagnostics are only logged.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field

from chat_backend.application.interfaces.chat_provider import ChatProviderFactory
from chat_backend.application.interfaces.tool_client import ToolClient
from chat_backend.application.services.completion_options import CompletionOptions
from chat_backend.application.services.completion_text import describe_error, summarize_payload
from chat_backend.application.services.model_health_cache import ModelHealthCache
from chat_backend.application.services.prompt_builder import PromptBuilder, latest_user_turn
from chat_backend.application.services.structured_reply_parser import parse_structured_reply
from chat_backend.application.services.suggestion_finalizer import SuggestionGenerator
from chat_backend.application.services.tool_call_coordinator import (
    ToolCallCoordinator,
    reply_from_plain_text,
)
from chat_backend.domain.entities import (
    AttemptRecord,
    ChatMessage,
    ModelCandidate,
    OrchestratorPhase,
    OrchestratorState,
    StructuredReply,
    ToolInfo,
    transition,
)
from chat_backend.domain.entities.completion_state import (
    Advance,
    AttemptFailed,
    ReplyReady,
    Start,
    ToolCallsRequested,
)
from chat_backend.domain.exceptions import ModelRequestFailedError
from chat_backend.infrastructure.logging.colored_logger import ChatStage, StageLogger

slog = StageLogger("CompletionOrchestrator")


def new_trace_id() -> str:
    return uuid.uuid4().hex


@dataclass
class OrchestratorResult:
    """A finished reply plus the model that produced it."""

    reply: StructuredReply
    model: str
    trace_id: str
    attempts: list[AttemptRecord] = field(default_factory=list)


@dataclass
class _RequestContext:
    history: list[ChatMessage]
    tools: list[ToolInfo]
    language_hint: str | None
    json_mode: bool
    trace_id: str


class CompletionOrchestrator:
    """Tries model candidates sequentially until one yields a reply."""

    def __init__(
        self,
        provider_factory: ChatProviderFactory,
        *,
        prompt_builder: PromptBuilder,
        suggestion_generator: SuggestionGenerator,
        tool_client: ToolClient | None = None,
        options: CompletionOptions | None = None,
        health_cache: ModelHealthCache | None = None,
        model_timeout_seconds: float = 90.0,
        tool_timeout_seconds: float = 10.0,
    ):
        self._provider_factory = provider_factory
        self._prompt_builder = prompt_builder
        self._suggestions = suggestion_generator
        self._tool_client = tool_client
        self._options = options or CompletionOptions()
        self._health_cache = health_cache
        self._model_timeout = model_timeout_seconds
        self._coordinator = (
            ToolCallCoordinator(
                tool_client,
                suggestion_generator,
                tool_timeout_seconds=tool_timeout_seconds,
                model_timeout_seconds=model_timeout_seconds,
            )
            if tool_client is not None
            else None
        )

    async def generate(
        self,
        history: list[ChatMessage],
        candidates: list[ModelCandidate],
        *,
        language_hint: str | None = None,
        trace_id: str | None = None,
    ) -> OrchestratorResult:
        """Produce a reply for ``history`` using the first candidate that works.

        Args:
            history: Conversation turns in chronological order, latest user
                turn last. Multimodal turns are passed through untouched.
            candidates: Retry order; an empty list fails without any call.
            language_hint: The user's latest message. Defaults to the text
                of the latest user turn.
            trace_id: Correlation id for logs and the terminal error.

        Raises:
            ModelRequestFailedError: Every candidate failed.
        """
        trace_id = trace_id or new_trace_id()
        latest = latest_user_turn(history)
        if language_hint is None and latest is not None:
            language_hint = latest.text()

        tools = await self._available_tools(trace_id)
        ctx = _RequestContext(
            history=history,
            tools=tools,
            language_hint=language_hint,
            json_mode=not tools and not (latest is not None and latest.has_images),
            trace_id=trace_id,
        )
        slog.step_start(
            ChatStage.CANDIDATE,
            f"{len(candidates)} candidate(s)",
            tools=len(tools),
            json_mode=ctx.json_mode,
            trace_id=trace_id,
        )

        state = transition(OrchestratorState(candidates=tuple(candidates)), Start())
        while not state.is_terminal:
            if state.phase == OrchestratorPhase.ATTEMPTING:
                state = await self._attempt(state, ctx)
            elif state.phase == OrchestratorPhase.NEXT_CANDIDATE:
                state = transition(state, Advance())

        if state.phase == OrchestratorPhase.SUCCESS and state.reply is not None:
            slog.step_complete(
                ChatStage.COMPLETE,
                f"Reply from {state.active_model}",
                failed_attempts=len(state.attempts),
                trace_id=trace_id,
            )
            return OrchestratorResult(
                reply=state.reply,
                model=state.active_model or "",
                trace_id=trace_id,
                attempts=list(state.attempts),
            )

        if not candidates:
            slog.step_error(ChatStage.ERROR, "No model candidates configured", trace_id=trace_id)
        else:
            slog.step_error(
                ChatStage.ERROR,
                "All model candidates failed",
                attempts=[
                    {"model": a.candidate.model_id, "error": a.error} for a in state.attempts
                ],
                trace_id=trace_id,
            )
        raise ModelRequestFailedError(trace_id, list(state.attempts))

    async def _available_tools(self, trace_id: str) -> list[ToolInfo]:
        if self._tool_client is None or not self._tool_client.is_configured:
            return []
        try:
            tools = await self._tool_client.list_tools()
        except Exception as exc:
            slog.step_warning(
                ChatStage.TOOLS, f"Tool discovery failed, continuing without tools: {exc}",
                trace_id=trace_id,
            )
            return []
        return tools

    async def _attempt(self, state: OrchestratorState, ctx: _RequestContext) -> OrchestratorState:
        candidate = state.current
        model = candidate.model_id
        provider = self._provider_factory(candidate)
        prompt = self._prompt_builder.build(
            ctx.history, tools=ctx.tools, language_hint=ctx.language_hint
        )
        definitions = [tool.to_function_definition() for tool in ctx.tools]

        slog.step_start(
            ChatStage.PROVIDER,
            f"Attempt {state.index + 1}/{len(state.candidates)} with {model}",
            trace_id=ctx.trace_id,
        )
        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                provider.complete(
                    prompt,
                    model,
                    json_mode=ctx.json_mode,
                    tools=definitions or None,
                    tool_choice="auto" if definitions else None,
                    **self._options.as_kwargs(),
                ),
                timeout=self._model_timeout,
            )

            calls = ToolCallCoordinator.detect(result) if ctx.tools else []
            if calls and self._coordinator is not None:
                state = transition(state, ToolCallsRequested(count=len(calls)))
                slog.step_start(
                    ChatStage.TOOLS, f"{len(calls)} tool call(s) requested", trace_id=ctx.trace_id
                )
                reply = await self._coordinator.run_round(
                    provider,
                    model,
                    first_result=result,
                    calls=calls,
                    tools=ctx.tools,
                    json_prompt=self._prompt_builder.build(
                        ctx.history, language_hint=ctx.language_hint
                    ),
                    options=self._options,
                    language_hint=ctx.language_hint,
                    trace_id=ctx.trace_id,
                )
            else:
                reply = parse_structured_reply(result.content, ctx.language_hint)
                if reply is None and ctx.tools and result.content.strip():
                    slog.step_warning(
                        ChatStage.PARSE,
                        "Plain-text answer in tool mode, generating suggestions",
                        trace_id=ctx.trace_id,
                    )
                    reply = await reply_from_plain_text(
                        self._suggestions, provider, model, result.content.strip(), ctx.language_hint
                    )
        except asyncio.TimeoutError:
            error = {
                "name": "TimeoutError",
                "message": f"Model call timed out after {self._model_timeout:g}s",
            }
            return self._fail(state, error, started, ctx.trace_id)
        except Exception as exc:
            return self._fail(state, describe_error(exc), started, ctx.trace_id)

        if reply is None:
            error = {
                "name": "InvalidStructuredReplyError",
                "message": "Model returned completion without parseable structured reply",
                "body": summarize_payload(result.raw),
            }
            return self._fail(state, error, started, ctx.trace_id)

        self._record_health(model, True, started)
        return transition(state, ReplyReady(reply=reply))

    def _fail(
        self, state: OrchestratorState, error: dict, started: float, trace_id: str
    ) -> OrchestratorState:
        model = state.current.model_id
        slog.step_warning(
            ChatStage.PROVIDER,
            f"Attempt with {model} failed: {error.get('name')}: {error.get('message')}",
            trace_id=trace_id,
        )
        self._record_health(model, False, started, error)
        return transition(state, AttemptFailed(error=error))

    def _record_health(
        self, model: str, ok: bool, started: float, error: dict | None = None
    ) -> None:
        if self._health_cache is None:
            return
        latency_ms = int((time.perf_counter() - started) * 1000)
        self._health_cache.record(model, ok, latency_ms=latency_ms, error=error)
