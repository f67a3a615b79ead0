"""Model health cache and probe.

The cache is an explicit per-process object handed to whoever needs it;
an empty or stale cache never changes which candidates a request tries.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from chat_backend.application.interfaces.chat_provider import ChatProviderFactory
from chat_backend.application.services.completion_text import describe_error, summarize_payload
from chat_backend.domain.entities import ChatMessage, ModelCandidate
from chat_backend.infrastructure.logging.colored_logger import ChatStage, StageLogger

slog = StageLogger("ModelHealthProbe")

PROBE_PROMPT = "Respond with exactly: ok"
PROBE_MAX_TOKENS = 16


@dataclass
class ModelHealth:
    """Outcome of the most recent probe or attempt for one model."""

    model_id: str
    ok: bool
    latency_ms: int = 0
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: dict[str, Any] | None = None


class ModelHealthCache:
    """Model id → last health result, valid for ``ttl_seconds``."""

    def __init__(self, ttl_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, ModelHealth]] = {}

    def get(self, model_id: str) -> ModelHealth | None:
        """Return a fresh entry, evicting it if it has expired."""
        entry = self._entries.get(model_id)
        if entry is None:
            return None
        stored_at, health = entry
        if self._clock() - stored_at > self._ttl:
            del self._entries[model_id]
            return None
        return health

    def record(
        self,
        model_id: str,
        ok: bool,
        *,
        latency_ms: int = 0,
        error: dict[str, Any] | None = None,
    ) -> ModelHealth:
        health = ModelHealth(model_id=model_id, ok=ok, latency_ms=latency_ms, error=error)
        self._entries[model_id] = (self._clock(), health)
        return health

    def snapshot(self) -> dict[str, ModelHealth]:
        """All entries that are still fresh."""
        fresh: dict[str, ModelHealth] = {}
        for model_id in list(self._entries):
            health = self.get(model_id)
            if health is not None:
                fresh[model_id] = health
        return fresh

    def clear(self) -> None:
        self._entries.clear()


class ModelHealthProbe:
    """Sends a tiny completion to a candidate and caches the outcome."""

    def __init__(
        self,
        provider_factory: ChatProviderFactory,
        cache: ModelHealthCache,
        *,
        timeout_seconds: float = 8.0,
    ):
        self._provider_factory = provider_factory
        self._cache = cache
        self._timeout = timeout_seconds

    async def probe(self, candidate: ModelCandidate, *, force: bool = False) -> ModelHealth:
        if not force:
            cached = self._cache.get(candidate.model_id)
            if cached is not None:
                return cached

        provider = self._provider_factory(candidate)
        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                provider.complete(
                    [ChatMessage(role="user", content=PROBE_PROMPT)],
                    candidate.model_id,
                    max_tokens=PROBE_MAX_TOKENS,
                ),
                timeout=self._timeout,
            )
        except Exception as exc:
            latency_ms = int((time.perf_counter() - started) * 1000)
            slog.step_warning(
                ChatStage.CANDIDATE,
                f"Health probe failed for {candidate.model_id}",
                latency_ms=latency_ms,
            )
            return self._cache.record(
                candidate.model_id, False, latency_ms=latency_ms, error=describe_error(exc)
            )

        latency_ms = int((time.perf_counter() - started) * 1000)
        if result.content.strip():
            return self._cache.record(candidate.model_id, True, latency_ms=latency_ms)

        slog.step_warning(
            ChatStage.CANDIDATE,
            f"Health probe for {candidate.model_id} returned no text",
            latency_ms=latency_ms,
        )
        return self._cache.record(
            candidate.model_id,
            False,
            latency_ms=latency_ms,
            error={
                "name": "EmptyCompletionError",
                "message": "Health probe returned completion without parseable text",
                "body": summarize_payload(result.raw),
            },
        )
