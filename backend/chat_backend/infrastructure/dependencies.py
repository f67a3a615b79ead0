"""FastAPI dependency injection — wires infrastructure to application layer."""

from collections.abc import AsyncGenerator

import httpx
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from chat_backend.application.interfaces.chat_provider import ChatProviderFactory
from chat_backend.application.services import (
    ChatResponseService,
    CompletionOptions,
    CompletionOrchestrator,
    ConversationService,
    ModelHealthCache,
    ModelHealthProbe,
    PromptBuilder,
    SuggestionGenerator,
    resolve_model_candidates,
)
from chat_backend.config import get_settings
from chat_backend.infrastructure.database.session import get_db_session
from chat_backend.infrastructure.database.repositories import (
    SQLAlchemyConversationRepository,
    SQLAlchemyMessageRepository,
)
from chat_backend.infrastructure.llm import build_provider_factory
from chat_backend.infrastructure.mcp import McpToolRegistry, build_tool_registry

# Process-wide singletons: one connection pool, one health cache, and one
# MCP registry so tool listings and sessions survive across requests.
_http_client: httpx.AsyncClient | None = None
_health_cache: ModelHealthCache | None = None
_tool_registry: McpToolRegistry | None = None


def get_http_client() -> httpx.AsyncClient:
    """Return the shared outbound HTTP client, creating it on first use."""
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(timeout=120.0)
    return _http_client


async def close_http_client() -> None:
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
    _http_client = None


def get_health_cache() -> ModelHealthCache:
    global _health_cache
    if _health_cache is None:
        _health_cache = ModelHealthCache(
            ttl_seconds=get_settings().model_health_cache_ttl_seconds
        )
    return _health_cache


def get_tool_registry() -> McpToolRegistry:
    global _tool_registry
    if _tool_registry is None:
        _tool_registry = build_tool_registry(get_settings(), get_http_client())
    return _tool_registry


def get_provider_factory() -> ChatProviderFactory:
    settings = get_settings()
    return build_provider_factory(get_http_client(), app_name=settings.openrouter_app_name)


async def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity from the ``X-User-Id`` header set by the gateway."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id.strip()


def get_completion_orchestrator() -> CompletionOrchestrator:
    """Builds the orchestrator from the current settings."""
    settings = get_settings()
    return CompletionOrchestrator(
        get_provider_factory(),
        prompt_builder=PromptBuilder(settings.chat_system_prompt),
        suggestion_generator=SuggestionGenerator(
            temperature=settings.chat_temperature,
            max_tokens=settings.chat_max_tokens,
            top_p=settings.chat_top_p,
            thinking=settings.chat_thinking_enabled,
        ),
        tool_client=get_tool_registry(),
        options=CompletionOptions.from_settings(settings),
        health_cache=get_health_cache(),
        model_timeout_seconds=settings.model_call_timeout_seconds,
        tool_timeout_seconds=settings.mcp_tool_timeout_seconds,
    )


def get_model_health_probe() -> ModelHealthProbe:
    settings = get_settings()
    return ModelHealthProbe(
        get_provider_factory(),
        get_health_cache(),
        timeout_seconds=settings.model_health_probe_timeout_seconds,
    )


async def get_conversation_service(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[ConversationService, None]:
    """Provides a ConversationService with both repositories wired up."""
    yield ConversationService(
        SQLAlchemyConversationRepository(session),
        SQLAlchemyMessageRepository(session),
    )


async def get_chat_response_service(
    session: AsyncSession = Depends(get_db_session),
    orchestrator: CompletionOrchestrator = Depends(get_completion_orchestrator),
) -> AsyncGenerator[ChatResponseService, None]:
    """Provides a ChatResponseService; candidates are resolved per request."""
    settings = get_settings()
    yield ChatResponseService(
        SQLAlchemyConversationRepository(session),
        SQLAlchemyMessageRepository(session),
        orchestrator,
        lambda model: resolve_model_candidates(settings, model),
        history_limit=settings.chat_history_limit,
    )
