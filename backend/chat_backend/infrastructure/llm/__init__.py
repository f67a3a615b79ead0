"""LLM infrastructure module — concrete chat provider implementations."""

import httpx

from chat_backend.application.interfaces.chat_provider import ChatProviderFactory
from chat_backend.domain.entities import ModelCandidate

from .openai_compatible_client import OpenAICompatibleClient


def build_provider_factory(
    http_client: httpx.AsyncClient | None = None,
    app_name: str = "Chat Backend",
) -> ChatProviderFactory:
    """Factory that binds each model candidate to its own client instance."""

    def factory(candidate: ModelCandidate) -> OpenAICompatibleClient:
        return OpenAICompatibleClient(
            api_key=candidate.credential,
            base_url=candidate.endpoint,
            app_name=app_name,
            http_client=http_client,
        )

    return factory


__all__ = [
    "OpenAICompatibleClient",
    "build_provider_factory",
]
