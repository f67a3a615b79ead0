"""Abstract chat provider interface — port for AI provider adapters.

This interface enables multi-provider support. Each AI provider
(OpenRouter, GLM, OpenAI, etc.) implements this interface, and the
orchestrator obtains one instance per model candidate through a
``ChatProviderFactory``.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from chat_backend.domain.entities import ChatMessage, ChatCompletionResult, ModelCandidate


class ChatProvider(ABC):
    """Port — defines what the application layer needs from any chat provider."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this provider (e.g. 'openrouter')."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        json_mode: bool = False,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
        max_tokens: int | None = None,
        thinking: bool | None = None,
    ) -> ChatCompletionResult:
        """Send a non-streaming chat completion request.

        Args:
            messages: The full prompt, system instruction first.
            model: The model identifier (e.g. 'z-ai/glm-4.7').
            json_mode: Ask the provider for a JSON object response.
            tools: Tool definitions in OpenAI function-calling format.
            tool_choice: "auto" or "required"; only sent with tools.
            temperature: Sampling temperature (0.0–2.0).
            top_p: Nucleus sampling cutoff.
            max_tokens: Maximum tokens in the response.
            thinking: Enable/disable provider-side reasoning, None to omit.

        Returns:
            A ChatCompletionResult; ``content`` may be empty.

        Raises:
            ChatProviderError: If the provider returns an error.
        """
        ...


ChatProviderFactory = Callable[[ModelCandidate], ChatProvider]
