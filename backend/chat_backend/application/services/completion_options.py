"""Sampling options shared by every completion call of one request."""

from dataclasses import dataclass
from typing import Any

from chat_backend.config import Settings


@dataclass(frozen=True)
class CompletionOptions:
    """Optional provider parameters; ``None`` values are not sent."""

    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    thinking: bool | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "CompletionOptions":
        return cls(
            temperature=settings.chat_temperature,
            top_p=settings.chat_top_p,
            max_tokens=settings.chat_max_tokens,
            thinking=settings.chat_thinking_enabled,
        )

    def as_kwargs(self) -> dict[str, Any]:
        return {
            "temperature": self.temperature,
            "top_p": self.top_p,
            "max_tokens": self.max_tokens,
            "thinking": self.thinking,
        }
