"""Domain entities for chat messages — framework-independent, multimodal."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ContentPart:
    """A single content part within a multimodal message.

    Supports text and image_url types, following the OpenAI-compatible
    multimodal format used by OpenRouter and other providers.
    """

    type: str  # "text" | "image_url"
    text: str | None = None
    image_url: dict[str, str] | None = None  # {"url": "..."}


@dataclass
class ToolCallFunction:
    """The function invocation details within a tool call."""

    name: str
    arguments: str  # JSON-encoded arguments string, may be malformed


@dataclass
class ToolCall:
    """A tool call requested by the LLM in its response."""

    id: str
    type: str  # "function"
    function: ToolCallFunction


@dataclass
class ChatMessage:
    """A single message in a chat conversation.

    Content can be a plain string (text-only) or a list of ContentPart
    objects for multimodal input (text + images).
    """

    role: str  # "system" | "user" | "assistant"
    content: str | list[ContentPart] = ""
    tool_calls: list[ToolCall] | None = None  # For assistant messages requesting tool calls

    @property
    def has_images(self) -> bool:
        if isinstance(self.content, str):
            return False
        return any(part.type == "image_url" for part in self.content)

    def text(self) -> str:
        """Plain text of the message, ignoring image parts."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(part.text or "" for part in self.content if part.type == "text")


@dataclass
class TokenUsage:
    """Token usage statistics from a completion."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost: float | None = None  # Cost in USD, if available from provider


@dataclass
class ChatCompletionResult:
    """Result from a chat completion call.

    ``content`` is the best-effort text extracted from ``raw``; the raw
    payload is kept opaque because its shape varies across providers.
    """

    model: str
    content: str
    finish_reason: str  # "stop" | "length" | "error" | "tool_calls"
    usage: TokenUsage = field(default_factory=TokenUsage)
    provider: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)
