"""Domain-specific exceptions — framework-independent."""

from typing import Any


class EntityNotFoundError(Exception):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class AccessDeniedError(Exception):
    """Raised when a user touches a conversation they do not own."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"Access to {entity_type} '{entity_id}' denied")


class ChatProviderError(Exception):
    """Raised when a chat provider returns an error.

    Provider-agnostic — works for OpenRouter, GLM, OpenAI, etc.
    """

    def __init__(self, provider: str, status_code: int, message: str):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{provider}] {status_code}: {message}")


class ToolExecutionError(Exception):
    """Raised by a tool client when a tool cannot be listed or executed."""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        self.message = message
        super().__init__(f"Tool '{tool_name}' failed: {message}")


class ModelRequestFailedError(Exception):
    """Raised when every model candidate failed to produce a reply.

    Only the trace id is part of the message; per-attempt details live in
    ``attempts`` for logging and never reach the end user.
    """

    def __init__(self, trace_id: str, attempts: list[Any] | None = None):
        self.trace_id = trace_id
        self.attempts = attempts or []
        super().__init__(f"Model request failed. traceId={trace_id}")
