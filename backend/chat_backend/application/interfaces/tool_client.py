"""Abstract tool client interface — port for external tool servers (MCP)."""

from abc import ABC, abstractmethod
from typing import Any

from chat_backend.domain.entities import ToolInfo


class ToolClient(ABC):
    """Port — lists and invokes tools hosted by external servers."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether any tool server is configured with credentials."""
        ...

    @abstractmethod
    async def list_tools(self) -> list[ToolInfo]:
        """Return every tool advertised by the reachable servers."""
        ...

    @abstractmethod
    async def call_tool(
        self, server_id: str, name: str, arguments: dict[str, Any]
    ) -> dict[str, Any]:
        """Invoke a tool and return the raw result envelope.

        The envelope follows MCP: ``{"content": [{"type": "text", "text": ...}]}``.

        Raises:
            ToolExecutionError: If the server rejects or fails the call.
        """
        ...
