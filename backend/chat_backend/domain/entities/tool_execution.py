"""Domain entities for tool discovery and execution."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ToolInfo:
    """A tool advertised by an external tool server."""

    name: str
    server_id: str
    description: str = ""
    input_schema: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def to_function_definition(self) -> dict[str, Any]:
        """Tool definition in OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description or f"Tool: {self.name}",
                "parameters": self.input_schema,
            },
        }


@dataclass
class ToolExecutionResult:
    """Outcome of a single tool call.

    Always produced, even for failures: ``output_text`` then carries a
    human-readable error so it can still be shown to the model.
    """

    tool_name: str
    output_text: str
    failed: bool = False
    call_id: str = ""
