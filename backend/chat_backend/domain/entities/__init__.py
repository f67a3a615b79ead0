from .chat_message import ChatMessage, ContentPart, TokenUsage, ChatCompletionResult, ToolCall, ToolCallFunction
from .model_candidate import ModelCandidate
from .structured_reply import ImageAnalysis, StructuredReply
from .tool_execution import ToolExecutionResult, ToolInfo
from .conversation import Conversation, Message, MessageFile
from .completion_state import (
    AttemptRecord,
    OrchestratorPhase,
    OrchestratorState,
    transition,
)

__all__ = [
    "ChatMessage",
    "ContentPart",
    "TokenUsage",
    "ChatCompletionResult",
    "ToolCall",
    "ToolCallFunction",
    "ModelCandidate",
    "ImageAnalysis",
    "StructuredReply",
    "ToolExecutionResult",
    "ToolInfo",
    "Conversation",
    "Message",
    "MessageFile",
    "AttemptRecord",
    "OrchestratorPhase",
    "OrchestratorState",
    "transition",
]
