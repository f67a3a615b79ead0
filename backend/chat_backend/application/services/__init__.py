from .chat_response_service import ChatReply, ChatResponseService
from .completion_options import CompletionOptions
from .completion_orchestrator import CompletionOrchestrator, OrchestratorResult
from .conversation_service import ConversationService
from .model_candidate_resolver import resolve_model_candidates
from .model_health_cache import ModelHealth, ModelHealthCache, ModelHealthProbe
from .prompt_builder import PromptBuilder
from .structured_reply_parser import parse_structured_reply
from .suggestion_finalizer import SuggestionGenerator, parse_and_finalize_suggestions
from .tool_call_coordinator import ToolCallCoordinator

__all__ = [
    "ChatReply",
    "ChatResponseService",
    "CompletionOptions",
    "CompletionOrchestrator",
    "OrchestratorResult",
    "ConversationService",
    "resolve_model_candidates",
    "ModelHealth",
    "ModelHealthCache",
    "ModelHealthProbe",
    "PromptBuilder",
    "parse_structured_reply",
    "SuggestionGenerator",
    "parse_and_finalize_suggestions",
    "ToolCallCoordinator",
]
