from .chat_provider import ChatProvider, ChatProviderFactory
from .tool_client import ToolClient
from .conversation_repository import ConversationRepository, MessageRepository

__all__ = [
    "ChatProvider",
    "ChatProviderFactory",
    "ToolClient",
    "ConversationRepository",
    "MessageRepository",
]
