from .conversation_models import ConversationModel, MessageModel

__all__ = [
    "ConversationModel",
    "MessageModel",
]
