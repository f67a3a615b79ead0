from .conversation_repository import SQLAlchemyConversationRepository, SQLAlchemyMessageRepository

__all__ = [
    "SQLAlchemyConversationRepository",
    "SQLAlchemyMessageRepository",
]
