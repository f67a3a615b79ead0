"""Abstract repository interfaces (ports) for conversations and messages."""

from abc import ABC, abstractmethod

from chat_backend.domain.entities import Conversation, Message


class ConversationRepository(ABC):
    """Port for conversation persistence — implemented in the infrastructure layer."""

    @abstractmethod
    async def get_by_id(self, conversation_id: str) -> Conversation | None:
        """Retrieve a single conversation by its ID."""
        ...

    @abstractmethod
    async def list_by_user(self, user_id: str) -> list[Conversation]:
        """Retrieve a user's conversations, most recently updated first."""
        ...

    @abstractmethod
    async def create(self, conversation: Conversation) -> Conversation:
        """Persist a new conversation."""
        ...

    @abstractmethod
    async def update(self, conversation: Conversation) -> Conversation:
        """Update title, starred flag and timestamps of a conversation."""
        ...

    @abstractmethod
    async def delete(self, conversation_id: str) -> bool:
        """Delete a conversation and its messages. Returns False if not found."""
        ...


class MessageRepository(ABC):
    """Port for message persistence — history provider and persistence sink."""

    @abstractmethod
    async def get_recent(self, conversation_id: str, limit: int = 20) -> list[Message]:
        """Return the last ``limit`` messages in chronological order."""
        ...

    @abstractmethod
    async def create(self, message: Message) -> Message:
        """Persist a new message."""
        ...
