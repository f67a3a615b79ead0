"""Conversation use cases — listing, creating, renaming, starring, deleting."""

import logging
import uuid
from datetime import datetime, timezone

from chat_backend.application.interfaces import ConversationRepository, MessageRepository
from chat_backend.domain.entities import Conversation, Message
from chat_backend.domain.exceptions import AccessDeniedError, EntityNotFoundError

logger = logging.getLogger(__name__)

MESSAGE_PAGE_LIMIT = 100


async def get_owned_conversation(
    repository: ConversationRepository, user_id: str, conversation_id: str
) -> Conversation:
    """Load a conversation and check that ``user_id`` owns it.

    Raises:
        EntityNotFoundError: No such conversation.
        AccessDeniedError: It belongs to someone else.
    """
    conversation = await repository.get_by_id(conversation_id)
    if conversation is None:
        raise EntityNotFoundError("Conversation", conversation_id)
    if conversation.user_id != user_id:
        raise AccessDeniedError("Conversation", conversation_id)
    return conversation


class ConversationService:
    """Application service for a user's conversations."""

    def __init__(self, conversations: ConversationRepository, messages: MessageRepository):
        self._conversations = conversations
        self._messages = messages

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        return await self._conversations.list_by_user(user_id)

    async def create_conversation(self, user_id: str, title: str = "") -> Conversation:
        now = datetime.now(timezone.utc)
        conversation = Conversation(
            id=uuid.uuid4().hex,
            user_id=user_id,
            title=title.strip(),
            created_at=now,
            updated_at=now,
        )
        created = await self._conversations.create(conversation)
        logger.info("Created conversation %s for user %s", created.id, user_id)
        return created

    async def get_conversation(
        self, user_id: str, conversation_id: str
    ) -> tuple[Conversation, list[Message]]:
        conversation = await get_owned_conversation(self._conversations, user_id, conversation_id)
        messages = await self._messages.get_recent(conversation_id, MESSAGE_PAGE_LIMIT)
        return conversation, messages

    async def update_conversation(
        self,
        user_id: str,
        conversation_id: str,
        *,
        title: str | None = None,
        starred: bool | None = None,
    ) -> Conversation:
        conversation = await get_owned_conversation(self._conversations, user_id, conversation_id)
        if title is not None:
            conversation.title = title.strip()
        if starred is not None:
            conversation.starred = starred
        conversation.updated_at = datetime.now(timezone.utc)
        return await self._conversations.update(conversation)

    async def delete_conversation(self, user_id: str, conversation_id: str) -> None:
        await get_owned_conversation(self._conversations, user_id, conversation_id)
        await self._conversations.delete(conversation_id)
        logger.info("Deleted conversation %s", conversation_id)

    async def list_messages(self, user_id: str, conversation_id: str) -> list[Message]:
        await get_owned_conversation(self._conversations, user_id, conversation_id)
        return await self._messages.get_recent(conversation_id, MESSAGE_PAGE_LIMIT)
