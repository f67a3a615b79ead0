"""Unit tests for ConversationService."""

import pytest

from chat_backend.application.interfaces import ConversationRepository, MessageRepository
from chat_backend.application.services.conversation_service import ConversationService
from chat_backend.domain.entities import Conversation, Message
from chat_backend.domain.exceptions import AccessDeniedError, EntityNotFoundError


# ── Fakes ──


class FakeConversationRepository(ConversationRepository):
    """In-memory fake repository for unit testing."""

    def __init__(self):
        self._items: dict[str, Conversation] = {}

    async def get_by_id(self, conversation_id: str) -> Conversation | None:
        return self._items.get(conversation_id)

    async def list_by_user(self, user_id: str) -> list[Conversation]:
        owned = [c for c in self._items.values() if c.user_id == user_id]
        return sorted(owned, key=lambda c: c.updated_at, reverse=True)

    async def create(self, conversation: Conversation) -> Conversation:
        self._items[conversation.id] = conversation
        return conversation

    async def update(self, conversation: Conversation) -> Conversation:
        self._items[conversation.id] = conversation
        return conversation

    async def delete(self, conversation_id: str) -> bool:
        return self._items.pop(conversation_id, None) is not None


class FakeMessageRepository(MessageRepository):
    def __init__(self):
        self.items: list[Message] = []

    async def get_recent(self, conversation_id: str, limit: int = 20) -> list[Message]:
        return [m for m in self.items if m.conversation_id == conversation_id][-limit:]

    async def create(self, message: Message) -> Message:
        self.items.append(message)
        return message


@pytest.fixture
def service() -> ConversationService:
    return ConversationService(FakeConversationRepository(), FakeMessageRepository())


# ── Tests ──


@pytest.mark.asyncio
async def test_create_and_list_only_own_conversations(service):
    mine = await service.create_conversation("alice", "  Trip planning  ")
    await service.create_conversation("bob")

    listed = await service.list_conversations("alice")

    assert [c.id for c in listed] == [mine.id]
    assert mine.title == "Trip planning"
    assert mine.starred is False


@pytest.mark.asyncio
async def test_get_conversation_checks_existence_and_owner(service):
    conversation = await service.create_conversation("alice")

    with pytest.raises(EntityNotFoundError):
        await service.get_conversation("alice", "missing")
    with pytest.raises(AccessDeniedError):
        await service.get_conversation("bob", conversation.id)

    found, messages = await service.get_conversation("alice", conversation.id)
    assert found.id == conversation.id
    assert messages == []


@pytest.mark.asyncio
async def test_update_renames_and_stars(service):
    conversation = await service.create_conversation("alice", "Old")
    before = conversation.updated_at

    updated = await service.update_conversation("alice", conversation.id, title="New", starred=True)
    assert updated.title == "New"
    assert updated.starred is True
    assert updated.updated_at >= before

    unchanged = await service.update_conversation("alice", conversation.id)
    assert unchanged.title == "New"


@pytest.mark.asyncio
async def test_delete_requires_owner(service):
    conversation = await service.create_conversation("alice")

    with pytest.raises(AccessDeniedError):
        await service.delete_conversation("bob", conversation.id)

    await service.delete_conversation("alice", conversation.id)
    with pytest.raises(EntityNotFoundError):
        await service.list_messages("alice", conversation.id)
