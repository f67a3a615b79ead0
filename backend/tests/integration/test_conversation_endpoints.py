"""Tests for the conversation CRUD endpoints."""

import pytest
from httpx import ASGITransport, AsyncClient

from chat_backend.application.interfaces import ConversationRepository, MessageRepository
from chat_backend.application.services import ConversationService
from chat_backend.domain.entities import Conversation, ImageAnalysis, Message, MessageFile
from chat_backend.infrastructure.dependencies import get_conversation_service
from chat_backend.main import app


class MemoryConversations(ConversationRepository):
    def __init__(self):
        self.items: dict[str, Conversation] = {}

    async def get_by_id(self, conversation_id: str) -> Conversation | None:
        return self.items.get(conversation_id)

    async def list_by_user(self, user_id: str) -> list[Conversation]:
        owned = [c for c in self.items.values() if c.user_id == user_id]
        return sorted(owned, key=lambda c: c.updated_at, reverse=True)

    async def create(self, conversation: Conversation) -> Conversation:
        self.items[conversation.id] = conversation
        return conversation

    async def update(self, conversation: Conversation) -> Conversation:
        self.items[conversation.id] = conversation
        return conversation

    async def delete(self, conversation_id: str) -> bool:
        return self.items.pop(conversation_id, None) is not None


class MemoryMessages(MessageRepository):
    def __init__(self):
        self.items: list[Message] = []

    async def get_recent(self, conversation_id: str, limit: int = 20) -> list[Message]:
        return [m for m in self.items if m.conversation_id == conversation_id][-limit:]

    async def create(self, message: Message) -> Message:
        self.items.append(message)
        return message


@pytest.fixture
def messages() -> MemoryMessages:
    store = MemoryMessages()
    service = ConversationService(MemoryConversations(), store)
    app.dependency_overrides[get_conversation_service] = lambda: service
    yield store
    app.dependency_overrides.clear()


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}


@pytest.mark.asyncio
async def test_create_list_update_delete(messages):
    async with _client() as client:
        created = await client.post("/api/v1/conversations", json={"title": "Trip"}, headers=ALICE)
        assert created.status_code == 201
        conversation_id = created.json()["id"]
        assert created.json()["userId"] == "alice"

        listed = await client.get("/api/v1/conversations", headers=ALICE)
        assert [c["id"] for c in listed.json()] == [conversation_id]
        assert (await client.get("/api/v1/conversations", headers=BOB)).json() == []

        patched = await client.patch(
            f"/api/v1/conversations/{conversation_id}", json={"starred": True}, headers=ALICE
        )
        assert patched.json()["starred"] is True
        assert patched.json()["title"] == "Trip"

        deleted = await client.delete(f"/api/v1/conversations/{conversation_id}", headers=ALICE)
        assert deleted.status_code == 204
        missing = await client.get(f"/api/v1/conversations/{conversation_id}", headers=ALICE)
        assert missing.status_code == 404


@pytest.mark.asyncio
async def test_detail_includes_messages_in_camel_case(messages):
    async with _client() as client:
        created = await client.post("/api/v1/conversations", json={}, headers=ALICE)
        conversation_id = created.json()["id"]
        messages.items.extend([
            Message(
                id="m1", conversation_id=conversation_id, user_id="alice", role="user", message="Look",
                files=[MessageFile(url="https://cdn.test/a.png", file_name="a.png", mime_type="image/png")],
            ),
            Message(
                id="m2", conversation_id=conversation_id, user_id="alice", role="assistant", message="A cat",
                image_analyses=[ImageAnalysis(file_name="a.png", analysis="cat")],
            ),
        ])

        detail = await client.get(f"/api/v1/conversations/{conversation_id}", headers=ALICE)
        listing = await client.get(f"/api/v1/conversations/{conversation_id}/messages", headers=ALICE)

    assert detail.status_code == 200
    body = detail.json()
    assert body["conversation"]["id"] == conversation_id
    assert body["messages"][0]["files"][0]["fileName"] == "a.png"
    assert body["messages"][1]["imageAnalyses"] == [{"fileName": "a.png", "analysis": "cat"}]
    assert [m["id"] for m in listing.json()["messages"]] == ["m1", "m2"]


@pytest.mark.asyncio
async def test_other_users_get_403(messages):
    async with _client() as client:
        created = await client.post("/api/v1/conversations", json={"title": "Private"}, headers=ALICE)
        conversation_id = created.json()["id"]

        assert (await client.get(f"/api/v1/conversations/{conversation_id}", headers=BOB)).status_code == 403
        assert (await client.patch(
            f"/api/v1/conversations/{conversation_id}", json={"title": "Mine"}, headers=BOB
        )).status_code == 403
        assert (await client.delete(f"/api/v1/conversations/{conversation_id}", headers=BOB)).status_code == 403
        assert (await client.get(
            f"/api/v1/conversations/{conversation_id}/messages", headers=BOB
        )).status_code == 403


@pytest.mark.asyncio
async def test_requests_without_user_header_are_rejected(messages):
    async with _client() as client:
        response = await client.get("/api/v1/conversations")
    assert response.status_code == 401
