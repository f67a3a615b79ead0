"""Integration tests for the SQLAlchemy repositories on in-memory SQLite."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from chat_backend.domain.entities import Conversation, ImageAnalysis, Message, MessageFile
from chat_backend.infrastructure.database.base import Base
from chat_backend.infrastructure.database.repositories import (
    SQLAlchemyConversationRepository,
    SQLAlchemyMessageRepository,
)

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


@asynccontextmanager
async def _session() -> AsyncIterator[AsyncSession]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with factory() as session:
            yield session
    finally:
        await engine.dispose()


def _conversation(conversation_id: str, user_id: str = "alice", minutes: int = 0) -> Conversation:
    at = T0 + timedelta(minutes=minutes)
    return Conversation(id=conversation_id, user_id=user_id, title=conversation_id, created_at=at, updated_at=at)


def _message(message_id: str, minutes: int, role: str = "user", **kwargs) -> Message:
    return Message(
        id=message_id,
        conversation_id="c1",
        user_id="alice",
        role=role,
        message=f"text {message_id}",
        created_at=T0 + timedelta(minutes=minutes),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_conversation_crud_and_listing_order():
    async with _session() as session:
        repo = SQLAlchemyConversationRepository(session)
        await repo.create(_conversation("older", minutes=1))
        await repo.create(_conversation("newer", minutes=5))
        await repo.create(_conversation("other", user_id="bob", minutes=9))

        assert [c.id for c in await repo.list_by_user("alice")] == ["newer", "older"]

        older = await repo.get_by_id("older")
        older.title = "Renamed"
        older.starred = True
        older.updated_at = T0 + timedelta(minutes=10)
        await repo.update(older)

        listed = await repo.list_by_user("alice")
        assert [c.id for c in listed] == ["older", "newer"]
        assert listed[0].title == "Renamed"
        assert listed[0].starred is True
        assert await repo.get_by_id("missing") is None


@pytest.mark.asyncio
async def test_update_missing_conversation_raises():
    async with _session() as session:
        with pytest.raises(ValueError):
            await SQLAlchemyConversationRepository(session).update(_conversation("ghost"))


@pytest.mark.asyncio
async def test_recent_messages_are_chronological_and_limited():
    async with _session() as session:
        await SQLAlchemyConversationRepository(session).create(_conversation("c1"))
        repo = SQLAlchemyMessageRepository(session)
        for i in (3, 1, 4, 2, 5):
            await repo.create(_message(f"m{i}", minutes=i))

        recent = await repo.get_recent("c1", limit=3)

        assert [m.id for m in recent] == ["m3", "m4", "m5"]


@pytest.mark.asyncio
async def test_files_and_image_analyses_round_trip():
    async with _session() as session:
        await SQLAlchemyConversationRepository(session).create(_conversation("c1"))
        repo = SQLAlchemyMessageRepository(session)
        await repo.create(
            _message(
                "u1",
                minutes=1,
                files=[MessageFile(url="data:application/pdf;base64,AA", file_name="a.pdf",
                                   mime_type="application/pdf", size=2, extracted_text="body")],
            )
        )
        await repo.create(
            _message("a1", minutes=2, role="assistant",
                     image_analyses=[ImageAnalysis(file_name="x.png", analysis="a cat")])
        )
        await session.commit()

        user, assistant = await repo.get_recent("c1")

        assert user.files[0].file_name == "a.pdf"
        assert user.files[0].extracted_text == "body"
        assert user.image_analyses == []
        assert assistant.files == []
        assert assistant.image_analyses[0].analysis == "a cat"


@pytest.mark.asyncio
async def test_delete_removes_conversation_and_messages():
    async with _session() as session:
        conversations = SQLAlchemyConversationRepository(session)
        messages = SQLAlchemyMessageRepository(session)
        await conversations.create(_conversation("c1"))
        await messages.create(_message("m1", minutes=1))

        assert await conversations.delete("c1") is True
        assert await conversations.delete("c1") is False
        assert await conversations.get_by_id("c1") is None
        assert await messages.get_recent("c1") == []
