"""Concrete conversation and message repositories backed by SQLAlchemy."""

from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from chat_backend.application.interfaces import ConversationRepository, MessageRepository
from chat_backend.domain.entities import Conversation, ImageAnalysis, Message, MessageFile
from chat_backend.infrastructure.database.models import ConversationModel, MessageModel


class SQLAlchemyConversationRepository(ConversationRepository):
    """Implements the ConversationRepository port using SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession):
        self._session = session

    def _to_entity(self, model: ConversationModel) -> Conversation:
        """Map ORM model → domain entity."""
        return Conversation(
            id=model.id,
            user_id=model.user_id,
            title=model.title,
            starred=model.starred,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    async def get_by_id(self, conversation_id: str) -> Conversation | None:
        result = await self._session.get(ConversationModel, conversation_id)
        return self._to_entity(result) if result else None

    async def list_by_user(self, user_id: str) -> list[Conversation]:
        stmt = (
            select(ConversationModel)
            .where(ConversationModel.user_id == user_id)
            .order_by(ConversationModel.updated_at.desc())
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(row) for row in result.scalars().all()]

    async def create(self, conversation: Conversation) -> Conversation:
        model = ConversationModel(
            id=conversation.id,
            user_id=conversation.user_id,
            title=conversation.title,
            starred=conversation.starred,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def update(self, conversation: Conversation) -> Conversation:
        model = await self._session.get(ConversationModel, conversation.id)
        if model is None:
            raise ValueError(f"Conversation {conversation.id} not found in database")
        model.title = conversation.title
        model.starred = conversation.starred
        model.updated_at = conversation.updated_at
        await self._session.flush()
        return self._to_entity(model)

    async def delete(self, conversation_id: str) -> bool:
        model = await self._session.get(ConversationModel, conversation_id)
        if model is None:
            return False
        await self._session.execute(
            delete(MessageModel).where(MessageModel.conversation_id == conversation_id)
        )
        await self._session.delete(model)
        await self._session.flush()
        return True


class SQLAlchemyMessageRepository(MessageRepository):
    """Implements the MessageRepository port using SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _files_to_json(files: list[MessageFile]) -> list[dict[str, Any]] | None:
        if not files:
            return None
        return [
            {
                "url": f.url,
                "fileName": f.file_name,
                "mimeType": f.mime_type,
                "size": f.size,
                "extractedText": f.extracted_text,
            }
            for f in files
        ]

    @staticmethod
    def _files_from_json(raw: list[dict[str, Any]] | None) -> list[MessageFile]:
        return [
            MessageFile(
                url=item.get("url", ""),
                file_name=item.get("fileName", ""),
                mime_type=item.get("mimeType", ""),
                size=item.get("size", 0),
                extracted_text=item.get("extractedText"),
            )
            for item in raw or []
            if isinstance(item, dict)
        ]

    def _to_entity(self, model: MessageModel) -> Message:
        """Map ORM model → domain entity."""
        return Message(
            id=model.id,
            conversation_id=model.conversation_id,
            user_id=model.user_id,
            role=model.role,
            message=model.message,
            files=self._files_from_json(model.files),
            image_analyses=[
                ImageAnalysis(file_name=item.get("fileName", ""), analysis=item.get("analysis", ""))
                for item in model.image_analyses or []
                if isinstance(item, dict)
            ],
            created_at=model.created_at,
        )

    async def get_recent(self, conversation_id: str, limit: int = 20) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.created_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        newest_first = [self._to_entity(row) for row in result.scalars().all()]
        return list(reversed(newest_first))

    async def create(self, message: Message) -> Message:
        model = MessageModel(
            id=message.id,
            conversation_id=message.conversation_id,
            user_id=message.user_id,
            role=message.role,
            message=message.message,
            files=self._files_to_json(message.files),
            image_analyses=[
                {"fileName": a.file_name, "analysis": a.analysis} for a in message.image_analyses
            ]
            or None,
            created_at=message.created_at,
        )
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)
