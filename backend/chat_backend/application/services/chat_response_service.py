"""Chat response use case — persist the turn, generate the reply, persist it.

The orchestrator itself never touches storage; this service is the
history provider and persistence sink around it.
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from chat_backend.application.interfaces import ConversationRepository, MessageRepository
from chat_backend.application.services.completion_orchestrator import (
    CompletionOrchestrator,
    new_trace_id,
)
from chat_backend.application.services.conversation_service import get_owned_conversation
from chat_backend.application.services.history_converter import to_prompt_history
from chat_backend.domain.entities import ImageAnalysis, Message, MessageFile, ModelCandidate

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 50

CandidateResolver = Callable[[str | None], list[ModelCandidate]]


@dataclass
class ChatReply:
    """What the client receives for one user message."""

    message: str
    suggestions: list[str]
    model: str
    trace_id: str
    image_analyses: list[ImageAnalysis] = field(default_factory=list)


def title_from_message(message: str) -> str:
    title = message.strip()
    if len(title) > TITLE_MAX_LENGTH:
        return title[:TITLE_MAX_LENGTH] + "..."
    return title


class ChatResponseService:
    """Application service — answers a user message within a conversation."""

    def __init__(
        self,
        conversations: ConversationRepository,
        messages: MessageRepository,
        orchestrator: CompletionOrchestrator,
        resolve_candidates: CandidateResolver,
        *,
        history_limit: int = 20,
    ):
        self._conversations = conversations
        self._messages = messages
        self._orchestrator = orchestrator
        self._resolve_candidates = resolve_candidates
        self._history_limit = history_limit

    async def respond(
        self,
        user_id: str,
        conversation_id: str,
        message: str,
        files: list[MessageFile] | None = None,
        model: str | None = None,
        trace_id: str | None = None,
    ) -> ChatReply:
        """Generate and store the assistant reply to ``message``.

        1. Checks conversation ownership
        2. Stores the user message, then loads the recent history
        3. Runs the orchestrator over the resolved candidates
        4. Stores the assistant reply and touches the conversation

        Raises:
            EntityNotFoundError / AccessDeniedError: Bad conversation.
            ModelRequestFailedError: No candidate produced a reply; nothing
                is stored for the assistant in that case.
        """
        trace_id = trace_id or new_trace_id()
        conversation = await get_owned_conversation(self._conversations, user_id, conversation_id)

        now = datetime.now(timezone.utc)
        await self._messages.create(
            Message(
                id=uuid.uuid4().hex,
                conversation_id=conversation_id,
                user_id=user_id,
                role="user",
                message=message,
                files=list(files or []),
                created_at=now,
            )
        )

        history = await self._messages.get_recent(conversation_id, self._history_limit)
        result = await self._orchestrator.generate(
            to_prompt_history(history),
            self._resolve_candidates(model),
            language_hint=message,
            trace_id=trace_id,
        )
        reply = result.reply

        await self._messages.create(
            Message(
                id=uuid.uuid4().hex,
                conversation_id=conversation_id,
                user_id=user_id,
                role="assistant",
                message=reply.message,
                image_analyses=list(reply.image_analyses),
                created_at=datetime.now(timezone.utc),
            )
        )

        conversation.updated_at = now
        if not conversation.title:
            conversation.title = title_from_message(message)
        await self._conversations.update(conversation)

        logger.info(
            "Replied in conversation %s with %s (trace_id=%s)",
            conversation_id,
            result.model,
            trace_id,
        )
        return ChatReply(
            message=reply.message,
            suggestions=list(reply.suggestions),
            model=result.model,
            trace_id=trace_id,
            image_analyses=list(reply.image_analyses),
        )
