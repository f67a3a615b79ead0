"""Conversation CRUD endpoints, scoped to the calling user."""

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status

from chat_backend.application.schemas import (
    ConversationCreate,
    ConversationDetailResponse,
    ConversationResponse,
    ConversationUpdate,
    MessageListResponse,
    MessageResponse,
)
from chat_backend.application.services import ConversationService
from chat_backend.domain.exceptions import AccessDeniedError, EntityNotFoundError
from chat_backend.infrastructure.dependencies import (
    get_conversation_service,
    get_current_user_id,
)

router = APIRouter(prefix="/conversations", tags=["Conversations"])


def _raise_http(error: EntityNotFoundError | AccessDeniedError) -> NoReturn:
    if isinstance(error, AccessDeniedError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(error))
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
) -> list[ConversationResponse]:
    """The caller's conversations, most recently updated first."""
    conversations = await service.list_conversations(user_id)
    return [ConversationResponse.model_validate(c) for c in conversations]


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    data: ConversationCreate,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationResponse:
    conversation = await service.create_conversation(user_id, data.title)
    return ConversationResponse.model_validate(conversation)


@router.get("/{conversation_id}", response_model=ConversationDetailResponse)
async def get_conversation(
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationDetailResponse:
    """A conversation with its most recent messages."""
    try:
        conversation, messages = await service.get_conversation(user_id, conversation_id)
    except (EntityNotFoundError, AccessDeniedError) as e:
        _raise_http(e)
    return ConversationDetailResponse(
        conversation=ConversationResponse.model_validate(conversation),
        messages=[MessageResponse.model_validate(m) for m in messages],
    )


@router.patch("/{conversation_id}", response_model=ConversationResponse)
async def update_conversation(
    conversation_id: str,
    data: ConversationUpdate,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationResponse:
    """Rename and/or star a conversation."""
    try:
        conversation = await service.update_conversation(
            user_id, conversation_id, title=data.title, starred=data.starred
        )
    except (EntityNotFoundError, AccessDeniedError) as e:
        _raise_http(e)
    return ConversationResponse.model_validate(conversation)


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
) -> None:
    """Delete a conversation and all of its messages."""
    try:
        await service.delete_conversation(user_id, conversation_id)
    except (EntityNotFoundError, AccessDeniedError) as e:
        _raise_http(e)


@router.get("/{conversation_id}/messages", response_model=MessageListResponse)
async def list_messages(
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
) -> MessageListResponse:
    try:
        messages = await service.list_messages(user_id, conversation_id)
    except (EntityNotFoundError, AccessDeniedError) as e:
        _raise_http(e)
    return MessageListResponse(messages=[MessageResponse.model_validate(m) for m in messages])
