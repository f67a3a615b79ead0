"""Pydantic v2 schemas (DTOs) for conversations, messages and chat replies.

Wire names are camelCase (``conversationId``, ``imageAnalyses``) to match
the web client; Python attributes stay snake_case.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema that reads and writes camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ── Attachments ──


class MessageFileSchema(CamelModel):
    """A file attached to a user message.

    ``url`` is a regular URL or a base64 data URL. PDF and Office files
    carry text extracted by the client in ``extracted_text``.
    """

    url: str
    file_name: str = Field(..., min_length=1, max_length=255)
    mime_type: str = Field(..., min_length=1)
    size: int = Field(default=0, ge=0)
    extracted_text: str | None = None


class ImageAnalysisSchema(CamelModel):
    """Model-produced description of one uploaded image."""

    file_name: str
    analysis: str


# ── Chat respond ──


class ChatRespondRequest(CamelModel):
    """Request schema for ``POST /chat/respond``."""

    conversation_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, max_length=50_000)
    files: list[MessageFileSchema] | None = None
    model: str | None = Field(
        default=None, description="Pin a model id; disables fallback when set"
    )


class ChatRespondResponse(CamelModel):
    """The assistant reply with exactly three follow-up suggestions."""

    message: str
    suggestions: list[str]
    model: str
    trace_id: str
    image_analyses: list[ImageAnalysisSchema] = Field(default_factory=list)


# ── Conversations ──


class ConversationCreate(CamelModel):
    title: str = Field(default="", max_length=200)


class ConversationUpdate(CamelModel):
    """Partial update; omitted fields are left unchanged."""

    title: str | None = Field(default=None, max_length=200)
    starred: bool | None = None


class ConversationResponse(CamelModel):
    id: str
    user_id: str
    title: str
    starred: bool
    created_at: datetime
    updated_at: datetime


class MessageResponse(CamelModel):
    id: str
    conversation_id: str
    role: str
    message: str
    files: list[MessageFileSchema] = Field(default_factory=list)
    image_analyses: list[ImageAnalysisSchema] = Field(default_factory=list)
    created_at: datetime


class ConversationDetailResponse(CamelModel):
    conversation: ConversationResponse
    messages: list[MessageResponse]


class MessageListResponse(CamelModel):
    messages: list[MessageResponse]


# ── Health ──


class ModelHealthResponse(CamelModel):
    model: str
    endpoint: str
    ok: bool
    latency_ms: int
    checked_at: datetime
    error: dict | None = None
