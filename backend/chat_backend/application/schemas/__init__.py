from .chat import (
    ChatRespondRequest,
    ChatRespondResponse,
    ConversationCreate,
    ConversationDetailResponse,
    ConversationResponse,
    ConversationUpdate,
    ImageAnalysisSchema,
    MessageFileSchema,
    MessageListResponse,
    MessageResponse,
    ModelHealthResponse,
)

__all__ = [
    "ChatRespondRequest",
    "ChatRespondResponse",
    "ConversationCreate",
    "ConversationDetailResponse",
    "ConversationResponse",
    "ConversationUpdate",
    "ImageAnalysisSchema",
    "MessageFileSchema",
    "MessageListResponse",
    "MessageResponse",
    "ModelHealthResponse",
]
