"""Domain entities for conversations and their persisted messages."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from .structured_reply import ImageAnalysis


@dataclass
class MessageFile:
    """A file attached to a user message.

    ``url`` is either a regular URL or a base64 data URL. Office and PDF
    documents arrive with text already extracted client-side.
    """

    url: str
    file_name: str
    mime_type: str
    size: int = 0
    extracted_text: str | None = None

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    @property
    def extension(self) -> str:
        if "." not in self.file_name:
            return ""
        return self.file_name.rsplit(".", 1)[-1].lower()


@dataclass
class Conversation:
    """A chat conversation owned by a single user."""

    id: str
    user_id: str
    title: str = ""
    starred: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class Message:
    """A persisted chat turn."""

    id: str
    conversation_id: str
    user_id: str
    role: str  # "user" | "assistant"
    message: str
    files: list[MessageFile] = field(default_factory=list)
    image_analyses: list[ImageAnalysis] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
