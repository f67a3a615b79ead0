"""Converts persisted messages into prompt turns.

Attachments are folded into the user turn: images become ``image_url``
parts (and are listed by name so the model can reference them), PDFs and
Office documents contribute their client-extracted text, and code/text
files are decoded from their base64 data URLs.
"""

import base64
import binascii
import logging
import re

from chat_backend.domain.entities import ChatMessage, ContentPart, Message, MessageFile

logger = logging.getLogger(__name__)

CODE_EXTENSIONS = frozenset({
    "js", "ts", "jsx", "tsx", "py", "java", "go", "rs", "c", "cpp", "h", "hpp",
    "cs", "rb", "php", "sh", "json", "yaml", "yml", "toml", "md", "txt", "csv",
})
OFFICE_EXTENSIONS = frozenset({"pptx", "xlsx", "xls", "xlsm", "xlsb", "docx", "ods"})

PDF_EXTRACTION_FAILED = "[PDF text extraction failed]"

_DATA_URL_RE = re.compile(r"^data:[^;]+;base64,(.+)$", re.DOTALL)


def read_data_url_text(url: str) -> str:
    """Decode a base64 data URL as UTF-8 text; anything else yields ''."""
    match = _DATA_URL_RE.match(url)
    if not match:
        return ""
    try:
        return base64.b64decode(match.group(1)).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        logger.warning("Could not decode data URL attachment")
        return ""


def _file_block(file: MessageFile, body: str) -> str:
    return f"\n\n--- File: {file.file_name} ---\n{body}"


def user_turn(message: Message) -> ChatMessage:
    if not message.files:
        return ChatMessage(role="user", content=message.message)

    text = message.message
    image_parts: list[ContentPart] = []
    image_names: list[str] = []

    for file in message.files:
        extension = file.extension
        if file.is_image:
            image_names.append(file.file_name)
            image_parts.append(ContentPart(type="image_url", image_url={"url": file.url}))
        elif file.mime_type == "application/pdf" or extension == "pdf":
            text += _file_block(file, file.extracted_text or PDF_EXTRACTION_FAILED)
        elif extension in OFFICE_EXTENSIONS:
            # Binary Office files are never read from the data URL
            if file.extracted_text:
                text += _file_block(file, file.extracted_text)
        elif extension in CODE_EXTENSIONS:
            content = read_data_url_text(file.url)
            if content:
                text += _file_block(file, content)

    if image_names:
        text += f"\n\n[Image files: {', '.join(image_names)}]"

    return ChatMessage(role="user", content=[ContentPart(type="text", text=text), *image_parts])


def assistant_turn(message: Message) -> ChatMessage:
    content = message.message
    if message.image_analyses:
        analyses = "\n".join(
            f"\n--- Image Analysis: {a.file_name} ---\n{a.analysis}"
            for a in message.image_analyses
        )
        content += f"\n\n{analyses}"
    return ChatMessage(role="assistant", content=content)


def to_prompt_history(messages: list[Message]) -> list[ChatMessage]:
    """Map stored messages (chronological) to prompt turns."""
    return [
        assistant_turn(m) if m.role == "assistant" else user_turn(m)
        for m in messages
    ]
