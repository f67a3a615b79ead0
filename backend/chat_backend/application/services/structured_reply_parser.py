"""Structured reply parser — pulls ``{message, suggestions, imageAnalyses}`` out of LLM text.

Models asked for "JSON only" still wrap it in fences, prefix it with prose
or append extra content after it. Strategies are tried in order and the
first success wins:

1. the whole trimmed text is a JSON object;
2. a ```json fence is stripped; text after the closing fence is kept;
3. the first balanced ``{...}`` is located with a string-aware scanner;
   text after the closing brace is kept.

Kept trailing text is appended to ``message``. No strategy → ``None``; the
caller must not invent a reply.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from chat_backend.application.services.suggestion_finalizer import parse_and_finalize_suggestions
from chat_backend.domain.entities import ImageAnalysis, StructuredReply

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*\n", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")


@dataclass
class JsonObjectMatch:
    """A JSON object found in text plus whatever followed it."""

    data: dict[str, Any]
    remaining: str = ""


def _load_object(text: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def find_json_object_end(text: str, start: int) -> int:
    """Index of the brace closing the object opened at ``start``, or -1.

    Braces inside string literals (including escaped quotes) do not count.
    """
    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index

    return -1


def parse_json_object_from_text(raw: str) -> JsonObjectMatch | None:
    """Locate the first JSON object in ``raw`` using the three strategies."""
    cleaned = raw.strip()
    if not cleaned:
        return None

    data = _load_object(cleaned)
    if data is not None:
        return JsonObjectMatch(data=data)

    opening = _FENCE_OPEN_RE.match(cleaned)
    if opening:
        body = cleaned[opening.end():]
        # Raw newlines cannot occur inside JSON strings, so the first
        # newline-fence closes the JSON block.
        close = body.find("\n```")
        if close == -1:
            fenced, remaining = _FENCE_CLOSE_RE.sub("", body), ""
        else:
            fenced, remaining = body[:close], body[close + 4:].strip()
        data = _load_object(fenced.strip())
        if data is not None:
            return JsonObjectMatch(data=data, remaining=remaining)

    start = cleaned.find("{")
    if start != -1:
        end = find_json_object_end(cleaned, start)
        if end > start:
            data = _load_object(cleaned[start:end + 1])
            if data is not None:
                return JsonObjectMatch(data=data, remaining=cleaned[end + 1:].strip())

    return None


def _read_message(data: dict[str, Any]) -> str:
    for key in ("message", "answer"):
        value = data.get(key)
        if isinstance(value, str):
            return value.strip()
    return ""


def _read_image_analyses(value: Any) -> list[ImageAnalysis]:
    if not isinstance(value, list):
        return []
    return [
        ImageAnalysis(file_name=item["fileName"], analysis=item["analysis"])
        for item in value
        if isinstance(item, dict)
        and isinstance(item.get("fileName"), str)
        and isinstance(item.get("analysis"), str)
    ]


def parse_structured_reply(raw: str, language_hint: str | None = None) -> StructuredReply | None:
    """Parse a completion's text into a finalized StructuredReply, or ``None``.

    Args:
        raw: The completion text, possibly noisy.
        language_hint: The user's latest message; selects the fallback
            suggestion language. Defaults to the reply itself.
    """
    match = parse_json_object_from_text(raw or "")
    if match is None:
        return None

    message = _read_message(match.data)
    if not message:
        logger.debug("JSON object found but it carries no message/answer field")
        return None

    if match.remaining:
        message = f"{message}\n\n{match.remaining}"

    suggestions_raw = match.data.get("suggestions")
    if not isinstance(suggestions_raw, (list, str)):
        suggestions_raw = ""

    return StructuredReply(
        message=message,
        suggestions=parse_and_finalize_suggestions(suggestions_raw, message, language_hint),
        image_analyses=_read_image_analyses(match.data.get("imageAnalyses")),
    )
