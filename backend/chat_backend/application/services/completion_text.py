"""Best-effort text extraction from provider payloads of unknown shape.

Providers disagree on where the answer lives (``choices[0].message``,
``output_text``, ``result``...). Instead of modelling each shape, the raw
payload is walked along a fixed key priority list with a depth bound.
"""

from typing import Any

_PRIORITY_KEYS = (
    "text",
    "content",
    "reasoning_content",
    "message",
    "output_text",
    "delta",
    "result",
)
_MAX_DEPTH = 5


def extract_text(value: Any, depth: int = 0) -> str:
    """Concatenate every string reachable through the priority keys."""
    if depth > _MAX_DEPTH or value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return "".join(extract_text(item, depth + 1) for item in value)
    if isinstance(value, dict):
        return "".join(
            extract_text(value[key], depth + 1) for key in _PRIORITY_KEYS if key in value
        )
    return ""


def extract_completion_text(payload: Any) -> str:
    """Return the first non-empty text found in a completion payload."""
    if not isinstance(payload, dict):
        return extract_text(payload).strip()

    choices = payload.get("choices")
    first_choice = choices[0] if isinstance(choices, list) and choices else {}
    if not isinstance(first_choice, dict):
        first_choice = {}
    data = payload.get("data")
    message = first_choice.get("message")

    # Reasoning models fill both fields; the answer is in content alone.
    candidates = (
        message.get("content") if isinstance(message, dict) else None,
        message,
        first_choice.get("text"),
        payload.get("output_text"),
        payload.get("output"),
        payload.get("message"),
        payload.get("result"),
        data.get("choices") if isinstance(data, dict) else None,
    )
    for candidate in candidates:
        text = extract_text(candidate).strip()
        if text:
            return text
    return ""


def clip(value: str, max_length: int = 500) -> str:
    """Shorten text for logs and prompts."""
    if len(value) <= max_length:
        return value
    return f"{value[:max_length]}..."


def summarize_payload(payload: Any) -> dict[str, Any]:
    """Compact description of a completion payload for failure diagnostics."""
    if not isinstance(payload, dict):
        return {"type": type(payload).__name__}
    choices = payload.get("choices") if isinstance(payload.get("choices"), list) else []
    choice0 = choices[0] if choices and isinstance(choices[0], dict) else {}
    message0 = choice0.get("message") if isinstance(choice0.get("message"), dict) else {}
    return {
        "id": payload.get("id"),
        "model": payload.get("model"),
        "choices_count": len(choices),
        "choice0_keys": sorted(choice0.keys()),
        "choice0_message_keys": sorted(message0.keys()),
        "content_preview": clip(extract_text(message0.get("content")), 200),
        "reasoning_preview": clip(extract_text(message0.get("reasoning_content")), 200),
        "output_text_preview": clip(extract_text(payload.get("output_text")), 200),
    }


def describe_error(exc: BaseException) -> dict[str, Any]:
    """Loggable summary of an attempt failure."""
    detail: dict[str, Any] = {"name": type(exc).__name__, "message": str(exc)}
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        detail["status"] = status
    provider = getattr(exc, "provider", None)
    if isinstance(provider, str):
        detail["provider"] = provider
    if exc.__cause__ is not None:
        detail["cause"] = {"name": type(exc.__cause__).__name__, "message": str(exc.__cause__)}
    return detail
