"""Follow-up suggestion finalizer — always returns exactly three questions.

Model output for suggestions is unreliable (fenced, wrapped in an object,
truncated, duplicated, or missing). Whatever arrives is parsed leniently,
normalized, deduplicated and padded with content-derived and then static
language-aware fallbacks, so the client always receives a fixed shape.
"""

import asyncio
import json
import logging
import re
from typing import Any

from chat_backend.application.interfaces.chat_provider import ChatProvider
from chat_backend.domain.entities import ChatMessage

logger = logging.getLogger(__name__)

SUGGESTION_COUNT = 3
MAX_SUGGESTION_LENGTH = 80
MAX_CONTEXT_LENGTH = 2000

ZH_FALLBACK_SUGGESTIONS = (
    "你能进一步展开关键步骤吗？",
    "如果要落地执行，第一步该做什么？",
    "这个方案有哪些风险和取舍？",
)

EN_FALLBACK_SUGGESTIONS = (
    "Can you break down the key steps in more detail?",
    "If I want to implement this, what should I do first?",
    "What are the main risks and trade-offs in this approach?",
)

_CJK_RE = re.compile(r"[\u4e00-\u9fff]")
_KEYWORD_RE = re.compile(r"[\u4e00-\u9fff]{2,10}|[A-Za-z][A-Za-z0-9_-]{2,}")
_WHITESPACE_RE = re.compile(r"\s+")
_FENCE_OPEN_RE = re.compile(r"^```(?:json)?", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"```$")

_STOPWORDS = frozenset({
    "这个",
    "那个",
    "以及",
    "然后",
    "可以",
    "需要",
    "通过",
    "如果",
    "因为",
    "所以",
    "assistant",
    "response",
})

_GENERATION_SYSTEM_PROMPT = "You generate concise follow-up question suggestions in strict JSON format."

_GENERATION_PROMPT = """Based on the user question and assistant response below, generate exactly 3 short and relevant follow-up questions the user is most likely to ask next.
Return ONLY JSON as either:
1) ["Q1","Q2","Q3"]
or
2) {{"suggestions":["Q1","Q2","Q3"]}}
Questions must be concise and directly tied to the response.
Use the same language as the user question.

User question:
{question}

Assistant response:
{answer}"""


def clamp_text(text: str) -> str:
    return text.strip()[:MAX_CONTEXT_LENGTH]


def normalize_suggestion(value: str) -> str:
    """Collapse whitespace, trim and cap the length of one suggestion."""
    return _WHITESPACE_RE.sub(" ", value).strip()[:MAX_SUGGESTION_LENGTH]


def detect_language(text: str) -> str:
    """Return "zh" when the text contains any CJK ideograph, else "en"."""
    return "zh" if _CJK_RE.search(text) else "en"


def extract_context_keywords(context: str, limit: int = 3) -> list[str]:
    """Pick up to ``limit`` distinct keyword-like tokens from the context."""
    normalized = _WHITESPACE_RE.sub(" ", context).strip()
    keywords: list[str] = []
    seen: set[str] = set()
    for raw in _KEYWORD_RE.findall(normalized):
        candidate = raw.strip()
        key = candidate.lower()
        if not candidate or candidate in _STOPWORDS or key in _STOPWORDS or key in seen:
            continue
        seen.add(key)
        keywords.append(candidate)
        if len(keywords) >= limit:
            break
    return keywords


def build_contextual_fallbacks(context: str, language: str) -> list[str]:
    """Template generic follow-up questions around keywords of the context."""
    keywords = extract_context_keywords(context)
    if language == "zh":
        default_target = context[:18].strip() or "这个问题"
    else:
        default_target = context[:28].strip() or "this topic"
    target = keywords[0] if keywords else default_target
    second = keywords[1] if len(keywords) > 1 else target
    third = keywords[2] if len(keywords) > 2 else target

    if language == "zh":
        templates = [
            f"关于「{target}」，你能分步骤展开说明吗？",
            f"如果要把「{second}」真正落地，第一步最该做什么？",
            f"在「{third}」这部分最容易踩的坑和取舍是什么？",
        ]
    else:
        templates = [
            f'Can you explain "{target}" step by step?',
            f'If I want to put "{second}" into practice, what should I start with?',
            f'What are the common pitfalls and trade-offs around "{third}"?',
        ]
    return [normalize_suggestion(t) for t in templates]


def _as_string_list(value: Any) -> list[str]:
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    if isinstance(value, dict) and isinstance(value.get("suggestions"), list):
        return [item for item in value["suggestions"] if isinstance(item, str)]
    return []


def parse_suggestion_list(raw: Any) -> list[str]:
    """Leniently read a list of suggestions out of model output.

    Accepts an already-decoded list/object, or text holding a JSON array,
    a ``{"suggestions": [...]}`` object, a fenced block, or JSON embedded in
    noise. Anything unreadable yields an empty list.
    """
    if isinstance(raw, (list, dict)):
        return _as_string_list(raw)
    if not isinstance(raw, str):
        return []

    cleaned = raw.strip()
    if not cleaned:
        return []

    try:
        return _as_string_list(json.loads(cleaned))
    except json.JSONDecodeError:
        pass

    unfenced = _FENCE_CLOSE_RE.sub("", _FENCE_OPEN_RE.sub("", cleaned)).strip()
    try:
        return _as_string_list(json.loads(unfenced))
    except json.JSONDecodeError:
        pass

    match = re.search(r"[\[{]", cleaned)
    end = max(cleaned.rfind("]"), cleaned.rfind("}"))
    if match and end > match.start():
        try:
            return _as_string_list(json.loads(cleaned[match.start():end + 1]))
        except json.JSONDecodeError:
            pass

    return []


def dedupe_suggestions(items: list[str]) -> list[str]:
    """Normalize and drop empty or case-insensitively repeated items, keeping order."""
    unique: list[str] = []
    seen: set[str] = set()
    for item in items:
        normalized = normalize_suggestion(item)
        key = normalized.lower()
        if not normalized or key in seen:
            continue
        seen.add(key)
        unique.append(normalized)
    return unique


def finalize_suggestions(items: list[str], context: str, language_hint: str) -> list[str]:
    """Return exactly three unique, non-empty suggestions of at most 80 chars."""
    unique = dedupe_suggestions(items)
    if len(unique) >= SUGGESTION_COUNT:
        return unique[:SUGGESTION_COUNT]

    language = detect_language(language_hint)
    static = ZH_FALLBACK_SUGGESTIONS if language == "zh" else EN_FALLBACK_SUGGESTIONS

    for fallback in [*build_contextual_fallbacks(context, language), *static]:
        if len(unique) >= SUGGESTION_COUNT:
            break
        candidate = normalize_suggestion(fallback)
        if candidate and all(candidate.lower() != item.lower() for item in unique):
            unique.append(candidate)

    return unique[:SUGGESTION_COUNT]


def parse_and_finalize_suggestions(
    raw: Any, context: str, language_hint: str | None = None
) -> list[str]:
    """Parse raw model output and pad it to the fixed three-item shape."""
    clamped_context = clamp_text(context)
    hint = clamp_text(language_hint) if language_hint else clamped_context
    return finalize_suggestions(parse_suggestion_list(raw), clamped_context, hint)


class SuggestionGenerator:
    """Generates follow-ups with a dedicated, best-effort completion call.

    Used when the answer came back as plain text without a suggestions
    envelope. Any failure degrades to the finalizer's fallbacks.
    """

    def __init__(
        self,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
        top_p: float | None = None,
        thinking: bool | None = None,
        timeout_seconds: float = 30.0,
    ):
        self._temperature = max(0.1, temperature * 0.4) if temperature is not None else 0.2
        self._max_tokens = min(500, max_tokens) if max_tokens is not None else 200
        self._top_p = top_p
        self._thinking = thinking if thinking is not None else False
        self._timeout = timeout_seconds

    async def generate(
        self,
        provider: ChatProvider,
        model: str,
        answer_text: str,
        user_message: str | None = None,
    ) -> list[str]:
        context = clamp_text(answer_text)
        language_hint = clamp_text(user_message or context)
        if not context:
            static = ZH_FALLBACK_SUGGESTIONS if detect_language(language_hint) == "zh" else EN_FALLBACK_SUGGESTIONS
            return list(static[:SUGGESTION_COUNT])

        messages = [
            ChatMessage(role="system", content=_GENERATION_SYSTEM_PROMPT),
            ChatMessage(
                role="user",
                content=_GENERATION_PROMPT.format(question=language_hint, answer=context),
            ),
        ]

        try:
            result = await asyncio.wait_for(
                provider.complete(
                    messages,
                    model,
                    json_mode=True,
                    temperature=self._temperature,
                    max_tokens=self._max_tokens,
                    top_p=self._top_p,
                    thinking=self._thinking,
                ),
                timeout=self._timeout,
            )
            raw = result.content
        except Exception as exc:
            logger.warning("Suggestion generation failed, using fallback suggestions: %s", exc)
            raw = ""

        return finalize_suggestions(parse_suggestion_list(raw), context, language_hint)
