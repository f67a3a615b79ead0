"""Prompt builder — system instruction plus normalized conversation turns.

Two modes:

- tool mode: the model may call tools and answers in plain text. Providers
  cannot reliably emit a tool call and a JSON envelope in one response, so
  no envelope is requested here.
- JSON mode: the model must answer with ``{"message", "suggestions"}``
  only, plus ``imageAnalyses`` when the latest user turn carries images.
"""

from chat_backend.domain.entities import ChatMessage, ToolInfo

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
LANGUAGE_HINT_MAX_LENGTH = 200

_ALLOWED_ROLES = frozenset({"system", "user", "assistant"})

_TOOL_MODE_INSTRUCTION = """Available Tools:
{tool_list}

When users ask for news, current events, or real-time information, you MUST use the available search tools to fetch accurate, up-to-date information. When users share a URL or ask about a specific web page, use the page reading tool. Do not claim you cannot access the internet.

Response Format:
After using tools (if needed), provide your response in plain text. Be direct and helpful."""

_JSON_MODE_INSTRUCTION = """IMPORTANT: You must respond with a valid JSON object only. No markdown, no code blocks, no additional text.

JSON format:
{json_shape}

Rules:
- Return ONLY the JSON object, nothing else
- suggestions: exactly 3 relevant follow-up questions"""

_JSON_SHAPE = """{
  "message": "Your response to the user",
  "suggestions": ["question 1", "question 2", "question 3"]
}"""

_JSON_SHAPE_WITH_IMAGES = """{
  "message": "Your response to the user",
  "suggestions": ["question 1", "question 2", "question 3"],
  "imageAnalyses": [
    {"fileName": "ACTUAL_FILENAME_FROM_USER_MESSAGE", "analysis": "Detailed analysis of the image"}
  ]
}"""

_IMAGE_RULES = """
- imageAnalyses: required when images are present, one entry for EACH image
- Use the EXACT file names from the user's message (look for "[Image files: ...]")"""


def normalize_history(messages: list[ChatMessage]) -> list[ChatMessage]:
    """Coerce roles, keep multimodal turns as-is, trim text and drop empty turns."""
    normalized: list[ChatMessage] = []
    for msg in messages:
        role = msg.role if msg.role in _ALLOWED_ROLES else "user"
        if isinstance(msg.content, list):
            if msg.content:
                normalized.append(ChatMessage(role=role, content=list(msg.content)))
            continue
        text = (msg.content or "").strip()
        if text:
            normalized.append(ChatMessage(role=role, content=text))
    return normalized


def latest_user_turn(messages: list[ChatMessage]) -> ChatMessage | None:
    for msg in reversed(messages):
        if msg.role == "user":
            return msg
    return None


def _describe_tools(tools: list[ToolInfo]) -> str:
    lines = []
    for tool in tools:
        description = " ".join(tool.description.split())
        lines.append(f"- {tool.name}: {description}" if description else f"- {tool.name}")
    return "\n".join(lines)


class PromptBuilder:
    """Builds the message list for one completion attempt."""

    def __init__(self, system_prompt: str | None = None):
        self._base_prompt = (system_prompt or "").strip() or DEFAULT_SYSTEM_PROMPT

    def system_instruction(
        self,
        *,
        tools: list[ToolInfo] | None = None,
        language_hint: str | None = None,
        has_images: bool = False,
    ) -> str:
        hint = (language_hint or "").strip()[:LANGUAGE_HINT_MAX_LENGTH]

        if tools:
            instruction = (
                f"{self._base_prompt}\n\n"
                + _TOOL_MODE_INSTRUCTION.format(tool_list=_describe_tools(tools))
            )
            if hint:
                instruction += (
                    "\n\nPlease respond in the same language as the user's question. "
                    f"The user asked in: {hint}"
                )
            return instruction

        instruction = f"{self._base_prompt}\n\n" + _JSON_MODE_INSTRUCTION.format(
            json_shape=_JSON_SHAPE_WITH_IMAGES if has_images else _JSON_SHAPE
        )
        if has_images:
            instruction += _IMAGE_RULES
        if hint:
            instruction += (
                "\n- message and suggestions language: must match the user's latest question language"
                f"\n\nLatest user question:\n{hint}"
            )
        return instruction

    def build(
        self,
        history: list[ChatMessage],
        *,
        tools: list[ToolInfo] | None = None,
        language_hint: str | None = None,
    ) -> list[ChatMessage]:
        """Return ``[system, *normalized_history]``.

        Args:
            history: Prior turns in chronological order, latest user turn last.
            tools: Tools offered to the model; empty or ``None`` selects JSON mode.
            language_hint: The user's latest message; clipped to 200 chars.
        """
        turns = normalize_history(history)
        latest = latest_user_turn(turns)
        instruction = self.system_instruction(
            tools=tools,
            language_hint=language_hint,
            has_images=bool(latest and latest.has_images),
        )
        return [ChatMessage(role="system", content=instruction), *turns]
