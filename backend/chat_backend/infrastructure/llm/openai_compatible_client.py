"""OpenAI-compatible chat completions client — implements the ChatProvider interface.

Talks to any ``/chat/completions`` endpoint (OpenRouter, BigModel/GLM,
OpenAI, ...) using httpx. Response bodies are treated as opaque: the text
is pulled out best-effort because providers disagree on where it lives.
"""

import logging
from typing import Any
from urllib.parse import urlparse

import httpx

from chat_backend.application.interfaces.chat_provider import ChatProvider
from chat_backend.application.services.completion_text import extract_completion_text
from chat_backend.domain.entities import (
    ChatMessage,
    ChatCompletionResult,
    TokenUsage,
    ToolCall,
    ToolCallFunction,
)
from chat_backend.domain.exceptions import ChatProviderError

logger = logging.getLogger(__name__)


class OpenAICompatibleClient(ChatProvider):
    """Infrastructure adapter — one endpoint + credential pair.

    Uses the injected httpx client (shared connection pool) when given,
    otherwise opens a short-lived client per call.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        app_name: str = "Chat Backend",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 120.0,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._app_name = app_name
        self._http_client = http_client
        self._timeout = timeout

    @property
    def provider_name(self) -> str:
        host = urlparse(self._base_url).hostname or ""
        if host.endswith("openrouter.ai"):
            return "openrouter"
        return host or "openai-compatible"

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "X-Title": self._app_name,
        }

    def _build_payload(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        json_mode: bool = False,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
        max_tokens: int | None = None,
        thinking: bool | None = None,
    ) -> dict[str, Any]:
        """Build the request payload; unset options are omitted."""
        payload: dict[str, Any] = {
            "model": model,
            "messages": [self._serialize_message(m) for m in messages],
            "stream": False,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        if tools:
            payload["tools"] = tools
            if tool_choice is not None:
                payload["tool_choice"] = tool_choice
        if temperature is not None:
            payload["temperature"] = temperature
        if top_p is not None:
            payload["top_p"] = top_p
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if thinking is not None:
            payload["thinking"] = {"type": "enabled" if thinking else "disabled"}
        return payload

    @staticmethod
    def _serialize_message(msg: ChatMessage) -> dict[str, Any]:
        """Convert a domain ChatMessage to an API-compatible dict."""
        if msg.role == "assistant" and msg.tool_calls:
            return {
                "role": "assistant",
                "content": msg.content if isinstance(msg.content, str) else None,
                "tool_calls": [
                    {
                        "id": tc.id,
                        "type": tc.type,
                        "function": {
                            "name": tc.function.name,
                            "arguments": tc.function.arguments,
                        },
                    }
                    for tc in msg.tool_calls
                ],
            }

        if isinstance(msg.content, str):
            return {"role": msg.role, "content": msg.content}

        parts = []
        for part in msg.content:
            if part.type == "text":
                parts.append({"type": "text", "text": part.text or ""})
            elif part.type == "image_url" and part.image_url:
                parts.append({"type": "image_url", "image_url": part.image_url})
        return {"role": msg.role, "content": parts}

    async def complete(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        json_mode: bool = False,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
        max_tokens: int | None = None,
        thinking: bool | None = None,
    ) -> ChatCompletionResult:
        """Send a non-streaming chat completion."""
        payload = self._build_payload(
            messages,
            model,
            json_mode=json_mode,
            tools=tools,
            tool_choice=tool_choice,
            temperature=temperature,
            top_p=top_p,
            max_tokens=max_tokens,
            thinking=thinking,
        )
        url = f"{self._base_url}/chat/completions"

        client = self._http_client or httpx.AsyncClient(timeout=self._timeout)
        should_close = self._http_client is None

        try:
            response = await client.post(url, headers=self._get_headers(), json=payload)
        except httpx.HTTPError as exc:
            raise ChatProviderError(
                provider=self.provider_name,
                status_code=503,
                message=f"{type(exc).__name__}: {exc}",
            ) from exc
        finally:
            if should_close:
                await client.aclose()

        if response.status_code != 200:
            self._raise_provider_error(response)

        try:
            data = response.json()
        except ValueError as exc:
            raise ChatProviderError(
                provider=self.provider_name,
                status_code=502,
                message="Provider returned a non-JSON body",
            ) from exc

        result = self._parse_completion_response(data, model)
        logger.debug(
            "Completion from %s: finish=%s tokens=%d tool_calls=%d",
            result.model,
            result.finish_reason,
            result.usage.total_tokens,
            len(result.tool_calls),
        )
        return result

    def _parse_completion_response(self, data: Any, requested_model: str) -> ChatCompletionResult:
        """Parse the JSON body into a domain entity.

        A body without choices is not an error here; it yields empty
        content and the caller decides whether that is usable.
        """
        if not isinstance(data, dict):
            data = {"output": data}

        if data.get("error"):
            error = data["error"]
            if isinstance(error, dict):
                code = error.get("code")
                raise ChatProviderError(
                    provider=self.provider_name,
                    status_code=code if isinstance(code, int) else 500,
                    message=str(error.get("message", "Unknown error")),
                )
            raise ChatProviderError(provider=self.provider_name, status_code=500, message=str(error))

        choices = data.get("choices")
        choice = choices[0] if isinstance(choices, list) and choices and isinstance(choices[0], dict) else {}
        message = choice.get("message") if isinstance(choice.get("message"), dict) else {}
        usage_data = data.get("usage") if isinstance(data.get("usage"), dict) else {}

        tool_calls = []
        for tc in message.get("tool_calls") or []:
            if not isinstance(tc, dict):
                continue
            func_data = tc.get("function") or {}
            tool_calls.append(
                ToolCall(
                    id=tc.get("id", ""),
                    type=tc.get("type", "function"),
                    function=ToolCallFunction(
                        name=func_data.get("name", ""),
                        arguments=func_data.get("arguments") or "",
                    ),
                )
            )

        return ChatCompletionResult(
            model=data.get("model") or requested_model,
            content=extract_completion_text(data),
            finish_reason=choice.get("finish_reason") or "stop",
            usage=TokenUsage(
                prompt_tokens=usage_data.get("prompt_tokens", 0),
                completion_tokens=usage_data.get("completion_tokens", 0),
                total_tokens=usage_data.get("total_tokens", 0),
                cost=usage_data.get("cost"),
            ),
            provider=self.provider_name,
            tool_calls=tool_calls,
            raw=data,
        )

    def _raise_provider_error(self, response: httpx.Response) -> None:
        """Raise ChatProviderError from a non-200 httpx Response."""
        try:
            data = response.json()
            error = data.get("error", {})
            message = error.get("message", response.text) if isinstance(error, dict) else str(error)
        except Exception:
            message = response.text

        raise ChatProviderError(
            provider=self.provider_name,
            status_code=response.status_code,
            message=message,
        )
