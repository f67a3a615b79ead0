"""Unit tests for the OpenAICompatibleClient."""

import json

import httpx
import pytest

from chat_backend.domain.entities import ChatMessage, ContentPart, ModelCandidate, ToolCall, ToolCallFunction
from chat_backend.domain.exceptions import ChatProviderError
from chat_backend.infrastructure.llm import OpenAICompatibleClient, build_provider_factory


# ── Helpers ──


def _mock_completion_response(
    content: str | None = "Hello!",
    model: str = "z-ai/glm-4.7",
    tool_calls: list[dict] | None = None,
) -> dict:
    """Build a mock chat completions JSON response."""
    message: dict = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = tool_calls
    return {
        "id": "chatcmpl-test123",
        "choices": [
            {
                "index": 0,
                "message": message,
                "finish_reason": "tool_calls" if tool_calls else "stop",
            }
        ],
        "model": model,
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15, "cost": 0.0001},
    }


def _make_transport(
    response_data: object = None,
    status_code: int = 200,
    captured: list[httpx.Request] | None = None,
    content: bytes | None = None,
) -> httpx.MockTransport:
    """Mock transport returning a fixed response and capturing requests."""

    def handler(request: httpx.Request) -> httpx.Response:
        if captured is not None:
            captured.append(request)
        if content is not None:
            return httpx.Response(status_code, content=content)
        return httpx.Response(status_code, json=response_data)

    return httpx.MockTransport(handler)


def _client(transport: httpx.MockTransport, base_url: str = "https://openrouter.ai/api/v1") -> OpenAICompatibleClient:
    return OpenAICompatibleClient(
        api_key="test-key",
        base_url=base_url,
        http_client=httpx.AsyncClient(transport=transport),
    )


# ── Tests ──


@pytest.mark.asyncio
async def test_complete_parses_response():
    client = _client(_make_transport(_mock_completion_response(content="The answer is 42.")))

    result = await client.complete([ChatMessage(role="user", content="What is 42?")], "z-ai/glm-4.7")

    assert result.content == "The answer is 42."
    assert result.model == "z-ai/glm-4.7"
    assert result.usage.total_tokens == 15
    assert result.usage.cost == 0.0001
    assert result.provider == "openrouter"
    assert result.raw["id"] == "chatcmpl-test123"


@pytest.mark.asyncio
async def test_payload_contains_only_set_options():
    captured: list[httpx.Request] = []
    client = _client(_make_transport(_mock_completion_response(), captured=captured))

    await client.complete([ChatMessage(role="user", content="Hi")], "m")

    body = json.loads(captured[0].content)
    assert body == {"model": "m", "messages": [{"role": "user", "content": "Hi"}], "stream": False}
    assert captured[0].url == "https://openrouter.ai/api/v1/chat/completions"
    assert captured[0].headers["Authorization"] == "Bearer test-key"


@pytest.mark.asyncio
async def test_payload_with_json_mode_tools_and_thinking():
    captured: list[httpx.Request] = []
    client = _client(_make_transport(_mock_completion_response(), captured=captured))
    tools = [{"type": "function", "function": {"name": "webReader", "parameters": {}}}]

    await client.complete(
        [ChatMessage(role="user", content="Hi")],
        "m",
        json_mode=True,
        tools=tools,
        tool_choice="auto",
        temperature=0.3,
        top_p=0.9,
        max_tokens=256,
        thinking=False,
    )

    body = json.loads(captured[0].content)
    assert body["response_format"] == {"type": "json_object"}
    assert body["tools"] == tools
    assert body["tool_choice"] == "auto"
    assert body["temperature"] == 0.3
    assert body["top_p"] == 0.9
    assert body["max_tokens"] == 256
    assert body["thinking"] == {"type": "disabled"}


@pytest.mark.asyncio
async def test_tool_choice_omitted_without_tools():
    captured: list[httpx.Request] = []
    client = _client(_make_transport(_mock_completion_response(), captured=captured))

    await client.complete([ChatMessage(role="user", content="Hi")], "m", tool_choice="auto")

    body = json.loads(captured[0].content)
    assert "tools" not in body
    assert "tool_choice" not in body


@pytest.mark.asyncio
async def test_multimodal_and_tool_call_messages_are_serialized():
    captured: list[httpx.Request] = []
    client = _client(_make_transport(_mock_completion_response(), captured=captured))
    messages = [
        ChatMessage(
            role="user",
            content=[
                ContentPart(type="text", text="What is this?"),
                ContentPart(type="image_url", image_url={"url": "data:image/png;base64,AAAA"}),
            ],
        ),
        ChatMessage(
            role="assistant",
            content="",
            tool_calls=[ToolCall(id="c1", type="function", function=ToolCallFunction(name="t", arguments="{}"))],
        ),
    ]

    await client.complete(messages, "m")

    sent = json.loads(captured[0].content)["messages"]
    assert sent[0]["content"][1] == {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}}
    assert sent[1]["tool_calls"][0]["function"] == {"name": "t", "arguments": "{}"}


@pytest.mark.asyncio
async def test_tool_calls_are_parsed():
    response = _mock_completion_response(
        content=None,
        tool_calls=[{"id": "call_1", "type": "function", "function": {"name": "webSearchPrime", "arguments": '{"q": "x"}'}}],
    )
    client = _client(_make_transport(response))

    result = await client.complete([ChatMessage(role="user", content="news")], "m")

    assert result.content == ""
    assert result.finish_reason == "tool_calls"
    assert result.tool_calls[0].function.name == "webSearchPrime"
    assert result.tool_calls[0].function.arguments == '{"q": "x"}'


@pytest.mark.asyncio
async def test_http_error_status_raises_provider_error():
    error_data = {"error": {"code": 429, "message": "Rate limit exceeded"}}
    client = _client(_make_transport(error_data, status_code=429))

    with pytest.raises(ChatProviderError) as exc_info:
        await client.complete([ChatMessage(role="user", content="Hi")], "m")

    assert exc_info.value.status_code == 429
    assert "Rate limit" in exc_info.value.message


@pytest.mark.asyncio
async def test_error_body_with_200_raises_provider_error():
    client = _client(_make_transport({"error": {"code": 400, "message": "bad model"}}))

    with pytest.raises(ChatProviderError) as exc_info:
        await client.complete([ChatMessage(role="user", content="Hi")], "m")

    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_non_json_body_raises_502():
    client = _client(_make_transport(content=b"<html>gateway</html>"))

    with pytest.raises(ChatProviderError) as exc_info:
        await client.complete([ChatMessage(role="user", content="Hi")], "m")

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_transport_failure_raises_503():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(httpx.MockTransport(handler))

    with pytest.raises(ChatProviderError) as exc_info:
        await client.complete([ChatMessage(role="user", content="Hi")], "m")

    assert exc_info.value.status_code == 503
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_body_without_choices_yields_empty_content():
    client = _client(_make_transport({"id": "x"}))
    result = await client.complete([ChatMessage(role="user", content="Hi")], "requested")

    assert result.content == ""
    assert result.model == "requested"


def test_provider_name_from_host():
    transport = _make_transport({})
    assert _client(transport).provider_name == "openrouter"
    assert _client(transport, "https://open.bigmodel.cn/api/paas/v4").provider_name == "open.bigmodel.cn"


def test_provider_factory_binds_candidate_endpoint_and_credential():
    factory = build_provider_factory(app_name="Test")
    provider = factory(ModelCandidate(endpoint="https://api.example.com/v1/", model_id="m", credential="secret"))

    assert provider._base_url == "https://api.example.com/v1"
    assert provider._get_headers()["Authorization"] == "Bearer secret"
