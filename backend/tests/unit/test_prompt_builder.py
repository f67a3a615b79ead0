"""Unit tests for PromptBuilder and history normalization."""

from chat_backend.application.services.prompt_builder import (
    DEFAULT_SYSTEM_PROMPT,
    PromptBuilder,
    normalize_history,
)
from chat_backend.domain.entities import ChatMessage, ContentPart, ToolInfo


def _tools() -> list[ToolInfo]:
    return [
        ToolInfo(name="webSearchPrime", server_id="web_search", description="Search the web"),
        ToolInfo(name="webReader", server_id="web_reader", description=""),
    ]


def test_normalize_history_coerces_roles_and_drops_empty_turns():
    history = [
        ChatMessage(role="tool", content="  from a tool  "),
        ChatMessage(role="assistant", content="   "),
        ChatMessage(role="user", content=[]),
        ChatMessage(role="user", content=[ContentPart(type="text", text="look")]),
    ]

    turns = normalize_history(history)

    assert [t.role for t in turns] == ["user", "user"]
    assert turns[0].content == "from a tool"
    assert isinstance(turns[1].content, list)


def test_build_puts_system_instruction_first():
    builder = PromptBuilder("Be brief.")
    prompt = builder.build([ChatMessage(role="user", content="hello")])

    assert prompt[0].role == "system"
    assert prompt[0].content.startswith("Be brief.")
    assert prompt[1].content == "hello"


def test_blank_system_prompt_uses_default():
    prompt = PromptBuilder("  ").build([ChatMessage(role="user", content="hi")])
    assert prompt[0].content.startswith(DEFAULT_SYSTEM_PROMPT)


def test_json_mode_without_tools():
    instruction = PromptBuilder().system_instruction(language_hint="What is Rust?")

    assert "valid JSON object only" in instruction
    assert '"suggestions"' in instruction
    assert "imageAnalyses" not in instruction
    assert "Latest user question:\nWhat is Rust?" in instruction
    assert "Available Tools" not in instruction


def test_tool_mode_lists_tools_and_asks_for_plain_text():
    instruction = PromptBuilder().system_instruction(tools=_tools(), language_hint="今天的新闻")

    assert "Available Tools:" in instruction
    assert "- webSearchPrime: Search the web" in instruction
    assert "- webReader" in instruction
    assert "plain text" in instruction
    assert "valid JSON object only" not in instruction
    assert "The user asked in: 今天的新闻" in instruction


def test_images_in_latest_user_turn_request_image_analyses():
    history = [
        ChatMessage(
            role="user",
            content=[
                ContentPart(type="text", text="What is this?\n\n[Image files: cat.png]"),
                ContentPart(type="image_url", image_url={"url": "data:image/png;base64,AAAA"}),
            ],
        )
    ]

    prompt = PromptBuilder().build(history)

    assert "imageAnalyses" in prompt[0].content
    assert "[Image files: ...]" in prompt[0].content


def test_images_in_older_turns_do_not_request_image_analyses():
    history = [
        ChatMessage(
            role="user",
            content=[ContentPart(type="image_url", image_url={"url": "https://x.test/a.png"})],
        ),
        ChatMessage(role="assistant", content="A cat."),
        ChatMessage(role="user", content="Thanks"),
    ]

    prompt = PromptBuilder().build(history)

    assert "imageAnalyses" not in prompt[0].content


def test_language_hint_is_clipped():
    instruction = PromptBuilder().system_instruction(language_hint="x" * 500)
    assert "x" * 200 in instruction
    assert "x" * 201 not in instruction
