"""Unit tests for the structured reply parser."""

from chat_backend.application.services.structured_reply_parser import (
    find_json_object_end,
    parse_json_object_from_text,
    parse_structured_reply,
)


def test_plain_json_object():
    reply = parse_structured_reply('{"message": "Hi there", "suggestions": ["A?", "B?", "C?"]}')

    assert reply.message == "Hi there"
    assert reply.suggestions == ["A?", "B?", "C?"]


def test_fenced_json_with_trailing_text_is_appended():
    raw = '```json\n{"message": "Answer", "suggestions": ["A?", "B?", "C?"]}\n```\nSources: example.com'

    reply = parse_structured_reply(raw)

    assert reply.message == "Answer\n\nSources: example.com"


def test_fenced_json_without_closing_fence():
    reply = parse_structured_reply('```json\n{"message": "Partial fence", "suggestions": []}')
    assert reply.message == "Partial fence"


def test_embedded_object_with_braces_inside_strings():
    raw = 'Sure! {"message": "Use {braces} and \\"quotes\\"", "suggestions": ["A?"]} trailing'

    reply = parse_structured_reply(raw)

    assert reply.message == 'Use {braces} and "quotes"\n\ntrailing'
    assert len(reply.suggestions) == 3


def test_answer_key_is_accepted():
    reply = parse_structured_reply('{"answer": "From answer"}')
    assert reply.message == "From answer"


def test_missing_or_empty_message_yields_none():
    assert parse_structured_reply('{"suggestions": ["A?"]}') is None
    assert parse_structured_reply('{"message": "   "}') is None


def test_unparseable_text_yields_none():
    assert parse_structured_reply("Just some prose without JSON.") is None
    assert parse_structured_reply("") is None
    assert parse_structured_reply("{not json at all") is None


def test_suggestions_always_padded_to_three():
    reply = parse_structured_reply('{"message": "Short", "suggestions": "nonsense"}')
    assert len(reply.suggestions) == 3


def test_image_analyses_are_read_and_malformed_entries_skipped():
    raw = (
        '{"message": "Two images", "suggestions": [], "imageAnalyses": ['
        '{"fileName": "a.png", "analysis": "A chart"}, {"fileName": 3}, "junk"]}'
    )

    reply = parse_structured_reply(raw)

    assert len(reply.image_analyses) == 1
    assert reply.image_analyses[0].file_name == "a.png"
    assert reply.image_analyses[0].analysis == "A chart"


def test_chinese_hint_selects_chinese_fallbacks():
    reply = parse_structured_reply('{"message": "ok", "suggestions": []}', language_hint="你好")
    assert reply.suggestions[0] == "关于「ok」，你能分步骤展开说明吗？"


def test_find_json_object_end_unbalanced():
    assert find_json_object_end('{"a": {"b": 1}', 0) == -1
    assert find_json_object_end('{"a": "}"}', 0) == 9


def test_top_level_array_is_not_an_object():
    assert parse_json_object_from_text('["a", "b"]') is None
