"""
Tests for the Message Normalizer.

Tests cover:
- The four function-call source shapes
- Function-response shapes (canonical, output, tool_result)
- Empty-value coercion and best-effort JSON decoding
- Unknown and non-mapping parts
- Message-level operations and idempotence
"""

import copy

import pytest

from sitepilot.messages.normalizer import (
    coerce_empty_to_object,
    normalize_all,
    normalize_for_storage,
    normalize_part,
    prepare_for_provider,
    try_json_decode,
    validate_message,
)

CANONICAL_CALL = {
    "channel": "content",
    "type": "function_call",
    "function_call": {"id": "c1", "name": "sitepilot_get_post", "args": {"post_id": 5}},
}


# =============================================================================
# Value Helpers
# =============================================================================


class TestValueHelpers:
    """Tests for JSON decoding and empty coercion."""

    def test_decodes_json_object(self):
        assert try_json_decode('{"a": 1}') == {"a": 1}

    def test_decodes_json_array(self):
        assert try_json_decode("[1, 2]") == [1, 2]

    def test_invalid_json_preserved(self):
        assert try_json_decode("{not json") == "{not json"

    def test_json_scalar_string_preserved(self):
        """Scalars stay strings so a second pass cannot change them."""
        assert try_json_decode("42") == "42"
        assert try_json_decode('"quoted"') == '"quoted"'

    def test_non_string_untouched(self):
        payload = {"a": 1}
        assert try_json_decode(payload) is payload

    @pytest.mark.parametrize("empty", [None, [], "[]"])
    def test_empty_values_become_object(self, empty):
        assert coerce_empty_to_object(empty) == {}

    def test_non_empty_payload_untouched(self):
        assert coerce_empty_to_object([1]) == [1]
        assert coerce_empty_to_object("done") == "done"
        assert coerce_empty_to_object({"x": None}) == {"x": None}


# =============================================================================
# Function Calls
# =============================================================================


class TestFunctionCallShapes:
    """Every known function-call shape maps to the same canonical part."""

    def test_canonical(self):
        assert normalize_part(copy.deepcopy(CANONICAL_CALL)) == CANONICAL_CALL

    def test_tool_use(self):
        part = {"type": "tool_use", "id": "c1", "name": "sitepilot_get_post", "input": {"post_id": 5}}
        assert normalize_part(part) == CANONICAL_CALL

    def test_openai_function_with_string_arguments(self):
        part = {"id": "c1", "function": {"name": "sitepilot_get_post", "arguments": '{"post_id": 5}'}}
        assert normalize_part(part) == CANONICAL_CALL

    def test_openai_function_with_object_arguments(self):
        part = {"id": "c1", "function": {"name": "sitepilot_get_post", "arguments": {"post_id": 5}}}
        assert normalize_part(part) == CANONICAL_CALL

    def test_legacy_nested_function_call(self):
        part = {"function_call": {"id": "c1", "name": "sitepilot_get_post", "arguments": '{"post_id": 5}'}}
        assert normalize_part(part) == CANONICAL_CALL

    def test_legacy_nested_args_key(self):
        part = {"function_call": {"id": "c1", "name": "sitepilot_get_post", "args": {"post_id": 5}}}
        assert normalize_part(part) == CANONICAL_CALL

    def test_missing_id_is_none(self):
        part = {"type": "tool_use", "name": "x", "input": {}}
        assert normalize_part(part)["function_call"]["id"] is None

    @pytest.mark.parametrize("empty", [None, [], "[]"])
    def test_empty_args_become_object(self, empty):
        part = {
            "type": "function_call",
            "function_call": {"id": "c1", "name": "list", "args": empty},
        }
        assert normalize_part(part)["function_call"]["args"] == {}

    def test_empty_openai_arguments(self):
        part = {"id": "c1", "function": {"name": "list", "arguments": "[]"}}
        assert normalize_part(part)["function_call"]["args"] == {}

    def test_invalid_json_arguments_preserved(self):
        part = {"id": "c1", "function": {"name": "list", "arguments": "{oops"}}
        assert normalize_part(part)["function_call"]["args"] == "{oops"

    def test_thought_channel_preserved(self):
        part = {**copy.deepcopy(CANONICAL_CALL), "channel": "thought"}
        assert normalize_part(part)["channel"] == "thought"


# =============================================================================
# Function Responses
# =============================================================================


class TestFunctionResponseShapes:
    """Tests for function-response normalization."""

    def test_canonical_response(self):
        part = {
            "type": "function_response",
            "function_response": {"id": "c1", "name": "get", "response": {"title": "Hi"}},
        }
        assert normalize_part(part) == {
            "channel": "content",
            "type": "function_response",
            "function_response": {"id": "c1", "name": "get", "response": {"title": "Hi"}},
        }

    def test_output_key(self):
        part = {"function_response": {"id": "c1", "name": "get", "output": "done"}}
        result = normalize_part(part)

        assert result["type"] == "function_response"
        assert result["function_response"]["response"] == "done"

    def test_tool_result(self):
        part = {"type": "tool_result", "tool_use_id": "c1", "content": '{"title": "Hi"}'}
        result = normalize_part(part)

        assert result["function_response"] == {"id": "c1", "name": None, "response": {"title": "Hi"}}

    def test_empty_list_response_becomes_object(self):
        part = {"function_response": {"id": "c1", "name": "get", "response": "[]"}}
        assert normalize_part(part)["function_response"]["response"] == {}

    def test_error_string_response_kept(self):
        text = "The function call failed with an error: nope"
        part = {"function_response": {"id": "c1", "name": "get", "response": text}}
        assert normalize_part(part)["function_response"]["response"] == text


# =============================================================================
# Other Parts
# =============================================================================


class TestOtherParts:
    """Tests for text, unknown and non-mapping parts."""

    def test_untyped_text(self):
        assert normalize_part({"text": "hi"}) == {"channel": "content", "type": "text", "text": "hi"}

    def test_unknown_part_stripped_of_provider_fields(self):
        part = {"type": "custom", "foo": 1, "tool_calls": [], "content": "x", "function": {}}
        assert normalize_part(part) == {"type": "custom", "foo": 1}

    def test_non_mapping_part_is_none(self):
        assert normalize_part("text") is None
        assert normalize_part(None) is None

    def test_file_part_gets_channel(self):
        part = {"type": "file", "file": {"mimeType": "image/png", "url": "https://x/y.png"}}
        assert normalize_part(part) == {**part, "channel": "content"}


# =============================================================================
# Messages
# =============================================================================


class TestMessages:
    """Tests for message-level normalization."""

    def test_non_mapping_unchanged(self):
        assert normalize_for_storage("hello") == "hello"

    def test_message_without_role_unchanged(self):
        message = {"parts": [{"function": {"name": "x"}}]}
        assert normalize_for_storage(message) is message

    def test_provider_keys_dropped(self):
        message = {
            "role": "model",
            "content": "hi",
            "tool_calls": [{"id": "c1"}],
            "tool_use": {},
            "parts": [{"text": "hi"}],
        }
        assert normalize_for_storage(message) == {
            "role": "model",
            "parts": [{"channel": "content", "type": "text", "text": "hi"}],
        }

    def test_type_marker_preserved(self):
        message = {"type": "error", "role": "model", "parts": []}
        assert normalize_for_storage(message)["type"] == "error"

    def test_non_mapping_parts_dropped(self):
        message = {"role": "user", "parts": ["junk", {"text": "ok"}, 3]}
        assert normalize_for_storage(message)["parts"] == [
            {"channel": "content", "type": "text", "text": "ok"}
        ]

    def test_validate_fills_defaults(self):
        assert validate_message({}) == {"role": "user", "parts": []}

    def test_validate_replaces_non_list_parts(self):
        assert validate_message({"role": "model", "parts": "x"}) == {"role": "model", "parts": []}

    def test_prepare_for_provider_normalizes(self):
        messages = [{"role": "model", "parts": [{"id": "c1", "function": {"name": "f", "arguments": "[]"}}]}]
        prepared = prepare_for_provider(messages, "anthropic")

        assert prepared[0]["parts"][0]["function_call"] == {"id": "c1", "name": "f", "args": {}}


class TestIdempotence:
    """normalize(normalize(m)) == normalize(m)."""

    MESSAGES = [
        {"role": "user", "parts": [{"text": "hi"}, {"type": "file", "file": {"mimeType": "a/b", "base64Data": "QQ=="}}]},
        {
            "role": "model",
            "tool_calls": [{"id": "c1"}],
            "parts": [
                {"type": "text", "channel": "thought", "text": "thinking"},
                {"id": "c1", "function": {"name": "f", "arguments": '{"a": [1, 2]}'}},
                {"type": "tool_use", "id": "c2", "name": "g", "input": None},
                {"function_call": {"name": "h", "arguments": "not json"}},
            ],
        },
        {
            "role": "user",
            "parts": [
                {"type": "tool_result", "tool_use_id": "c1", "content": "[]"},
                {"function_response": {"id": "c2", "name": "g", "output": '"42"'}},
                {"type": "mystery", "content": "x"},
            ],
        },
        {"type": "regular", "role": "model", "parts": "bad"},
        "not a message",
    ]

    @pytest.mark.parametrize("message", MESSAGES)
    def test_normalize_twice_is_stable(self, message):
        once = normalize_for_storage(copy.deepcopy(message))
        twice = normalize_for_storage(copy.deepcopy(once))
        assert twice == once

    def test_normalize_all_is_stable(self):
        once = normalize_all(copy.deepcopy(self.MESSAGES))
        assert normalize_all(copy.deepcopy(once)) == once
