"""
Message Normalizer.

Canonicalizes conversation messages into the storage-safe format.

The same logical message reaches us in several shapes: the canonical
part-list form, the Anthropic ``tool_use`` / ``tool_result`` blocks, the
OpenAI ``tool_calls`` entries (``{"id", "function": {"name", "arguments"}}``)
and a legacy ``{"function_call": {...}}`` form. Everything is folded into:

    {"role": "user" | "model" | "system", "parts": [...]}

where each part is one of:

    {"channel", "type": "text", "text"}
    {"channel", "type": "file", "file": {...}}
    {"channel", "type": "function_call", "function_call": {"id", "name", "args"}}
    {"channel", "type": "function_response", "function_response": {"id", "name", "response"}}

Rules:
    - Logically empty ``args`` / ``response`` payloads are stored as ``{}``
      so they serialize as a JSON object, never ``[]`` or ``null``.
    - JSON-encoded string payloads are decoded when they hold an object or
      array; anything else keeps the original string.
    - Provider-specific keys are dropped.
    - Every function here is pure and idempotent:
      ``normalize_for_storage(normalize_for_storage(m)) == normalize_for_storage(m)``.

Usage:
    stored = normalize_for_storage(
        {"role": "model", "parts": [{"type": "tool_use", "id": "t1", "name": "get_post", "input": []}]}
    )
    # {"role": "model", "parts": [{"channel": "content", "type": "function_call",
    #   "function_call": {"id": "t1", "name": "get_post", "args": {}}}]}
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "content"

# Top-level keys some providers attach to a whole message.
PROVIDER_MESSAGE_KEYS = ("tool_calls", "content", "tool_use")

# Keys stripped from parts we do not otherwise recognize.
PROVIDER_PART_KEYS = ("tool_calls", "function", "tool_use", "tool_result", "content")


# =============================================================================
# Value Helpers
# =============================================================================


def try_json_decode(value: Any) -> Any:
    """
    Decode a JSON string holding an object or array.

    Non-strings, invalid JSON and JSON scalars are returned unchanged, so
    decoding can never be applied twice to the same payload.
    """
    if not isinstance(value, str):
        return value
    try:
        decoded = json.loads(value)
    except ValueError:
        return value
    if isinstance(decoded, (dict, list)):
        return decoded
    return value


def coerce_empty_to_object(value: Any) -> Any:
    """
    Coerce a logically empty payload to an empty object.

    ``None``, ``[]`` and JSON strings decoding to ``[]`` become ``{}``.
    Non-empty payloads are returned as-is (strings decoded when possible).
    """
    if value is None:
        return {}
    value = try_json_decode(value)
    if isinstance(value, list) and not value:
        return {}
    return value


def _channel(part: dict[str, Any]) -> str:
    channel = part.get("channel")
    return channel if isinstance(channel, str) and channel else DEFAULT_CHANNEL


def _first_present(mapping: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if mapping.get(key) is not None:
            return mapping[key]
    return None


# =============================================================================
# Part Translators
# =============================================================================


def _function_call_part(channel: str, call_id: Any, name: Any, args: Any) -> dict[str, Any]:
    return {
        "channel": channel,
        "type": "function_call",
        "function_call": {
            "id": call_id,
            "name": name,
            "args": coerce_empty_to_object(args),
        },
    }


def _function_response_part(
    channel: str, call_id: Any, name: Any, payload: Any
) -> dict[str, Any]:
    return {
        "channel": channel,
        "type": "function_response",
        "function_response": {
            "id": call_id,
            "name": name,
            "response": coerce_empty_to_object(payload),
        },
    }


def normalize_text_part(part: dict[str, Any]) -> dict[str, Any]:
    """Canonical text part."""
    text = part.get("text")
    return {
        "channel": _channel(part),
        "type": "text",
        "text": text if isinstance(text, str) else ("" if text is None else str(text)),
    }


def normalize_function_call_part(part: dict[str, Any]) -> dict[str, Any]:
    """
    Translate any known function-call shape to the canonical part.

    Recognized sources:
        - canonical: ``{"type": "function_call", "function_call": {"id", "name", "args"}}``
        - Anthropic: ``{"type": "tool_use", "id", "name", "input"}``
        - OpenAI: ``{"id", "function": {"name", "arguments"}}`` (arguments as JSON text or object)
        - legacy: ``{"function_call": {"name", "arguments" | "args"}}``

    Shapes that match none of these are cleaned and passed through.
    """
    channel = _channel(part)
    part_type = part.get("type")
    nested = part.get("function_call")

    if part_type == "function_call" and isinstance(nested, dict):
        return _function_call_part(
            channel,
            nested.get("id"),
            nested.get("name"),
            _first_present(nested, "args", "arguments"),
        )

    if part_type == "tool_use" or (part_type is None and isinstance(part.get("tool_use"), dict)):
        source = part.get("tool_use") if isinstance(part.get("tool_use"), dict) else part
        return _function_call_part(
            channel, source.get("id"), source.get("name"), source.get("input")
        )

    function = part.get("function")
    if isinstance(function, dict) and function.get("name"):
        return _function_call_part(
            channel, part.get("id"), function["name"], function.get("arguments")
        )

    if isinstance(nested, dict):
        return _function_call_part(
            channel,
            nested.get("id"),
            nested.get("name"),
            _first_present(nested, "args", "arguments"),
        )

    return clean_part(part)


def normalize_function_response_part(part: dict[str, Any]) -> dict[str, Any]:
    """
    Translate any known function-response shape to the canonical part.

    Recognized sources:
        - canonical: ``{"type": "function_response", "function_response": {"id", "name", "response" | "output"}}``
        - Anthropic: ``{"type": "tool_result", "tool_use_id", "content" | "output"}``
        - untyped: ``{"function_response": {...}}``
    """
    channel = _channel(part)
    part_type = part.get("type")
    nested = part.get("function_response")

    if part_type == "tool_result" or (
        part_type is None and isinstance(part.get("tool_result"), dict)
    ):
        source = part.get("tool_result") if isinstance(part.get("tool_result"), dict) else part
        return _function_response_part(
            channel,
            source.get("tool_use_id"),
            source.get("name"),
            _first_present(source, "content", "output"),
        )

    if isinstance(nested, dict):
        return _function_response_part(
            channel,
            nested.get("id"),
            nested.get("name"),
            _first_present(nested, "response", "output"),
        )

    return clean_part(part)


def normalize_file_part(part: dict[str, Any]) -> dict[str, Any]:
    """Canonical file part; the file reference itself is kept verbatim."""
    cleaned = clean_part(part)
    cleaned["channel"] = _channel(part)
    return cleaned


def clean_part(part: dict[str, Any]) -> dict[str, Any]:
    """Strip provider-specific keys from a part we pass through."""
    cleaned = {key: value for key, value in part.items() if key not in PROVIDER_PART_KEYS}
    nested = cleaned.get("function_call")
    if isinstance(nested, dict) and "args" in nested:
        cleaned["function_call"] = {**nested, "args": coerce_empty_to_object(nested["args"])}
    return cleaned


_TYPED_TRANSLATORS = {
    "text": normalize_text_part,
    "file": normalize_file_part,
    "function_call": normalize_function_call_part,
    "tool_use": normalize_function_call_part,
    "function_response": normalize_function_response_part,
    "tool_result": normalize_function_response_part,
}


def normalize_part(part: Any) -> dict[str, Any] | None:
    """
    Normalize a single message part.

    Returns None for non-mapping parts, which callers drop.
    """
    if not isinstance(part, dict):
        return None

    part_type = part.get("type")
    if part_type is not None:
        translator = _TYPED_TRANSLATORS.get(part_type, clean_part)
        return translator(part)

    # Untyped parts are identified by structure.
    if "function_call" in part or "tool_use" in part or "function" in part:
        return normalize_function_call_part(part)
    if "function_response" in part or "tool_result" in part:
        return normalize_function_response_part(part)
    if "text" in part:
        return normalize_text_part(part)
    return clean_part(part)


def normalize_parts(parts: Iterable[Any]) -> list[dict[str, Any]]:
    """Normalize a list of parts, dropping entries that are not mappings."""
    normalized = []
    for part in parts:
        result = normalize_part(part)
        if result is None:
            logger.debug(f"[normalizer] Dropping non-mapping part: {type(part).__name__}")
            continue
        normalized.append(result)
    return normalized


# =============================================================================
# Message Operations
# =============================================================================


def normalize_for_storage(message: Any) -> Any:
    """
    Canonicalize a message for persistence.

    Messages that are not mappings, or have no ``role``, are returned
    unchanged. Otherwise ``parts`` is normalized and the top-level provider
    keys (``tool_calls``, ``content``, ``tool_use``) are dropped. Other
    top-level keys (such as a UI ``type`` marker) are preserved.
    """
    if not isinstance(message, dict) or "role" not in message:
        return message

    normalized = {
        key: value for key, value in message.items() if key not in PROVIDER_MESSAGE_KEYS
    }
    if isinstance(normalized.get("parts"), list):
        normalized["parts"] = normalize_parts(normalized["parts"])
    return normalized


def validate_message(message: dict[str, Any]) -> dict[str, Any]:
    """
    Fill in defaults and normalize.

    A missing role becomes ``user``; missing or non-list parts become ``[]``.
    """
    message = dict(message)
    if not message.get("role"):
        message["role"] = "user"
    if not isinstance(message.get("parts"), list):
        message["parts"] = []
    return normalize_for_storage(message)


def normalize_all(messages: Iterable[Any]) -> list[Any]:
    """Normalize every message in a sequence."""
    return [normalize_for_storage(message) for message in messages]


def prepare_for_provider(messages: Iterable[Any], provider_id: str) -> list[Any]:
    """
    Prepare stored messages for re-submission to a provider.

    Currently every provider accepts the canonical form, so this is a
    re-normalization pass. Provider-specific shaping hooks in here.
    """
    logger.debug(f"[normalizer] Preparing messages for provider: {provider_id}")
    return normalize_all(messages)
