"""
Canonical conversation message model.

A Message has exactly one role and an ordered tuple of parts. Parts are a
tagged union (text, file, function call, function response) plus an
opaque variant for shapes we keep but do not interpret.

Messages are immutable: once appended to a trajectory they never change.
Conversion to and from the storage dict goes through the normalizer, so
``Message.from_dict`` accepts any provider shape the normalizer knows.

Usage:
    message = Message.user_text("Summarize post 42")
    stored = message.to_dict()
    # {"role": "user", "parts": [{"channel": "content", "type": "text", "text": "..."}]}

    same = Message.from_dict(stored)
    assert same == message
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .normalizer import DEFAULT_CHANNEL, validate_message


class MessageRole(str, Enum):
    """Role of a message in the conversation."""

    USER = "user"
    MODEL = "model"
    SYSTEM = "system"


class PartChannel(str, Enum):
    """Whether a part is user-facing content or model reasoning."""

    CONTENT = "content"
    THOUGHT = "thought"


def _parse_channel(value: Any) -> PartChannel:
    if value == PartChannel.THOUGHT.value:
        return PartChannel.THOUGHT
    return PartChannel.CONTENT


# =============================================================================
# Part Payloads
# =============================================================================


@dataclass(frozen=True, slots=True)
class InlineFile:
    """File embedded as base64 data."""

    mime_type: str
    base64_data: str

    def to_dict(self) -> dict[str, Any]:
        return {"mimeType": self.mime_type, "base64Data": self.base64_data}


@dataclass(frozen=True, slots=True)
class RemoteFile:
    """File referenced by URL."""

    mime_type: str
    url: str

    def to_dict(self) -> dict[str, Any]:
        return {"mimeType": self.mime_type, "url": self.url}


@dataclass(frozen=True, slots=True)
class FunctionCall:
    """
    A model's request to invoke a named function.

    ``args`` holds whatever the model sent after normalization; the
    capability adapter coerces it to a dict before any tool sees it.
    """

    name: str
    args: Any = field(default_factory=dict)
    id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "args": self.args}


@dataclass(frozen=True, slots=True)
class FunctionResponse:
    """The outcome of a function call, fed back to the model."""

    name: str
    response: Any = field(default_factory=dict)
    id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "response": self.response}


# =============================================================================
# Parts
# =============================================================================


@dataclass(frozen=True, slots=True)
class TextPart:
    text: str
    channel: PartChannel = PartChannel.CONTENT

    def to_dict(self) -> dict[str, Any]:
        return {"channel": self.channel.value, "type": "text", "text": self.text}


@dataclass(frozen=True, slots=True)
class FilePart:
    file: InlineFile | RemoteFile
    channel: PartChannel = PartChannel.CONTENT

    def to_dict(self) -> dict[str, Any]:
        return {"channel": self.channel.value, "type": "file", "file": self.file.to_dict()}


@dataclass(frozen=True, slots=True)
class FunctionCallPart:
    call: FunctionCall
    channel: PartChannel = PartChannel.CONTENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel.value,
            "type": "function_call",
            "function_call": self.call.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class FunctionResponsePart:
    response: FunctionResponse
    channel: PartChannel = PartChannel.CONTENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel.value,
            "type": "function_response",
            "function_response": self.response.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class OpaquePart:
    """A part shape we store and pass through without interpreting."""

    data: dict[str, Any]

    @property
    def channel(self) -> PartChannel:
        return _parse_channel(self.data.get("channel"))

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data)


MessagePart = TextPart | FilePart | FunctionCallPart | FunctionResponsePart | OpaquePart


def _file_from_dict(data: Any) -> InlineFile | RemoteFile | None:
    if not isinstance(data, dict):
        return None
    mime_type = data.get("mimeType") or data.get("mime_type") or ""
    if data.get("base64Data") is not None:
        return InlineFile(mime_type=mime_type, base64_data=data["base64Data"])
    if data.get("url") is not None:
        return RemoteFile(mime_type=mime_type, url=data["url"])
    return None


def part_from_dict(data: dict[str, Any]) -> MessagePart:
    """
    Build a typed part from an already-normalized part dict.

    Anything that does not form a complete typed part is kept as OpaquePart.
    """
    channel = _parse_channel(data.get("channel", DEFAULT_CHANNEL))
    part_type = data.get("type")

    if part_type == "text":
        return TextPart(text=data.get("text", ""), channel=channel)

    if part_type == "file":
        file = _file_from_dict(data.get("file"))
        if file is not None:
            return FilePart(file=file, channel=channel)

    if part_type == "function_call" and isinstance(data.get("function_call"), dict):
        call = data["function_call"]
        return FunctionCallPart(
            call=FunctionCall(
                name=str(call.get("name") or ""),
                args=call.get("args", {}),
                id=call.get("id"),
            ),
            channel=channel,
        )

    if part_type == "function_response" and isinstance(data.get("function_response"), dict):
        response = data["function_response"]
        return FunctionResponsePart(
            response=FunctionResponse(
                name=str(response.get("name") or ""),
                response=response.get("response", {}),
                id=response.get("id"),
            ),
            channel=channel,
        )

    return OpaquePart(data=dict(data))


# =============================================================================
# Message
# =============================================================================


@dataclass(frozen=True, slots=True)
class Message:
    """
    A single conversation message.

    Attributes:
        role: Exactly one of user, model, system
        parts: Ordered parts of the message
    """

    role: MessageRole
    parts: tuple[MessagePart, ...] = ()

    @classmethod
    def user_text(cls, text: str) -> Message:
        """Create a user message with a single text part."""
        return cls(role=MessageRole.USER, parts=(TextPart(text=text),))

    @classmethod
    def model_text(cls, text: str) -> Message:
        """Create a model message with a single text part."""
        return cls(role=MessageRole.MODEL, parts=(TextPart(text=text),))

    @classmethod
    def function_responses(cls, responses: list[FunctionResponse]) -> Message:
        """Bundle function responses, in order, into one user message."""
        return cls(
            role=MessageRole.USER,
            parts=tuple(FunctionResponsePart(response=r) for r in responses),
        )

    @property
    def function_calls(self) -> tuple[FunctionCall, ...]:
        """Function calls requested in this message, in order."""
        return tuple(p.call for p in self.parts if isinstance(p, FunctionCallPart))

    @property
    def text(self) -> str:
        """Concatenated user-facing text of this message."""
        return "".join(
            p.text
            for p in self.parts
            if isinstance(p, TextPart) and p.channel == PartChannel.CONTENT
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the canonical storage dict."""
        return {
            "role": self.role.value,
            "parts": [part.to_dict() for part in self.parts],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        """
        Create from a stored or provider-shaped dict.

        The dict is validated and normalized first; a missing role
        defaults to user. Unknown roles raise ValueError.
        """
        normalized = validate_message(data)
        return cls(
            role=MessageRole(normalized["role"]),
            parts=tuple(part_from_dict(p) for p in normalized["parts"]),
        )
