"""
SitePilot Messages.

The canonical conversation message model and the normalizer that folds
every provider's message shape into it.

Usage:
    from sitepilot.messages import Message, normalize_for_storage

    stored = normalize_for_storage(raw_provider_message)
    message = Message.from_dict(stored)
"""

from .normalizer import (
    coerce_empty_to_object,
    normalize_all,
    normalize_for_storage,
    normalize_part,
    prepare_for_provider,
    try_json_decode,
    validate_message,
)
from .types import (
    FilePart,
    FunctionCall,
    FunctionCallPart,
    FunctionResponse,
    FunctionResponsePart,
    InlineFile,
    Message,
    MessagePart,
    MessageRole,
    OpaquePart,
    PartChannel,
    RemoteFile,
    TextPart,
    part_from_dict,
)

__all__ = [
    # Model
    "Message",
    "MessageRole",
    "MessagePart",
    "PartChannel",
    "TextPart",
    "FilePart",
    "InlineFile",
    "RemoteFile",
    "FunctionCall",
    "FunctionCallPart",
    "FunctionResponse",
    "FunctionResponsePart",
    "OpaquePart",
    "part_from_dict",
    # Normalizer
    "normalize_for_storage",
    "normalize_part",
    "normalize_all",
    "validate_message",
    "prepare_for_provider",
    "coerce_empty_to_object",
    "try_json_decode",
]
