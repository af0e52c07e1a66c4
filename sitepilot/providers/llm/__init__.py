"""
Generation Providers for SitePilot.

Backends that produce the next model message for the agent:
- OpenAIGenerationProvider: GPT-5 family via Chat Completions
- AnthropicGenerationProvider: Claude Sonnet/Opus via the Messages API
- GeminiGenerationProvider: Gemini 2.5 Flash/Pro
"""

from .base import (
    CHAT_MODEL_CAPABILITIES,
    NOT_EXECUTED,
    BaseGenerationProvider,
    GenerationConfig,
    GenerationError,
    GenerationProvider,
    ModelCapability,
    ModelHandle,
    ModelMetadata,
    ModelRequirements,
    answer_dangling_calls,
    assign_call_ids,
    chat_model,
)
from .gemini import GeminiGenerationProvider
from .openai import AnthropicGenerationProvider, OpenAIGenerationProvider

__all__ = [
    # Protocol and base
    "GenerationProvider",
    "BaseGenerationProvider",
    "GenerationConfig",
    "GenerationError",
    "answer_dangling_calls",
    "assign_call_ids",
    "NOT_EXECUTED",
    # Model metadata
    "ModelCapability",
    "ModelMetadata",
    "ModelRequirements",
    "ModelHandle",
    "CHAT_MODEL_CAPABILITIES",
    "chat_model",
    # Backends
    "OpenAIGenerationProvider",
    "AnthropicGenerationProvider",
    "GeminiGenerationProvider",
]
