"""
SitePilot Providers

Swappable generation backends and the registry that selects among them.

Provider Types:
- Generation: OpenAIGenerationProvider, AnthropicGenerationProvider, GeminiGenerationProvider

Features:
- ProviderRegistry for centralized management
- Current provider + per-provider preferred model
- Requirement-based model search with priority ordering
"""

from .llm import (
    AnthropicGenerationProvider,
    BaseGenerationProvider,
    GeminiGenerationProvider,
    GenerationConfig,
    GenerationError,
    GenerationProvider,
    ModelCapability,
    ModelHandle,
    ModelMetadata,
    ModelRequirements,
    OpenAIGenerationProvider,
    chat_model,
)
from .registry import (
    PREFERRED_MODELS,
    NoModelSatisfiesRequirementsError,
    ProviderConfig,
    ProviderError,
    ProviderRegistry,
)

__all__ = [
    # Registry
    "ProviderRegistry",
    "ProviderConfig",
    "ProviderError",
    "NoModelSatisfiesRequirementsError",
    "PREFERRED_MODELS",
    # Generation
    "GenerationProvider",
    "BaseGenerationProvider",
    "GenerationConfig",
    "GenerationError",
    "ModelCapability",
    "ModelMetadata",
    "ModelRequirements",
    "ModelHandle",
    "chat_model",
    "OpenAIGenerationProvider",
    "AnthropicGenerationProvider",
    "GeminiGenerationProvider",
]
