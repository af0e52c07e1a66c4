"""
Provider Registry for SitePilot.

Centralized registry for generation providers and model selection.

Selection order for a chat turn:
1. Provider: explicit id, else the configured current provider, else the
   first available provider (highest priority first).
2. Model: explicit id, else the provider's preferred model, else the first
   model satisfying the turn's requirements.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .llm.base import ModelHandle, ModelMetadata, ModelRequirements

if TYPE_CHECKING:
    from .llm.base import GenerationProvider

logger = logging.getLogger(__name__)


PREFERRED_MODELS: dict[str, str] = {
    "anthropic": "claude-sonnet-4-20250514",
    "google": "gemini-2.5-flash",
    "openai": "gpt-5-mini",
}


class ProviderError(Exception):
    """Base exception for provider lookup and selection failures."""


class NoModelSatisfiesRequirementsError(ProviderError):
    """No registered model meets a turn's capability/option requirements."""

    def __init__(self, message: str = "No provider model supports the necessary model requirements."):
        super().__init__(message)


@dataclass
class ProviderConfig:
    """Configuration for a provider."""

    name: str
    enabled: bool = True
    priority: int = 0  # Higher = preferred
    metadata: dict[str, Any] = field(default_factory=dict)


class ProviderRegistry:
    """
    Registry for managing generation providers.

    Usage:
        registry = ProviderRegistry()
        registry.register("openai", OpenAIGenerationProvider(api_key=...))
        registry.register("anthropic", AnthropicGenerationProvider(api_key=...), priority=10)
        registry.set_current("openai")

        handle = registry.resolve()                       # openai / gpt-5-mini
        handle = registry.resolve(provider_id="anthropic")
    """

    def __init__(self, preferred_models: dict[str, str] | None = None):
        """
        Initialize provider registry.

        Args:
            preferred_models: Per-provider preferred model overrides
        """
        self._providers: dict[str, GenerationProvider] = {}
        self._configs: dict[str, ProviderConfig] = {}
        self._current: str | None = None
        self._preferred = {**PREFERRED_MODELS, **(preferred_models or {})}

    # ==================== Validation ====================

    def _validate_provider(self, provider: GenerationProvider) -> None:
        """Validate provider has required interface."""
        if not hasattr(provider, "name"):
            raise ValueError("Generation provider must have 'name' property")
        if not hasattr(provider, "generate") or not callable(provider.generate):
            raise ValueError("Generation provider must have 'generate' method")
        if not hasattr(provider, "models") or not callable(provider.models):
            raise ValueError("Generation provider must have 'models' method")

    # ==================== Registration ====================

    def register(
        self,
        name: str,
        provider: GenerationProvider,
        enabled: bool = True,
        priority: int = 0,
    ) -> None:
        """
        Register a generation provider.

        Args:
            name: Provider id ("openai", "anthropic", "google", ...)
            provider: Provider instance
            enabled: Whether provider is enabled
            priority: Priority for fallback selection (higher = preferred)
        """
        self._validate_provider(provider)
        self._providers[name] = provider
        self._configs[name] = ProviderConfig(name=name, enabled=enabled, priority=priority)
        logger.debug(f"[providers] Registered provider: {name} (priority={priority})")

    def enable_provider(self, name: str) -> None:
        self._require_config(name).enabled = True
        logger.debug(f"[providers] Enabled provider: {name}")

    def disable_provider(self, name: str) -> None:
        self._require_config(name).enabled = False
        logger.debug(f"[providers] Disabled provider: {name}")

    def _require_config(self, name: str) -> ProviderConfig:
        if name not in self._configs:
            raise ProviderError(f"Provider '{name}' not registered")
        return self._configs[name]

    # ==================== Current Provider ====================

    def set_current(self, name: str | None) -> None:
        """Set the configured current provider (None clears it)."""
        if name is not None and name not in self._providers:
            raise ProviderError(f"Provider '{name}' not registered")
        self._current = name

    def available_providers(self) -> list[str]:
        """Enabled provider ids, highest priority first, registration order on ties."""
        enabled = [name for name, config in self._configs.items() if config.enabled]
        return sorted(enabled, key=lambda name: self._configs[name].priority, reverse=True)

    @property
    def current_provider_id(self) -> str | None:
        """The configured current provider, else the first available one."""
        if self._current is not None and self._configs[self._current].enabled:
            return self._current
        available = self.available_providers()
        return available[0] if available else None

    def get(self, name: str | None = None) -> GenerationProvider:
        """
        Get a provider by id or return the current one.

        Raises:
            ProviderError: If provider not found, disabled, or none available
        """
        provider_name = name or self.current_provider_id
        if provider_name is None:
            raise ProviderError("No generation provider available")
        config = self._require_config(provider_name)
        if not config.enabled:
            raise ProviderError(f"Provider '{provider_name}' is disabled")
        return self._providers[provider_name]

    # ==================== Model Selection ====================

    def preferred_model(self, provider_id: str) -> str:
        """Preferred model id for a provider, or "" if none is known."""
        return self._preferred.get(provider_id, "")

    def find_models(
        self,
        requirements: ModelRequirements,
        provider_id: str | None = None,
    ) -> list[tuple[str, ModelMetadata]]:
        """
        Find models meeting the requirements.

        Args:
            requirements: Capabilities and options a model must support
            provider_id: Restrict the search to one provider

        Returns:
            (provider_id, model) pairs in provider priority order

        Raises:
            NoModelSatisfiesRequirementsError: If nothing matches
        """
        names = [provider_id] if provider_id else self.available_providers()
        matches = [
            (name, model)
            for name in names
            for model in self._providers[name].models()
            if requirements.satisfied_by(model)
        ]
        if not matches:
            logger.warning(
                f"[providers] No model satisfies requirements: {requirements.describe()}"
            )
            raise NoModelSatisfiesRequirementsError()
        return matches

    def resolve(
        self,
        provider_id: str | None = None,
        model_id: str | None = None,
        requirements: ModelRequirements | None = None,
    ) -> ModelHandle:
        """
        Resolve the provider and model for a generation request.

        Raises:
            ProviderError: If an explicit provider is unknown or disabled
            NoModelSatisfiesRequirementsError: If no model can be selected
        """
        requirements = requirements or ModelRequirements()
        provider_name = provider_id or self.current_provider_id

        if provider_name is None:
            # Nothing configured: fall back to a registry-wide search.
            name, model = self.find_models(requirements)[0]
            return ModelHandle(provider_id=name, model_id=model.id, provider=self._providers[name])

        provider = self.get(provider_name)
        model_name = model_id or self.preferred_model(provider_name)
        if not model_name:
            _, model = self.find_models(requirements, provider_id=provider_name)[0]
            model_name = model.id

        logger.debug(f"[providers] Resolved {provider_name}/{model_name}")
        return ModelHandle(provider_id=provider_name, model_id=model_name, provider=provider)

    # ==================== Utility Methods ====================

    def list_providers(self) -> dict[str, Any]:
        """List registered providers, the current one, and their configs."""
        return {
            "registered": list(self._providers.keys()),
            "current": self.current_provider_id,
            "configs": {
                name: {"enabled": c.enabled, "priority": c.priority}
                for name, c in self._configs.items()
            },
        }

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, name: str) -> bool:
        return name in self._providers

    def __repr__(self) -> str:
        return f"ProviderRegistry(providers=[{', '.join(self._providers.keys())}], current={self._current})"

