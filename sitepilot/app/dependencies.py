"""
Dependency Injection for SitePilot.

Provides singleton instances of the settings, provider registry, trajectory
store, tool factory and chat service.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any

from sitepilot.agent.conversation import ChatService
from sitepilot.agent.memory import create_store
from sitepilot.agent.prompts import PromptManager, SiteInfo
from sitepilot.config.schemas import AppSettings
from sitepilot.integrations.wordpress import WordPressClient, WordPressConfig
from sitepilot.providers import ProviderRegistry
from sitepilot.providers.llm.gemini import GeminiGenerationProvider
from sitepilot.providers.llm.openai import AnthropicGenerationProvider, OpenAIGenerationProvider
from sitepilot.tools.factory import CompositeToolFactory, ToolFactory
from sitepilot.tools.wordpress import WordPressToolFactory

logger = logging.getLogger(__name__)


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get application settings from environment.

    Uses lru_cache for singleton pattern.
    """
    return AppSettings(
        # Service
        service_name=os.getenv("SITEPILOT_SERVICE_NAME", "sitepilot"),
        environment=os.getenv("SITEPILOT_ENVIRONMENT", "development"),
        debug=os.getenv("SITEPILOT_DEBUG", "false").lower() == "true",
        # Provider API keys
        openai_api_key=os.getenv("SITEPILOT_OPENAI_API_KEY"),
        anthropic_api_key=os.getenv("SITEPILOT_ANTHROPIC_API_KEY"),
        gemini_api_key=os.getenv("SITEPILOT_GEMINI_API_KEY"),
        # Provider selection
        current_provider=os.getenv("SITEPILOT_CURRENT_PROVIDER", ""),
        openai_model=os.getenv("SITEPILOT_OPENAI_MODEL", ""),
        anthropic_model=os.getenv("SITEPILOT_ANTHROPIC_MODEL", ""),
        google_model=os.getenv("SITEPILOT_GOOGLE_MODEL", ""),
        # Agent limits
        max_step_retries=int(os.getenv("SITEPILOT_MAX_STEP_RETRIES", "3")),
        max_steps=int(os.getenv("SITEPILOT_MAX_STEPS", "10")),
        timeout_seconds=float(os.getenv("SITEPILOT_TIMEOUT_SECONDS", "120")),
        # Storage
        storage_backend=os.getenv("SITEPILOT_STORAGE_BACKEND", "inmemory"),
        redis_url=os.getenv("SITEPILOT_REDIS_URL", "redis://localhost:6379"),
        redis_ttl_seconds=int(os.getenv("SITEPILOT_REDIS_TTL_SECONDS", "0")),
        # WordPress
        wordpress_site_url=os.getenv("SITEPILOT_WORDPRESS_SITE_URL", ""),
        wordpress_username=os.getenv("SITEPILOT_WORDPRESS_USERNAME", ""),
        wordpress_app_password=os.getenv("SITEPILOT_WORDPRESS_APP_PASSWORD", ""),
        site_name=os.getenv("SITEPILOT_SITE_NAME", ""),
        site_description=os.getenv("SITEPILOT_SITE_DESCRIPTION", ""),
        site_timezone=os.getenv("SITEPILOT_SITE_TIMEZONE", "UTC"),
        default_capabilities=os.getenv(
            "SITEPILOT_DEFAULT_CAPABILITIES", "read,edit_posts,publish_posts"
        ),
        # Prompts
        prompts_dir=os.getenv("SITEPILOT_PROMPTS_DIR", "prompts"),
    )


# Global instances (initialized on first access)
_providers: ProviderRegistry | None = None
_store: Any = None
_wordpress_client: WordPressClient | None = None
_chat_service: ChatService | None = None


def get_providers() -> ProviderRegistry:
    """
    Get the provider registry with configured providers.

    A provider is registered only when its API key is set.
    """
    global _providers
    if _providers is None:
        settings = get_settings()
        _providers = ProviderRegistry(preferred_models=settings.preferred_models())

        if settings.anthropic_api_key and settings.anthropic_api_key.get_secret_value():
            _providers.register(
                "anthropic",
                AnthropicGenerationProvider(api_key=settings.anthropic_api_key.get_secret_value()),
            )
        if settings.gemini_api_key and settings.gemini_api_key.get_secret_value():
            _providers.register(
                "google",
                GeminiGenerationProvider(api_key=settings.gemini_api_key.get_secret_value()),
            )
        if settings.openai_api_key and settings.openai_api_key.get_secret_value():
            _providers.register(
                "openai",
                OpenAIGenerationProvider(api_key=settings.openai_api_key.get_secret_value()),
            )

        if settings.current_provider in _providers:
            _providers.set_current(settings.current_provider)
        elif settings.current_provider:
            logger.warning(
                f"[dependencies] Current provider '{settings.current_provider}' has no API key"
            )

    return _providers


def get_store():
    """Get the trajectory store for the configured backend."""
    global _store
    if _store is None:
        settings = get_settings()
        if settings.storage_backend == "redis":
            _store = create_store(
                "redis",
                redis_url=settings.redis_url,
                ttl_seconds=settings.redis_ttl_seconds,
            )
        else:
            _store = create_store("inmemory")
        logger.info(f"[dependencies] Trajectory store: {settings.storage_backend}")
    return _store


def get_wordpress_client() -> WordPressClient | None:
    """Get the WordPress client, or None when no site is configured."""
    global _wordpress_client
    if _wordpress_client is None:
        settings = get_settings()
        if not settings.wordpress_configured:
            return None
        _wordpress_client = WordPressClient(
            WordPressConfig(
                site_url=settings.wordpress_site_url,
                username=settings.wordpress_username,
                application_password=settings.wordpress_app_password.get_secret_value(),
            )
        )
    return _wordpress_client


def get_tool_factory() -> ToolFactory:
    """Tool factory for the configured integrations (empty when none are)."""
    factory = CompositeToolFactory([])
    client = get_wordpress_client()
    if client is not None:
        factory.add_factory(WordPressToolFactory(client=client))
    else:
        logger.warning("[dependencies] No WordPress site configured; no tools offered")
    return factory


def get_chat_service() -> ChatService:
    """Get the chat service wired to the configured collaborators."""
    global _chat_service
    if _chat_service is None:
        settings = get_settings()
        _chat_service = ChatService(
            store=get_store(),
            registry=get_providers(),
            tool_factory=get_tool_factory(),
            prompts=PromptManager(
                settings.prompts_dir,
                site=SiteInfo(
                    name=settings.site_name,
                    url=settings.wordpress_site_url,
                    description=settings.site_description,
                    timezone=settings.site_timezone,
                ),
            ),
            default_capabilities=frozenset(settings.default_capabilities),
            max_step_retries=settings.max_step_retries,
            max_steps=settings.max_steps,
            timeout_seconds=settings.timeout_seconds,
        )
    return _chat_service


def set_chat_service(service: ChatService | None) -> None:
    """Replace the chat service (for testing)."""
    global _chat_service
    _chat_service = service


async def initialize_services() -> None:
    """
    Initialize all services on application startup.

    Called from FastAPI lifespan.
    """
    providers = get_providers()
    if not len(providers):
        logger.warning("[dependencies] No generation provider configured")
    get_chat_service()


async def shutdown_services() -> None:
    """
    Cleanup all services on application shutdown.

    Called from FastAPI lifespan.
    """
    global _wordpress_client, _store
    if _wordpress_client is not None:
        await _wordpress_client.close()
        _wordpress_client = None
    if _store is not None and hasattr(_store, "close"):
        await _store.close()
    _store = None
