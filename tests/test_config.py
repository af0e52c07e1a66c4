"""
Tests for application settings and dependency wiring.
"""

import pytest
from pydantic import ValidationError

from sitepilot.app import dependencies
from sitepilot.config import AppSettings
from sitepilot.tools import ToolContext


class TestAppSettings:
    """Tests for AppSettings."""

    def test_defaults(self):
        settings = AppSettings()

        assert settings.storage_backend == "inmemory"
        assert settings.max_step_retries == 3
        assert settings.default_capabilities == ["read", "edit_posts", "publish_posts"]
        assert not settings.wordpress_configured

    def test_capabilities_from_comma_string(self):
        settings = AppSettings(default_capabilities="read, manage_options,,")
        assert settings.default_capabilities == ["read", "manage_options"]

    def test_secrets_hidden(self):
        settings = AppSettings(openai_api_key="sk-secret")

        assert "sk-secret" not in repr(settings)
        assert settings.openai_api_key.get_secret_value() == "sk-secret"

    def test_preferred_model_overrides(self):
        settings = AppSettings(anthropic_model="claude-opus-4-20250514")
        assert settings.preferred_models() == {"anthropic": "claude-opus-4-20250514"}

    def test_invalid_retries(self):
        with pytest.raises(ValidationError):
            AppSettings(max_step_retries=0)

    def test_unknown_backend(self):
        with pytest.raises(ValidationError):
            AppSettings(storage_backend="sqlite")


class TestDependencies:
    """Tests for environment-driven wiring."""

    @pytest.fixture(autouse=True)
    def fresh(self, monkeypatch):
        for name in ("OPENAI", "ANTHROPIC", "GEMINI"):
            monkeypatch.delenv(f"SITEPILOT_{name}_API_KEY", raising=False)
        monkeypatch.delenv("SITEPILOT_CURRENT_PROVIDER", raising=False)
        monkeypatch.delenv("SITEPILOT_WORDPRESS_SITE_URL", raising=False)
        monkeypatch.setattr(dependencies, "_providers", None)
        monkeypatch.setattr(dependencies, "_wordpress_client", None)
        dependencies.get_settings.cache_clear()
        yield
        dependencies.get_settings.cache_clear()

    def test_settings_from_env(self, monkeypatch):
        monkeypatch.setenv("SITEPILOT_MAX_STEPS", "4")
        monkeypatch.setenv("SITEPILOT_STORAGE_BACKEND", "redis")

        settings = dependencies.get_settings()

        assert settings.max_steps == 4
        assert settings.storage_backend == "redis"

    def test_providers_registered_only_with_keys(self, monkeypatch):
        monkeypatch.setenv("SITEPILOT_ANTHROPIC_API_KEY", "sk-ant")
        monkeypatch.setenv("SITEPILOT_OPENAI_API_KEY", "sk-openai")
        monkeypatch.setenv("SITEPILOT_CURRENT_PROVIDER", "openai")

        providers = dependencies.get_providers()

        assert sorted(providers.list_providers()["registered"]) == ["anthropic", "openai"]
        assert providers.current_provider_id == "openai"

    def test_no_wordpress_means_no_tools(self):
        assert dependencies.get_wordpress_client() is None
        assert list(dependencies.get_tool_factory().build_tools(ToolContext(user_id="7"))) == []

    def test_wordpress_tools_when_configured(self, monkeypatch):
        monkeypatch.setenv("SITEPILOT_WORDPRESS_SITE_URL", "https://blog.example")

        tools = dependencies.get_tool_factory().build_tools(ToolContext(user_id="7"))

        assert "sitepilot/get-post" in [t.name for t in tools]
