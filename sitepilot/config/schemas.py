"""
Configuration Schemas for SitePilot.

Security:
    Sensitive fields use SecretStr to prevent accidental logging
    of credentials. Access the value with `.get_secret_value()`.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class AppSettings(BaseModel):
    """
    Application settings model.

    Built from SITEPILOT_* environment variables by
    sitepilot.app.dependencies.get_settings().

    Security:
        API keys and passwords use SecretStr to prevent accidental logging.
        Access secret values with: settings.openai_api_key.get_secret_value()
    """

    model_config = ConfigDict(extra="ignore")

    # Service identity
    service_name: str = "sitepilot"
    environment: str = "development"
    debug: bool = False

    # Provider API keys (SecretStr prevents accidental logging)
    openai_api_key: SecretStr | None = None
    anthropic_api_key: SecretStr | None = None
    gemini_api_key: SecretStr | None = None

    # Provider selection
    current_provider: str = Field(default="", description="Provider id to use; empty = first available")
    openai_model: str = Field(default="", description="Override the preferred OpenAI model")
    anthropic_model: str = Field(default="", description="Override the preferred Anthropic model")
    google_model: str = Field(default="", description="Override the preferred Gemini model")

    # Agent limits
    max_step_retries: int = Field(default=3, ge=1)
    max_steps: int = Field(default=10, ge=1)
    timeout_seconds: float = Field(default=120.0, gt=0)

    # Trajectory storage
    storage_backend: Literal["inmemory", "redis"] = "inmemory"
    redis_url: str = "redis://localhost:6379"
    redis_ttl_seconds: int = Field(default=0, ge=0, description="0 = no expiry")

    # WordPress
    wordpress_site_url: str = Field(default="", description="Site root URL")
    wordpress_username: str = Field(default="", description="Application password user")
    wordpress_app_password: SecretStr = Field(default=SecretStr(""), description="Application password")
    site_name: str = ""
    site_description: str = ""
    site_timezone: str = "UTC"

    # Capability grants for users without an explicit ToolContext
    default_capabilities: list[str] = Field(
        default_factory=lambda: ["read", "edit_posts", "publish_posts"]
    )

    # Prompts
    prompts_dir: str = "prompts"

    @field_validator("default_capabilities", mode="before")
    @classmethod
    def split_capabilities(cls, value):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    def preferred_models(self) -> dict[str, str]:
        """Per-provider preferred model overrides that are set."""
        overrides = {
            "openai": self.openai_model,
            "anthropic": self.anthropic_model,
            "google": self.google_model,
        }
        return {provider: model for provider, model in overrides.items() if model}

    @property
    def wordpress_configured(self) -> bool:
        return bool(self.wordpress_site_url)
