"""
SitePilot Integrations.

HTTP clients for the systems capabilities act on.
"""

from .base import (
    AuthenticationError,
    IntegrationClient,
    IntegrationConfig,
    IntegrationError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)

__all__ = [
    "IntegrationClient",
    "IntegrationConfig",
    "IntegrationError",
    "AuthenticationError",
    "RateLimitError",
    "NotFoundError",
    "ValidationError",
]
