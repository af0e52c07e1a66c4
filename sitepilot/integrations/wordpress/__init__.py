"""
WordPress integration.

Async REST client and schemas used by the content-management capabilities.
"""

from .client import WordPressClient, WordPressConfig
from .schemas import (
    ALLOWED_PERMALINK_STRUCTURES,
    Post,
    PostCreate,
    PostStatus,
    PostSummary,
)

__all__ = [
    "WordPressClient",
    "WordPressConfig",
    "Post",
    "PostCreate",
    "PostStatus",
    "PostSummary",
    "ALLOWED_PERMALINK_STRUCTURES",
]
