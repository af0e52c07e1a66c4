"""
WordPress capabilities.

Post and settings tools backed by the WordPress REST client.
"""

from .factory import WordPressToolFactory
from .posts import CreatePostDraftTool, GetPostTool, PublishPostTool, SearchPostsTool
from .settings import SetPermalinkStructureTool

__all__ = [
    "WordPressToolFactory",
    "SearchPostsTool",
    "GetPostTool",
    "CreatePostDraftTool",
    "PublishPostTool",
    "SetPermalinkStructureTool",
]
