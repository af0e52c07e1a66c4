"""
WordPress Tool Factory.

Builds the WordPress capabilities per request, bound to the requesting
user's ToolContext (capability grants) and a shared WordPressClient.

Usage:
    factory = WordPressToolFactory(client=client)

    context = ToolContext(user_id="7", capabilities=frozenset({"read"}))
    tools = factory.build_tools(context)
    # All five tools; the ones the user lacks grants for deny at call time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sitepilot.integrations.wordpress import WordPressClient
    from sitepilot.tools.base import Tool
    from sitepilot.tools.factory import ToolContext

logger = logging.getLogger(__name__)


@dataclass
class WordPressToolFactory:
    """
    Factory for the WordPress capabilities.

    Attributes:
        client: Shared WordPress REST client
        include_settings: Whether to offer site-settings tools
    """

    client: WordPressClient
    include_settings: bool = True

    def build_tools(self, context: ToolContext) -> Sequence[Tool]:
        from sitepilot.tools.wordpress.posts import (
            CreatePostDraftTool,
            GetPostTool,
            PublishPostTool,
            SearchPostsTool,
        )
        from sitepilot.tools.wordpress.settings import SetPermalinkStructureTool

        tools: list[Tool] = [
            GetPostTool(client=self.client, context=context),
            CreatePostDraftTool(client=self.client, context=context),
            PublishPostTool(client=self.client, context=context),
            SearchPostsTool(client=self.client, context=context),
        ]

        if self.include_settings:
            tools.append(SetPermalinkStructureTool(client=self.client, context=context))

        logger.debug(
            f"[wordpress_factory] Built {len(tools)} tools for user {context.user_id}"
        )
        return tuple(tools)
