"""
WordPress Post Capabilities.

Search, read, draft and publish posts through the WordPress REST API.

Each tool checks the requesting user's capability grants before running:
    sitepilot/search-posts       read
    sitepilot/get-post           read
    sitepilot/create-post-draft  edit_posts
    sitepilot/publish-post       publish_posts

Usage:
    tool = GetPostTool(client=client, context=context)
    result = await tool.execute({"post_id": 42})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sitepilot.integrations.base import IntegrationError, NotFoundError
from sitepilot.integrations.wordpress.schemas import PostCreate, PostStatus
from sitepilot.tools.base import Tool, ToolError, ToolResult

if TYPE_CHECKING:
    from sitepilot.integrations.wordpress import WordPressClient
    from sitepilot.tools.factory import ToolContext

logger = logging.getLogger(__name__)

ALLOWED_POST_TAGS = (
    "a", "br", "code", "em", "h2", "h3", "h4", "h5", "h6",
    "li", "ol", "p", "strong", "ul",
)


def _post_id(arguments: dict[str, Any]) -> int | None:
    value = arguments.get("post_id")
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def _insufficient(message: str) -> ToolError:
    return ToolError(code="insufficient_capabilities", message=message)


def _not_found(post_id: int) -> ToolResult:
    return ToolResult.failure(f"Post with ID {post_id} not found.", code="post_not_found")


class WordPressTool(Tool):
    """Shared wiring for tools backed by the WordPress client."""

    def __init__(self, *, client: WordPressClient, context: ToolContext):
        self._client = client
        self._context = context

    def _remote_failure(self, error: IntegrationError) -> ToolResult:
        logger.warning(f"[{self.name}] WordPress request failed: {error}")
        return ToolResult.failure(str(error), code="remote_error")


# =============================================================================
# Search
# =============================================================================


class SearchPostsTool(WordPressTool):
    """Search posts by a free-text string."""

    @property
    def name(self) -> str:
        return "sitepilot/search-posts"

    @property
    def description(self) -> str:
        return (
            "Searches through the site's posts (only of the \"post\" post type) for a "
            "given search string and returns an array of up to 20 post IDs and titles."
        )

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "search_string": {
                    "type": "string",
                    "description": "The string to search for in post titles and content.",
                },
            },
            "required": ["search_string"],
        }

    @property
    def output_schema(self) -> dict[str, Any]:
        return {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "post_id": {"type": "integer", "description": "The ID of the post."},
                    "post_title": {"type": "string", "description": "The title of the post."},
                },
                "required": ["post_id", "post_title"],
            },
        }

    async def check_permission(self, arguments: dict[str, Any]) -> bool | ToolError:
        if not self._context.can("read"):
            return _insufficient("You do not have permission to read posts.")
        return True

    async def execute(self, arguments: dict[str, Any]) -> ToolResult:
        search = str(arguments.get("search_string", "")).strip()
        if not search:
            return ToolResult.failure("search_string is required", code="invalid_arguments")

        try:
            hits = await self._client.search_posts(search)
        except IntegrationError as e:
            return self._remote_failure(e)

        return ToolResult.success([hit.model_dump() for hit in hits])


# =============================================================================
# Read
# =============================================================================


class GetPostTool(WordPressTool):
    """Return a post's title, content, status and URLs."""

    @property
    def name(self) -> str:
        return "sitepilot/get-post"

    @property
    def description(self) -> str:
        return (
            "Returns the title, content, and more information of a WordPress post "
            "for a given post ID."
        )

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "post_id": {
                    "type": "integer",
                    "description": "The ID of the post to retrieve.",
                },
            },
            "required": ["post_id"],
        }

    @property
    def output_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "post_title": {"type": "string", "description": "The title of the post."},
                "post_content": {"type": "string", "description": "The content of the post."},
                "post_status": {"type": "string", "description": "The status of the post."},
                "post_edit_url": {
                    "type": "string",
                    "description": "The URL to edit the post in the WordPress admin.",
                },
                "post_url": {
                    "type": "string",
                    "description": "The public URL of the post, if published.",
                },
            },
            "required": ["post_title", "post_content", "post_status", "post_edit_url"],
        }

    async def check_permission(self, arguments: dict[str, Any]) -> bool | ToolError:
        if not self._context.can("read"):
            return _insufficient("You do not have permission to read this post.")
        return True

    async def execute(self, arguments: dict[str, Any]) -> ToolResult:
        post_id = _post_id(arguments)
        if post_id is None:
            return ToolResult.failure("post_id must be an integer", code="invalid_arguments")

        try:
            post = await self._client.get_post(post_id)
        except NotFoundError:
            return _not_found(post_id)
        except IntegrationError as e:
            return self._remote_failure(e)

        result: dict[str, Any] = {
            "post_title": post.title,
            "post_content": post.content,
            "post_status": post.status,
            "post_edit_url": self._client.edit_url(post.id),
        }
        if post.is_published:
            result["post_url"] = post.link
        return ToolResult.success(result)


# =============================================================================
# Write
# =============================================================================


class CreatePostDraftTool(WordPressTool):
    """Create a new post in draft status."""

    @property
    def name(self) -> str:
        return "sitepilot/create-post-draft"

    @property
    def description(self) -> str:
        return 'Creates a new WordPress post in "draft" status.'

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "post_title": {
                    "type": "string",
                    "description": "The title of the post.",
                },
                "post_content": {
                    "type": "string",
                    "description": (
                        "The content of the post, as HTML. Never include any class or "
                        "style attributes. Allowed HTML tags are: "
                        + ", ".join(ALLOWED_POST_TAGS)
                    ),
                },
            },
            "required": ["post_title", "post_content"],
        }

    @property
    def output_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "post_id": {"type": "integer", "description": "The ID of the newly created post."},
                "post_edit_url": {
                    "type": "string",
                    "description": "The URL to edit the post in the WordPress admin.",
                },
                "message": {"type": "string", "description": "A success message."},
            },
            "required": ["post_id", "post_edit_url", "message"],
        }

    async def check_permission(self, arguments: dict[str, Any]) -> bool | ToolError:
        if not self._context.can("edit_posts"):
            return _insufficient("You do not have permission to create posts.")
        return True

    async def execute(self, arguments: dict[str, Any]) -> ToolResult:
        title = str(arguments.get("post_title", "")).strip()
        if not title:
            return ToolResult.failure("post_title is required", code="invalid_arguments")

        try:
            post = await self._client.create_post(
                PostCreate(
                    title=title,
                    content=str(arguments.get("post_content", "")),
                    status=PostStatus.DRAFT,
                )
            )
        except IntegrationError as e:
            return self._remote_failure(e)

        return ToolResult.success(
            {
                "post_id": post.id,
                "post_edit_url": self._client.edit_url(post.id),
                "message": "Post draft created successfully.",
            }
        )


class PublishPostTool(WordPressTool):
    """Publish an existing post."""

    @property
    def name(self) -> str:
        return "sitepilot/publish-post"

    @property
    def description(self) -> str:
        return "Publishes an existing WordPress post."

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "post_id": {
                    "type": "integer",
                    "description": "The ID of the post to publish.",
                },
            },
            "required": ["post_id"],
        }

    @property
    def output_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "post_id": {"type": "integer", "description": "The ID of the published post."},
                "post_edit_url": {
                    "type": "string",
                    "description": "The URL to edit the post in the WordPress admin.",
                },
                "post_url": {"type": "string", "description": "The public URL of the post."},
                "message": {"type": "string", "description": "A success message."},
            },
            "required": ["post_id", "post_edit_url", "post_url", "message"],
        }

    async def check_permission(self, arguments: dict[str, Any]) -> bool | ToolError:
        if not self._context.can("publish_posts"):
            return _insufficient("You do not have permission to publish this post.")
        return True

    async def execute(self, arguments: dict[str, Any]) -> ToolResult:
        post_id = _post_id(arguments)
        if post_id is None:
            return ToolResult.failure("post_id must be an integer", code="invalid_arguments")

        try:
            post = await self._client.get_post(post_id)
            message = "Post is already published."
            if not post.is_published:
                post = await self._client.update_post_status(post_id, PostStatus.PUBLISH)
                message = "Post published successfully."
        except NotFoundError:
            return _not_found(post_id)
        except IntegrationError as e:
            return self._remote_failure(e)

        return ToolResult.success(
            {
                "post_id": post.id,
                "post_edit_url": self._client.edit_url(post.id),
                "post_url": post.link,
                "message": message,
            }
        )
