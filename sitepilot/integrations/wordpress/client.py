"""
WordPress REST API Client.

Async access to a WordPress site's REST API (``/wp-json/wp/v2``) for the
post and settings operations the capabilities need. Authentication uses
an application password over HTTP Basic auth.

Usage:
    config = WordPressConfig(
        site_url="https://example.com",
        username="editor",
        application_password="abcd efgh ijkl mnop",
    )

    async with WordPressClient(config) as client:
        hits = await client.search_posts("launch")
        post = await client.get_post(hits[0].post_id)
        draft = await client.create_post(PostCreate(title="Hello", content="<p>Hi</p>"))
        await client.update_post_status(draft.id, PostStatus.PUBLISH)

API Reference:
    https://developer.wordpress.org/rest-api/reference/posts/
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass

import httpx

from sitepilot.integrations.base import IntegrationClient, IntegrationConfig

from .schemas import SEARCHABLE_STATUSES, Post, PostCreate, PostStatus, PostSummary

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20


@dataclass(frozen=True, slots=True)
class WordPressConfig(IntegrationConfig):
    """Configuration for the WordPress client."""

    site_url: str = ""
    username: str = ""
    application_password: str = ""

    def __post_init__(self):
        if not self.site_url:
            raise ValueError("WordPress site URL is required")

    @property
    def api_base(self) -> str:
        return f"{self.site_url.rstrip('/')}/wp-json/wp/v2"


class WordPressClient(IntegrationClient):
    """
    Async client for the WordPress REST API.

    Provides methods for:
    - Post search, retrieval, creation and status changes
    - Site settings (permalink structure)
    - Admin URL construction
    """

    def __init__(
        self,
        config: WordPressConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(config, transport=transport)
        self._config: WordPressConfig = config

    @property
    def name(self) -> str:
        return "wordpress"

    @property
    def site_url(self) -> str:
        return self._config.site_url.rstrip("/")

    def _base_url(self) -> str:
        return self._config.api_base

    def _get_auth_headers(self) -> dict[str, str]:
        if not self._config.username or not self._config.application_password:
            return {}
        token = base64.b64encode(
            f"{self._config.username}:{self._config.application_password}".encode()
        ).decode()
        return {"Authorization": f"Basic {token}"}

    def edit_url(self, post_id: int) -> str:
        """Admin URL for editing a post."""
        return f"{self.site_url}/wp-admin/post.php?post={post_id}&action=edit"

    # =========================================================================
    # Posts
    # =========================================================================

    async def search_posts(self, search: str, *, limit: int = SEARCH_LIMIT) -> list[PostSummary]:
        """
        Search posts (post type "post" only) by title and content.

        Returns:
            Up to ``limit`` hits with ID and title
        """
        response = await self._request(
            "GET",
            "/posts",
            params={
                "search": search,
                "per_page": limit,
                "status": ",".join(s.value for s in SEARCHABLE_STATUSES),
                "context": "edit",
            },
        )
        posts = [Post.model_validate(item) for item in response.json()]
        logger.info(f"[wordpress] Search '{search}' matched {len(posts)} posts")
        return [PostSummary(post_id=p.id, post_title=p.title) for p in posts]

    async def get_post(self, post_id: int) -> Post:
        """
        Get a single post.

        Raises:
            NotFoundError: If the post does not exist
        """
        response = await self._request("GET", f"/posts/{post_id}", params={"context": "edit"})
        return Post.model_validate(response.json())

    async def create_post(self, data: PostCreate) -> Post:
        """Create a post."""
        response = await self._request("POST", "/posts", json=data.to_api_dict())
        post = Post.model_validate(response.json())
        logger.info(f"[wordpress] Created post {post.id} ({post.status})")
        return post

    async def update_post_status(self, post_id: int, status: PostStatus) -> Post:
        """Change a post's status."""
        response = await self._request(
            "POST", f"/posts/{post_id}", json={"status": status.value}
        )
        post = Post.model_validate(response.json())
        logger.info(f"[wordpress] Post {post_id} is now {post.status}")
        return post

    # =========================================================================
    # Settings
    # =========================================================================

    async def update_permalink_structure(self, structure: str) -> None:
        """
        Set the permalink structure ("" disables pretty permalinks).

        The site must expose ``permalink_structure`` through ``/settings``.
        """
        await self._request("POST", "/settings", json={"permalink_structure": structure})
        logger.info(f"[wordpress] Permalink structure set to '{structure or 'plain'}'")
