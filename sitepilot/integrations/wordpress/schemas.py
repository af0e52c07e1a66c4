"""
Pydantic schemas for the WordPress REST API.

Only the fields the capabilities use are modelled; everything else in
the API response is ignored.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PostStatus(str, Enum):
    """Post statuses the capabilities deal with."""

    PUBLISH = "publish"
    DRAFT = "draft"
    PENDING = "pending"
    PRIVATE = "private"
    FUTURE = "future"


# Statuses included in searches.
SEARCHABLE_STATUSES = (
    PostStatus.PUBLISH,
    PostStatus.DRAFT,
    PostStatus.PENDING,
    PostStatus.PRIVATE,
)

# Permalink structures the site may be switched to.
ALLOWED_PERMALINK_STRUCTURES = (
    "disabled",
    "/%year%/%monthnum%/%day%/%postname%/",
    "/%year%/%monthnum%/%postname%/",
    "/%postname%/",
)


def _rendered(value: Any) -> Any:
    # With context=edit WordPress returns {"raw", "rendered"}; prefer raw.
    if isinstance(value, dict):
        return value.get("raw", value.get("rendered", ""))
    return value


class Post(BaseModel):
    """A WordPress post."""

    model_config = ConfigDict(extra="ignore")

    id: int
    title: str = ""
    content: str = ""
    status: str = PostStatus.DRAFT.value
    link: str = ""

    @field_validator("title", "content", mode="before")
    @classmethod
    def _unwrap_rendered(cls, value: Any) -> Any:
        return _rendered(value) or ""

    @property
    def is_published(self) -> bool:
        return self.status == PostStatus.PUBLISH.value


class PostCreate(BaseModel):
    """Payload for creating a post."""

    title: str = Field(..., min_length=1, description="Post title")
    content: str = Field("", description="Post content as HTML")
    status: PostStatus = PostStatus.DRAFT

    def to_api_dict(self) -> dict[str, Any]:
        return {"title": self.title, "content": self.content, "status": self.status.value}


class PostSummary(BaseModel):
    """Search hit: post ID and title."""

    post_id: int
    post_title: str
