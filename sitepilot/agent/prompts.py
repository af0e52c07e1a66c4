"""
System Prompt Templates.

Markdown prompt files with {{placeholder}} substitution.

Templates live in a prompts directory as ``<name>.md``. An optional YAML
front matter block (between ``---`` lines) carries metadata and is not
part of the rendered prompt.

Placeholders:
    {{site.name}} {{site.url}} {{site.description}} {{site.admin_url}} {{site.timezone}}
    {{user.display_name}} {{user.email}} {{user.role}} {{user.id}}
    {{date.today}} {{date.time}} {{date.datetime}} {{date.year}} {{date.month}} {{date.day}}
    {{custom.<key>}}

Unknown placeholders render as empty strings.

Usage:
    prompts = PromptManager("prompts", site=SiteInfo(name="My Blog", url="https://blog.example"))
    instruction = prompts.get_prompt(user=UserInfo(id="7", display_name="Ada"))
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_PROMPT_NAME = "chatbot-system-prompt"

PLACEHOLDER_PATTERN = re.compile(r"\{\{[^}]+\}\}")
FRONT_MATTER_PATTERN = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)", re.DOTALL)

DEFAULT_PROMPT = """You are a knowledgeable WordPress assistant designed to help users manage their WordPress sites.

Your primary role is to provide helpful, friendly, and expert assistance with WordPress tasks. You should:

1. Be conversational and approachable while maintaining professionalism.
2. Provide clear, concise explanations that are easy to understand.
3. Use the available tools/abilities to perform tasks when requested.
4. Ask clarifying questions when needed to better assist the user.
5. Explain what you're doing when using tools, so users understand the process.
6. Offer relevant suggestions and best practices when appropriate.

You have access to various WordPress-specific abilities that allow you to:
- Search for and retrieve posts
- Create and publish content
- Configure site settings

Always aim to be helpful and informative while respecting the user's time and needs."""


@dataclass(frozen=True, slots=True)
class SiteInfo:
    """Site values exposed to templates."""

    name: str = ""
    url: str = ""
    description: str = ""
    timezone: str = "UTC"

    @property
    def admin_url(self) -> str:
        return f"{self.url.rstrip('/')}/wp-admin/" if self.url else ""


@dataclass(frozen=True, slots=True)
class UserInfo:
    """The requesting user, as exposed to templates."""

    id: str = ""
    display_name: str = ""
    email: str = ""
    role: str = "None"


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """
    Separate YAML front matter from a template body.

    Returns:
        (metadata, body); metadata is empty when there is no front matter
    """
    match = FRONT_MATTER_PATTERN.match(text)
    if not match:
        return {}, text

    try:
        import yaml
    except ImportError:
        raise ImportError(
            "pyyaml is required for prompt front matter. Install with: pip install pyyaml"
        )

    metadata = yaml.safe_load(match.group(1)) or {}
    if not isinstance(metadata, dict):
        raise ValueError("Prompt front matter must be a mapping")
    return metadata, text[match.end():]


def replace_placeholders(content: str, values: dict[str, str]) -> str:
    """Substitute known placeholders, then drop any that remain."""
    for placeholder, value in values.items():
        content = content.replace(placeholder, value)
    return PLACEHOLDER_PATTERN.sub("", content)


class PromptManager:
    """
    Loads prompt templates and renders them with placeholder values.

    Loaded templates are cached per name; call clear_cache() after editing
    files on disk.
    """

    def __init__(
        self,
        prompts_dir: str | Path | None = None,
        *,
        site: SiteInfo | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._prompts_dir = Path(prompts_dir) if prompts_dir else None
        self._site = site or SiteInfo()
        self._clock = clock
        self._cache: dict[str, tuple[dict[str, Any], str]] = {}

    @property
    def site(self) -> SiteInfo:
        return self._site

    def get_prompt(
        self,
        name: str = DEFAULT_PROMPT_NAME,
        *,
        user: UserInfo | None = None,
        custom: dict[str, Any] | None = None,
    ) -> str:
        """
        Render a prompt template.

        Falls back to the built-in WordPress assistant prompt when the
        template is missing or empty.
        """
        _, body = self._load(name)
        if not body.strip():
            return DEFAULT_PROMPT
        return replace_placeholders(body, self.placeholder_values(user=user, custom=custom))

    def get_metadata(self, name: str = DEFAULT_PROMPT_NAME) -> dict[str, Any]:
        """Front matter of a template ({} when absent)."""
        metadata, _ = self._load(name)
        return dict(metadata)

    def placeholder_values(
        self,
        *,
        user: UserInfo | None = None,
        custom: dict[str, Any] | None = None,
    ) -> dict[str, str]:
        user = user or UserInfo()
        now = self._now()
        hour = now.hour % 12 or 12

        values = {
            # Site information
            "{{site.name}}": self._site.name,
            "{{site.url}}": self._site.url,
            "{{site.description}}": self._site.description,
            "{{site.admin_url}}": self._site.admin_url,
            "{{site.timezone}}": self._site.timezone,
            # User information
            "{{user.display_name}}": user.display_name,
            "{{user.email}}": user.email,
            "{{user.role}}": user.role,
            "{{user.id}}": user.id,
            # Date and time
            "{{date.today}}": f"{now:%A, %B} {now.day}, {now.year}",
            "{{date.time}}": f"{hour}:{now:%M %p}",
            "{{date.datetime}}": f"{now:%Y-%m-%d %H:%M:%S}",
            "{{date.year}}": str(now.year),
            "{{date.month}}": f"{now:%B}",
            "{{date.day}}": str(now.day),
        }
        for key, value in (custom or {}).items():
            values[f"{{{{custom.{key}}}}}"] = str(value)
        return values

    def clear_cache(self) -> None:
        self._cache.clear()

    def _now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        try:
            tz = ZoneInfo(self._site.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"[prompts] Unknown timezone '{self._site.timezone}', using UTC")
            tz = ZoneInfo("UTC")
        return datetime.now(tz)

    def _load(self, name: str) -> tuple[dict[str, Any], str]:
        if name in self._cache:
            return self._cache[name]

        if self._prompts_dir is None:
            return {}, ""

        path = self._prompts_dir / f"{name}.md"
        if not path.is_file():
            logger.debug(f"[prompts] No template at {path}, using default prompt")
            return {}, ""

        loaded = split_front_matter(path.read_text(encoding="utf-8"))
        self._cache[name] = loaded
        logger.debug(f"[prompts] Loaded template: {name}")
        return loaded
