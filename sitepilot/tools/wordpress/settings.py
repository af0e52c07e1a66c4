"""
WordPress Settings Capabilities.
"""

from __future__ import annotations

import logging
from typing import Any

from sitepilot.integrations.base import IntegrationError
from sitepilot.integrations.wordpress.schemas import ALLOWED_PERMALINK_STRUCTURES
from sitepilot.tools.base import ToolError, ToolResult

from .posts import WordPressTool

logger = logging.getLogger(__name__)


class SetPermalinkStructureTool(WordPressTool):
    """Switch pretty permalinks on or off. Requires manage_options."""

    @property
    def name(self) -> str:
        return "sitepilot/set-permalink-structure"

    @property
    def description(self) -> str:
        return (
            "Sets the permalink structure for the WordPress site "
            "(enables/disables pretty permalinks)."
        )

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "permalink_structure": {
                    "type": "string",
                    "description": (
                        "The permalink structure to use. All URL paths must end with a "
                        'trailing slash. Use "disabled" to turn off pretty permalinks.'
                    ),
                    "enum": list(ALLOWED_PERMALINK_STRUCTURES),
                },
            },
            "required": ["permalink_structure"],
        }

    @property
    def output_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "A success message."},
            },
            "required": ["message"],
        }

    async def check_permission(self, arguments: dict[str, Any]) -> bool | ToolError:
        if not self._context.can("manage_options"):
            return ToolError(
                code="insufficient_capabilities",
                message="You do not have permission to set the permalink structure.",
            )
        return True

    async def execute(self, arguments: dict[str, Any]) -> ToolResult:
        structure = arguments.get("permalink_structure")
        if structure not in ALLOWED_PERMALINK_STRUCTURES:
            return ToolResult.failure(
                "Only the following values are allowed: "
                + ", ".join(ALLOWED_PERMALINK_STRUCTURES),
                code="invalid_permalink_structure",
            )

        try:
            await self._client.update_permalink_structure(
                "" if structure == "disabled" else structure
            )
        except IntegrationError as e:
            return self._remote_failure(e)

        return ToolResult.success({"message": "Permalink structure successfully updated."})
