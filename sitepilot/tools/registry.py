"""
Per-request catalog of capabilities.

A ChatService builds one registry per request from the ToolFactory's
output, then freezes it into a CapabilitySet that the agent keeps for
its lifetime:

    registry = ToolRegistry()
    registry.register_all(factory.build_tools(context))
    capabilities = registry.snapshot()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .adapter import CapabilitySet
    from .base import Tool

logger = logging.getLogger(__name__)


class ToolRegistryError(Exception):
    """A tool could not be registered or looked up."""


def _schema_problem(tool: Tool) -> str | None:
    if not isinstance(tool.name, str) or not tool.name:
        return f"Tool must have a valid name: {tool!r}"
    if not isinstance(tool.description, str) or not tool.description:
        return f"Tool '{tool.name}' must have a description"
    schema = tool.input_schema
    if not isinstance(schema, dict):
        return f"Tool '{tool.name}' input_schema must be a dict"
    # {} means "no parameters"
    if schema and schema.get("type") != "object":
        return f"Tool '{tool.name}' input_schema must have type: 'object'"
    return None


class ToolRegistry:
    """Tools keyed by their registered name, in registration order."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """
        Raises:
            ToolRegistryError: The tool is malformed or its name is taken
        """
        problem = _schema_problem(tool)
        if problem:
            raise ToolRegistryError(problem)
        if tool.name in self._tools:
            raise ToolRegistryError(f"Tool '{tool.name}' already registered")
        self._tools[tool.name] = tool
        logger.debug(f"[tool_registry] + {tool.name}")

    def register_all(self, tools: Iterable[Tool]) -> None:
        for tool in tools:
            self.register(tool)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list_names(self) -> list[str]:
        return list(self._tools)

    def snapshot(self) -> CapabilitySet:
        """A CapabilitySet of the current tools; later registrations do not affect it."""
        from .adapter import CapabilitySet

        return CapabilitySet(list(self._tools.values()))

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __repr__(self) -> str:
        return f"<ToolRegistry {self.list_names()}>"
