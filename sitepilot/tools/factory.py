"""
Per-request capability construction.

A chat request arrives with a user id; the user's WordPress grants decide
which capabilities are offered and which invocations are allowed. Tools
are therefore built for each request from a ToolContext, never shared
between users.

    POST /api/v1/messages (X-User-Id)
        -> ChatService.send_message
        -> ToolFactory.build_tools(context)
        -> ToolRegistry -> CapabilitySet
        -> ChatbotAgent.step()
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .base import Tool

logger = logging.getLogger(__name__)


# =============================================================================
# Tool Context
# =============================================================================


@dataclass(frozen=True)
class ToolContext:
    """
    Who the tools act for.

    Attributes:
        user_id: WordPress user id of the requester
        capabilities: WordPress grants ("read", "edit_posts", "publish_posts",
            "manage_options")
        metadata: Profile fields for the system prompt (display_name, email, role)
    """

    user_id: str
    capabilities: frozenset[str] = field(default_factory=frozenset)
    metadata: dict[str, Any] = field(default_factory=dict)

    def can(self, capability: str) -> bool:
        return capability in self.capabilities


# =============================================================================
# Factories
# =============================================================================


@runtime_checkable
class ToolFactory(Protocol):
    """Anything that can build the tools for a ToolContext."""

    def build_tools(self, context: ToolContext) -> Sequence[Tool]:
        ...


class StaticToolFactory:
    """The same tools for every user. Used in tests and single-site setups."""

    def __init__(self, tools: Sequence[Tool]) -> None:
        self._tools = tuple(tools)

    def build_tools(self, context: ToolContext) -> Sequence[Tool]:
        return self._tools


class CompositeToolFactory:
    """Concatenates the tools of several factories, in registration order."""

    def __init__(self, factories: Sequence[ToolFactory] = ()) -> None:
        self._factories = list(factories)

    def add_factory(self, factory: ToolFactory) -> CompositeToolFactory:
        self._factories.append(factory)
        return self

    def build_tools(self, context: ToolContext) -> Sequence[Tool]:
        tools = tuple(itertools.chain.from_iterable(f.build_tools(context) for f in self._factories))
        logger.debug(f"[tool_factory] user={context.user_id} offered {len(tools)} tools")
        return tools


class ConditionalToolFactory:
    """
    Offers the inner factory's tools only when ``condition(context)`` holds.

    Example:
        admin_tools = ConditionalToolFactory(
            SettingsToolFactory(client),
            lambda ctx: ctx.can("manage_options"),
        )
    """

    def __init__(self, inner: ToolFactory, condition: Callable[[ToolContext], bool]) -> None:
        self._inner = inner
        self._condition = condition

    def build_tools(self, context: ToolContext) -> Sequence[Tool]:
        return self._inner.build_tools(context) if self._condition(context) else ()
