"""
SitePilot Tools.

Tools are the "hands" of the agent: capabilities the model may call
through function calling.

Design Principle:
    - Tools are independent, testable units
    - Tools do NOT know they are called by an agent
    - Failures come back as values (ToolResult / ToolError)

Usage:
    registry = ToolRegistry()
    registry.register_all(factory.build_tools(context))

    capabilities = registry.snapshot()
    tool = capabilities.find("sitepilot_get_post")
    response = await capabilities.invoke(tool, call)
"""

from .adapter import (
    EMPTY_PARAMETERS,
    CapabilitySet,
    coerce_arguments,
    format_failure,
    sanitize_function_name,
)
from .base import FunctionDeclaration, Tool, ToolError, ToolResult
from .factory import (
    CompositeToolFactory,
    ConditionalToolFactory,
    StaticToolFactory,
    ToolContext,
    ToolFactory,
)
from .registry import ToolRegistry, ToolRegistryError

__all__ = [
    # Core Tool Protocol
    "Tool",
    "ToolResult",
    "ToolError",
    "FunctionDeclaration",
    # Registry + adapter
    "ToolRegistry",
    "ToolRegistryError",
    "CapabilitySet",
    "sanitize_function_name",
    "coerce_arguments",
    "format_failure",
    "EMPTY_PARAMETERS",
    # Tool Factory
    "ToolContext",
    "ToolFactory",
    "StaticToolFactory",
    "CompositeToolFactory",
    "ConditionalToolFactory",
]
