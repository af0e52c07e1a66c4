"""
Capability Adapter.

Bridges registered tools and model function calling:
- Tool names are sanitized into function identifiers ("/" and "-" become "_")
- Declarations are produced for the model, in registration order
- Calls are resolved back to tools and invoked with a permission check

The id <-> tool mapping is derived once, from one pure function, when the
set is built. Two tools that sanitize to the same identifier are rejected
at construction time.

invoke() never raises for tool-level problems: permission denial, error
results and unexpected exceptions all come back as a FunctionResponse
carrying a readable error string the model can reason about.

Usage:
    capabilities = CapabilitySet([GetPostTool(...), SearchPostsTool(...)])

    declarations = capabilities.declarations()
    tool = capabilities.find("sitepilot_get_post")
    response = await capabilities.invoke(tool, call)
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from sitepilot.messages.types import FunctionCall, FunctionResponse

from .base import FunctionDeclaration, ToolError, ToolResult
from .registry import ToolRegistryError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .base import Tool

logger = logging.getLogger(__name__)

EMPTY_PARAMETERS: dict[str, Any] = {
    "type": "object",
    "properties": {},
    "additionalProperties": False,
}

FAILURE_PREFIX = "The function call failed with an error: "


def sanitize_function_name(name: str) -> str:
    """Map a tool name to a function identifier the providers accept."""
    return name.replace("/", "_").replace("-", "_")


def format_failure(message: str) -> str:
    """Error payload text for a failed function call."""
    return f"{FAILURE_PREFIX}{message}"


def coerce_arguments(args: Any) -> dict[str, Any]:
    """Arguments handed to a tool are always a dict."""
    if isinstance(args, dict):
        return args
    return {}


class CapabilitySet:
    """
    Immutable snapshot of the tools an agent may call.

    Example:
        capabilities = CapabilitySet(tools)

        for declaration in capabilities.declarations():
            print(declaration.name)

        tool = capabilities.find(call.name)
        if tool is not None:
            response = await capabilities.invoke(tool, call)
    """

    def __init__(self, tools: Iterable[Tool]) -> None:
        """
        Build the bi-directional mapping.

        Raises:
            ToolRegistryError: If two tools sanitize to the same identifier
        """
        self._tools_by_id: dict[str, Tool] = {}
        self._ids_by_tool: dict[Tool, str] = {}

        for tool in tools:
            function_id = sanitize_function_name(tool.name)
            existing = self._tools_by_id.get(function_id)
            if existing is not None:
                raise ToolRegistryError(
                    f"Tools '{existing.name}' and '{tool.name}' both map to "
                    f"function name '{function_id}'"
                )
            self._tools_by_id[function_id] = tool
            self._ids_by_tool[tool] = function_id

        self._declarations = tuple(
            FunctionDeclaration(
                name=function_id,
                description=tool.description,
                parameters=tool.input_schema or dict(EMPTY_PARAMETERS),
            )
            for function_id, tool in self._tools_by_id.items()
        )

    def declarations(self) -> tuple[FunctionDeclaration, ...]:
        """Function declarations for the model, in registration order."""
        return self._declarations

    def find(self, function_id: str) -> Tool | None:
        """Resolve a function identifier. A miss is not an error here."""
        return self._tools_by_id.get(function_id)

    def function_id(self, tool: Tool) -> str:
        """
        The identifier a tool is declared under.

        Raises:
            KeyError: If the tool is not part of this set
        """
        return self._ids_by_tool[tool]

    def function_ids(self) -> list[str]:
        return list(self._tools_by_id.keys())

    async def invoke(self, tool: Tool, call: FunctionCall) -> FunctionResponse:
        """
        Run a call: permission check first, then execute.

        Args:
            tool: Tool resolved via find()
            call: The model's function call

        Returns:
            FunctionResponse with the success payload or an error string
        """
        arguments = coerce_arguments(call.args)
        start = time.time()

        try:
            permission = await tool.check_permission(arguments)
            if permission is not True:
                error = (
                    permission
                    if isinstance(permission, ToolError)
                    else ToolError(
                        code="insufficient_capabilities",
                        message=f"You do not have permission to call {call.name}.",
                    )
                )
                logger.info(f"[capabilities] Permission denied for {tool.name}: {error.message}")
                return self._response(call, format_failure(error.message))

            result = await tool.execute(arguments)

        except Exception as e:
            logger.error(f"[capabilities] Tool {tool.name} raised: {e}", exc_info=True)
            return self._response(call, format_failure(str(e) or type(e).__name__))

        duration = (time.time() - start) * 1000

        if not isinstance(result, ToolResult):
            result = ToolResult.success(result)

        if result.error is not None:
            logger.warning(
                f"[capabilities] Tool {tool.name} failed ({result.error.code}): "
                f"{result.error.message}"
            )
            return self._response(call, format_failure(result.error.message))

        logger.info(f"[capabilities] Tool {tool.name} succeeded in {duration:.0f}ms")
        payload = result.payload if result.payload is not None else {}
        return self._response(call, payload)

    @staticmethod
    def _response(call: FunctionCall, payload: Any) -> FunctionResponse:
        return FunctionResponse(name=call.name, response=payload, id=call.id)

    def __len__(self) -> int:
        return len(self._tools_by_id)

    def __contains__(self, function_id: str) -> bool:
        return function_id in self._tools_by_id

    def __repr__(self) -> str:
        return f"<CapabilitySet functions={list(self._tools_by_id.keys())}>"
