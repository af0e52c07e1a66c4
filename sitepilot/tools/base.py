"""
Capability abstractions.

- Tool: something the agent can invoke on the site
- ToolResult: payload on success, ToolError on failure
- ToolError: code + message, shown to the model
- FunctionDeclaration: a tool as offered to a provider (sanitized name)

A tool has no notion of the agent calling it; the CapabilitySet in
adapter.py turns denials and unexpected exceptions into
the error payloads the model sees.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class ToolError:
    """
    Typed error returned by a tool.

    Attributes:
        code: Machine-readable code (e.g. "post_not_found")
        message: Human-readable description, shown to the model
    """

    code: str
    message: str


@dataclass(frozen=True, slots=True)
class ToolResult:
    """
    Result from tool execution.

    Exactly one of ``payload`` (success) or ``error`` (failure) is meaningful.

    Example:
        ToolResult.success({"post_id": 12, "message": "Post published."})
        ToolResult.failure("Post with ID 9 not found.", code="post_not_found")
    """

    payload: Any = None
    error: ToolError | None = None

    @classmethod
    def success(cls, payload: Any = None) -> ToolResult:
        """Create a successful result carrying a JSON-serializable payload."""
        return cls(payload=payload)

    @classmethod
    def failure(cls, message: str, *, code: str = "execution_failed") -> ToolResult:
        """Create a failed result."""
        return cls(error=ToolError(code=code, message=message))

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass(frozen=True, slots=True)
class FunctionDeclaration:
    """
    A function offered to the model.

    ``name`` is the sanitized function identifier, not the tool's own name.
    """

    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)


class Tool(ABC):
    """
    A capability the agent can invoke.

    ``name`` may contain "/" and "-" (e.g. "sitepilot/get-post"); the
    CapabilitySet sanitizes it into a function identifier for providers.
    ``input_schema`` is either {} or a JSON Schema object.

    Report expected failures as values: a ToolError (or False) from
    check_permission, ToolResult.failure() from execute.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Shown to the model; it decides when to call the tool from this."""
        ...

    @property
    @abstractmethod
    def input_schema(self) -> dict[str, Any]:
        ...

    @property
    def output_schema(self) -> dict[str, Any] | None:
        """JSON Schema of the success payload, when the tool declares one."""
        return None

    async def check_permission(self, arguments: dict[str, Any]) -> bool | ToolError:
        """Runs before execute() with the same arguments. Allows by default."""
        return True

    @abstractmethod
    async def execute(self, arguments: dict[str, Any]) -> ToolResult:
        ...

    def __repr__(self) -> str:
        return f"<Tool {self.name}>"
