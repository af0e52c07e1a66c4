"""
Pytest configuration and fixtures for SitePilot tests.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Add the repository root to path for imports
# This allows `from sitepilot.agent import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from sitepilot.messages.types import (  # noqa: E402
    FunctionCall,
    FunctionCallPart,
    Message,
    MessageRole,
    TextPart,
)
from sitepilot.providers.llm.base import BaseGenerationProvider  # noqa: E402
from sitepilot.tools.base import Tool, ToolError, ToolResult  # noqa: E402


class RecordingTool(Tool):
    """Configurable tool that records the arguments it was executed with."""

    def __init__(
        self,
        name="sitepilot/get-post",
        *,
        payload=None,
        permission=True,
        error=None,
        raises=None,
        delay=0.0,
        schema=None,
    ):
        self._name = name
        self._payload = payload if payload is not None else {"ok": True}
        self._permission = permission
        self._error = error
        self._raises = raises
        self._delay = delay
        self._schema = schema if schema is not None else {
            "type": "object",
            "properties": {"post_id": {"type": "integer"}},
        }
        self.calls = []

    @property
    def name(self):
        return self._name

    @property
    def description(self):
        return f"Test tool {self._name}"

    @property
    def input_schema(self):
        return self._schema

    async def check_permission(self, arguments):
        return self._permission

    async def execute(self, arguments):
        self.calls.append(arguments)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._raises is not None:
            raise self._raises
        if self._error is not None:
            return ToolResult.failure(self._error)
        return ToolResult.success(self._payload)


class ScriptedProvider(BaseGenerationProvider):
    """Provider that replays queued responses and records every request."""

    DEFAULT_MODELS = ("test-model",)

    def __init__(self, responses=(), name="openai", models=None):
        super().__init__(models)
        self._name = name
        self._responses = list(responses)
        self.requests = []

    @property
    def name(self):
        return self._name

    def queue(self, *responses):
        self._responses.extend(responses)

    async def generate(
        self,
        messages,
        *,
        model,
        system_instruction=None,
        function_declarations=(),
        config=None,
    ):
        self.requests.append(
            {
                "messages": list(messages),
                "model": model,
                "system_instruction": system_instruction,
                "function_declarations": list(function_declarations),
            }
        )
        response = self._responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


def call_message(*names, text=None):
    """Model message calling the given functions (ids call-0, call-1, ...)."""
    parts = []
    if text:
        parts.append(TextPart(text=text))
    for index, name in enumerate(names):
        parts.append(
            FunctionCallPart(call=FunctionCall(name=name, args={"post_id": index}, id=f"call-{index}"))
        )
    return Message(role=MessageRole.MODEL, parts=tuple(parts))


@pytest.fixture
def recording_tool():
    """Factory for RecordingTool instances."""
    return RecordingTool


@pytest.fixture
def scripted_provider():
    """Factory for ScriptedProvider instances."""
    return ScriptedProvider


@pytest.fixture
def make_call_message():
    return call_message


@pytest.fixture
def denied_error():
    return ToolError(code="insufficient_capabilities", message="You may not edit posts.")


@pytest.fixture
def user_message():
    return Message.user_text("Summarize my latest post")
