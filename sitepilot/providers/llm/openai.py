"""
OpenAI and Anthropic Generation Providers for SitePilot.

Both use function calling: declarations go out as tools, and returned
tool calls come back in the SDK's native shape, which the normalizer
folds into canonical function_call parts.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from sitepilot.messages.types import (
    FilePart,
    FunctionCallPart,
    FunctionResponsePart,
    InlineFile,
    Message,
    MessageRole,
    PartChannel,
    TextPart,
)

from .base import (
    BaseGenerationProvider,
    GenerationConfig,
    answer_dangling_calls,
    assign_call_ids,
)

if TYPE_CHECKING:
    from sitepilot.tools.base import FunctionDeclaration

logger = logging.getLogger(__name__)


def _dump(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    return json.dumps(payload)


class OpenAIGenerationProvider(BaseGenerationProvider):
    """
    OpenAI-based provider using the Chat Completions API.

    Requirements:
    - openai package
    - SITEPILOT_OPENAI_API_KEY environment variable
    """

    DEFAULT_MODELS = ("gpt-5-mini", "gpt-5", "gpt-4.1", "gpt-4o-mini")

    def __init__(
        self,
        api_key: str,
        organization: str | None = None,
        models=None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            organization: Optional OpenAI organization ID
            models: Override the offered models
        """
        super().__init__(models)
        self._api_key = api_key
        self._organization = organization
        self._client = None

    @property
    def name(self) -> str:
        return "openai"

    def _get_client(self):
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI

                self._client = AsyncOpenAI(
                    api_key=self._api_key,
                    organization=self._organization,
                )
            except ImportError:
                raise ImportError(
                    "openai package is required for OpenAI generation. "
                    "Install with: pip install openai"
                )
        return self._client

    def _convert_message(self, message: Message) -> list[dict[str, Any]]:
        """One canonical message may become several Chat Completions messages."""
        converted: list[dict[str, Any]] = []
        content: list[dict[str, Any]] = []
        tool_calls: list[dict[str, Any]] = []

        for part in message.parts:
            if isinstance(part, TextPart) and part.channel == PartChannel.CONTENT:
                content.append({"type": "text", "text": part.text})
            elif isinstance(part, FilePart):
                url = (
                    f"data:{part.file.mime_type};base64,{part.file.base64_data}"
                    if isinstance(part.file, InlineFile)
                    else part.file.url
                )
                content.append({"type": "image_url", "image_url": {"url": url}})
            elif isinstance(part, FunctionCallPart):
                tool_calls.append(
                    {
                        "id": part.call.id or part.call.name,
                        "type": "function",
                        "function": {
                            "name": part.call.name,
                            "arguments": _dump(part.call.args),
                        },
                    }
                )
            elif isinstance(part, FunctionResponsePart):
                converted.append(
                    {
                        "role": "tool",
                        "tool_call_id": part.response.id or part.response.name,
                        "content": _dump(part.response.response),
                    }
                )

        if message.role == MessageRole.MODEL:
            text = "".join(c["text"] for c in content if c["type"] == "text")
            assistant: dict[str, Any] = {"role": "assistant", "content": text}
            if tool_calls:
                assistant["content"] = text or None
                assistant["tool_calls"] = tool_calls
            converted.insert(0, assistant)
        elif content:
            role = "system" if message.role == MessageRole.SYSTEM else "user"
            converted.append({"role": role, "content": content})

        return converted

    def _convert_tools(self, declarations: Sequence[FunctionDeclaration]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": d.name,
                    "description": d.description,
                    "parameters": d.parameters,
                },
            }
            for d in declarations
        ]

    async def generate(
        self,
        messages: Sequence[Message],
        *,
        model: str,
        system_instruction: str | None = None,
        function_declarations: Sequence[FunctionDeclaration] = (),
        config: GenerationConfig | None = None,
    ) -> Message:
        """
        Generate the next model message using OpenAI.

        Raises:
            GenerationError: On any API failure
        """
        config = config or GenerationConfig()

        chat_messages: list[dict[str, Any]] = []
        if system_instruction:
            chat_messages.append({"role": "system", "content": system_instruction})
        for message in answer_dangling_calls(assign_call_ids(messages)):
            chat_messages.extend(self._convert_message(message))

        params: dict[str, Any] = {"model": model, "messages": chat_messages}
        if function_declarations:
            params["tools"] = self._convert_tools(function_declarations)
        if config.temperature is not None:
            params["temperature"] = config.temperature
        if config.max_tokens is not None:
            params["max_completion_tokens"] = config.max_tokens

        try:
            client = self._get_client()
            response = await client.chat.completions.create(**params)
        except Exception as e:
            logger.error(f"[openai] Completion error: {e}", exc_info=True)
            raise self._error(model, e) from e

        choice = response.choices[0].message
        parts: list[dict[str, Any]] = []
        if choice.content:
            parts.append({"type": "text", "text": choice.content})
        for tool_call in choice.tool_calls or []:
            parts.append(
                {
                    "id": tool_call.id,
                    "function": {
                        "name": tool_call.function.name,
                        "arguments": tool_call.function.arguments,
                    },
                }
            )

        logger.debug(f"[openai] {model} returned {len(parts)} parts")
        return Message.from_dict({"role": "model", "parts": parts})


class AnthropicGenerationProvider(BaseGenerationProvider):
    """
    Anthropic-based provider using the Messages API.

    Requirements:
    - anthropic package
    - SITEPILOT_ANTHROPIC_API_KEY environment variable
    """

    DEFAULT_MODELS = (
        "claude-sonnet-4-20250514",
        "claude-opus-4-20250514",
        "claude-3-5-haiku-latest",
    )
    DEFAULT_MAX_TOKENS = 4096

    def __init__(self, api_key: str, models=None):
        """
        Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key
            models: Override the offered models
        """
        super().__init__(models)
        self._api_key = api_key
        self._client = None

    @property
    def name(self) -> str:
        return "anthropic"

    def _get_client(self):
        """Lazy initialization of Anthropic client."""
        if self._client is None:
            try:
                from anthropic import AsyncAnthropic

                self._client = AsyncAnthropic(api_key=self._api_key)
            except ImportError:
                raise ImportError(
                    "anthropic package is required for Anthropic generation. "
                    "Install with: pip install anthropic"
                )
        return self._client

    def _convert_message(self, message: Message) -> dict[str, Any] | None:
        blocks: list[dict[str, Any]] = []
        for part in message.parts:
            if isinstance(part, TextPart) and part.channel == PartChannel.CONTENT:
                blocks.append({"type": "text", "text": part.text})
            elif isinstance(part, FilePart):
                source = (
                    {
                        "type": "base64",
                        "media_type": part.file.mime_type,
                        "data": part.file.base64_data,
                    }
                    if isinstance(part.file, InlineFile)
                    else {"type": "url", "url": part.file.url}
                )
                blocks.append({"type": "image", "source": source})
            elif isinstance(part, FunctionCallPart):
                blocks.append(
                    {
                        "type": "tool_use",
                        "id": part.call.id or part.call.name,
                        "name": part.call.name,
                        "input": part.call.args if isinstance(part.call.args, dict) else {},
                    }
                )
            elif isinstance(part, FunctionResponsePart):
                blocks.append(
                    {
                        "type": "tool_result",
                        "tool_use_id": part.response.id or part.response.name,
                        "content": _dump(part.response.response),
                    }
                )

        if not blocks:
            return None
        role = "assistant" if message.role == MessageRole.MODEL else "user"
        return {"role": role, "content": blocks}

    async def generate(
        self,
        messages: Sequence[Message],
        *,
        model: str,
        system_instruction: str | None = None,
        function_declarations: Sequence[FunctionDeclaration] = (),
        config: GenerationConfig | None = None,
    ) -> Message:
        """
        Generate the next model message using Anthropic.

        Raises:
            GenerationError: On any API failure
        """
        config = config or GenerationConfig()

        prepared = answer_dangling_calls(assign_call_ids(messages))
        converted = [self._convert_message(m) for m in prepared]
        params: dict[str, Any] = {
            "model": model,
            "messages": [m for m in converted if m is not None],
            "max_tokens": config.max_tokens or self.DEFAULT_MAX_TOKENS,
        }
        if system_instruction:
            params["system"] = system_instruction
        if function_declarations:
            params["tools"] = [
                {"name": d.name, "description": d.description, "input_schema": d.parameters}
                for d in function_declarations
            ]
        if config.temperature is not None:
            params["temperature"] = config.temperature

        try:
            client = self._get_client()
            response = await client.messages.create(**params)
        except Exception as e:
            logger.error(f"[anthropic] Completion error: {e}", exc_info=True)
            raise self._error(model, e) from e

        parts: list[dict[str, Any]] = []
        for block in response.content:
            if block.type == "text":
                parts.append({"type": "text", "text": block.text})
            elif block.type == "thinking":
                parts.append({"type": "text", "channel": "thought", "text": block.thinking})
            elif block.type == "tool_use":
                parts.append(
                    {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
                )

        logger.debug(f"[anthropic] {model} returned {len(parts)} parts")
        return Message.from_dict({"role": "model", "parts": parts})
