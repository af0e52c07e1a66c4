"""
Gemini Generation Provider for SitePilot.

Uses Google's Gemini models through google-generativeai, with function
declarations passed as a tool.
"""

from __future__ import annotations

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

from .base import BaseGenerationProvider, GenerationConfig, answer_dangling_calls

if TYPE_CHECKING:
    from sitepilot.tools.base import FunctionDeclaration

logger = logging.getLogger(__name__)

# JSON Schema keywords Gemini's OpenAPI subset rejects.
UNSUPPORTED_SCHEMA_KEYS = frozenset({"additionalProperties", "$schema", "default"})


def gemini_schema(schema: Any) -> Any:
    """Strip schema keywords Gemini does not accept, recursively."""
    if isinstance(schema, dict):
        return {
            key: gemini_schema(value)
            for key, value in schema.items()
            if key not in UNSUPPORTED_SCHEMA_KEYS
        }
    if isinstance(schema, list):
        return [gemini_schema(item) for item in schema]
    return schema


class GeminiGenerationProvider(BaseGenerationProvider):
    """
    Google Gemini provider.

    Requirements:
    - google-generativeai package
    - SITEPILOT_GEMINI_API_KEY environment variable
    """

    DEFAULT_MODELS = ("gemini-2.5-flash", "gemini-2.5-pro", "gemini-2.0-flash")

    # Relaxed defaults; content moderation is the site's concern.
    DEFAULT_SAFETY_SETTINGS = [
        {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
        {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
        {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
        {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
    ]

    def __init__(
        self,
        api_key: str,
        safety_settings: list[dict[str, str]] | None = None,
        models=None,
    ):
        """
        Initialize Gemini provider.

        Args:
            api_key: Google AI API key
            safety_settings: Custom safety settings (relaxed defaults if None)
            models: Override the offered models
        """
        super().__init__(models)
        self._api_key = api_key
        self._safety_settings = safety_settings or self.DEFAULT_SAFETY_SETTINGS
        self._genai = None

    @property
    def name(self) -> str:
        return "google"

    def _configure_genai(self):
        """Configure the generativeai module."""
        if self._genai is None:
            try:
                import google.generativeai as genai

                genai.configure(api_key=self._api_key)
                self._genai = genai
            except ImportError:
                raise ImportError(
                    "google-generativeai package is required for Gemini generation. "
                    "Install with: pip install google-generativeai"
                )
        return self._genai

    def _convert_message(self, message: Message) -> dict[str, Any] | None:
        parts: list[dict[str, Any]] = []
        for part in message.parts:
            if isinstance(part, TextPart) and part.channel == PartChannel.CONTENT:
                parts.append({"text": part.text})
            elif isinstance(part, FilePart):
                if isinstance(part.file, InlineFile):
                    parts.append(
                        {
                            "inline_data": {
                                "mime_type": part.file.mime_type,
                                "data": part.file.base64_data,
                            }
                        }
                    )
                else:
                    parts.append(
                        {"file_data": {"mime_type": part.file.mime_type, "file_uri": part.file.url}}
                    )
            elif isinstance(part, FunctionCallPart):
                args = part.call.args if isinstance(part.call.args, dict) else {}
                parts.append({"function_call": {"name": part.call.name, "args": args}})
            elif isinstance(part, FunctionResponsePart):
                payload = part.response.response
                if not isinstance(payload, dict):
                    payload = {"result": payload}
                parts.append(
                    {"function_response": {"name": part.response.name, "response": payload}}
                )

        if not parts:
            return None
        role = "model" if message.role == MessageRole.MODEL else "user"
        return {"role": role, "parts": parts}

    def _build_model(
        self,
        model: str,
        system_instruction: str | None,
        function_declarations: Sequence[FunctionDeclaration],
    ):
        genai = self._configure_genai()

        model_config: dict[str, Any] = {"safety_settings": self._safety_settings}
        if system_instruction:
            model_config["system_instruction"] = system_instruction
        if function_declarations:
            declarations = []
            for d in function_declarations:
                declaration: dict[str, Any] = {"name": d.name, "description": d.description}
                # Gemini rejects object schemas without properties.
                if d.parameters.get("properties"):
                    declaration["parameters"] = gemini_schema(d.parameters)
                declarations.append(declaration)
            model_config["tools"] = [{"function_declarations": declarations}]

        return genai.GenerativeModel(model, **model_config)

    @staticmethod
    def _function_call_dict(function_call: Any) -> dict[str, Any]:
        to_dict = getattr(type(function_call), "to_dict", None)
        if to_dict is not None:
            return to_dict(function_call)
        return {"name": function_call.name, "args": dict(function_call.args)}

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
        Generate the next model message using Gemini.

        Raises:
            GenerationError: On any API failure
        """
        config = config or GenerationConfig()

        contents = [
            converted
            for converted in (self._convert_message(m) for m in answer_dangling_calls(messages))
            if converted is not None
        ]

        generation_config: dict[str, Any] = {}
        if config.temperature is not None:
            generation_config["temperature"] = config.temperature
        if config.max_tokens is not None:
            generation_config["max_output_tokens"] = config.max_tokens

        logger.debug(
            f"[gemini] Generating: model={model}, contents={len(contents)}, "
            f"functions={len(function_declarations)}"
        )

        try:
            generative_model = self._build_model(model, system_instruction, function_declarations)
            response = await generative_model.generate_content_async(
                contents,
                generation_config=generation_config or None,
            )
        except Exception as e:
            logger.error(f"[gemini] Completion error: {e}", exc_info=True)
            raise self._error(model, e) from e

        parts: list[dict[str, Any]] = []
        candidates = response.candidates or []
        if not candidates:
            logger.warning("[gemini] Response had no candidates (blocked or empty)")
        else:
            for part in candidates[0].content.parts:
                if getattr(part, "function_call", None) and part.function_call.name:
                    parts.append({"function_call": self._function_call_dict(part.function_call)})
                elif getattr(part, "text", None):
                    channel = "thought" if getattr(part, "thought", False) else "content"
                    parts.append({"type": "text", "channel": channel, "text": part.text})

        return Message.from_dict({"role": "model", "parts": parts})
