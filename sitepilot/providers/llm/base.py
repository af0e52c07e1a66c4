"""
Generation Provider Protocol for SitePilot.

Defines the interface for LLM backends that generate the next model
message from a conversation plus a set of callable function declarations.

Providers take and return canonical Messages; all SDK-specific shaping
happens inside the provider, and the raw SDK output is folded back
through the message normalizer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sitepilot.messages.types import (
    FunctionCallPart,
    FunctionResponse,
    FunctionResponsePart,
    Message,
    MessageRole,
)

if TYPE_CHECKING:
    from sitepilot.tools.base import FunctionDeclaration


class ModelCapability(str, Enum):
    """What a model can do."""

    TEXT_GENERATION = "text_generation"
    CHAT_HISTORY = "chat_history"
    FUNCTION_CALLING = "function_calling"


@dataclass(frozen=True, slots=True)
class ModelMetadata:
    """
    Describes one model a provider offers.

    Attributes:
        id: Model identifier (e.g. "gpt-5-mini")
        capabilities: Capabilities the model supports
        options: Request options the model accepts (e.g. "system_instruction")
    """

    id: str
    capabilities: frozenset[ModelCapability] = frozenset()
    options: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class ModelRequirements:
    """What a chat turn needs from a model."""

    capabilities: frozenset[ModelCapability] = frozenset(
        {ModelCapability.TEXT_GENERATION, ModelCapability.CHAT_HISTORY}
    )
    options: frozenset[str] = frozenset()

    def satisfied_by(self, model: ModelMetadata) -> bool:
        return self.capabilities <= model.capabilities and self.options <= model.options

    def describe(self) -> str:
        parts = sorted(c.value for c in self.capabilities) + sorted(self.options)
        return ", ".join(parts) or "none"


# Models that back the chat agent: text + history + function calling.
CHAT_MODEL_CAPABILITIES = frozenset(
    {
        ModelCapability.TEXT_GENERATION,
        ModelCapability.CHAT_HISTORY,
        ModelCapability.FUNCTION_CALLING,
    }
)
CHAT_MODEL_OPTIONS = frozenset({"system_instruction", "function_declarations"})


def chat_model(model_id: str) -> ModelMetadata:
    """Metadata for a model usable by the chat agent."""
    return ModelMetadata(
        id=model_id,
        capabilities=CHAT_MODEL_CAPABILITIES,
        options=CHAT_MODEL_OPTIONS,
    )


NOT_EXECUTED = "This function call was not executed."


def answer_dangling_calls(messages: Sequence[Message]) -> list[Message]:
    """
    Give every function call a response in the following user turn.

    All three backends reject a model turn whose function calls are not
    answered by the next turn. Calls rejected by the agent (the corrective
    retry path) never get responses, so a placeholder response is
    inserted ahead of the next user message's parts.
    """
    result: list[Message] = []
    pending: tuple = ()

    for message in messages:
        if pending:
            answered = set()
            if message.role == MessageRole.USER:
                answered = {
                    part.response.id or part.response.name
                    for part in message.parts
                    if isinstance(part, FunctionResponsePart)
                }
            filler = tuple(
                FunctionResponsePart(
                    response=FunctionResponse(name=call.name, response=NOT_EXECUTED, id=call.id)
                )
                for call in pending
                if (call.id or call.name) not in answered
            )
            if filler and message.role == MessageRole.USER:
                message = Message(role=MessageRole.USER, parts=filler + message.parts)
            elif filler:
                result.append(Message(role=MessageRole.USER, parts=filler))

        result.append(message)
        pending = message.function_calls if message.role == MessageRole.MODEL else ()

    return result


def assign_call_ids(messages: Sequence[Message]) -> list[Message]:
    """
    Give id-less function calls and their responses matching ids.

    Gemini does not issue call ids, but the OpenAI and Anthropic APIs pair
    calls with results by id. A call without one gets ``<name>_<n>``
    (n = its position among the message's calls); responses without an id
    in the following user turn take those ids by name, in order.
    """
    result: list[Message] = []
    issued: dict[str, list[str]] = {}

    for message in messages:
        parts = []
        if message.role == MessageRole.MODEL:
            issued = {}
            ordinal = 0
            for part in message.parts:
                if isinstance(part, FunctionCallPart):
                    if not part.call.id:
                        part = replace(part, call=replace(part.call, id=f"{part.call.name}_{ordinal}"))
                    issued.setdefault(part.call.name, []).append(part.call.id)
                    ordinal += 1
                parts.append(part)
        else:
            for part in message.parts:
                if isinstance(part, FunctionResponsePart) and not part.response.id:
                    ids = issued.get(part.response.name)
                    if ids:
                        part = replace(part, response=replace(part.response, id=ids.pop(0)))
                parts.append(part)
            issued = {}
        result.append(Message(role=message.role, parts=tuple(parts)))

    return result


@dataclass
class GenerationConfig:
    """
    Per-request generation settings.

    None means "use the provider/model default".
    """

    temperature: float | None = None
    max_tokens: int | None = None


class GenerationError(Exception):
    """A provider failed to produce a response."""

    def __init__(self, message: str, *, provider: str = "", model: str = ""):
        super().__init__(message)
        self.provider = provider
        self.model = model


@runtime_checkable
class GenerationProvider(Protocol):
    """
    Protocol for generation providers.

    Implementations must provide:
    - name: Provider identifier ("openai", "anthropic", "google")
    - models(): The models offered
    - generate(): Produce the next model message
    """

    @property
    def name(self) -> str:
        """Provider name for logging and configuration."""
        ...

    def models(self) -> Sequence[ModelMetadata]:
        """Models this provider offers."""
        ...

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
        Generate the next model message.

        Raises:
            GenerationError: If the backend call fails
        """
        ...


class BaseGenerationProvider(ABC):
    """
    Base class for provider implementations.

    Holds the offered models and wraps SDK failures into GenerationError.
    """

    DEFAULT_MODELS: tuple[str, ...] = ()

    def __init__(self, models: Sequence[ModelMetadata] | None = None):
        self._models: tuple[ModelMetadata, ...] = (
            tuple(models) if models is not None else tuple(chat_model(m) for m in self.DEFAULT_MODELS)
        )

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""
        pass

    def models(self) -> Sequence[ModelMetadata]:
        return self._models

    def get_model(self, model_id: str) -> ModelMetadata | None:
        for model in self._models:
            if model.id == model_id:
                return model
        return None

    @abstractmethod
    async def generate(
        self,
        messages: Sequence[Message],
        *,
        model: str,
        system_instruction: str | None = None,
        function_declarations: Sequence[FunctionDeclaration] = (),
        config: GenerationConfig | None = None,
    ) -> Message:
        """Generate the next model message."""
        pass

    def _error(self, model: str, error: Exception) -> GenerationError:
        return GenerationError(
            f"{self.name} generation failed: {error}",
            provider=self.name,
            model=model,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', models={[m.id for m in self._models]})"


@dataclass(frozen=True)
class ModelHandle:
    """
    A resolved provider + model pair, ready to generate.

    Example:
        handle = registry.resolve()
        reply = await handle.generate(messages, system_instruction=prompt)
    """

    provider_id: str
    model_id: str
    provider: Any = field(repr=False, compare=False)

    async def generate(
        self,
        messages: Sequence[Message],
        *,
        system_instruction: str | None = None,
        function_declarations: Sequence[FunctionDeclaration] = (),
        config: GenerationConfig | None = None,
    ) -> Message:
        return await self.provider.generate(
            messages,
            model=self.model_id,
            system_instruction=system_instruction,
            function_declarations=function_declarations,
            config=config,
        )
