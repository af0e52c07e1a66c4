"""
Chatbot Agent.

The site assistant: resolves a provider/model for every generation
attempt and talks to it with the rendered system prompt.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from sitepilot.messages.normalizer import prepare_for_provider
from sitepilot.messages.types import Message, MessageRole
from sitepilot.providers.llm.base import (
    CHAT_MODEL_CAPABILITIES,
    GenerationConfig,
    ModelCapability,
    ModelRequirements,
)

from .engine import DEFAULT_MAX_STEP_RETRIES, Agent
from .prompts import PromptManager, UserInfo

if TYPE_CHECKING:
    from sitepilot.providers.registry import ProviderRegistry
    from sitepilot.tools.adapter import CapabilitySet
    from sitepilot.tools.base import FunctionDeclaration, Tool

logger = logging.getLogger(__name__)


class ChatbotAgent(Agent):
    """
    Conversational agent backed by the provider registry.

    A step is finished once it ends on a non-user message: a function
    response bundle (role user) means the model still has results to read.

    Example:
        agent = ChatbotAgent(
            capabilities,
            trajectory,
            registry=providers,
            prompts=PromptManager("prompts"),
        )
        result = await agent.step()
    """

    def __init__(
        self,
        capabilities: CapabilitySet | Sequence[Tool],
        trajectory: Sequence[Message],
        *,
        registry: ProviderRegistry,
        prompts: PromptManager | None = None,
        user: UserInfo | None = None,
        provider_id: str | None = None,
        model_id: str | None = None,
        generation_config: GenerationConfig | None = None,
        max_step_retries: int = DEFAULT_MAX_STEP_RETRIES,
    ):
        super().__init__(capabilities, trajectory, max_step_retries=max_step_retries)
        self._registry = registry
        self._prompts = prompts or PromptManager()
        self._user = user
        self._provider_id = provider_id
        self._model_id = model_id
        self._generation_config = generation_config

    def system_instruction(self) -> str:
        return self._prompts.get_prompt(user=self._user)

    def requirements(self, declarations: Sequence[FunctionDeclaration]) -> ModelRequirements:
        """Model requirements for a request; function calling only when something is callable."""
        if declarations:
            return ModelRequirements(
                capabilities=CHAT_MODEL_CAPABILITIES,
                options=frozenset({"system_instruction", "function_declarations"}),
            )
        return ModelRequirements(
            capabilities=frozenset(
                {ModelCapability.TEXT_GENERATION, ModelCapability.CHAT_HISTORY}
            ),
            options=frozenset({"system_instruction"}),
        )

    async def generate(
        self,
        messages: Sequence[Message],
        declarations: Sequence[FunctionDeclaration],
    ) -> Message:
        handle = self._registry.resolve(
            provider_id=self._provider_id,
            model_id=self._model_id,
            requirements=self.requirements(declarations),
        )
        logger.info(
            f"[chatbot] Generating with {handle.provider_id}/{handle.model_id} "
            f"({len(messages)} messages, {len(declarations)} functions)"
        )

        prepared = prepare_for_provider([m.to_dict() for m in messages], handle.provider_id)
        return await handle.generate(
            [Message.from_dict(m) for m in prepared],
            system_instruction=self.system_instruction(),
            function_declarations=declarations,
            config=self._generation_config,
        )

    def is_finished(self, new_messages: Sequence[Message]) -> bool:
        return new_messages[-1].role != MessageRole.USER
