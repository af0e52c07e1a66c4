"""
Chat Service (Orchestration Loop).

Runs one user turn end to end:
1. Load the user's stored trajectory and append the incoming message
2. Build a ChatbotAgent with the user's capabilities
3. Step until finished, bounded by max_steps and a wall-clock timeout
4. Persist everything the turn produced, in storage form
5. Return the outward message, marked "regular" or "error"

Stored messages may carry a UI ``type`` marker ("regular" / "error"); it is
stripped before messages reach the agent.

Usage:
    service = ChatService(store=store, registry=providers, tool_factory=factory)

    reply = await service.send_message(
        "user-7",
        {"role": "user", "parts": [{"type": "text", "text": "Publish my draft"}]},
    )
    print(reply["type"], reply["parts"])
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from sitepilot.messages.normalizer import normalize_for_storage, validate_message
from sitepilot.messages.types import Message
from sitepilot.tools.factory import ToolContext
from sitepilot.tools.registry import ToolRegistry

from .chatbot import ChatbotAgent
from .engine import DEFAULT_MAX_STEP_RETRIES
from .prompts import PromptManager, UserInfo

if TYPE_CHECKING:
    from sitepilot.providers.registry import ProviderRegistry
    from sitepilot.tools.factory import ToolFactory

    from .memory import TrajectoryStore

logger = logging.getLogger(__name__)

MESSAGE_TYPE_KEY = "type"
MESSAGE_TYPE_REGULAR = "regular"
MESSAGE_TYPE_ERROR = "error"

PROCESSING_ERROR = "Something went wrong while processing your request. Please try again."
RETRY_LATER_ERROR = "The assistant could not complete your request. Please try again."


def strip_type_marker(message: dict[str, Any]) -> dict[str, Any]:
    """Drop the UI message type; it is not part of the message model."""
    return {key: value for key, value in message.items() if key != MESSAGE_TYPE_KEY}


def error_message(text: str) -> dict[str, Any]:
    """Storage-form model message carrying an error for the user."""
    return {
        MESSAGE_TYPE_KEY: MESSAGE_TYPE_ERROR,
        "role": "model",
        "parts": [{"channel": "content", "type": "text", "text": text}],
    }


class ChatService:
    """
    Per-user chat turns over a TrajectoryStore.

    Turns for one user scope are expected to be serialized by the caller;
    concurrent turns for the same scope race on the stored trajectory.
    """

    def __init__(
        self,
        *,
        store: TrajectoryStore,
        registry: ProviderRegistry,
        tool_factory: ToolFactory,
        prompts: PromptManager | None = None,
        default_capabilities: frozenset[str] = frozenset(),
        max_step_retries: int = DEFAULT_MAX_STEP_RETRIES,
        max_steps: int = 10,
        timeout_seconds: float = 120.0,
    ):
        """
        Initialize the service.

        Args:
            store: Trajectory persistence backend
            registry: Provider registry used for model selection
            tool_factory: Builds the capabilities offered to a user
            prompts: System prompt templates
            default_capabilities: Grants used when no ToolContext is supplied
            max_step_retries: Generation attempts per agent step
            max_steps: Agent steps allowed per turn
            timeout_seconds: Wall-clock budget per turn, checked between steps
        """
        self._store = store
        self._registry = registry
        self._tool_factory = tool_factory
        self._prompts = prompts or PromptManager()
        self._default_capabilities = frozenset(default_capabilities)
        self._max_step_retries = max_step_retries
        self._max_steps = max_steps
        self._timeout = timeout_seconds

    async def get_messages(self, scope: str) -> list[dict[str, Any]]:
        """Stored messages for a user scope."""
        return await self._store.load(scope)

    async def reset_messages(self, scope: str) -> list[dict[str, Any]]:
        """Clear a user scope and return what was stored before."""
        previous = await self._store.load(scope)
        await self._store.clear(scope)
        logger.info(f"[chat_service] Reset {len(previous)} messages for {scope}")
        return previous

    def build_agent(
        self,
        scope: str,
        trajectory: list[Message],
        context: ToolContext,
    ) -> ChatbotAgent:
        """Build the agent for one turn, with the tools this user is offered."""
        tools = ToolRegistry()
        tools.register_all(self._tool_factory.build_tools(context))

        user = UserInfo(
            id=context.user_id,
            display_name=str(context.metadata.get("display_name", "")),
            email=str(context.metadata.get("email", "")),
            role=str(context.metadata.get("role", "None")),
        )
        return ChatbotAgent(
            tools.snapshot(),
            trajectory,
            registry=self._registry,
            prompts=self._prompts,
            user=user,
            max_step_retries=self._max_step_retries,
        )

    def _restore(
        self, scope: str, stored: list[dict[str, Any]]
    ) -> tuple[list[dict[str, Any]], list[Message]]:
        """
        Rebuild the trajectory from stored messages.

        Entries that no longer parse (e.g. an unknown role) are dropped from
        both the history and the trajectory so the conversation still loads.
        """
        history: list[dict[str, Any]] = []
        trajectory: list[Message] = []
        for index, entry in enumerate(stored):
            try:
                message = Message.from_dict(strip_type_marker(entry))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"[chat_service] Dropping stored message {index} for {scope}: {e}")
                continue
            history.append(entry)
            trajectory.append(message)
        return history, trajectory

    async def send_message(
        self,
        scope: str,
        message: dict[str, Any],
        *,
        context: ToolContext | None = None,
    ) -> dict[str, Any]:
        """
        Run one user turn.

        Args:
            scope: User scope the trajectory is stored under
            message: Incoming message (any supported shape)
            context: Tool context; defaults to the scope with default grants

        Returns:
            The outward message in storage form, with a "type" marker

        Raises:
            ValueError: If the incoming message has an unknown role
        """
        context = context or ToolContext(user_id=scope, capabilities=self._default_capabilities)

        history = await self._store.load(scope)
        incoming = validate_message(strip_type_marker(message))
        history, trajectory = self._restore(scope, history)
        trajectory.append(Message.from_dict(incoming))
        history.append(incoming)

        new_messages: list[Message] = []
        outward: dict[str, Any] | None = None
        started = time.monotonic()

        logger.info(f"[chat_service] Turn for {scope}: {len(trajectory)} messages in trajectory")

        try:
            agent = self.build_agent(scope, trajectory, context)

            for step in range(self._max_steps):
                elapsed = time.monotonic() - started
                if elapsed > self._timeout:
                    logger.warning(
                        f"[chat_service] Timeout after {elapsed:.1f}s at step {step} for {scope}"
                    )
                    outward = error_message(RETRY_LATER_ERROR)
                    break

                result = await agent.step()
                new_messages.extend(result.new_messages)

                if result.finished:
                    outward = {
                        MESSAGE_TYPE_KEY: MESSAGE_TYPE_REGULAR,
                        **normalize_for_storage(result.last_message.to_dict()),
                    }
                    new_messages.pop()
                    break

                if result.retries_exhausted:
                    logger.warning(f"[chat_service] Step retries exhausted for {scope}")
                    outward = error_message(RETRY_LATER_ERROR)
                    break
            else:
                logger.warning(f"[chat_service] Max steps ({self._max_steps}) reached for {scope}")
                outward = error_message(RETRY_LATER_ERROR)

        except Exception as e:
            logger.error(f"[chat_service] Turn failed for {scope}: {e}", exc_info=True)
            outward = error_message(PROCESSING_ERROR)

        history.extend(normalize_for_storage(m.to_dict()) for m in new_messages)
        history.append(outward)
        await self._store.save(scope, history)

        logger.info(
            f"[chat_service] Turn complete for {scope}: type={outward[MESSAGE_TYPE_KEY]}, "
            f"{len(new_messages)} intermediate messages"
        )
        return outward
