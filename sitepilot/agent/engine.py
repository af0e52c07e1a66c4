"""
Agent Step Engine.

An Agent advances a conversation one step at a time. Each step:
1. Sends the trajectory plus the capability declarations to the model
2. Rejects responses that call unavailable functions (corrective retry)
3. Executes the valid calls and bundles their responses into one user message
4. Reports the new messages as a StepResult

Step phases:

    DRAFTING -> RETRYING* -> EXECUTING? -> DONE

Each transition is a pure function over a frozen StepState; the Agent
only performs the I/O (model generation, capability invocation) between
transitions.

Usage:
    agent = ChatbotAgent(capabilities, trajectory, registry=providers)

    while True:
        result = await agent.step()
        if result.finished or result.retries_exhausted:
            break
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING

from sitepilot.messages.types import FunctionCall, Message, MessageRole
from sitepilot.tools.adapter import CapabilitySet

from .result import StepResult

if TYPE_CHECKING:
    from sitepilot.tools.base import FunctionDeclaration, Tool

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEP_RETRIES = 3

RETRY_INSTRUCTION = "Please try again. Make sure to only call functions that are available."
RESEND_INSTRUCTION = (
    "None of the function calls from your last message were executed. "
    "You must re-send all of them, including the invalid ones, in your next message."
)


# =============================================================================
# Step State
# =============================================================================


class StepPhase(str, Enum):
    """Where a step is in its lifecycle."""

    DRAFTING = "drafting"  # First generation attempt
    RETRYING = "retrying"  # Previous attempt called unavailable functions
    EXECUTING = "executing"  # A fully valid response requested calls
    DONE = "done"


@dataclass(frozen=True, slots=True)
class StepState:
    """
    Immutable snapshot of one step in progress.

    Attributes:
        phase: Current phase
        attempts: Generation attempts made so far
        new_messages: Messages produced during the step, in order
        pending_calls: (tool, call) pairs awaiting execution
        retries_exhausted: The step ended without a valid response
    """

    phase: StepPhase = StepPhase.DRAFTING
    attempts: int = 0
    new_messages: tuple[Message, ...] = ()
    pending_calls: tuple[tuple[Tool, FunctionCall], ...] = ()
    retries_exhausted: bool = False

    @property
    def generating(self) -> bool:
        return self.phase in (StepPhase.DRAFTING, StepPhase.RETRYING)


def after_response(
    state: StepState,
    response: Message,
    valid_calls: Sequence[tuple[Tool, FunctionCall]],
    corrective: Message | None,
    max_step_retries: int,
) -> StepState:
    """
    Transition after a model response.

    The response is always recorded. A corrective message (present when
    the response called unavailable functions) is recorded after it and
    either schedules a retry or, on the last attempt, ends the step.
    """
    attempts = state.attempts + 1
    new_messages = state.new_messages + (response,)

    if corrective is not None:
        new_messages += (corrective,)
        if attempts >= max_step_retries:
            return StepState(
                phase=StepPhase.DONE,
                attempts=attempts,
                new_messages=new_messages,
                retries_exhausted=True,
            )
        return StepState(phase=StepPhase.RETRYING, attempts=attempts, new_messages=new_messages)

    if valid_calls:
        return StepState(
            phase=StepPhase.EXECUTING,
            attempts=attempts,
            new_messages=new_messages,
            pending_calls=tuple(valid_calls),
        )

    return StepState(phase=StepPhase.DONE, attempts=attempts, new_messages=new_messages)


def after_execution(state: StepState, responses: Message) -> StepState:
    """Transition after the pending calls ran; their responses end the step."""
    return replace(
        state,
        phase=StepPhase.DONE,
        new_messages=state.new_messages + (responses,),
        pending_calls=(),
    )


def invalid_calls_message(names: Sequence[str]) -> Message:
    """
    Build the corrective user message for unavailable function calls.

    Names are listed as the model sent them, duplicates included.
    """
    listed = ", ".join(names)
    if len(names) > 1:
        head = f"You called some functions that are not available: {listed}"
    else:
        head = f"You called a function that is not available: {listed}"
    return Message.user_text(f"{head}\n{RETRY_INSTRUCTION}\n{RESEND_INSTRUCTION}")


# =============================================================================
# Agent
# =============================================================================


class Agent(ABC):
    """
    Abstract base for step-driven agents.

    Subclasses decide how to talk to a model (generate) and when the
    conversation has concluded (is_finished). The base class owns the
    retry loop, call validation, and capability execution.

    The agent keeps its own copy of the trajectory; the caller's list is
    never mutated.
    """

    def __init__(
        self,
        capabilities: CapabilitySet | Sequence[Tool],
        trajectory: Sequence[Message],
        *,
        max_step_retries: int = DEFAULT_MAX_STEP_RETRIES,
    ):
        """
        Initialize the agent.

        Args:
            capabilities: Capability snapshot, or tools to build one from
            trajectory: Conversation so far
            max_step_retries: Generation attempts allowed per step
        """
        if max_step_retries < 1:
            raise ValueError(f"max_step_retries must be at least 1, got {max_step_retries}")

        if not isinstance(capabilities, CapabilitySet):
            capabilities = CapabilitySet(capabilities)

        self._capabilities = capabilities
        self._trajectory: list[Message] = list(trajectory)
        self._max_step_retries = max_step_retries
        self._step_index = 0

    @property
    def capabilities(self) -> CapabilitySet:
        return self._capabilities

    @property
    def trajectory(self) -> tuple[Message, ...]:
        return tuple(self._trajectory)

    @property
    def max_step_retries(self) -> int:
        return self._max_step_retries

    async def step(self) -> StepResult:
        """
        Run one step.

        Returns:
            StepResult with the messages the step appended

        Raises:
            Whatever generate() raises; nothing is appended in that case.
        """
        declarations = self._capabilities.declarations()
        state = StepState()

        while state.generating:
            response = await self.generate(
                self._trajectory + list(state.new_messages),
                declarations,
            )
            valid_calls, invalid_names = self.extract_function_calls(response)

            corrective = None
            if invalid_names:
                logger.warning(
                    f"[agent] Step {self._step_index} attempt {state.attempts + 1}: "
                    f"unavailable functions called: {invalid_names}"
                )
                corrective = self.invalid_calls_message(invalid_names)
                if corrective.role != MessageRole.USER:
                    raise RuntimeError("Invalid function calls message must be a user message.")

            state = after_response(
                state, response, valid_calls, corrective, self._max_step_retries
            )

        if state.phase == StepPhase.EXECUTING:
            responses = await self.execute_calls(state.pending_calls)
            state = after_execution(state, responses)

        if state.retries_exhausted:
            logger.warning(
                f"[agent] Step {self._step_index} gave up after {state.attempts} attempts"
            )
            finished = False
        else:
            finished = self.is_finished(state.new_messages)

        return self._complete_step(finished, state)

    def extract_function_calls(
        self, message: Message
    ) -> tuple[list[tuple[Tool, FunctionCall]], list[str]]:
        """Split a response's calls into (tool, call) pairs and unknown names."""
        valid: list[tuple[Tool, FunctionCall]] = []
        invalid: list[str] = []
        for call in message.function_calls:
            tool = self._capabilities.find(call.name)
            if tool is None:
                invalid.append(call.name)
            else:
                valid.append((tool, call))
        return valid, invalid

    def invalid_calls_message(self, names: Sequence[str]) -> Message:
        """Message sent back when unavailable functions were called. Must be a user message."""
        return invalid_calls_message(names)

    async def execute_calls(self, calls: Sequence[tuple[Tool, FunctionCall]]) -> Message:
        """
        Invoke every call and bundle the responses into one user message.

        Calls run concurrently; responses keep the order of the calls.
        """
        logger.info(f"[agent] Executing {len(calls)} function call(s): {[c.name for _, c in calls]}")
        responses = await asyncio.gather(
            *(self._capabilities.invoke(tool, call) for tool, call in calls)
        )
        return Message.function_responses(list(responses))

    def _complete_step(self, finished: bool, state: StepState) -> StepResult:
        self._trajectory.extend(state.new_messages)
        result = StepResult(
            step_index=self._step_index,
            finished=finished,
            new_messages=state.new_messages,
            retries_exhausted=state.retries_exhausted,
        )
        self._step_index += 1
        logger.debug(
            f"[agent] Step {result.step_index} complete: "
            f"{len(result.new_messages)} new message(s), finished={finished}"
        )
        return result

    @abstractmethod
    async def generate(
        self,
        messages: Sequence[Message],
        declarations: Sequence[FunctionDeclaration],
    ) -> Message:
        """Ask the model for the next message given the trajectory and declarations."""
        pass

    @abstractmethod
    def is_finished(self, new_messages: Sequence[Message]) -> bool:
        """Whether the messages from a step conclude the conversation turn."""
        pass
