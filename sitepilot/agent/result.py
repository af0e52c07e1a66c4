"""
Agent Step Result.

This module defines the value returned by one Agent.step() call.

Usage:
    result = await agent.step()

    for message in result.new_messages:
        history.append(message)

    if result.finished:
        print(result.last_message.text)
    elif result.retries_exhausted:
        print("Model kept calling unavailable functions")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sitepilot.messages.types import Message


@dataclass(frozen=True, slots=True)
class StepResult:
    """
    Result from one agent step.

    Contains:
    - step_index: 0-based index of the step within the agent's life
    - finished: Whether the last new message concludes the conversation turn
    - new_messages: Messages appended to the trajectory during the step
    - retries_exhausted: The step ended because every attempt called
      unavailable functions

    new_messages is never empty; a step always appends at least the
    model's response.
    """

    step_index: int
    finished: bool
    new_messages: tuple[Message, ...]
    retries_exhausted: bool = False

    def __post_init__(self) -> None:
        if not self.new_messages:
            raise ValueError("A step result must contain at least one new message.")
        if self.step_index < 0:
            raise ValueError(f"Step index must be non-negative, got {self.step_index}")
        # Accept lists from callers; the stored form is a tuple.
        object.__setattr__(self, "new_messages", tuple(self.new_messages))

    @property
    def last_message(self) -> Message:
        return self.new_messages[-1]
