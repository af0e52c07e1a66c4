"""
SitePilot Agent Layer.

The step engine that drives function-calling conversations, the chatbot
agent built on it, and the services around it.

Components:
    - Agent: Abstract step engine (retry, validate, execute)
    - ChatbotAgent: Provider-registry backed site assistant
    - StepResult: Value returned by each step
    - ChatService: One user turn end to end, with persistence
    - TrajectoryStore: Per-user trajectory persistence
    - PromptManager: System prompt templates

Usage:
    from sitepilot.agent import ChatService, create_store

    service = ChatService(
        store=create_store("inmemory"),
        registry=providers,
        tool_factory=factory,
    )
    reply = await service.send_message("user-7", message)
"""

from .chatbot import ChatbotAgent
from .conversation import (
    MESSAGE_TYPE_ERROR,
    MESSAGE_TYPE_REGULAR,
    PROCESSING_ERROR,
    RETRY_LATER_ERROR,
    ChatService,
    error_message,
    strip_type_marker,
)
from .engine import (
    DEFAULT_MAX_STEP_RETRIES,
    Agent,
    StepPhase,
    StepState,
    after_execution,
    after_response,
    invalid_calls_message,
)
from .memory import (
    InMemoryTrajectoryStore,
    RedisTrajectoryStore,
    TrajectoryStore,
    create_store,
)
from .prompts import DEFAULT_PROMPT, PromptManager, SiteInfo, UserInfo
from .result import StepResult

__all__ = [
    # Engine
    "Agent",
    "StepPhase",
    "StepState",
    "after_response",
    "after_execution",
    "invalid_calls_message",
    "DEFAULT_MAX_STEP_RETRIES",
    "StepResult",
    # Chatbot
    "ChatbotAgent",
    # Orchestration
    "ChatService",
    "error_message",
    "strip_type_marker",
    "MESSAGE_TYPE_REGULAR",
    "MESSAGE_TYPE_ERROR",
    "PROCESSING_ERROR",
    "RETRY_LATER_ERROR",
    # Memory
    "TrajectoryStore",
    "InMemoryTrajectoryStore",
    "RedisTrajectoryStore",
    "create_store",
    # Prompts
    "PromptManager",
    "SiteInfo",
    "UserInfo",
    "DEFAULT_PROMPT",
]
