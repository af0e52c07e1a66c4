"""
Tests for ChatbotAgent and ChatService.

Tests cover:
- Provider/model resolution per generation attempt
- System instruction and declarations reaching the provider
- A full turn: persistence, outward "regular" message
- Error outcomes: processing error, exhausted retries, max steps, timeout
- Message history get/reset
"""

from unittest.mock import patch

import pytest

from sitepilot.agent import (
    PROCESSING_ERROR,
    RETRY_LATER_ERROR,
    ChatbotAgent,
    ChatService,
    InMemoryTrajectoryStore,
    PromptManager,
    SiteInfo,
    error_message,
    strip_type_marker,
)
from sitepilot.agent.prompts import DEFAULT_PROMPT
from sitepilot.messages import Message, MessageRole
from sitepilot.messages.normalizer import normalize_for_storage
from sitepilot.providers import ProviderRegistry
from sitepilot.providers.llm.base import GenerationError, ModelCapability
from sitepilot.tools import StaticToolFactory, ToolContext


@pytest.fixture
def registry():
    """Registry that resolves to the provider's own test model."""
    return ProviderRegistry(preferred_models={"openai": ""})


def user_turn(text="Summarize my latest post"):
    return {"role": "user", "parts": [{"type": "text", "text": text}]}


# =============================================================================
# ChatbotAgent
# =============================================================================


class TestChatbotAgent:
    """Tests for ChatbotAgent."""

    @pytest.mark.asyncio
    async def test_generate_uses_resolved_model(self, registry, scripted_provider, recording_tool, user_message):
        provider = scripted_provider([Message.model_text("Hi")])
        registry.register("openai", provider)
        agent = ChatbotAgent([recording_tool()], [user_message], registry=registry)

        result = await agent.step()

        request = provider.requests[0]
        assert request["model"] == "test-model"
        assert request["system_instruction"] == DEFAULT_PROMPT
        assert [d.name for d in request["function_declarations"]] == ["sitepilot_get_post"]
        assert request["messages"] == [user_message]
        assert result.finished

    @pytest.mark.asyncio
    async def test_explicit_model_and_provider(self, registry, scripted_provider, user_message):
        registry.register("openai", scripted_provider([Message.model_text("a")]))
        other = scripted_provider([Message.model_text("b")], name="anthropic")
        registry.register("anthropic", other)
        agent = ChatbotAgent(
            [], [user_message], registry=registry, provider_id="anthropic", model_id="claude-x"
        )

        await agent.step()

        assert other.requests[0]["model"] == "claude-x"

    @pytest.mark.asyncio
    async def test_preferred_model_used(self, scripted_provider, user_message):
        registry = ProviderRegistry()
        provider = scripted_provider([Message.model_text("Hi")])
        registry.register("openai", provider)

        await ChatbotAgent([], [user_message], registry=registry).step()

        assert provider.requests[0]["model"] == "gpt-5-mini"

    def test_requirements_without_functions(self, registry):
        agent = ChatbotAgent([], [], registry=registry)

        requirements = agent.requirements(())

        assert ModelCapability.FUNCTION_CALLING not in requirements.capabilities
        assert requirements.options == frozenset({"system_instruction"})

    def test_function_response_step_not_finished(self, registry):
        agent = ChatbotAgent([], [], registry=registry)

        assert not agent.is_finished([Message.function_responses([])])
        assert agent.is_finished([Message.model_text("done")])

    def test_system_instruction_renders_site(self, registry, tmp_path):
        (tmp_path / "chatbot-system-prompt.md").write_text("You help {{site.name}}.")
        prompts = PromptManager(tmp_path, site=SiteInfo(name="My Blog"))

        agent = ChatbotAgent([], [], registry=registry, prompts=prompts)

        assert agent.system_instruction() == "You help My Blog."


# =============================================================================
# ChatService
# =============================================================================


class TestChatService:
    """Tests for ChatService.send_message()."""

    def make_service(self, registry, tools=(), **kwargs):
        store = InMemoryTrajectoryStore()
        service = ChatService(
            store=store,
            registry=registry,
            tool_factory=StaticToolFactory(list(tools)),
            **kwargs,
        )
        return service, store

    @pytest.mark.asyncio
    async def test_plain_reply(self, registry, scripted_provider):
        registry.register("openai", scripted_provider([Message.model_text("Hello!")]))
        service, store = self.make_service(registry)

        reply = await service.send_message("user-7", user_turn("Hi"))

        assert reply["type"] == "regular"
        assert reply["role"] == "model"
        assert reply["parts"][0]["text"] == "Hello!"

        stored = await store.load("user-7")
        assert len(stored) == 2
        assert stored[0]["role"] == "user"
        assert stored[-1] == reply

    @pytest.mark.asyncio
    async def test_reply_stored_in_storage_form(self, registry, scripted_provider):
        reply_message = Message.model_text("Hello!")
        registry.register("openai", scripted_provider([reply_message]))
        service, store = self.make_service(registry)

        with patch(
            "sitepilot.agent.conversation.normalize_for_storage", wraps=normalize_for_storage
        ) as normalize:
            reply = await service.send_message("user-7", user_turn("Hi"))

        normalize.assert_any_call(reply_message.to_dict())
        assert reply == {"type": "regular", **normalize_for_storage(reply_message.to_dict())}
        assert (await store.load("user-7"))[-1] == reply

    @pytest.mark.asyncio
    async def test_get_post_turn_persists_intermediate_messages(
        self, registry, scripted_provider, recording_tool, make_call_message
    ):
        provider = scripted_provider(
            [make_call_message("sitepilot_get_post"), Message.model_text("It is titled Hello.")]
        )
        registry.register("openai", provider)
        tool = recording_tool(payload={"post_title": "Hello"})
        service, store = self.make_service(registry, [tool])

        reply = await service.send_message("user-7", user_turn())

        assert reply["type"] == "regular"
        assert reply["parts"][0]["text"] == "It is titled Hello."
        assert tool.calls == [{"post_id": 0}]

        stored = await store.load("user-7")
        assert [m["role"] for m in stored] == ["user", "model", "user", "model"]
        assert stored[1]["parts"][0]["type"] == "function_call"
        assert stored[2]["parts"][0]["function_response"] == {
            "id": "call-0",
            "name": "sitepilot_get_post",
            "response": {"post_title": "Hello"},
        }

        # The model saw the function response on the second generation
        second_request = provider.requests[1]["messages"]
        assert second_request[-1].role == MessageRole.USER

    @pytest.mark.asyncio
    async def test_history_replayed_without_type_marker(self, registry, scripted_provider):
        provider = scripted_provider([Message.model_text("one"), Message.model_text("two")])
        registry.register("openai", provider)
        service, _ = self.make_service(registry)

        await service.send_message("user-7", user_turn("first"))
        await service.send_message("user-7", user_turn("second"))

        messages = provider.requests[1]["messages"]
        assert [m.text for m in messages] == ["first", "one", "second"]

    @pytest.mark.asyncio
    async def test_generation_error_becomes_processing_error(self, registry, scripted_provider):
        registry.register("openai", scripted_provider([GenerationError("boom")]))
        service, store = self.make_service(registry)

        reply = await service.send_message("user-7", user_turn())

        assert reply == error_message(PROCESSING_ERROR)
        assert "boom" not in reply["parts"][0]["text"]
        stored = await store.load("user-7")
        assert len(stored) == 2
        assert stored[-1]["type"] == "error"

    @pytest.mark.asyncio
    async def test_unreadable_stored_message_dropped(self, registry, scripted_provider, caplog):
        provider = scripted_provider([Message.model_text("Still here.")])
        registry.register("openai", provider)
        service, store = self.make_service(registry)
        await store.save(
            "user-7",
            [
                user_turn("earlier"),
                {"role": "assistant", "parts": [{"type": "text", "text": "odd"}]},
                {"type": "regular", "role": "model", "parts": [{"type": "text", "text": "reply"}]},
            ],
        )

        with caplog.at_level("WARNING", logger="sitepilot.agent.conversation"):
            reply = await service.send_message("user-7", user_turn("again"))

        assert reply["type"] == "regular"
        assert [m.text for m in provider.requests[0]["messages"]] == ["earlier", "reply", "again"]
        assert "Dropping stored message 1" in caplog.text
        stored = await store.load("user-7")
        assert [m["role"] for m in stored] == ["user", "model", "user", "model"]

    @pytest.mark.asyncio
    async def test_no_provider_is_processing_error(self, registry):
        service, _ = self.make_service(registry)

        reply = await service.send_message("user-7", user_turn())

        assert reply["type"] == "error"
        assert reply["parts"][0]["text"] == PROCESSING_ERROR

    @pytest.mark.asyncio
    async def test_retries_exhausted_is_error(self, registry, scripted_provider, make_call_message):
        registry.register("openai", scripted_provider([make_call_message("delete_site")]))
        service, store = self.make_service(registry, max_step_retries=1)

        reply = await service.send_message("user-7", user_turn())

        assert reply == error_message(RETRY_LATER_ERROR)
        stored = await store.load("user-7")
        assert [m["role"] for m in stored] == ["user", "model", "user", "model"]

    @pytest.mark.asyncio
    async def test_max_steps_is_error(self, registry, scripted_provider, recording_tool, make_call_message):
        registry.register("openai", scripted_provider([make_call_message("sitepilot_get_post")]))
        service, _ = self.make_service(registry, [recording_tool()], max_steps=1)

        reply = await service.send_message("user-7", user_turn())

        assert reply == error_message(RETRY_LATER_ERROR)

    @pytest.mark.asyncio
    async def test_timeout_is_error(self, registry, scripted_provider):
        provider = scripted_provider([Message.model_text("late")])
        registry.register("openai", provider)
        service, _ = self.make_service(registry, timeout_seconds=-1)

        reply = await service.send_message("user-7", user_turn())

        assert reply == error_message(RETRY_LATER_ERROR)
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_unknown_role_rejected(self, registry):
        service, store = self.make_service(registry)

        with pytest.raises(ValueError):
            await service.send_message("user-7", {"role": "assistant", "parts": []})

        assert await store.load("user-7") == []

    @pytest.mark.asyncio
    async def test_context_controls_tools(self, registry, scripted_provider, recording_tool):
        provider = scripted_provider([Message.model_text("ok")])
        registry.register("openai", provider)
        store = InMemoryTrajectoryStore()

        class GrantedFactory:
            def build_tools(self, context):
                return [recording_tool()] if context.can("edit_posts") else []

        service = ChatService(store=store, registry=registry, tool_factory=GrantedFactory())

        await service.send_message(
            "user-7",
            user_turn(),
            context=ToolContext(user_id="7", capabilities=frozenset({"read"})),
        )

        assert provider.requests[0]["function_declarations"] == []

    @pytest.mark.asyncio
    async def test_get_and_reset_messages(self, registry, scripted_provider):
        registry.register("openai", scripted_provider([Message.model_text("Hello!")]))
        service, _ = self.make_service(registry)
        await service.send_message("user-7", user_turn())

        previous = await service.reset_messages("user-7")

        assert len(previous) == 2
        assert await service.get_messages("user-7") == []


def test_strip_type_marker():
    assert strip_type_marker({"type": "error", "role": "model", "parts": []}) == {
        "role": "model",
        "parts": [],
    }
