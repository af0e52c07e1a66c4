"""
SitePilot - Conversational Site Assistant

A tool-using chat agent that manages a WordPress site through
function calling on OpenAI, Anthropic or Gemini models.

Layers:
- messages: Canonical message model + provider-shape normalizer
- tools: Capabilities, registry, and the function-calling adapter
- providers: Generation backends + provider/model selection
- agent: Step engine, chatbot agent, chat service, persistence, prompts
- integrations: WordPress REST client
- app: FastAPI transport
"""

__version__ = "0.1.0"
