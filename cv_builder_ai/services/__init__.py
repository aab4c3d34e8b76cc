"""Service exports."""

from .llm_service import LanguageModelService, OpenAILanguageModelService, get_llm_service
from .renderer import JsonRenderer, Renderer
from .session_store import InMemorySessionStore, SessionStore

__all__ = [
    "LanguageModelService",
    "OpenAILanguageModelService",
    "get_llm_service",
    "Renderer",
    "JsonRenderer",
    "SessionStore",
    "InMemorySessionStore",
]
