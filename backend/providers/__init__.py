from providers.base import BaseProvider, OpenAICompatibleProvider
from providers.openai_provider import OpenAIProvider
from providers.groq_provider import GroqProvider
from providers.openrouter_provider import OpenRouterProvider


__all__ = [
    "BaseProvider",
    "OpenAICompatibleProvider",
    "OpenAIProvider",
    "GroqProvider",
    "OpenRouterProvider",
]
