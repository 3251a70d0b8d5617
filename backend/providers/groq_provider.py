from providers.base import OpenAICompatibleProvider


GROQ_MODELS = [
    "llama-3.3-70b-versatile",
    "llama-3.1-8b-instant",
]


class GroqProvider(OpenAICompatibleProvider):
    """Provider for Groq inference API (OpenAI-compatible endpoint)."""

    endpoint = "https://api.groq.com/openai/v1/chat/completions"
    default_models = GROQ_MODELS

    @property
    def name(self) -> str:
        return "groq"
