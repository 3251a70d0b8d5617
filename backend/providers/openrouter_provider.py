from providers.base import OpenAICompatibleProvider


OPENROUTER_MODELS = [
    "openai/gpt-4o-mini",
    "meta-llama/llama-3.1-8b-instruct",
]


class OpenRouterProvider(OpenAICompatibleProvider):
    """Provider for OpenRouter AI."""

    endpoint = "https://openrouter.ai/api/v1/chat/completions"
    default_models = OPENROUTER_MODELS

    @property
    def name(self) -> str:
        return "openrouter"
