from providers.base import OpenAICompatibleProvider


OPENAI_MODELS = [
    "gpt-4o-mini",
    "gpt-4o",
]


class OpenAIProvider(OpenAICompatibleProvider):
    """Provider for the OpenAI chat completions API."""

    endpoint = "https://api.openai.com/v1/chat/completions"
    default_models = OPENAI_MODELS

    @property
    def name(self) -> str:
        return "openai"
