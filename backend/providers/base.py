from abc import ABC, abstractmethod

import httpx

from config import LLM_TIMEOUT_SECONDS


class BaseProvider(ABC):
    """Abstract base class for all completion providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The name of this provider (e.g. 'openai', 'groq')."""
        ...

    @abstractmethod
    async def chat(
        self,
        messages: list[dict],
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> dict:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.
            model: Optional model identifier. Provider uses its default if None.
            max_tokens: Output token budget.
            temperature: Sampling temperature.

        Returns:
            dict with keys:
                - text: str | None: the generated text
                - provider: str: provider name
                - model: str: model used
                - status: "success" | "failed"
                - error: str | None: error message on failure
                - status_code: int | None: HTTP status of a failed request
        """
        ...


class OpenAICompatibleProvider(BaseProvider):
    """Chat completions against any endpoint speaking the OpenAI wire format."""

    endpoint: str = ""
    default_models: list[str] = []

    def __init__(self, api_key: str, timeout: float = LLM_TIMEOUT_SECONDS,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _result(self, model: str, text: str | None = None, error: str | None = None,
                status_code: int | None = None) -> dict:
        return {
            "text": text,
            "provider": self.name,
            "model": model,
            "status": "failed" if error else "success",
            "error": error,
            "status_code": status_code,
        }

    async def chat(
        self,
        messages: list[dict],
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> dict:
        used_model = model or self.default_models[0]
        try:
            headers = {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            }
            body = {
                "model": used_model,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }

            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.endpoint, headers=headers, json=body)
                response.raise_for_status()
                data = response.json()
                choices = data.get("choices") or []
                text = choices[0]["message"].get("content") if choices else None

            return self._result(used_model, text=text or "")
        except httpx.TimeoutException:
            return self._result(used_model, error="Timeout")
        except httpx.HTTPStatusError as e:
            return self._result(used_model, error=f"HTTP {e.response.status_code}: {e.response.text[:200]}",
                                status_code=e.response.status_code)
        except Exception as e:
            return self._result(used_model, error=str(e))
