"""
llm_router.py — Multi-provider completion router
Routes completion requests to the best available provider with automatic
fallback, key rotation, and per-provider scoring. The configured model is
sent to the preferred provider only; fallbacks use their own defaults.
"""

import time
import logging
from datetime import datetime, timezone

from config import CHAT_PROVIDER
from exceptions import CompletionError
from services.key_manager import KeyManager

# Provider imports: each exposes an async chat(messages, model, max_tokens, temperature) method
from providers.openai_provider import OpenAIProvider
from providers.groq_provider import GroqProvider
from providers.openrouter_provider import OpenRouterProvider

logger = logging.getLogger(__name__)


# Default priority order (lower = tried first)
_DEFAULT_PROVIDERS = [
    {"name": "openai",     "provider_class": OpenAIProvider,     "priority": 1},
    {"name": "groq",       "provider_class": GroqProvider,       "priority": 2},
    {"name": "openrouter", "provider_class": OpenRouterProvider, "priority": 3},
]


class LLMRouter:
    """Route completion requests to the best available provider."""

    def __init__(self, key_manager: KeyManager | None = None, providers: list[dict] | None = None,
                 preferred_provider: str = CHAT_PROVIDER):
        self.key_manager = key_manager or KeyManager()
        self.preferred_provider = preferred_provider

        # Build mutable provider registry
        self.providers: list[dict] = []
        for p in providers or _DEFAULT_PROVIDERS:
            # Only include providers that have at least one key configured
            if self.key_manager.keys.get(p["name"]):
                self.providers.append({
                    "name": p["name"],
                    "provider_class": p["provider_class"],
                    "priority": p["priority"],
                    "failure_count": 0,
                    "avg_response_time": 0.0,
                    "total_calls": 0,
                    "last_used": None,
                })

    def _score(self, entry: dict) -> float:
        """Lower is better: configured priority, penalised by failures and latency."""
        return entry["priority"] + entry["failure_count"] * 5 + entry["avg_response_time"] * 0.1

    def _ordered(self) -> list[dict]:
        ordered = sorted(self.providers, key=self._score)
        return ([p for p in ordered if p["name"] == self.preferred_provider]
                + [p for p in ordered if p["name"] != self.preferred_provider])

    def _record_success(self, entry: dict, elapsed: float) -> None:
        entry["total_calls"] += 1
        calls = entry["total_calls"]
        entry["avg_response_time"] = round((entry["avg_response_time"] * (calls - 1) + elapsed) / calls, 3)
        entry["failure_count"] = max(0, entry["failure_count"] - 1)
        entry["last_used"] = datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _is_rate_limited(result: dict) -> bool:
        return result.get("status_code") == 429

    async def _try_provider(self, entry: dict, messages: list, model: str | None,
                            max_tokens: int, temperature: float) -> tuple[dict | None, str | None]:
        """Walk the provider's keys until one answers. Returns (result, None) or (None, error)."""
        name = entry["name"]
        error = None
        while True:
            api_key = self.key_manager.get_next_key(name)
            if api_key is None:
                break
            provider = entry["provider_class"](api_key=api_key)
            started = time.monotonic()
            result = await provider.chat(messages, model, max_tokens=max_tokens, temperature=temperature)
            elapsed = round(time.monotonic() - started, 3)

            if result.get("status") == "success":
                self._record_success(entry, elapsed)
                logger.debug(f"{name} answered in {elapsed}s")
                return {
                    "text": result.get("text") or "",
                    "provider": result.get("provider", name),
                    "model": result.get("model", model),
                    "status": "success",
                    "error": None,
                    "response_time": elapsed,
                }, None

            message = result.get("error") or ""
            if self._is_rate_limited(result):
                # Same provider, next key
                self.key_manager.mark_exhausted_by_value(name, api_key)
                error = f"{name}: rate limited"
                continue

            entry["failure_count"] += 1
            error = f"{name}: {message or 'returned an error'}"
            logger.warning(f"Completion provider failed ({error})")
            break
        return None, error or f"{name}: no usable API key"

    # ------------------------------------------------------------------
    async def route(
        self,
        messages: list,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> dict:
        """Send `messages` to the first provider that answers.

        `model` goes to the preferred provider only. Returns a dict with keys
        text, provider, model, status, error and response_time; status is
        "error" when every provider failed.
        """
        last_error = "No completion provider is configured"
        for entry in self._ordered():
            provider_model = model if entry["name"] == self.preferred_provider else None
            result, error = await self._try_provider(entry, messages, provider_model, max_tokens, temperature)
            if result is not None:
                return result
            last_error = error

        return {
            "text": None,
            "provider": None,
            "model": None,
            "status": "error",
            "error": last_error,
            "response_time": 0,
        }

    async def complete(
        self,
        messages: list,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> str:
        """Return the completion text, or raise CompletionError if every provider failed."""
        result = await self.route(messages, model=model, max_tokens=max_tokens, temperature=temperature)
        if result["status"] != "success":
            raise CompletionError(result["error"])
        return result["text"]

    # ------------------------------------------------------------------
    def get_provider_status(self) -> list:
        """Return current runtime status of every provider."""
        return [
            {
                "name": entry["name"],
                "available_keys": self.key_manager.get_active_key_count(entry["name"]),
                "failure_count": entry["failure_count"],
                "avg_response_time": entry["avg_response_time"],
                "last_used": entry["last_used"],
                "priority": entry["priority"],
            }
            for entry in self.providers
        ]


_router_instance = None


def get_llm_router() -> LLMRouter:
    global _router_instance
    if _router_instance is None:
        _router_instance = LLMRouter()
    return _router_instance
