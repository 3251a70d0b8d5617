"""
key_manager.py — API Key Rotation Manager
Manages multiple API keys per completion provider with round-robin rotation,
rate-limit exhaustion tracking, and automatic daily resets.
"""

from datetime import datetime, timezone, date

from config import OPENAI_API_KEYS, GROQ_API_KEYS, OPENROUTER_API_KEYS


def default_provider_keys() -> dict[str, list[str]]:
    return {
        "openai": OPENAI_API_KEYS,
        "groq": GROQ_API_KEYS,
        "openrouter": OPENROUTER_API_KEYS,
    }


class KeyManager:
    """Round-robin API key rotation with exhaustion tracking."""

    def __init__(self, provider_keys: dict[str, list[str]] | None = None):
        self._current_index: dict[str, int] = {}
        self._last_reset: date = date.today()
        self.keys: dict[str, list[dict]] = {}

        for provider, raw_keys in (provider_keys or default_provider_keys()).items():
            self.keys[provider] = [
                {
                    "key": k,
                    "is_exhausted": False,
                    "requests_today": 0,
                    "last_used": None,
                    "exhausted_at": None,
                }
                for k in raw_keys
            ]
            self._current_index[provider] = 0

    def _maybe_reset(self):
        """Un-exhaust every key once per calendar day."""
        today = date.today()
        if today == self._last_reset:
            return
        for entries in self.keys.values():
            for entry in entries:
                entry["is_exhausted"] = False
                entry["requests_today"] = 0
                entry["exhausted_at"] = None
        self._last_reset = today

    def get_next_key(self, provider: str) -> str | None:
        """Return the next non-exhausted key for a provider, or None if all are spent."""
        self._maybe_reset()
        entries = self.keys.get(provider, [])
        if not entries:
            return None

        start = self._current_index.get(provider, 0)
        for offset in range(len(entries)):
            idx = (start + offset) % len(entries)
            entry = entries[idx]
            if entry["is_exhausted"]:
                continue
            entry["requests_today"] += 1
            entry["last_used"] = datetime.now(timezone.utc).isoformat()
            self._current_index[provider] = (idx + 1) % len(entries)
            return entry["key"]
        return None

    def mark_exhausted_by_value(self, provider: str, api_key: str):
        """Take a rate-limited key out of rotation until the next daily reset."""
        for entry in self.keys.get(provider, []):
            if entry["key"] == api_key:
                entry["is_exhausted"] = True
                entry["exhausted_at"] = datetime.now(timezone.utc).isoformat()

    def get_active_key_count(self, provider: str) -> int:
        self._maybe_reset()
        return sum(1 for e in self.keys.get(provider, []) if not e["is_exhausted"])
