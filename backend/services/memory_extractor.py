"""
memory_extractor.py — Mines user messages for durable memories.
Asks the completion endpoint for a compact JSON payload, validates it against
a strict schema, then writes facts and an optional semantic summary. Runs in
the background: every failure stops at this boundary and is only logged.
"""

import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from config import EXTRACTION_MODEL, SEMANTIC_DUPLICATE_THRESHOLD
from exceptions import ExtractionError
from schemas import MemoryCategory

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """Analyze this {role} message and extract any important facts, preferences, or personal information that should be remembered about the user.

Message: "{message}"

Return ONLY valid JSON in this format:
{{
  "facts": [{{"key": "descriptive_key", "value": "fact_value", "category": "fact|preference|skill|context"}}],
  "should_remember": boolean,
  "semantic_summary": "brief summary if worth remembering semantically"
}}

Rules:
- Keys are short snake_case descriptions (e.g. "favorite_language", "home_city").
- category must be exactly one of: fact, preference, skill, context.
- Only extract information that would be useful for future conversations.
- If nothing is significant, return {{"facts": [], "should_remember": false, "semantic_summary": ""}}."""

# Extraction output is compact structured data: keep it cheap and near-deterministic
EXTRACTION_MAX_TOKENS = 300
EXTRACTION_TEMPERATURE = 0.1


class ExtractedFact(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, coerce_numbers_to_str=True)

    key: str = Field(min_length=1, max_length=200)
    value: str = Field(min_length=1)
    category: MemoryCategory


class ExtractionPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    facts: list[ExtractedFact] = Field(default_factory=list)
    should_remember: bool = False
    semantic_summary: str = ""


def parse_extraction(content: str) -> ExtractionPayload:
    """Validate raw model output. Markdown code fences are tolerated; anything else invalid raises."""
    text = (content or "").strip()
    if text.startswith("```"):
        lines = [line for line in text.splitlines() if not line.strip().startswith("```")]
        text = "\n".join(lines).strip()
    if not text:
        raise ExtractionError("Empty extraction response")
    try:
        return ExtractionPayload.model_validate_json(text)
    except ValidationError as e:
        raise ExtractionError(f"Invalid extraction payload: {e.error_count()} error(s)") from e


class MemoryExtractor:
    """Turns one conversational message into zero or more memory writes."""

    def __init__(
        self,
        llm_router,
        memory_service,
        semantic_store,
        embedder,
        model: str = EXTRACTION_MODEL,
        duplicate_threshold: float = SEMANTIC_DUPLICATE_THRESHOLD,
    ):
        self.llm = llm_router
        self.memory = memory_service
        self.semantic = semantic_store
        self.embedder = embedder
        self.model = model
        self.duplicate_threshold = duplicate_threshold

    async def extract(self, message: str, role: str = "user") -> ExtractionPayload:
        """One completion call, parsed and validated. Raises CompletionError or ExtractionError."""
        prompt = EXTRACTION_PROMPT.format(role=role, message=message.strip())
        content = await self.llm.complete(
            [{"role": "user", "content": prompt}],
            model=self.model,
            max_tokens=EXTRACTION_MAX_TOKENS,
            temperature=EXTRACTION_TEMPERATURE,
        )
        return parse_extraction(content)

    async def extract_memories_from_message(
        self,
        user_id: str,
        message: str,
        role: str,
        chat_id: str | None = None,
        message_id: str | None = None,
    ) -> None:
        # Only the user's own messages are mined; assistant output is never treated as a fact source
        if role != "user" or not (message or "").strip():
            return

        try:
            payload = await self.extract(message, role)
        except ExtractionError as e:
            logger.warning(f"Memory extraction abandoned for user {user_id}: {e}")
            return
        except Exception as e:
            logger.error(f"Memory extraction call failed for user {user_id}: {e}")
            return

        for fact in payload.facts:
            try:
                await self.memory.set_memory(user_id, fact.key, fact.value, fact.category)
            except Exception as e:
                logger.warning(f"Could not save fact '{fact.key}' for user {user_id}: {e}")

        if payload.should_remember and payload.semantic_summary:
            try:
                await self._remember(user_id, payload.semantic_summary, chat_id, message_id)
            except Exception as e:
                logger.error(f"Could not save semantic memory for user {user_id}: {e}")

    async def _remember(self, user_id: str, summary: str, chat_id: str | None, message_id: str | None):
        embedding = await self.embedder.embed(summary)

        duplicates = await self.semantic.search(user_id, embedding, threshold=self.duplicate_threshold, limit=1)
        if duplicates:
            logger.debug(f"Skipping near-duplicate semantic memory for user {user_id}")
            return

        await self.semantic.add(user_id, summary, embedding, chat_id, message_id)
        try:
            await self.semantic.prune(user_id)
        except Exception as e:
            logger.warning(f"Semantic memory prune failed for user {user_id}: {e}")
