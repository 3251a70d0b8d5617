# ---------- routes/ai_routes.py ----------
import logging

from fastapi import APIRouter, Depends, HTTPException

from auth import get_current_user
from config import CHAT_MODEL, IS_DEVELOPMENT
from schemas import ChatRequest
from services.chat_service import (
    APOLOGY,
    CHAT_MAX_TOKENS,
    CHAT_SEARCH_RESULTS,
    CHAT_TEMPERATURE,
    build_message_list,
    build_system_prompt,
    build_user_content,
)
from services.llm_router import get_llm_router
from services.memory_manager import get_memory_manager
from services.search_service import SEARCH_UNAVAILABLE_NOTICE, format_search_results, get_web_search
from services.task_queue import get_task_queue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["AI"])


async def _search_block(web_search, query: str) -> str:
    """Search results rendered for the prompt, or a notice when the search is unavailable."""
    try:
        results = await web_search(query, CHAT_SEARCH_RESULTS)
    except Exception as e:
        logger.warning(f"Web search failed, continuing without results: {e}")
        return SEARCH_UNAVAILABLE_NOTICE
    return format_search_results(query, results)


@router.post("/chat")
async def chat(
    body: ChatRequest,
    user_id: str = Depends(get_current_user),
    memory=Depends(get_memory_manager),
    llm_router=Depends(get_llm_router),
    task_queue=Depends(get_task_queue),
    web_search=Depends(get_web_search),
):
    """Answer one chat turn, personalised with the caller's memories."""
    if not body.message.strip() and not body.files:
        raise HTTPException(status_code=400, detail="Message or files are required")

    try:
        search_block = ""
        if body.search_mode and body.message.strip():
            search_block = await _search_block(web_search, body.message)

        user_content = build_user_content(body.message, body.files, search_block)
        memory_context = await memory.get_memory_context(user_id, body.message)
        system_prompt = build_system_prompt(body.canvas_mode, memory_context)
        messages = build_message_list(system_prompt, body.history, user_content)
        logger.debug(f"Chat request for user {user_id}: {len(messages)} messages, context {len(memory_context)} chars")

        text = await llm_router.complete(
            messages,
            model=CHAT_MODEL,
            max_tokens=CHAT_MAX_TOKENS,
            temperature=CHAT_TEMPERATURE,
        )
    except Exception as e:
        logger.error(f"Chat request failed for user {user_id}: {e}")
        detail = {"error": f"Failed to process your request: {e}"}
        if IS_DEVELOPMENT:
            detail["details"] = repr(e)
        raise HTTPException(status_code=500, detail=detail)

    task_queue.submit(
        memory.extract_memories_from_message(user_id, body.message, "user", chat_id=body.chat_id),
        name=f"extract-memories-{user_id}",
    )
    return {"response": text or APOLOGY}
