import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from auth import get_current_user
from services.memory_manager import get_memory_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/memory", tags=["Memory"])


class MemoryCreate(BaseModel):
    key: str = ""
    value: str = ""
    category: str = "fact"


class MemoryDelete(BaseModel):
    key: str = ""


@router.get("")
async def list_memories(
    category: Optional[str] = None,
    user_id: str = Depends(get_current_user),
    memory=Depends(get_memory_manager),
):
    try:
        if category:
            facts = await memory.get_memories_by_category(user_id, category)
        else:
            facts = await memory.get_all_memories(user_id)
        return {"memories": [f.model_dump() for f in facts]}
    except Exception as e:
        logger.error(f"Memory list failed for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("")
async def save_memory(
    body: MemoryCreate,
    user_id: str = Depends(get_current_user),
    memory=Depends(get_memory_manager),
):
    try:
        fact = await memory.set_memory(user_id, body.key, body.value, body.category)
        return {"success": True, "memory": fact.model_dump()}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Memory save failed for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Database error: {e}")


@router.delete("")
async def delete_memory(
    body: MemoryDelete,
    user_id: str = Depends(get_current_user),
    memory=Depends(get_memory_manager),
):
    if not body.key.strip():
        raise HTTPException(status_code=400, detail="Key is required")
    try:
        await memory.delete_memory(user_id, body.key)
        return {"success": True}
    except Exception as e:
        logger.error(f"Memory delete failed for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete memory")
