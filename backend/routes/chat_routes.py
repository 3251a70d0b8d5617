import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from auth import get_current_user
from database import get_store
from services.folder_service import folder_belongs_to

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chats", tags=["Chats"])

MESSAGE_ROLES = ("user", "assistant", "system")


# ── Pydantic schemas ──────────────────────────────────────────────
class ChatCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = "New Chat"
    folder_id: Optional[str] = Field(default=None, alias="folderId")
    type: str = "general"


class ChatUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    folder_id: Optional[str] = Field(default=None, alias="folderId")
    is_pinned: Optional[bool] = Field(default=None, alias="isPinned")


class MessageCreate(BaseModel):
    content: str = ""
    role: str = "user"
    attachments: Optional[list[dict]] = None


async def _owned_chat(store, chat_id: str, user_id: str) -> dict:
    rows = await store.select("chats", filters={"id": chat_id, "user_id": user_id}, limit=1)
    if not rows:
        raise HTTPException(status_code=404, detail="Chat not found")
    return rows[0]


# ── Chats ─────────────────────────────────────────────────────────
@router.get("")
async def list_chats(
    folder_id: Optional[str] = Query(default=None, alias="folderId"),
    user_id: str = Depends(get_current_user),
    store=Depends(get_store),
):
    """Active chats, most recent activity first. folderId=null selects chats at the root."""
    filters = {"user_id": user_id, "is_archived": False}
    if folder_id is not None:
        filters["folder_id"] = None if folder_id == "null" else folder_id
    try:
        chats = await store.select("chats", filters=filters, order="last_message_at.desc.nullslast")
        return {"chats": chats}
    except Exception as e:
        logger.error(f"Error fetching chats: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch chats")


@router.post("")
async def create_chat(body: ChatCreate, user_id: str = Depends(get_current_user), store=Depends(get_store)):
    try:
        if body.folder_id and not await folder_belongs_to(store, body.folder_id, user_id):
            raise HTTPException(status_code=404, detail="Folder not found")
        chat = await store.insert("chats", {
            "user_id": user_id,
            "title": body.title,
            "folder_id": body.folder_id or None,
            "type": body.type,
        })
        logger.info(f"Chat {chat.get('id')} created for user {user_id}")
        return {"chat": chat}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating chat: {e}")
        raise HTTPException(status_code=500, detail="Failed to create chat")


@router.get("/{chat_id}")
async def get_chat(chat_id: str, user_id: str = Depends(get_current_user), store=Depends(get_store)):
    try:
        return {"chat": await _owned_chat(store, chat_id, user_id)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching chat {chat_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.put("/{chat_id}")
async def update_chat(
    chat_id: str,
    body: ChatUpdate,
    user_id: str = Depends(get_current_user),
    store=Depends(get_store),
):
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        return {"chat": await _owned_chat(store, chat_id, user_id)}
    folder_id = changes.get("folder_id")
    try:
        if folder_id and not await folder_belongs_to(store, folder_id, user_id):
            raise HTTPException(status_code=404, detail="Folder not found")
        rows = await store.update("chats", {"id": chat_id, "user_id": user_id}, changes)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating chat {chat_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update chat")
    if not rows:
        raise HTTPException(status_code=404, detail="Chat not found")
    return {"chat": rows[0]}


@router.delete("/{chat_id}")
async def delete_chat(chat_id: str, user_id: str = Depends(get_current_user), store=Depends(get_store)):
    """Archive the chat; its messages stay in place."""
    try:
        await store.update("chats", {"id": chat_id, "user_id": user_id}, {"is_archived": True})
        return {"success": True}
    except Exception as e:
        logger.error(f"Error deleting chat {chat_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete chat")


# ── Messages ──────────────────────────────────────────────────────
@router.get("/{chat_id}/messages")
async def list_messages(chat_id: str, user_id: str = Depends(get_current_user), store=Depends(get_store)):
    await _owned_chat(store, chat_id, user_id)
    try:
        messages = await store.select(
            "messages",
            filters={"chat_id": chat_id, "is_deleted": False},
            order="created_at.asc",
        )
        return {"messages": messages}
    except Exception as e:
        logger.error(f"Error fetching messages for chat {chat_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch messages")


@router.post("/{chat_id}/messages")
async def create_message(
    chat_id: str,
    body: MessageCreate,
    user_id: str = Depends(get_current_user),
    store=Depends(get_store),
):
    await _owned_chat(store, chat_id, user_id)
    if not body.content.strip():
        raise HTTPException(status_code=400, detail="Message content is required")
    if body.role not in MESSAGE_ROLES:
        raise HTTPException(status_code=400, detail="Invalid message role")

    try:
        message = await store.insert("messages", {
            "chat_id": chat_id,
            "content": body.content.strip(),
            "message_role": body.role,
            "attachments": body.attachments,
        })
        await store.update(
            "chats",
            {"id": chat_id, "user_id": user_id},
            {"last_message_at": datetime.now(timezone.utc).isoformat()},
        )
        return {"message": message}
    except Exception as e:
        logger.error(f"Error creating message in chat {chat_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to create message")
