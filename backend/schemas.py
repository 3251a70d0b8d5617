"""
schemas.py — Typed records shared by services and routes.
Rows coming back from the backing store are plain dicts; services convert
them into these models at the boundary.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

MemoryCategory = Literal["preference", "fact", "context", "skill"]
MEMORY_CATEGORIES = ("preference", "fact", "context", "skill")


class Fact(BaseModel):
    """A durable key/value memory owned by one user."""

    id: Optional[str] = None
    user_id: str
    key: str
    value: str
    category: MemoryCategory = "fact"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class SemanticMemoryEntry(BaseModel):
    """An embedded free-text memory, retrievable by similarity."""

    id: Optional[str] = None
    user_id: str
    content: str
    embedding: Optional[list[float]] = None
    source_chat_id: Optional[str] = None
    source_message_id: Optional[str] = None
    similarity: Optional[float] = None
    created_at: Optional[str] = None


class FileAttachment(BaseModel):
    """A file sent alongside a chat message. `content` is already-extracted text."""

    id: Optional[str] = None
    name: str
    type: str = ""
    size: int = 0
    url: Optional[str] = None
    content: Optional[str] = None


class ChatTurn(BaseModel):
    role: str
    content: str = ""


class SearchResult(BaseModel):
    title: str
    url: str = ""
    snippet: str = ""
    content: Optional[str] = None


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = ""
    files: list[FileAttachment] = Field(default_factory=list)
    search_mode: bool = Field(default=False, alias="searchMode")
    canvas_mode: bool = Field(default=False, alias="canvasMode")
    history: list[ChatTurn] = Field(default_factory=list)
    chat_id: Optional[str] = Field(default=None, alias="chatId")
