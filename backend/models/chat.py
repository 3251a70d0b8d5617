from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime
from database import Base
from models._common import new_id, utcnow


class Chat(Base):
    __tablename__ = "chats"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    folder_id = Column(String(36), nullable=True)
    title = Column(String(300), nullable=False, default="New Chat")
    description = Column(Text, nullable=True)
    type = Column(String(20), default="general")  # general/search/canvas/document
    is_pinned = Column(Boolean, default=False)
    is_archived = Column(Boolean, default=False)
    is_shared = Column(Boolean, default=False)
    share_token = Column(String(100), nullable=True)
    model_name = Column(String(100), nullable=True)
    message_count = Column(Integer, default=0)
    last_message_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
