from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, JSON
from database import Base
from models._common import new_id, utcnow


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_id)
    chat_id = Column(String(36), nullable=False, index=True)
    message_role = Column(String(20), nullable=False)  # user/assistant/system
    content = Column(Text, nullable=False)
    attachments = Column(JSON, nullable=True)
    model_name = Column(String(100), nullable=True)
    tokens_input = Column(Integer, default=0)
    tokens_output = Column(Integer, default=0)
    is_edited = Column(Boolean, default=False)
    is_deleted = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
