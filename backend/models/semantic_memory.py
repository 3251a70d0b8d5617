from sqlalchemy import Column, String, Text, DateTime, JSON, Index
from database import Base
from models._common import new_id, utcnow


class SemanticMemory(Base):
    __tablename__ = "semantic_memories"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False)
    content = Column(Text, nullable=False)
    # pgvector column on Supabase; a JSON float list on the local SQL backend
    embedding = Column(JSON, nullable=False)
    source_chat_id = Column(String(36), nullable=True)
    source_message_id = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("ix_semantic_memories_user_created", "user_id", "created_at"),
    )
