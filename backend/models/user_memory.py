from sqlalchemy import Column, String, Text, DateTime, UniqueConstraint, Index
from database import Base
from models._common import new_id, utcnow


class UserMemory(Base):
    __tablename__ = "user_memories"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    key = Column(String(200), nullable=False)
    value = Column(Text, nullable=False)
    category = Column(String(20), nullable=False, default="fact")  # preference/fact/context/skill
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "key", name="uq_user_memories_user_key"),
        Index("ix_user_memories_user_updated", "user_id", "updated_at"),
    )
