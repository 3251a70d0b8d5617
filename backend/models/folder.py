from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime
from database import Base
from models._common import new_id, utcnow


class Folder(Base):
    __tablename__ = "folders"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    parent_id = Column(String(36), nullable=True)
    color = Column(String(20), default="#6B7280")
    icon = Column(String(50), default="folder")
    sort_order = Column(Integer, default=0)
    is_archived = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
