from sqlalchemy import Column, String, DateTime
from database import Base
from models._common import utcnow


class Profile(Base):
    __tablename__ = "profiles"

    # Same id as the auth user
    id = Column(String(36), primary_key=True)
    email = Column(String(320), nullable=True)
    name = Column(String(200), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    role = Column(String(20), default="user")  # user/admin
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
