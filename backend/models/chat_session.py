"""Chat session model definitions."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid, func

from backend.database import Base


class ChatSession(Base):
    """A conversation opened between a student and a counselor."""
    __tablename__ = "chat_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"))
    counselor_id = Column(Uuid, ForeignKey("users.id"))
    session_type = Column(String, nullable=False, default='ai_chat')
    started_at = Column(DateTime, server_default=func.now())
