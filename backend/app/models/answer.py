from sqlalchemy import Column, Boolean, DateTime, Integer, Text, ForeignKey
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class Answer(Base):
    """Answer model"""
    __tablename__ = "answers"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    question_id = Column(GUID, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)
    body = Column(Text, nullable=False)

    is_accepted = Column(Boolean, default=False, nullable=False)
    likes_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Answer {self.id} on {self.question_id}>"
