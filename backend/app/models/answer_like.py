from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class AnswerLike(Base):
    """
    A user's like on an answer.

    Existence of the row is the only record of the like; the unique
    constraint makes a concurrent second insert fail instead of double counting.
    """
    __tablename__ = "answer_likes"
    __table_args__ = (
        UniqueConstraint("answer_id", "user_id", name="uq_answer_likes_answer_user"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    answer_id = Column(GUID, ForeignKey("answers.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
