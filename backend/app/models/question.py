from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Integer, Text, JSON, ForeignKey
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class QuestionCategory(str, enum.Enum):
    """Closed set of question categories"""
    SUBJECTS = "Subjects"
    PLACEMENTS = "Placements"
    EXAMS = "Exams"
    LABS = "Labs"
    PROJECTS = "Projects"
    NSS_ACTIVITIES = "NSS / Activities"


class Question(Base):
    """Question model"""
    __tablename__ = "questions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(160), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(SQLEnum(QuestionCategory), nullable=False, index=True)
    tags = Column(JSON, default=list, nullable=False)

    author_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)

    answers_count = Column(Integer, default=0, nullable=False)
    # Written only by the accept transition; compare-and-set guarded
    accepted_answer_id = Column(GUID, nullable=True)
    likes_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Question {self.id} {self.title[:30]!r}>"
