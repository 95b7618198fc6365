from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Enum as SQLEnum
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class ReputationEventType(str, enum.Enum):
    ASK = "ask"
    ANSWER = "answer"
    ACCEPT = "accept"
    UNACCEPT = "unaccept"
    LIKE = "like"
    UNLIKE = "unlike"


class ReputationEvent(Base):
    """
    Append-only log of reputation deltas.

    The counters on User are a projection of this table: summing the deltas
    for a user reproduces reputation_score, contribution_count and
    accepted_answers_count.
    """
    __tablename__ = "reputation_events"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)
    event_type = Column(SQLEnum(ReputationEventType), nullable=False)

    reputation_delta = Column(Integer, default=0, nullable=False)
    contribution_delta = Column(Integer, default=0, nullable=False)
    accepted_delta = Column(Integer, default=0, nullable=False)

    question_id = Column(GUID, nullable=True, index=True)
    answer_id = Column(GUID, nullable=True, index=True)
    actor_id = Column(GUID, nullable=True)  # user whose action caused the event

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<ReputationEvent {self.event_type} {self.user_id} {self.reputation_delta:+d}>"
