# Re-export all models for convenient imports
from app.models.user import User
from app.models.question import Question, QuestionCategory
from app.models.answer import Answer
from app.models.answer_like import AnswerLike
from app.models.tag import Tag
from app.models.reputation_event import ReputationEvent, ReputationEventType

__all__ = [
    "User",
    # Content
    "Question",
    "QuestionCategory",
    "Answer",
    "AnswerLike",
    "Tag",
    # Reputation
    "ReputationEvent",
    "ReputationEventType",
]
