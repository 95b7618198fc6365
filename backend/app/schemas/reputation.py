from typing import List, Optional
from datetime import datetime

from app.models.reputation_event import ReputationEventType
from app.schemas.base import CamelModel


class ReputationTotals(CamelModel):
    reputation_score: int
    contribution_count: int
    accepted_answers_count: int


class ReputationEventItem(CamelModel):
    id: str
    event_type: ReputationEventType
    reputation_delta: int
    contribution_delta: int
    accepted_delta: int
    question_id: Optional[str] = None
    answer_id: Optional[str] = None
    actor_id: Optional[str] = None
    created_at: datetime


class ReputationSummaryResponse(CamelModel):
    projection: ReputationTotals
    from_log: ReputationTotals
    consistent: bool
    events: List[ReputationEventItem]
