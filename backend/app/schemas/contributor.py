from typing import List

from app.schemas.base import CamelModel


class ContributorItem(CamelModel):
    id: str
    name: str
    department: str
    year: int
    reputation_score: int
    contribution_count: int
    accepted_answers_count: int
    answered_my_questions_count: int
    is_online: bool
    last_seen: str


class ContributorListResponse(CamelModel):
    users: List[ContributorItem]


class LeaderboardEntry(CamelModel):
    rank: int
    id: str
    name: str
    department: str
    year: int
    contribution_count: int
    likes_received: int


class LeaderboardResponse(CamelModel):
    entries: List[LeaderboardEntry]
