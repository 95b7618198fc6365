"""
Contributor Service - contributors directory and likes leaderboard
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.answer import Answer
from app.models.question import Question
from app.models.user import User
from app.schemas.contributor import ContributorItem, LeaderboardEntry

CONTRIBUTOR_LIMIT = 50
ONLINE_WINDOW = timedelta(minutes=10)

SORT_ORDERS = {
    "reputation": (User.reputation_score.desc(), User.accepted_answers_count.desc()),
    "accepted": (User.accepted_answers_count.desc(), User.reputation_score.desc()),
    "contributions": (User.contribution_count.desc(), User.reputation_score.desc()),
}


def format_last_seen(last_active_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    if last_active_at is None:
        return "Not seen recently"
    now = now or datetime.utcnow()
    seconds = (now - last_active_at).total_seconds()
    if seconds < 60:
        return "Just now"
    if seconds < 3600:
        return f"{int(seconds // 60)}m ago"
    if seconds < 86400:
        return f"{int(seconds // 3600)}h ago"
    return f"{int(seconds // 86400)}d ago"


def is_online(last_active_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if last_active_at is None:
        return False
    now = now or datetime.utcnow()
    return now - last_active_at < ONLINE_WINDOW


class ContributorService:

    async def list_contributors(
        self,
        db: AsyncSession,
        viewer_id: str,
        sort_by: Optional[str] = None,
        year: Optional[int] = None,
    ) -> List[ContributorItem]:
        """
        Top contributors, optionally filtered by year.

        Unknown sort keys fall back to reputation; years outside 1..4 are ignored.
        """
        order = SORT_ORDERS.get(sort_by or "reputation", SORT_ORDERS["reputation"])
        stmt = select(User)
        if year in (1, 2, 3, 4):
            stmt = stmt.where(User.year == year)
        stmt = stmt.order_by(*order).limit(CONTRIBUTOR_LIMIT)
        users = (await db.execute(stmt.execution_options(populate_existing=True))).scalars().all()

        answered_mine = await self._answers_on_questions_of(db, viewer_id)

        now = datetime.utcnow()
        return [
            ContributorItem(
                id=u.id,
                name=u.name,
                department=u.department,
                year=u.year,
                reputation_score=u.reputation_score,
                contribution_count=u.contribution_count,
                accepted_answers_count=u.accepted_answers_count,
                answered_my_questions_count=answered_mine.get(u.id, 0),
                is_online=is_online(u.last_active_at, now),
                last_seen=format_last_seen(u.last_active_at, now),
            )
            for u in users
        ]

    async def _answers_on_questions_of(self, db: AsyncSession, user_id: str) -> Dict[str, int]:
        """Answer counts per author, restricted to questions asked by user_id"""
        result = await db.execute(
            select(Answer.author_id, func.count(Answer.id))
            .join(Question, Question.id == Answer.question_id)
            .where(Question.author_id == user_id)
            .group_by(Answer.author_id)
        )
        return {author_id: int(count) for author_id, count in result.all()}

    async def leaderboard(self, db: AsyncSession) -> List[LeaderboardEntry]:
        """All users ranked by likes received on their answers, then contributions"""
        likes = (
            select(Answer.author_id.label("author_id"), func.sum(Answer.likes_count).label("total_likes"))
            .group_by(Answer.author_id)
            .subquery()
        )
        likes_received = func.coalesce(likes.c.total_likes, 0)

        result = await db.execute(
            select(User.id, User.name, User.department, User.year, User.contribution_count, likes_received)
            .outerjoin(likes, likes.c.author_id == User.id)
            .order_by(likes_received.desc(), User.contribution_count.desc())
        )

        return [
            LeaderboardEntry(
                rank=rank,
                id=user_id,
                name=name,
                department=department,
                year=year,
                contribution_count=contributions,
                likes_received=int(total),
            )
            for rank, (user_id, name, department, year, contributions, total) in enumerate(result.all(), start=1)
        ]


contributor_service = ContributorService()
