"""
Reputation Ledger

Every change to a user's reputation counters goes through ReputationLedger.apply,
which performs an atomic in-store increment on the users row and appends a
ReputationEvent in the same transaction. The ledger never commits; the caller
owns the transaction so the counter change lands together with the content
change that caused it.

Point schedule:

    ask       +2
    answer    +5   contribution_count +1
    accept    +15  accepted_answers_count +1
    unaccept  -15  accepted_answers_count -1
    like      +2
    unlike    -2
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import UserNotFoundError
from app.core.logging_config import logger
from app.models.reputation_event import ReputationEvent, ReputationEventType
from app.models.user import User


@dataclass(frozen=True)
class PointRule:
    reputation: int
    contributions: int = 0
    accepted: int = 0


POINT_SCHEDULE: Dict[ReputationEventType, PointRule] = {
    ReputationEventType.ASK: PointRule(reputation=2),
    ReputationEventType.ANSWER: PointRule(reputation=5, contributions=1),
    ReputationEventType.ACCEPT: PointRule(reputation=15, accepted=1),
    ReputationEventType.UNACCEPT: PointRule(reputation=-15, accepted=-1),
    ReputationEventType.LIKE: PointRule(reputation=2),
    ReputationEventType.UNLIKE: PointRule(reputation=-2),
}


@dataclass
class ReputationTotals:
    reputation_score: int = 0
    contribution_count: int = 0
    accepted_answers_count: int = 0


class ReputationLedger:
    """Applies point events to users and keeps the event log"""

    async def apply(
        self,
        db: AsyncSession,
        user_id: str,
        event_type: ReputationEventType,
        question_id: Optional[str] = None,
        answer_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> ReputationEvent:
        """
        Apply one scheduled event to a user.

        Args:
            db: Session with an open transaction (not committed here)
            user_id: User whose counters change
            event_type: Which rule of the point schedule to apply
            question_id, answer_id: Content the event refers to
            actor_id: User whose action triggered the event

        Raises:
            UserNotFoundError: the user row does not exist
        """
        rule = POINT_SCHEDULE[event_type]

        values = {"reputation_score": User.reputation_score + rule.reputation}
        if rule.contributions:
            values["contribution_count"] = User.contribution_count + rule.contributions
        if rule.accepted:
            values["accepted_answers_count"] = User.accepted_answers_count + rule.accepted

        result = await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise UserNotFoundError(user_id)

        event = ReputationEvent(
            user_id=user_id,
            event_type=event_type,
            reputation_delta=rule.reputation,
            contribution_delta=rule.contributions,
            accepted_delta=rule.accepted,
            question_id=question_id,
            answer_id=answer_id,
            actor_id=actor_id,
        )
        db.add(event)
        await db.flush()

        logger.log_reputation_event(
            event_type.value,
            user_id,
            rule.reputation,
            question_id=question_id,
            answer_id=answer_id,
            actor_id=actor_id,
        )
        return event

    async def totals_from_log(self, db: AsyncSession, user_id: str) -> ReputationTotals:
        """Sum the event log for a user"""
        result = await db.execute(
            select(
                func.coalesce(func.sum(ReputationEvent.reputation_delta), 0),
                func.coalesce(func.sum(ReputationEvent.contribution_delta), 0),
                func.coalesce(func.sum(ReputationEvent.accepted_delta), 0),
            ).where(ReputationEvent.user_id == user_id)
        )
        reputation, contributions, accepted = result.one()
        return ReputationTotals(
            reputation_score=int(reputation),
            contribution_count=int(contributions),
            accepted_answers_count=int(accepted),
        )

    async def recompute(self, db: AsyncSession, user_id: str) -> ReputationTotals:
        """
        Rebuild a user's counters from the event log.

        Used to repair the projection after drift. Commits.
        """
        totals = await self.totals_from_log(db, user_id)
        result = await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                reputation_score=totals.reputation_score,
                contribution_count=totals.contribution_count,
                accepted_answers_count=totals.accepted_answers_count,
            )
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            await db.rollback()
            raise UserNotFoundError(user_id)
        await db.commit()

        logger.info(
            f"Recomputed reputation for {user_id}: {totals.reputation_score}",
            extra={"event_type": "reputation_recompute", "reputation_user_id": user_id}
        )
        return totals

    async def recent_events(self, db: AsyncSession, user_id: str, limit: int = 50) -> List[ReputationEvent]:
        result = await db.execute(
            select(ReputationEvent)
            .where(ReputationEvent.user_id == user_id)
            .order_by(ReputationEvent.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def find_accept_recipient(self, db: AsyncSession, answer_id: str) -> Optional[str]:
        """User credited by the latest accept event for an answer, if any"""
        result = await db.execute(
            select(ReputationEvent.user_id)
            .where(
                ReputationEvent.answer_id == answer_id,
                ReputationEvent.event_type == ReputationEventType.ACCEPT,
            )
            .order_by(ReputationEvent.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


reputation_ledger = ReputationLedger()
