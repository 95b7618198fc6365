"""
Unit Tests for the reputation ledger and contributor presence helpers
"""
import uuid
import pytest
from datetime import datetime, timedelta
from sqlalchemy import select, update

from app.core.exceptions import UserNotFoundError
from app.models.reputation_event import ReputationEvent, ReputationEventType
from app.models.user import User
from app.services.contributor_service import format_last_seen, is_online
from app.services.reputation_ledger import POINT_SCHEDULE, ReputationTotals, reputation_ledger
from conftest import reload_user


class TestPointSchedule:

    @pytest.mark.parametrize("event_type,reputation,contributions,accepted", [
        (ReputationEventType.ASK, 2, 0, 0),
        (ReputationEventType.ANSWER, 5, 1, 0),
        (ReputationEventType.ACCEPT, 15, 0, 1),
        (ReputationEventType.UNACCEPT, -15, 0, -1),
        (ReputationEventType.LIKE, 2, 0, 0),
        (ReputationEventType.UNLIKE, -2, 0, 0),
    ])
    def test_rules(self, event_type, reputation, contributions, accepted):
        rule = POINT_SCHEDULE[event_type]

        assert (rule.reputation, rule.contributions, rule.accepted) == (reputation, contributions, accepted)

    def test_reversals_cancel(self):
        for forward, backward in [
            (ReputationEventType.ACCEPT, ReputationEventType.UNACCEPT),
            (ReputationEventType.LIKE, ReputationEventType.UNLIKE),
        ]:
            assert POINT_SCHEDULE[forward].reputation + POINT_SCHEDULE[backward].reputation == 0
            assert POINT_SCHEDULE[forward].accepted + POINT_SCHEDULE[backward].accepted == 0


class TestReputationLedger:

    @pytest.mark.asyncio
    async def test_apply_updates_counters_and_logs(self, db_session, make_user):
        user = await make_user()

        event = await reputation_ledger.apply(
            db_session, user.id, ReputationEventType.ANSWER, actor_id=user.id
        )
        await db_session.commit()

        row = await reload_user(db_session, user.id)
        assert (row.reputation_score, row.contribution_count) == (5, 1)
        assert event.reputation_delta == 5
        assert event.contribution_delta == 1
        assert event.user_id == user.id

    @pytest.mark.asyncio
    async def test_apply_does_not_commit(self, db_session, make_user):
        user = await make_user()

        await reputation_ledger.apply(db_session, user.id, ReputationEventType.ACCEPT)
        await db_session.rollback()

        row = await reload_user(db_session, user.id)
        assert row.reputation_score == 0
        events = (await db_session.execute(select(ReputationEvent))).scalars().all()
        assert events == []

    @pytest.mark.asyncio
    async def test_apply_unknown_user(self, db_session):
        with pytest.raises(UserNotFoundError):
            await reputation_ledger.apply(db_session, str(uuid.uuid4()), ReputationEventType.ASK)
        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_totals_from_log(self, db_session, make_user):
        user = await make_user()
        for event_type in [
            ReputationEventType.ASK,
            ReputationEventType.ANSWER,
            ReputationEventType.ACCEPT,
            ReputationEventType.LIKE,
            ReputationEventType.UNLIKE,
        ]:
            await reputation_ledger.apply(db_session, user.id, event_type)
        await db_session.commit()

        totals = await reputation_ledger.totals_from_log(db_session, user.id)

        assert totals == ReputationTotals(reputation_score=22, contribution_count=1, accepted_answers_count=1)

    @pytest.mark.asyncio
    async def test_totals_from_empty_log(self, db_session, make_user):
        user = await make_user()

        assert await reputation_ledger.totals_from_log(db_session, user.id) == ReputationTotals()

    @pytest.mark.asyncio
    async def test_recompute_repairs_drift(self, db_session, make_user):
        user = await make_user()
        await reputation_ledger.apply(db_session, user.id, ReputationEventType.ANSWER)
        await reputation_ledger.apply(db_session, user.id, ReputationEventType.ACCEPT)
        await db_session.commit()

        await db_session.execute(update(User).where(User.id == user.id).values(reputation_score=999))
        await db_session.commit()

        totals = await reputation_ledger.recompute(db_session, user.id)

        row = await reload_user(db_session, user.id)
        assert totals.reputation_score == 20
        assert (row.reputation_score, row.contribution_count, row.accepted_answers_count) == (20, 1, 1)

    @pytest.mark.asyncio
    async def test_find_accept_recipient(self, db_session, make_user):
        first = await make_user()
        second = await make_user()
        answer_id = str(uuid.uuid4())
        await reputation_ledger.apply(db_session, first.id, ReputationEventType.LIKE, answer_id=answer_id)
        await reputation_ledger.apply(db_session, second.id, ReputationEventType.ACCEPT, answer_id=answer_id)
        await db_session.commit()

        assert await reputation_ledger.find_accept_recipient(db_session, answer_id) == second.id
        assert await reputation_ledger.find_accept_recipient(db_session, str(uuid.uuid4())) is None

    @pytest.mark.asyncio
    async def test_recent_events_newest_first(self, db_session, make_user):
        user = await make_user()
        await reputation_ledger.apply(db_session, user.id, ReputationEventType.ASK)
        await db_session.commit()
        await reputation_ledger.apply(db_session, user.id, ReputationEventType.ANSWER)
        await db_session.commit()

        events = await reputation_ledger.recent_events(db_session, user.id, limit=1)

        assert [e.event_type for e in events] == [ReputationEventType.ANSWER]


class TestPresence:
    now = datetime(2024, 3, 1, 12, 0, 0)

    @pytest.mark.parametrize("delta,expected", [
        (timedelta(seconds=30), "Just now"),
        (timedelta(minutes=7), "7m ago"),
        (timedelta(hours=2, minutes=59), "2h ago"),
        (timedelta(days=3), "3d ago"),
    ])
    def test_format_last_seen(self, delta, expected):
        assert format_last_seen(self.now - delta, self.now) == expected

    def test_never_seen(self):
        assert format_last_seen(None, self.now) == "Not seen recently"
        assert is_online(None, self.now) is False

    def test_online_window(self):
        assert is_online(self.now - timedelta(minutes=9), self.now) is True
        assert is_online(self.now - timedelta(minutes=10), self.now) is False
