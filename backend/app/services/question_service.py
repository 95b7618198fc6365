"""
Question Service - questions, answers, accept and like

Handles:
- Asking and answering (membership gated, reputation rewarded)
- The accept-answer transition, run as one transaction with a
  compare-and-set on the question's accepted-answer pointer
- The like toggle, backed by the unique (answer_id, user_id) constraint and
  retried when a concurrent toggle wins the race
- Listing and detail reads
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, update, delete, exists, func, or_, cast, String
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AcceptConflictError,
    AnswerNotFoundError,
    ConflictError,
    JoinRequiredError,
    NotQuestionOwnerError,
    QuestionNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from app.core.logging_config import logger
from app.core.types import generate_uuid, is_valid_uuid
from app.models.answer import Answer
from app.models.answer_like import AnswerLike
from app.models.question import Question, QuestionCategory
from app.models.reputation_event import ReputationEventType
from app.models.tag import Tag
from app.models.user import User
from app.schemas.question import (
    AnswerAuthor,
    AnswerCreate,
    AnswerItem,
    AuthorBrief,
    QuestionCreate,
    QuestionDetail,
    QuestionDetailResponse,
    QuestionListItem,
)
from app.services.reputation_ledger import reputation_ledger

LIST_LIMIT = 50
PREVIEW_CHARS = 160
LIKE_MAX_ATTEMPTS = 3

_CATEGORY_VALUES = {c.value for c in QuestionCategory}


class _LikeVanished(Exception):
    """The like row was removed by someone else between read and delete"""


def ensure_joined(user: User, action: str) -> None:
    if not user.joined_community:
        raise JoinRequiredError(action)


def require_valid_id(value: str, field: str, label: str) -> str:
    if not is_valid_uuid(value):
        raise ValidationError(f"Invalid {label} id", field=field)
    return value


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class QuestionService:
    """Question/answer aggregate operations"""

    # ==================== WRITES ====================

    async def create_question(self, db: AsyncSession, author: User, data: QuestionCreate) -> Question:
        ensure_joined(author, "posting")
        author_id = author.id

        try:
            question = Question(
                title=data.title,
                description=data.description,
                category=data.category,
                tags=data.tags,
                author_id=author_id,
            )
            db.add(question)
            await db.flush()

            if data.tags:
                await self._count_tag_usage(db, data.tags)

            await reputation_ledger.apply(
                db, author_id, ReputationEventType.ASK,
                question_id=question.id, actor_id=author_id,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            f"Question {question.id} created by {author_id}",
            extra={"event_type": "question_created", "question_id": question.id}
        )
        return question

    async def create_answer(
        self,
        db: AsyncSession,
        author: User,
        question_id: str,
        data: AnswerCreate,
    ) -> Answer:
        require_valid_id(question_id, "id", "question")
        author_id = author.id

        try:
            question = await self._get_question(db, question_id)
            ensure_joined(author, "answering")

            answer = Answer(question_id=question.id, author_id=author_id, body=data.body)
            db.add(answer)
            await db.flush()

            await db.execute(
                update(Question)
                .where(Question.id == question_id)
                .values(answers_count=Question.answers_count + 1)
                .execution_options(synchronize_session="fetch")
            )
            await reputation_ledger.apply(
                db, author_id, ReputationEventType.ANSWER,
                question_id=question_id, answer_id=answer.id, actor_id=author_id,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        return answer

    async def accept_answer(self, db: AsyncSession, user_id: str, question_id: str, answer_id: str) -> bool:
        """
        Mark an answer as the accepted one for its question.

        Un-accepting the previous answer, flipping the flags, moving the
        pointer and both reputation adjustments commit together or not at
        all. Returns False when the answer was already accepted.

        Raises:
            QuestionNotFoundError, NotQuestionOwnerError, AnswerNotFoundError,
            AcceptConflictError (pointer moved under us; safe to retry)
        """
        require_valid_id(question_id, "questionId", "question")
        require_valid_id(answer_id, "answerId", "answer")

        try:
            question = await self._get_question(db, question_id, for_update=True)
            if question.author_id != user_id:
                raise NotQuestionOwnerError()

            answer = await self._get_answer_for_question(db, question_id, answer_id, for_update=True)
            previous_id = question.accepted_answer_id

            if previous_id == answer_id:
                await db.commit()
                return False

            if previous_id:
                await self._unaccept(db, user_id, question_id, previous_id)

            answer.is_accepted = True
            await db.flush()

            pointer_unchanged = (
                Question.accepted_answer_id == previous_id
                if previous_id
                else Question.accepted_answer_id.is_(None)
            )
            result = await db.execute(
                update(Question)
                .where(Question.id == question_id, pointer_unchanged)
                .values(accepted_answer_id=answer_id, updated_at=datetime.utcnow())
                .execution_options(synchronize_session="fetch")
            )
            if result.rowcount != 1:
                raise AcceptConflictError(question_id)

            await reputation_ledger.apply(
                db, answer.author_id, ReputationEventType.ACCEPT,
                question_id=question_id, answer_id=answer_id, actor_id=user_id,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            f"Answer {answer_id} accepted on {question_id}",
            extra={
                "event_type": "answer_accepted",
                "question_id": question_id,
                "answer_id": answer_id,
                "previous_answer_id": previous_id,
            }
        )
        return True

    async def _unaccept(self, db: AsyncSession, actor_id: str, question_id: str, previous_id: str) -> None:
        result = await db.execute(
            select(Answer)
            .where(Answer.id == previous_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        previous = result.scalar_one_or_none()

        if previous is not None:
            previous.is_accepted = False
            recipient = previous.author_id
        else:
            # Answer row is gone; reverse the credit recorded for it instead
            recipient = await reputation_ledger.find_accept_recipient(db, previous_id)
            logger.warning(
                f"Previously accepted answer {previous_id} missing on {question_id}",
                extra={"event_type": "accept_drift", "question_id": question_id, "answer_id": previous_id}
            )

        if recipient:
            await reputation_ledger.apply(
                db, recipient, ReputationEventType.UNACCEPT,
                question_id=question_id, answer_id=previous_id, actor_id=actor_id,
            )

    async def toggle_like(
        self,
        db: AsyncSession,
        user: User,
        question_id: str,
        answer_id: str,
    ) -> Tuple[bool, int]:
        """
        Like the answer if the user has not, otherwise remove the like.

        Returns (liked, answer likes_count). A unique-constraint violation or
        a vanished like row means a concurrent toggle got there first: the
        transaction is rolled back and the decision is re-read.
        """
        require_valid_id(question_id, "questionId", "question")
        require_valid_id(answer_id, "answerId", "answer")
        user_id = user.id

        for attempt in range(1, LIKE_MAX_ATTEMPTS + 1):
            try:
                answer = await self._get_answer_for_question(db, question_id, answer_id)
                ensure_joined(user, "liking answers")
                author_id = answer.author_id

                existing = await self._find_like(db, answer_id, user_id)
                if existing is None:
                    db.add(AnswerLike(answer_id=answer_id, user_id=user_id))
                    await db.flush()
                    liked, delta, event_type = True, 1, ReputationEventType.LIKE
                else:
                    removed = await db.execute(delete(AnswerLike).where(AnswerLike.id == existing.id))
                    if removed.rowcount == 0:
                        raise _LikeVanished()
                    liked, delta, event_type = False, -1, ReputationEventType.UNLIKE

                await db.execute(
                    update(Answer)
                    .where(Answer.id == answer_id)
                    .values(likes_count=Answer.likes_count + delta)
                    .execution_options(synchronize_session="fetch")
                )
                await reputation_ledger.apply(
                    db, author_id, event_type,
                    question_id=question_id, answer_id=answer_id, actor_id=user_id,
                )
                likes_count = answer.likes_count
                await db.commit()
                return liked, likes_count

            except (IntegrityError, _LikeVanished):
                await db.rollback()
                # Re-load the actor for the next ensure_joined check
                user = await db.get(User, user_id, populate_existing=True)
                if user is None:
                    raise UserNotFoundError(user_id)
                logger.info(
                    f"Like toggle race on {answer_id} (attempt {attempt}), re-reading",
                    extra={"event_type": "like_race", "answer_id": answer_id, "attempt": attempt}
                )
            except Exception:
                await db.rollback()
                raise

        raise ConflictError("Could not update like, please retry", code="LIKE_CONFLICT")

    async def _find_like(self, db: AsyncSession, answer_id: str, user_id: str) -> Optional[AnswerLike]:
        result = await db.execute(
            select(AnswerLike).where(
                AnswerLike.answer_id == answer_id,
                AnswerLike.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def _count_tag_usage(self, db: AsyncSession, tags: List[str]) -> None:
        """Upsert tags, incrementing usage_count for ones that exist"""
        dialect = db.bind.dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            for name in tags:
                tag = (await db.execute(select(Tag).where(Tag.name == name))).scalar_one_or_none()
                if tag is None:
                    db.add(Tag(name=name, usage_count=1))
                else:
                    tag.usage_count += 1
            await db.flush()
            return

        now = datetime.utcnow()
        stmt = insert(Tag).values(
            [{"id": generate_uuid(), "name": name, "usage_count": 1, "created_at": now} for name in tags]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Tag.name],
            set_={"usage_count": Tag.usage_count + 1},
        )
        await db.execute(stmt)

    # ==================== READS ====================

    async def _get_question(self, db: AsyncSession, question_id: str, for_update: bool = False) -> Question:
        stmt = select(Question).where(Question.id == question_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt.execution_options(populate_existing=True))
        question = result.scalar_one_or_none()
        if question is None:
            raise QuestionNotFoundError(question_id)
        return question

    async def _get_answer_for_question(
        self,
        db: AsyncSession,
        question_id: str,
        answer_id: str,
        for_update: bool = False,
    ) -> Answer:
        stmt = select(Answer).where(Answer.id == answer_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt.execution_options(populate_existing=True))
        answer = result.scalar_one_or_none()
        if answer is None or answer.question_id != question_id:
            raise AnswerNotFoundError(answer_id)
        return answer

    def _tag_matches(self, db: AsyncSession, pattern: str):
        """
        EXISTS over the elements of Question.tags.

        Tags are stored lower-cased, so pattern must be lower-cased by the
        caller; the store's own case folding is ASCII-only on SQLite.
        """
        dialect = db.bind.dialect.name
        if dialect == "sqlite":
            elements = func.json_each(Question.tags).table_valued("value")
        elif dialect == "postgresql":
            elements = func.json_array_elements_text(Question.tags).table_valued("value").render_derived()
        else:
            return cast(Question.tags, String).ilike(pattern, escape="\\")
        return exists().where(elements.c.value.like(pattern, escape="\\"))

    async def list_questions(
        self,
        db: AsyncSession,
        q: Optional[str] = None,
        category: Optional[str] = None,
        unanswered: bool = False,
    ) -> List[QuestionListItem]:
        """Newest first, at most LIST_LIMIT; unknown categories are ignored"""
        stmt = (
            select(Question, User.id, User.name, User.year)
            .outerjoin(User, User.id == Question.author_id)
        )

        if category and category in _CATEGORY_VALUES:
            stmt = stmt.where(Question.category == QuestionCategory(category))

        term = (q or "").strip()
        if term:
            pattern = f"%{_escape_like(term)}%"
            stmt = stmt.where(or_(
                Question.title.ilike(pattern, escape="\\"),
                Question.description.ilike(pattern, escape="\\"),
                self._tag_matches(db, f"%{_escape_like(term.lower())}%"),
            ))

        if unanswered:
            stmt = stmt.where(Question.answers_count == 0)

        stmt = stmt.order_by(Question.created_at.desc()).limit(LIST_LIMIT)
        result = await db.execute(stmt.execution_options(populate_existing=True))

        items = []
        for question, author_id, author_name, author_year in result.all():
            items.append(QuestionListItem(
                id=question.id,
                title=question.title,
                description_preview=question.description[:PREVIEW_CHARS],
                category=question.category,
                tags=question.tags or [],
                created_at=question.created_at,
                answers_count=question.answers_count,
                has_accepted_answer=bool(question.accepted_answer_id),
                likes_count=question.likes_count,
                author=AuthorBrief(id=author_id, name=author_name, year=author_year) if author_id else None,
            ))
        return items

    async def get_question_detail(self, db: AsyncSession, question_id: str) -> QuestionDetailResponse:
        require_valid_id(question_id, "id", "question")
        question = await self._get_question(db, question_id)
        author = await db.get(User, question.author_id)

        result = await db.execute(
            select(Answer, User.id, User.name, User.year, User.reputation_score)
            .outerjoin(User, User.id == Answer.author_id)
            .where(Answer.question_id == question_id)
            .order_by(Answer.is_accepted.desc(), Answer.created_at.asc())
            .execution_options(populate_existing=True)
        )

        answers = []
        for answer, a_id, a_name, a_year, a_reputation in result.all():
            answers.append(AnswerItem(
                id=answer.id,
                body=answer.body,
                is_accepted=answer.is_accepted,
                likes_count=answer.likes_count,
                created_at=answer.created_at,
                author=AnswerAuthor(id=a_id, name=a_name, year=a_year, reputation_score=a_reputation) if a_id else None,
            ))

        detail = QuestionDetail(
            id=question.id,
            title=question.title,
            description=question.description,
            category=question.category,
            tags=question.tags or [],
            created_at=question.created_at,
            answers_count=question.answers_count,
            has_accepted_answer=bool(question.accepted_answer_id),
            accepted_answer_id=question.accepted_answer_id,
            likes_count=question.likes_count,
            author=AuthorBrief(id=author.id, name=author.name, year=author.year) if author else None,
        )
        return QuestionDetailResponse(question=detail, answers=answers)


question_service = QuestionService()
