from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.database import get_db
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, get_current_user_id
from app.schemas.question import (
    AnswerCreate,
    CreatedResponse,
    LikeToggleResponse,
    OkResponse,
    QuestionCreate,
    QuestionDetailResponse,
    QuestionListResponse,
)
from app.services.question_service import question_service

router = APIRouter()


@router.get("", response_model=QuestionListResponse)
async def list_questions(
    q: Optional[str] = Query(None, max_length=200),
    category: Optional[str] = None,
    unanswered: bool = False,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Search questions, newest first"""
    questions = await question_service.list_questions(db, q=q, category=category, unanswered=unanswered)
    return QuestionListResponse(questions=questions)


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def ask_question(
    data: QuestionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Ask a question (members only)"""
    question = await question_service.create_question(db, current_user, data)
    return CreatedResponse(id=question.id)


@router.get("/{question_id}", response_model=QuestionDetailResponse)
async def get_question(
    question_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Question with its answers, accepted answer first"""
    return await question_service.get_question_detail(db, question_id)


@router.post("/{question_id}/answers", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def post_answer(
    question_id: str,
    data: AnswerCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Answer a question (members only)"""
    answer = await question_service.create_answer(db, current_user, question_id, data)
    return CreatedResponse(id=answer.id)


@router.post("/{question_id}/answers/{answer_id}/accept", response_model=OkResponse)
async def accept_answer(
    question_id: str,
    answer_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Accept an answer (question author only); accepting it again is a no-op"""
    await question_service.accept_answer(db, user_id, question_id, answer_id)
    return OkResponse()


@router.post("/{question_id}/answers/{answer_id}/like", response_model=LikeToggleResponse)
async def toggle_like(
    question_id: str,
    answer_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Like an answer, or remove an existing like"""
    liked, likes_count = await question_service.toggle_like(db, current_user, question_id, answer_id)
    return LikeToggleResponse(liked=liked, likes_count=likes_count)
