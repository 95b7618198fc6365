from pydantic import Field, field_validator
from typing import List, Optional
from datetime import datetime

from app.models.question import QuestionCategory
from app.schemas.base import CamelModel


class QuestionCreate(CamelModel):
    title: str = Field(..., min_length=10, max_length=160)
    description: str = Field(..., min_length=30, max_length=20000)
    category: QuestionCategory
    tags: List[str] = Field(default_factory=list, max_length=8)

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: List[str]) -> List[str]:
        """Trim, length-check, lower-case and de-duplicate preserving order"""
        seen: List[str] = []
        for raw in v:
            tag = raw.strip()
            if len(tag) < 2 or len(tag) > 24:
                raise ValueError("Each tag must be between 2 and 24 characters")
            tag = tag.lower()
            if tag not in seen:
                seen.append(tag)
        return seen


class AnswerCreate(CamelModel):
    body: str = Field(..., min_length=10, max_length=20000)

    @field_validator("body", mode="before")
    @classmethod
    def strip_body(cls, v):
        return v.strip() if isinstance(v, str) else v


class CreatedResponse(CamelModel):
    id: str


class OkResponse(CamelModel):
    ok: bool = True


class LikeToggleResponse(CamelModel):
    ok: bool = True
    liked: bool
    likes_count: int


class AuthorBrief(CamelModel):
    id: str
    name: str
    year: int


class AnswerAuthor(AuthorBrief):
    reputation_score: int


class QuestionListItem(CamelModel):
    id: str
    title: str
    description_preview: str
    category: QuestionCategory
    tags: List[str]
    created_at: datetime
    answers_count: int
    has_accepted_answer: bool
    likes_count: int
    author: Optional[AuthorBrief] = None


class QuestionListResponse(CamelModel):
    questions: List[QuestionListItem]


class QuestionDetail(CamelModel):
    id: str
    title: str
    description: str
    category: QuestionCategory
    tags: List[str]
    created_at: datetime
    answers_count: int
    has_accepted_answer: bool
    accepted_answer_id: Optional[str] = None
    likes_count: int
    author: Optional[AuthorBrief] = None


class AnswerItem(CamelModel):
    id: str
    body: str
    is_accepted: bool
    likes_count: int
    created_at: datetime
    author: Optional[AnswerAuthor] = None


class QuestionDetailResponse(CamelModel):
    question: QuestionDetail
    answers: List[AnswerItem]
