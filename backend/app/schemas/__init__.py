# Pydantic schemas
from app.schemas.base import CamelModel
from app.schemas.auth import (
    UserSignup,
    UserLogin,
    UserSummary,
    UserResponse,
    SignupResponse,
    LoginResponse,
    AccessTokenResponse,
    MeResponse,
    MessageResponse,
    MembershipResponse,
)
from app.schemas.question import (
    QuestionCreate,
    AnswerCreate,
    CreatedResponse,
    OkResponse,
    LikeToggleResponse,
    QuestionListResponse,
    QuestionDetailResponse,
)
from app.schemas.contributor import ContributorListResponse, LeaderboardResponse
from app.schemas.reputation import ReputationSummaryResponse
