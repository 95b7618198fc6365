from fastapi import APIRouter
from app.api.endpoints import auth, questions, contributors, membership, reputation

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(questions.router, prefix="/questions", tags=["Questions"])
api_router.include_router(contributors.router, prefix="/contributors", tags=["Contributors"])
api_router.include_router(contributors.leaderboard_router, prefix="/leaderboard", tags=["Contributors"])
api_router.include_router(membership.router, prefix="/membership", tags=["Membership"])
api_router.include_router(reputation.router, prefix="/reputation", tags=["Reputation"])
