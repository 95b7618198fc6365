from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.database import get_db
from app.modules.auth.dependencies import get_current_user_id
from app.schemas.contributor import ContributorListResponse, LeaderboardResponse
from app.services.contributor_service import contributor_service

router = APIRouter()
leaderboard_router = APIRouter()


@router.get("", response_model=ContributorListResponse)
async def list_contributors(
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    year: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Top contributors, sortable by reputation, accepted answers or contributions"""
    year_filter = int(year) if year and year.isdigit() else None
    users = await contributor_service.list_contributors(db, user_id, sort_by=sort_by, year=year_filter)
    return ContributorListResponse(users=users)


@leaderboard_router.get("", response_model=LeaderboardResponse)
async def get_leaderboard(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Users ranked by likes received"""
    entries = await contributor_service.leaderboard(db)
    return LeaderboardResponse(entries=entries)
