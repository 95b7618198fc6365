from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.modules.auth.dependencies import get_current_user_id
from app.schemas.auth import MembershipResponse
from app.services.session_service import session_service

router = APIRouter()


@router.post("/join", response_model=MembershipResponse)
async def join_community(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Join the community; required before asking, answering or liking"""
    user = await session_service.join_community(db, user_id)
    return MembershipResponse(joined_community=user.joined_community)
